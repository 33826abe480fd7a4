import os

import click
from flask import current_app
from flask.cli import with_appcontext
from flask_migrate import upgrade as alembic_upgrade
from vidtube.extensions import db


@click.command("setup")
@click.option("--migrations-dir", default="migrations", show_default=True,
              help="Alembic directory; create_all() is used when it does not exist")
@with_appcontext
def setup_command(migrations_dir: str):
    """One-shot project setup for fresh systems.

    - Upgrades DB schema to head (Alembic) when a migrations directory exists
    - Otherwise creates all tables from the models
    - Ensures the upload staging directory exists

    Safe to run multiple times; all steps are idempotent.
    """
    engine_name = getattr(db.engine, 'name', '').lower()
    current_app.logger.info("setup: starting (engine=%s)", engine_name)

    try:
        if os.path.isdir(migrations_dir):
            alembic_upgrade(directory=migrations_dir)
            click.echo("✔ Database upgraded to head")
        else:
            db.create_all()
            click.echo("✔ Tables created (no migrations directory)")
    except Exception as e:
        current_app.logger.exception('setup: schema step failed: %s', e)
        raise click.ClickException(f"Schema setup failed: {e}")

    temp_dir = current_app.config['UPLOAD_TEMP_DIR']
    os.makedirs(temp_dir, exist_ok=True)
    click.echo(f"✔ Upload staging directory ready: {temp_dir}")

    click.echo("✅ Setup complete")
