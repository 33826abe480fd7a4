import click
from flask.cli import with_appcontext
from vidtube.models.User import User, db
from vidtube.security_utils import password_strong


@click.command("create-user")
@click.option(
    "--username",
    prompt="Username",
    default="admin",
    help="Username of the new user"
)
@click.option(
    "--email",
    prompt="Email address",
    default="admin@example.com",
    help="Email address"
)
@click.option(
    "--fullname",
    prompt="Full name",
    default="Administrator",
    help="Display name"
)
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password"
)
@with_appcontext
def create_user(username, email, fullname, password):
    """Create a new user from the CLI (no avatar; set one later via the API)."""
    username = username.strip().lower()
    email = email.strip().lower()

    existing_user = User.query.filter(
        (User.username == username) |
        (User.email == email)
    ).first()

    if existing_user:
        click.secho(
            "❌ A user with the same username or email already exists.", fg='red')
        return

    if not password_strong(password):
        click.secho("❌ Password must be 8-72 characters and contain a letter and a digit.", fg='red')
        return

    user = User(
        username=username,
        email=email,
        fullname=fullname.strip() or username,
        avatar="",
        is_active=True,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.secho(f"✅ User '{username}' created (id: {user.id})", fg='green')
