import time
from datetime import datetime, timezone

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vidtube.extensions import db
from vidtube.utils.api_helper import ok

healthcheck_bp = Blueprint("healthcheck_bp", __name__)

_STARTED = time.monotonic()


@healthcheck_bp.route("/", methods=["GET"])
def healthcheck():
    payload = {
        "uptime": round(time.monotonic() - _STARTED, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"❌ Healthcheck database check failed: {exc}")
        payload.update({"dbStatus": "disconnected", "message": "Error"})
        return ok(payload, "Error", 503)
    payload.update({"dbStatus": "connected", "message": "OK"})
    return ok(payload, "Health check passed")
