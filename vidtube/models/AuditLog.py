from datetime import datetime, timezone

from sqlalchemy import Uuid
from vidtube.extensions import db


class AuditLog(db.Model):
    """Security-relevant events: auth flows and video publish/delete."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    event = db.Column(db.String(64), nullable=False, index=True)
    # no FK: rows outlive deleted accounts
    user_id = db.Column(Uuid(as_uuid=True), nullable=True, index=True)
    target_user_id = db.Column(Uuid(as_uuid=True), nullable=True)
    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(256), nullable=True)
    detail = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, index=True,
                           default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<AuditLog {self.event} user={self.user_id}>"
