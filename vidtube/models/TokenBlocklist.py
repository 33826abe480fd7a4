# models/TokenBlocklist.py
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Index
from vidtube.extensions import db


class TokenBlocklist(db.Model):
    """
    Stores revoked access JWTs by their JTI with expiry.
    Rows past expires_at are ignored by the blocklist check.
    """
    __tablename__ = 'token_blocklist'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(String(36), unique=True, nullable=False)
    created_at = db.Column(DateTime, default=lambda: datetime.now(
        timezone.utc), nullable=False)
    expires_at = db.Column(DateTime, nullable=False)

    __table_args__ = (
        Index('ix_token_expires_at', 'expires_at'),
    )

    @staticmethod
    def is_blocked(jti: str) -> bool:
        if not jti:
            return False
        now = datetime.now(timezone.utc)
        q = TokenBlocklist.query.filter(TokenBlocklist.jti == jti, TokenBlocklist.expires_at > now)
        return q.first() is not None
