# models/User.py

import uuid
import bcrypt
import logging
from datetime import datetime, timedelta, timezone
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Uuid

from ..extensions import db

logger = logging.getLogger("auth")

# --- Constants ---
MAX_FAILED_ATTEMPTS = 5
LOCK_DURATION_MINUTES = 15


def _aware(dt):
    # SQLite hands back naive datetimes; everything we store is UTC
    if dt and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class User(db.Model):
    __tablename__ = 'users'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(120), unique=True, nullable=False)
    fullname = Column(String(120), nullable=False)

    # media host references (url + public id for later deletion)
    avatar = Column(String(512), nullable=False)
    avatar_public_id = Column(String(255))
    cover_image = Column(String(512), nullable=False, default="")
    cover_image_public_id = Column(String(255))

    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)

    failed_login_attempts = Column(Integer, default=0)
    lock_until = Column(DateTime)
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(
        timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    videos = db.relationship(
        'Video', back_populates='owner', foreign_keys='Video.owner_id',
        cascade='all, delete-orphan')
    tweets = db.relationship(
        'Tweet', back_populates='owner', cascade='all, delete-orphan')
    playlists = db.relationship(
        'Playlist', back_populates='owner', cascade='all, delete-orphan')

    # --- Security Methods ---

    def is_locked(self) -> bool:
        lock_until = _aware(self.lock_until)
        return bool(lock_until and datetime.now(timezone.utc) < lock_until)

    def lock_account(self):
        self.lock_until = datetime.now(
            timezone.utc) + timedelta(minutes=LOCK_DURATION_MINUTES)
        logger.warning(f"User {self.id} locked until {self.lock_until}")

    def increment_failed_logins(self):
        if self.is_locked():
            return
        if self.lock_until is not None:
            # lock expired: start a fresh window
            self.reset_failed_logins()
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= MAX_FAILED_ATTEMPTS:
            self.lock_account()

    def reset_failed_logins(self):
        self.failed_login_attempts = 0
        self.lock_until = None

    def set_password(self, raw_password: str):
        salt = bcrypt.gensalt()
        self.password_hash = bcrypt.hashpw(
            raw_password.encode(), salt).decode()

    def check_password(self, raw_password: str) -> bool:
        if not raw_password or not self.password_hash:
            return False
        try:
            return bcrypt.checkpw(raw_password.encode(), self.password_hash.encode())
        except ValueError:
            return False

    # --- Lookup ---

    @staticmethod
    def find_by_identifier(username: str = None, email: str = None):
        """Match on username OR email, whichever were supplied."""
        clauses = []
        if username:
            clauses.append(User.username == username.strip().lower())
        if email:
            clauses.append(User.email == email.strip().lower())
        if not clauses:
            return None
        return User.query.filter(db.or_(*clauses)).first()

    # --- Serialization ---

    def to_public_dict(self):
        """Owner card embedded in videos, comments and subscriber lists."""
        return {
            'id': str(self.id),
            'username': self.username,
            'fullname': self.fullname,
            'avatar': self.avatar,
        }

    def __str__(self):
        return f"<User(username='{self.username}')>"
