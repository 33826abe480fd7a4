import uuid
from datetime import datetime, timezone

from sqlalchemy import Uuid
from vidtube.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class Subscription(db.Model):
    """subscriber follows channel; both sides are users."""
    __tablename__ = 'subscriptions'

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscriber_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    channel_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    subscriber = db.relationship('User', foreign_keys=[subscriber_id])
    channel = db.relationship('User', foreign_keys=[channel_id])

    __table_args__ = (
        db.UniqueConstraint('subscriber_id', 'channel_id', name='uq_subscriber_channel'),
    )


class Tweet(db.Model):
    __tablename__ = 'tweets'

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    owner = db.relationship('User', back_populates='tweets')

    def to_dict(self):
        return {
            'id': str(self.id),
            'content': self.content,
            'owner': str(self.owner_id),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class Like(db.Model):
    """A like points at exactly one of video, comment or tweet."""
    __tablename__ = 'likes'

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    liked_by_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    video_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('videos.id'), nullable=True, index=True)
    comment_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('comments.id'), nullable=True, index=True)
    tweet_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('tweets.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)

    __table_args__ = (
        db.UniqueConstraint('liked_by_id', 'video_id', name='uq_like_video'),
        db.UniqueConstraint('liked_by_id', 'comment_id', name='uq_like_comment'),
        db.UniqueConstraint('liked_by_id', 'tweet_id', name='uq_like_tweet'),
        db.CheckConstraint(
            '(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END)'
            ' + (CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END)'
            ' + (CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1',
            name='ck_like_single_target'),
    )
