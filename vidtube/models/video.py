import uuid
from datetime import datetime, timezone

from sqlalchemy import Uuid
from vidtube.models.User import User
from vidtube.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class Video(db.Model):
    __tablename__ = 'videos'

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # secure_url / public_id pairs returned by the media host
    video_file = db.Column(db.String(512), nullable=False)
    video_public_id = db.Column(db.String(255), nullable=True)
    thumbnail = db.Column(db.String(512), nullable=False)
    thumbnail_public_id = db.Column(db.String(255), nullable=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    duration = db.Column(db.Float, nullable=False, default=0.0)
    views = db.Column(db.Integer, nullable=False, default=0)
    is_published = db.Column(db.Boolean, nullable=False, default=True, index=True)

    owner_id = db.Column(Uuid(as_uuid=True), db.ForeignKey(
        'users.id'), nullable=False, index=True)
    owner = db.relationship(User, back_populates='videos',
                            foreign_keys=[owner_id])

    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self, with_owner: bool = False):
        d = {
            'id': str(self.id),
            'videoFile': self.video_file,
            'thumbnail': self.thumbnail,
            'title': self.title,
            'description': self.description or '',
            'duration': float(self.duration or 0.0),
            'views': int(self.views or 0),
            'isPublished': bool(self.is_published),
            'owner': str(self.owner_id),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_owner and self.owner:
            d['owner'] = self.owner.to_public_dict()
        return d

    def visible_to(self, user_id) -> bool:
        return bool(self.is_published) or self.owner_id == user_id

    def __repr__(self):
        return f"<Video {self.title} - {'published' if self.is_published else 'draft'}>"


class Comment(db.Model):
    __tablename__ = 'comments'

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    content = db.Column(db.Text, nullable=False)
    video_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('videos.id'), nullable=False, index=True)
    owner_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    owner = db.relationship('User')
    video = db.relationship('Video')

    def to_dict(self):
        return {
            'id': str(self.id),
            'content': self.content,
            'video': str(self.video_id),
            'owner': str(self.owner_id),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class WatchHistory(db.Model):
    __tablename__ = 'watch_history'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    video_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('videos.id'), nullable=False, index=True)
    watched_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'video_id', name='uq_history_user_video'),
    )

    @classmethod
    def touch(cls, user_id, video_id):
        """Insert the entry or move it to the front of the user's history."""
        entry = cls.query.filter_by(user_id=user_id, video_id=video_id).first()
        if entry:
            entry.watched_at = _utcnow()
        else:
            entry = cls(user_id=user_id, video_id=video_id)
            db.session.add(entry)
        return entry


# -------------------- Playlists --------------------
class Playlist(db.Model):
    __tablename__ = 'playlists'

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    owner_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    owner = db.relationship('User', back_populates='playlists')
    entries = db.relationship('PlaylistVideo', back_populates='playlist', cascade='all, delete-orphan',
                              order_by='PlaylistVideo.position')

    def visible_videos(self, viewer_id):
        """Videos in playlist order, minus other owners' unpublished ones."""
        return [e.video for e in self.entries if e.video is not None and e.video.visible_to(viewer_id)]

    def to_dict(self, viewer_id=None, with_videos: bool = False):
        videos = self.visible_videos(viewer_id)
        d = {
            'id': str(self.id),
            'name': self.name,
            'description': self.description or '',
            'owner': str(self.owner_id),
            'totalVideos': len(videos),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_videos:
            d['videos'] = [v.to_dict(with_owner=True) for v in videos]
        return d


class PlaylistVideo(db.Model):
    __tablename__ = 'playlist_videos'

    id = db.Column(db.Integer, primary_key=True)
    playlist_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('playlists.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    video_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('videos.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0, index=True)
    added_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    playlist = db.relationship('Playlist', back_populates='entries')
    video = db.relationship('Video')

    __table_args__ = (
        db.UniqueConstraint('playlist_id', 'video_id', name='uq_playlist_video'),
    )
