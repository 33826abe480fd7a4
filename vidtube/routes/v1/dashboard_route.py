from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy import func, select

from vidtube.extensions import db
from vidtube.models import Video, Comment, Like, Subscription, Tweet
from vidtube.utils.api_helper import ok

dashboard_bp = Blueprint("dashboard_bp", __name__)


def _count(query) -> int:
    return int(query.scalar() or 0)


@dashboard_bp.route("/stats", methods=["GET"])
@jwt_required()
def get_channel_stats():
    uid = current_user.id
    own_videos = select(Video.id).where(Video.owner_id == uid)

    stats = {
        "totalVideos": _count(db.session.query(func.count(Video.id)).filter(Video.owner_id == uid)),
        "totalViews": _count(db.session.query(func.coalesce(func.sum(Video.views), 0))
                             .filter(Video.owner_id == uid)),
        "totalLikes": _count(db.session.query(func.count(Like.id)).filter(Like.video_id.in_(own_videos))),
        "totalComments": _count(db.session.query(func.count(Comment.id))
                                .filter(Comment.video_id.in_(own_videos))),
        "subscribers": _count(db.session.query(func.count(Subscription.id))
                              .filter(Subscription.channel_id == uid)),
        "subscribedTo": _count(db.session.query(func.count(Subscription.id))
                               .filter(Subscription.subscriber_id == uid)),
        "totalTweets": _count(db.session.query(func.count(Tweet.id)).filter(Tweet.owner_id == uid)),
    }
    return ok(stats, "Channel stats fetched successfully")


@dashboard_bp.route("/videos", methods=["GET"])
@jwt_required()
def get_channel_videos():
    likes = (
        select(func.count(Like.id)).where(Like.video_id == Video.id)
        .correlate(Video).scalar_subquery()
    )
    rows = (
        db.session.query(Video, likes.label("likes"))
        .filter(Video.owner_id == current_user.id)
        .order_by(Video.created_at.desc())
        .all()
    )
    videos = []
    for video, like_count in rows:
        created = video.created_at
        videos.append({
            "id": str(video.id),
            "videoFile": video.video_file,
            "thumbnail": video.thumbnail,
            "title": video.title,
            "description": video.description,
            "duration": float(video.duration or 0.0),
            "views": int(video.views or 0),
            "likes": int(like_count or 0),
            "isPublished": bool(video.is_published),
            "createdAt": {"year": created.year, "month": created.month, "day": created.day} if created else None,
        })
    return ok(videos, "Channel videos fetched successfully")
