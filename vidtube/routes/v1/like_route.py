from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy.orm import joinedload

from vidtube.extensions import db
from vidtube.models import Video, Comment, Tweet, Like
from vidtube.utils.api_helper import ok, error, parse_id

like_bp = Blueprint("like_bp", __name__)


def _toggle_like(model, target_id: str, column: str, label: str):
    tid = parse_id(target_id, f"{label} ID")
    target = db.session.get(model, tid)
    if target is None or (model is Video and not target.visible_to(current_user.id)):
        return error(f"{label} not found", 404)

    existing = Like.query.filter_by(liked_by_id=current_user.id, **{column: tid}).first()
    if existing:
        db.session.delete(existing)
        db.session.commit()
        return ok({"isLiked": False}, f"{label} unliked successfully")

    db.session.add(Like(liked_by_id=current_user.id, **{column: tid}))
    db.session.commit()
    return ok({"isLiked": True}, f"{label} liked successfully")


@like_bp.route("/toggle/v/<string:video_id>", methods=["POST"])
@jwt_required()
def toggle_video_like(video_id):
    return _toggle_like(Video, video_id, "video_id", "Video")


@like_bp.route("/toggle/c/<string:comment_id>", methods=["POST"])
@jwt_required()
def toggle_comment_like(comment_id):
    return _toggle_like(Comment, comment_id, "comment_id", "Comment")


@like_bp.route("/toggle/t/<string:tweet_id>", methods=["POST"])
@jwt_required()
def toggle_tweet_like(tweet_id):
    return _toggle_like(Tweet, tweet_id, "tweet_id", "Tweet")


@like_bp.route("/videos", methods=["GET"])
@jwt_required()
def get_liked_videos():
    videos = (
        db.session.query(Video)
        .join(Like, Like.video_id == Video.id)
        .options(joinedload(Video.owner))
        .filter(
            Like.liked_by_id == current_user.id,
            db.or_(Video.is_published.is_(True), Video.owner_id == current_user.id),
        )
        .order_by(Like.created_at.desc())
        .all()
    )
    return ok([v.to_dict(with_owner=True) for v in videos], "Liked videos fetched successfully")
