from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required, current_user
from marshmallow import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.orm import joinedload

from vidtube.extensions import db
from vidtube.models import (
    Video, Comment, Like, Subscription, WatchHistory, PlaylistVideo
)
from vidtube.schemas.video_schema import VideoPublishSchema, VideoListQuerySchema
from vidtube.security_utils import audit_log
from vidtube.utils.api_helper import ApiError, ok, error, parse_id, build_page_dict
from vidtube.utils.decorator import owner_required
from vidtube.utils.uploads import stage_upload, discard_staged
from vidtube.utils.services.media import (
    upload_on_media_host, delete_media_asset, public_id_from_url
)

video_publish_schema = VideoPublishSchema()
video_list_schema = VideoListQuerySchema()

# ------------------------------------------------------------------------------
# Blueprint
# ------------------------------------------------------------------------------

video_bp = Blueprint("video_bp", __name__)

SORT_COLUMNS = {
    "createdAt": Video.created_at,
    "views": Video.views,
    "duration": Video.duration,
    "title": Video.title,
}

# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------


def _media_folder(sub: str) -> str:
    return f"{current_app.config.get('MEDIA_FOLDER', 'vidtube')}/{sub}"


def _load_visible_video(video_id: str) -> Video:
    """Resolve a path id to a video the caller may see, else ApiError."""
    vid = parse_id(video_id, "Video ID")
    video = db.session.get(Video, vid)
    if video is None or not video.visible_to(current_user.id):
        raise ApiError(404, "Video not found")
    return video


def _video_engagement(video_id, viewer_id):
    """(likesCount, commentsCount, isLiked) for a single video."""
    likes = (
        select(func.count(Like.id)).where(Like.video_id == Video.id)
        .correlate(Video).scalar_subquery()
    )
    comments = (
        select(func.count(Comment.id)).where(Comment.video_id == Video.id)
        .correlate(Video).scalar_subquery()
    )
    liked = (
        select(Like.id).where(Like.video_id == Video.id, Like.liked_by_id == viewer_id)
        .correlate(Video).exists()
    )
    row = (
        db.session.query(likes.label("likes"), comments.label("comments"), liked.label("liked"))
        .select_from(Video)
        .filter(Video.id == video_id)
        .one()
    )
    return int(row.likes or 0), int(row.comments or 0), bool(row.liked)


def _owner_channel(owner, viewer_id):
    subscribers = (
        db.session.query(func.count(Subscription.id))
        .filter(Subscription.channel_id == owner.id)
        .scalar()
    )
    is_subscribed = db.session.query(
        Subscription.query.filter_by(channel_id=owner.id, subscriber_id=viewer_id).exists()
    ).scalar()
    d = owner.to_public_dict()
    d.update({
        "subscribersCount": int(subscribers or 0),
        "isSubscribed": bool(is_subscribed),
        "createdAt": owner.created_at.isoformat() if owner.created_at else None,
    })
    return d


# ------------------------------------------------------------------------------
# Listing / publishing
# ------------------------------------------------------------------------------


@video_bp.route("/", methods=["GET"])
@jwt_required()
def get_all_videos():
    params = video_list_schema.load(request.args)
    page, limit = params["page"], params["limit"]

    query = Video.query.options(joinedload(Video.owner))
    owner_id = params.get("user_id")
    if owner_id is not None:
        query = query.filter(Video.owner_id == owner_id)
    if owner_id != current_user.id:
        query = query.filter(Video.is_published.is_(True))

    term = params.get("query")
    if term:
        like = f"%{term}%"
        query = query.filter(or_(Video.title.ilike(like), Video.description.ilike(like)))

    column = SORT_COLUMNS[params["sort_by"]]
    order = column.asc() if params["sort_type"] == "asc" else column.desc()

    total = query.order_by(None).count()
    videos = query.order_by(order, Video.id).offset((page - 1) * limit).limit(limit).all()
    docs = [v.to_dict(with_owner=True) for v in videos]
    return ok(build_page_dict(docs, page, limit, total), "Videos fetched successfully")


@video_bp.route("/", methods=["POST"])
@jwt_required()
def publish_a_video():
    video_path = thumb_path = None
    try:
        data = video_publish_schema.load(request.form)
        video_path = stage_upload(request.files.get("videoFile"), "video")
        thumb_path = stage_upload(request.files.get("thumbnail"), "image")
    except (ValidationError, ApiError):
        discard_staged(video_path, thumb_path)
        raise

    if not video_path or not thumb_path:
        discard_staged(video_path, thumb_path)
        return error("Video file and thumbnail are required", 400)

    uploaded_video = upload_on_media_host(video_path, folder=_media_folder("videos"))
    if not uploaded_video:
        discard_staged(thumb_path)
        return error("Error while uploading video", 400)
    uploaded_thumb = upload_on_media_host(thumb_path, folder=_media_folder("thumbnails"))
    if not uploaded_thumb:
        delete_media_asset(uploaded_video.get("public_id"), resource_type="video")
        return error("Error while uploading thumbnail", 400)

    video = Video(
        title=data["title"],
        description=data["description"],
        video_file=uploaded_video["secure_url"],
        video_public_id=uploaded_video.get("public_id"),
        thumbnail=uploaded_thumb["secure_url"],
        thumbnail_public_id=uploaded_thumb.get("public_id"),
        duration=float(uploaded_video.get("duration") or 0.0),
        owner_id=current_user.id,
    )
    db.session.add(video)
    db.session.commit()

    current_app.logger.info(f"✅ Video published id={video.id} owner={current_user.id}")
    audit_log('video_published', actor_id=current_user.id, detail=str(video.id))
    return ok(video.to_dict(), "Video uploaded successfully", 201)


# ------------------------------------------------------------------------------
# Single video
# ------------------------------------------------------------------------------


@video_bp.route("/<string:video_id>", methods=["GET"])
@jwt_required()
def get_video_by_id(video_id):
    video = _load_visible_video(video_id)

    # atomic increment; the row is refreshed on next attribute access
    video.views = Video.views + 1
    WatchHistory.touch(current_user.id, video.id)
    db.session.commit()

    likes_count, comments_count, is_liked = _video_engagement(video.id, current_user.id)
    d = video.to_dict()
    d.update({
        "likesCount": likes_count,
        "commentsCount": comments_count,
        "isLiked": is_liked,
        "owner": _owner_channel(video.owner, current_user.id),
    })
    return ok(d, "Video fetched successfully")


@video_bp.route("/<string:video_id>", methods=["PATCH"])
@owner_required(Video, "video_id", "Video")
def update_video(video):
    thumb_path = None
    try:
        data = video_publish_schema.load(request.get_json(silent=True) or request.form)
        thumb_path = stage_upload(request.files.get("thumbnail"), "image")
    except (ValidationError, ApiError):
        discard_staged(thumb_path)
        raise

    old_thumb_id = None
    if thumb_path:
        uploaded = upload_on_media_host(thumb_path, folder=_media_folder("thumbnails"))
        if not uploaded:
            return error("Error while uploading thumbnail", 400)
        old_thumb_id = video.thumbnail_public_id or public_id_from_url(video.thumbnail)
        video.thumbnail = uploaded["secure_url"]
        video.thumbnail_public_id = uploaded.get("public_id")

    video.title = data["title"]
    video.description = data["description"]
    db.session.commit()

    if old_thumb_id:
        delete_media_asset(old_thumb_id)
    return ok(video.to_dict(), "Video updated successfully")


@video_bp.route("/<string:video_id>", methods=["DELETE"])
@owner_required(Video, "video_id", "Video")
def delete_video(video):
    vid = video.id
    video_asset = video.video_public_id or public_id_from_url(video.video_file)
    thumb_asset = video.thumbnail_public_id or public_id_from_url(video.thumbnail)

    comment_ids = select(Comment.id).where(Comment.video_id == vid)
    Like.query.filter(
        or_(Like.video_id == vid, Like.comment_id.in_(comment_ids))
    ).delete(synchronize_session=False)
    Comment.query.filter(Comment.video_id == vid).delete(synchronize_session=False)
    WatchHistory.query.filter(WatchHistory.video_id == vid).delete(synchronize_session=False)
    PlaylistVideo.query.filter(PlaylistVideo.video_id == vid).delete(synchronize_session=False)
    db.session.delete(video)
    db.session.commit()

    delete_media_asset(video_asset, resource_type="video")
    delete_media_asset(thumb_asset)
    current_app.logger.info(f"🗑️ Video deleted id={vid} by {current_user.id}")
    audit_log('video_deleted', actor_id=current_user.id, detail=str(vid))
    return ok({}, "Video deleted successfully")


@video_bp.route("/toggle/publish/<string:video_id>", methods=["PATCH"])
@owner_required(Video, "video_id", "Video")
def toggle_publish_status(video):
    video.is_published = not video.is_published
    db.session.commit()
    return ok({"isPublished": bool(video.is_published)}, "Publish status toggled successfully")
