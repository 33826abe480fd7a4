from flask import Blueprint, request
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy import func, select

from vidtube.extensions import db
from vidtube.models import User, Video, Comment, Like
from vidtube.schemas.video_schema import ContentSchema, PageQuerySchema
from vidtube.utils.api_helper import (
    ok, error, parse_id, build_page_dict
)
from vidtube.utils.decorator import owner_required

comment_bp = Blueprint("comment_bp", __name__)
content_schema = ContentSchema()
page_schema = PageQuerySchema()


def _visible_video_or_none(video_id):
    vid = parse_id(video_id, "Video ID")
    video = db.session.get(Video, vid)
    if video is None or not video.visible_to(current_user.id):
        return None
    return video


@comment_bp.route("/<string:video_id>", methods=["GET"])
@jwt_required()
def get_video_comments(video_id):
    video = _visible_video_or_none(video_id)
    if video is None:
        return error("Video not found", 404)
    args = page_schema.load(request.args)
    page, limit = args["page"], args["limit"]

    likes = (
        select(func.count(Like.id)).where(Like.comment_id == Comment.id)
        .correlate(Comment).scalar_subquery()
    )
    liked = (
        select(Like.id).where(Like.comment_id == Comment.id, Like.liked_by_id == current_user.id)
        .correlate(Comment).exists()
    )
    base = Comment.query.filter(Comment.video_id == video.id)
    total = base.count()
    rows = (
        db.session.query(Comment, User, likes.label("likes_count"), liked.label("is_liked"))
        .join(User, User.id == Comment.owner_id)
        .filter(Comment.video_id == video.id)
        .order_by(Comment.created_at.desc(), Comment.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    docs = []
    for comment, owner, likes_count, is_liked in rows:
        d = comment.to_dict()
        d.update({
            "owner": owner.to_public_dict(),
            "likesCount": int(likes_count or 0),
            "isLiked": bool(is_liked),
        })
        docs.append(d)
    return ok(build_page_dict(docs, page, limit, total), "Comments fetched successfully")


@comment_bp.route("/<string:video_id>", methods=["POST"])
@jwt_required()
def add_comment(video_id):
    video = _visible_video_or_none(video_id)
    if video is None:
        return error("Video not found", 404)
    data = content_schema.load(request.get_json(silent=True) or request.form)
    comment = Comment(content=data["content"], video_id=video.id, owner_id=current_user.id)
    db.session.add(comment)
    db.session.commit()
    return ok(comment.to_dict(), "Comment added successfully", 201)


@comment_bp.route("/c/<string:comment_id>", methods=["PATCH"])
@owner_required(Comment, "comment_id", "Comment")
def update_comment(comment):
    data = content_schema.load(request.get_json(silent=True) or request.form)
    comment.content = data["content"]
    db.session.commit()
    return ok(comment.to_dict(), "Comment updated successfully")


@comment_bp.route("/c/<string:comment_id>", methods=["DELETE"])
@owner_required(Comment, "comment_id", "Comment")
def delete_comment(comment):
    Like.query.filter(Like.comment_id == comment.id).delete(synchronize_session=False)
    db.session.delete(comment)
    db.session.commit()
    return ok({}, "Comment deleted successfully")
