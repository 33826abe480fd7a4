from flask import Blueprint, request
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy import func, select

from vidtube.extensions import db
from vidtube.models import User, Tweet, Like
from vidtube.schemas.video_schema import ContentSchema
from vidtube.utils.api_helper import ok, error, parse_id
from vidtube.utils.decorator import owner_required

tweet_bp = Blueprint("tweet_bp", __name__)
content_schema = ContentSchema()


@tweet_bp.route("/", methods=["POST"])
@jwt_required()
def create_tweet():
    data = content_schema.load(request.get_json(silent=True) or request.form)
    tweet = Tweet(owner_id=current_user.id, content=data["content"])
    db.session.add(tweet)
    db.session.commit()
    return ok(tweet.to_dict(), "Tweet created successfully", 201)


@tweet_bp.route("/user/<string:user_id>", methods=["GET"])
@jwt_required()
def get_user_tweets(user_id):
    uid = parse_id(user_id, "User ID")
    if db.session.get(User, uid) is None:
        return error("User not found", 404)

    likes = (
        select(func.count(Like.id)).where(Like.tweet_id == Tweet.id)
        .correlate(Tweet).scalar_subquery()
    )
    liked = (
        select(Like.id).where(Like.tweet_id == Tweet.id, Like.liked_by_id == current_user.id)
        .correlate(Tweet).exists()
    )
    rows = (
        db.session.query(Tweet, User, likes.label("likes_count"), liked.label("is_liked"))
        .join(User, User.id == Tweet.owner_id)
        .filter(Tweet.owner_id == uid)
        .order_by(Tweet.created_at.desc())
        .all()
    )
    tweets = [
        {
            "id": str(tweet.id),
            "content": tweet.content,
            "ownerDetails": {"username": owner.username, "avatar": owner.avatar},
            "likesCount": int(likes_count or 0),
            "isLiked": bool(is_liked),
            "createdAt": tweet.created_at.isoformat() if tweet.created_at else None,
        }
        for tweet, owner, likes_count, is_liked in rows
    ]
    return ok(tweets, "Tweets fetched successfully")


@tweet_bp.route("/<string:tweet_id>", methods=["PATCH"])
@owner_required(Tweet, "tweet_id", "Tweet")
def update_tweet(tweet):
    data = content_schema.load(request.get_json(silent=True) or request.form)
    tweet.content = data["content"]
    db.session.commit()
    return ok(tweet.to_dict(), "Tweet updated successfully")


@tweet_bp.route("/<string:tweet_id>", methods=["DELETE"])
@owner_required(Tweet, "tweet_id", "Tweet")
def delete_tweet(tweet):
    Like.query.filter(Like.tweet_id == tweet.id).delete(synchronize_session=False)
    db.session.delete(tweet)
    db.session.commit()
    return ok({}, "Tweet deleted successfully")
