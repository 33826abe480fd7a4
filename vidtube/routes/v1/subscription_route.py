from flask import Blueprint, current_app
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy import func

from vidtube.extensions import db
from vidtube.models import User, Video, Subscription
from vidtube.utils.api_helper import ok, error, parse_id

subscription_bp = Blueprint("subscription_bp", __name__)


@subscription_bp.route("/c/<string:channel_id>", methods=["POST"])
@jwt_required()
def toggle_subscription(channel_id):
    cid = parse_id(channel_id, "Channel ID")
    if cid == current_user.id:
        return error("You cannot subscribe to your own channel", 400)
    if db.session.get(User, cid) is None:
        return error("Channel not found", 404)

    existing = Subscription.query.filter_by(subscriber_id=current_user.id, channel_id=cid).first()
    if existing:
        db.session.delete(existing)
        db.session.commit()
        current_app.logger.info(f"User {current_user.id} unsubscribed from {cid}")
        return ok({"subscribed": False}, "Unsubscribed successfully")

    db.session.add(Subscription(subscriber_id=current_user.id, channel_id=cid))
    db.session.commit()
    current_app.logger.info(f"User {current_user.id} subscribed to {cid}")
    return ok({"subscribed": True}, "Subscribed successfully")


@subscription_bp.route("/c/<string:channel_id>", methods=["GET"])
@jwt_required()
def get_user_channel_subscribers(channel_id):
    cid = parse_id(channel_id, "Channel ID")
    subscribers = (
        db.session.query(User)
        .join(Subscription, Subscription.subscriber_id == User.id)
        .filter(Subscription.channel_id == cid)
        .order_by(Subscription.created_at.desc())
        .all()
    )
    return ok([{"subscriber": u.to_public_dict()} for u in subscribers],
              "Subscribers fetched successfully")


@subscription_bp.route("/u/<string:subscriber_id>", methods=["GET"])
@jwt_required()
def get_subscribed_channels(subscriber_id):
    sid = parse_id(subscriber_id, "Subscriber ID")
    if sid != current_user.id:
        return error("You can only view your own subscriptions", 403)

    channels = (
        db.session.query(User)
        .join(Subscription, Subscription.channel_id == User.id)
        .filter(Subscription.subscriber_id == sid)
        .order_by(Subscription.created_at.desc())
        .all()
    )
    if not channels:
        return ok([], "Subscribed channels fetched successfully")

    # newest published video per channel
    newest = (
        db.session.query(Video.owner_id, func.max(Video.created_at).label("created_at"))
        .filter(Video.is_published.is_(True), Video.owner_id.in_([c.id for c in channels]))
        .group_by(Video.owner_id)
        .subquery()
    )
    latest_by_owner = {}
    for video in (
        db.session.query(Video)
        .join(newest, (Video.owner_id == newest.c.owner_id) & (Video.created_at == newest.c.created_at))
        .filter(Video.is_published.is_(True))
        .all()
    ):
        latest_by_owner.setdefault(video.owner_id, video)

    result = []
    for channel in channels:
        d = channel.to_public_dict()
        latest = latest_by_owner.get(channel.id)
        d["latestVideo"] = latest.to_dict() if latest else None
        result.append({"subscribedChannel": d})
    return ok(result, "Subscribed channels fetched successfully")
