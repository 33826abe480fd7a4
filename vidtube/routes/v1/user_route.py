# routes/v1/user_route.py

from datetime import datetime, timezone

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user, get_jwt
from marshmallow import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from vidtube.extensions import db
from vidtube.models.User import User
from vidtube.models.RefreshToken import RefreshToken
from vidtube.models.TokenBlocklist import TokenBlocklist
from vidtube.models.video import Video, WatchHistory
from vidtube.models.social import Subscription
from vidtube.schemas.user_schema import (
    RegisterSchema, LoginSchema, ChangePasswordSchema, AccountUpdateSchema, UserSchema
)
from vidtube.security_utils import rate_limit, ip_and_path_key, audit_log
from vidtube.utils.api_helper import ApiError, ok, error, parse_id
from vidtube.utils.audit_helpers import log_login_failed
from vidtube.utils.auth_tokens import issue_token_pair, set_auth_cookies, clear_auth_cookies
from vidtube.utils.uploads import stage_upload, discard_staged
from vidtube.utils.services.media import (
    upload_on_media_host, delete_media_asset, public_id_from_url
)

user_bp = Blueprint("user_bp", __name__)
register_schema = RegisterSchema()
login_schema = LoginSchema()
change_password_schema = ChangePasswordSchema()
account_update_schema = AccountUpdateSchema()
user_schema = UserSchema()


def _media_folder(sub: str) -> str:
    return f"{current_app.config.get('MEDIA_FOLDER', 'vidtube')}/{sub}"


def _request_data():
    """JSON body when present, else form fields."""
    return request.get_json(silent=True) or request.form


# -------------------- REGISTER --------------------
@user_bp.route("/register", methods=["POST"])
@rate_limit(ip_and_path_key, limit=10, window_sec=300)
def register():
    avatar_path = cover_path = None
    try:
        avatar_path = stage_upload(request.files.get("avatar"), "image")
        cover_path = stage_upload(request.files.get("coverImage"), "image")
        data = register_schema.load(request.form)
    except (ValidationError, ApiError):
        discard_staged(avatar_path, cover_path)
        raise

    username = data["username"].lower()
    email = data["email"].lower()
    current_app.logger.info("Received registration for username=%s", username)

    if User.query.filter(db.or_(User.username == username, User.email == email)).first():
        discard_staged(avatar_path, cover_path)
        current_app.logger.warning(f"⚠️  Username or email already registered: {username} / {email}")
        return error("User with username or email already exists", 409)

    if not avatar_path:
        discard_staged(cover_path)
        return error("Avatar file is required", 400)

    avatar = upload_on_media_host(avatar_path, folder=_media_folder("avatars"))
    if not avatar:
        discard_staged(cover_path)
        return error("Avatar upload failed", 400)
    cover = upload_on_media_host(cover_path, folder=_media_folder("covers")) if cover_path else None

    user = User(
        username=username,
        email=email,
        fullname=data["fullname"],
        avatar=avatar["secure_url"],
        avatar_public_id=avatar.get("public_id"),
        cover_image=(cover or {}).get("secure_url", ""),
        cover_image_public_id=(cover or {}).get("public_id"),
    )
    user.set_password(data["password"])
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Registration race on username/email %s", username)
        delete_media_asset(avatar.get("public_id"))
        if cover:
            delete_media_asset(cover.get("public_id"))
        return error("User with username or email already exists", 409)

    current_app.logger.info(f"✅ User registered successfully: {user.username} ({user.email})")
    audit_log('user_registered', actor_id=user.id)
    return ok(user_schema.dump(user), "User registered successfully", 201)


# -------------------- LOGIN / LOGOUT / REFRESH --------------------
@user_bp.route('/login', methods=['POST'])
@rate_limit(ip_and_path_key, limit=20, window_sec=300)
def login():
    data = login_schema.load(_request_data())
    user = User.find_by_identifier(data.get("username"), data.get("email"))
    if not user:
        current_app.logger.warning("Login failed: no user for %s", data.get("username") or data.get("email"))
        log_login_failed('user_not_found')
        return error("User does not exist", 404)
    if not user.is_active:
        log_login_failed('account_disabled', user.id)
        return error("Account is disabled", 403)
    if user.is_locked():
        log_login_failed('account_locked', user.id)
        return error("Account temporarily locked after repeated failed logins", 423)
    if not user.check_password(data["password"]):
        user.increment_failed_logins()
        db.session.commit()
        current_app.logger.warning(f"Login failed: incorrect password for user {user.username}")
        log_login_failed('bad_password', user.id)
        return error("Invalid user credentials", 401)

    access_token, _, refresh_plain = issue_token_pair(user)
    user.last_login = datetime.now(timezone.utc)
    user.reset_failed_logins()
    db.session.commit()

    current_app.logger.info(f"Issued JWT for user {user.username} (ID: {user.id})")
    audit_log('login_success', actor_id=user.id)
    resp, status = ok(
        {"user": user_schema.dump(user), "accessToken": access_token, "refreshToken": refresh_plain},
        "User logged in successfully",
    )
    set_auth_cookies(resp, access_token, refresh_plain)
    return resp, status


@user_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    claims = get_jwt()
    RefreshToken.revoke_all_for_user(current_user.id)
    db.session.add(TokenBlocklist(
        jti=claims["jti"],
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    ))
    db.session.commit()
    audit_log('logout', actor_id=current_user.id)
    resp, status = ok({}, "User logged out successfully")
    clear_auth_cookies(resp)
    return resp, status


@user_bp.route('/refresh-token', methods=['POST'])
@rate_limit(ip_and_path_key, limit=30, window_sec=300)
def refresh_access_token():
    """Exchange a valid refresh token for a new pair.

    Token comes from the refreshToken cookie or the request body
    (refreshToken / refresh_token). Rotation: the presented token is revoked.
    """
    body = request.get_json(silent=True) or {}
    supplied = (
        request.cookies.get(current_app.config['REFRESH_COOKIE_NAME'])
        or body.get('refreshToken')
        or body.get('refresh_token')
        or ''
    ).strip()
    if not supplied:
        return error("Unauthorized request", 401)

    rt = RefreshToken.find_plain(supplied)
    if not rt:
        # Do not reveal if invalid vs reused
        return error("Invalid Refresh Token", 401)
    if not rt.is_active():
        return error("Refresh Token is either expired or already used", 401)

    user = db.session.get(User, rt.user_id)
    if not user or not user.is_active:
        return error("Invalid Refresh Token", 401)

    access_token, new_rt, new_plain = issue_token_pair(user)
    db.session.flush()  # new_rt.id for the replacement link
    rt.revoke(replaced_by=new_rt)
    db.session.commit()

    resp, status = ok({"accessToken": access_token, "refreshToken": new_plain}, "Access Token refreshed")
    set_auth_cookies(resp, access_token, new_plain)
    return resp, status


# -------------------- ACCOUNT --------------------
@user_bp.route("/change-password", methods=["POST"])
@jwt_required()
@rate_limit(ip_and_path_key, limit=5, window_sec=900)
def change_password():
    data = change_password_schema.load(request.get_json(silent=True) or {})
    if not current_user.check_password(data["old_password"]):
        audit_log('password_change_failed', actor_id=current_user.id, detail='bad_current_password')
        return error("Invalid old password", 400)
    current_user.set_password(data["new_password"])
    db.session.commit()
    audit_log('password_changed', actor_id=current_user.id)
    return ok({}, "Password changed successfully")


@user_bp.route("/current-user", methods=["GET"])
@jwt_required()
def get_current_user():
    return ok(user_schema.dump(current_user), "Current user fetched successfully")


@user_bp.route("/update-account", methods=["PATCH"])
@jwt_required()
def update_account_details():
    data = account_update_schema.load(_request_data())
    email = data.get("email")
    if email:
        email = email.lower()
        taken = User.query.filter(User.email == email, User.id != current_user.id).first()
        if taken:
            return error("Email already in use", 409)
        current_user.email = email
    if data.get("fullname"):
        current_user.fullname = data["fullname"]
    db.session.commit()
    return ok(user_schema.dump(current_user), "Account details updated successfully")


def _replace_user_image(field: str, url_attr: str, public_id_attr: str, label: str):
    path = stage_upload(request.files.get(field), "image")
    if not path:
        return error(f"{label} file is missing", 400)
    result = upload_on_media_host(path, folder=_media_folder(f"{url_attr}s"))
    if not result:
        return error(f"Error while uploading {label.lower()}", 400)

    old_public_id = getattr(current_user, public_id_attr) or public_id_from_url(getattr(current_user, url_attr))
    setattr(current_user, url_attr, result["secure_url"])
    setattr(current_user, public_id_attr, result.get("public_id"))
    db.session.commit()
    # old asset goes only after the new reference is persisted
    delete_media_asset(old_public_id)
    return ok(user_schema.dump(current_user), f"{label} is updated successfully")


@user_bp.route("/avatar", methods=["PATCH"])
@jwt_required()
def update_user_avatar():
    return _replace_user_image("avatar", "avatar", "avatar_public_id", "Avatar")


@user_bp.route("/cover-image", methods=["PATCH"])
@jwt_required()
def update_user_cover_image():
    return _replace_user_image("coverImage", "cover_image", "cover_image_public_id", "Cover image")


# -------------------- CHANNEL PROFILE --------------------
def _channel_profile(username: str, viewer_id):
    """User row joined with subscriber counts and the viewer's subscription flag."""
    subscribers = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    is_subscribed = (
        select(Subscription.id)
        .where(Subscription.channel_id == User.id, Subscription.subscriber_id == viewer_id)
        .correlate(User)
        .exists()
    )
    row = (
        db.session.query(
            User,
            subscribers.label("subscribers_count"),
            subscribed_to.label("subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
        )
        .filter(User.username == username.strip().lower())
        .first()
    )
    if row is None:
        return None
    user, subs, subscribed, flag = row
    return {
        "id": str(user.id),
        "fullname": user.fullname,
        "username": user.username,
        "email": user.email,
        "avatar": user.avatar,
        "coverImage": user.cover_image,
        "subscribersCount": int(subs or 0),
        "channelsSubscribedToCount": int(subscribed or 0),
        "isSubscribed": bool(flag),
    }


@user_bp.route("/c/<string:username>", methods=["GET"])
@jwt_required()
def get_user_channel_profile(username):
    if not username.strip():
        return error("username is missing", 400)
    channel = _channel_profile(username, current_user.id)
    if channel is None:
        return error("Channel does not exist", 404)
    return ok(channel, "User's channel profile fetched successfully")


# -------------------- WATCH HISTORY --------------------
@user_bp.route("/history", methods=["GET"])
@jwt_required()
def get_watch_history():
    rows = (
        db.session.query(Video, WatchHistory.watched_at)
        .join(WatchHistory, WatchHistory.video_id == Video.id)
        .options(joinedload(Video.owner))
        .filter(
            WatchHistory.user_id == current_user.id,
            db.or_(Video.is_published.is_(True), Video.owner_id == current_user.id),
        )
        .order_by(WatchHistory.watched_at.desc())
        .all()
    )
    items = []
    for video, watched_at in rows:
        d = video.to_dict(with_owner=True)
        d["watchedAt"] = watched_at.isoformat() if watched_at else None
        items.append(d)
    return ok(items, "Watch history fetched successfully")


@user_bp.route("/history/<string:video_id>", methods=["DELETE"])
@jwt_required()
def delete_history_item(video_id):
    vid = parse_id(video_id, "Video ID")
    deleted = (
        WatchHistory.query
        .filter(WatchHistory.user_id == current_user.id, WatchHistory.video_id == vid)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return ok({"removed": int(deleted)}, "History entry removed")


@user_bp.route("/history", methods=["DELETE"])
@jwt_required()
def clear_history():
    deleted = (
        WatchHistory.query
        .filter(WatchHistory.user_id == current_user.id)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return ok({"removed": int(deleted)}, "Watch history cleared")
