from functools import wraps
from flask import current_app
from flask_jwt_extended import current_user, verify_jwt_in_request

from vidtube.extensions import db
from vidtube.utils.api_helper import error, parse_id


def owner_required(model, id_arg: str, label: str):
    """
    Decorator to enforce resource ownership using flask_jwt_extended.

    Loads `model` by the UUID found in the view kwarg `id_arg` and passes the
    instance to the view as first positional argument (the kwarg is consumed).

    Responses:
        400 "Invalid <label> ID" when the id is not a UUID
        404 "<label> not found"
        403 when the caller does not own the row (model.owner_id)

    Example:
        @owner_required(Video, 'video_id', 'Video')
        def update_video(video): ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            obj_id = parse_id(kwargs.pop(id_arg, None), f"{label} ID")
            obj = db.session.get(model, obj_id)
            if obj is None:
                return error(f"{label} not found", 404)
            if obj.owner_id != current_user.id:
                current_app.logger.warning(
                    f"🚫 Forbidden. User {current_user.id} is not owner of {label} {obj_id}"
                )
                return error(f"Only the owner can modify this {label.lower()}", 403)
            current_app.logger.debug(f"✅ Owner access granted to user {current_user.id}")
            return func(obj, *args, **kwargs)

        return wrapper
    return decorator
