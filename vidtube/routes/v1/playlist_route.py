from flask import Blueprint, request
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy import func

from vidtube.extensions import db
from vidtube.models import User, Video, Playlist, PlaylistVideo
from vidtube.schemas.video_schema import PlaylistSchema, PlaylistUpdateSchema
from vidtube.utils.api_helper import ok, error, parse_id
from vidtube.utils.decorator import owner_required

playlist_bp = Blueprint("playlist_bp", __name__)
playlist_schema = PlaylistSchema()
playlist_update_schema = PlaylistUpdateSchema()


def _request_data():
    return request.get_json(silent=True) or request.form


def _playlist_payload(playlist: Playlist):
    """Playlist with the videos the caller is allowed to see, in order."""
    return playlist.to_dict(current_user.id, with_videos=True)


@playlist_bp.route("/", methods=["POST"])
@jwt_required()
def create_playlist():
    data = playlist_schema.load(_request_data())
    playlist = Playlist(name=data["name"], description=data.get("description") or "",
                        owner_id=current_user.id)
    db.session.add(playlist)
    db.session.commit()
    return ok(playlist.to_dict(current_user.id), "Playlist created successfully", 201)


@playlist_bp.route("/user/<string:user_id>", methods=["GET"])
@jwt_required()
def get_user_playlists(user_id):
    uid = parse_id(user_id, "User ID")
    if db.session.get(User, uid) is None:
        return error("User not found", 404)
    playlists = (
        Playlist.query.filter(Playlist.owner_id == uid)
        .order_by(Playlist.created_at.desc())
        .all()
    )
    return ok([p.to_dict(current_user.id) for p in playlists], "User playlists fetched successfully")


@playlist_bp.route("/<string:playlist_id>", methods=["GET"])
@jwt_required()
def get_playlist_by_id(playlist_id):
    pid = parse_id(playlist_id, "Playlist ID")
    playlist = db.session.get(Playlist, pid)
    if playlist is None:
        return error("Playlist not found", 404)
    return ok(_playlist_payload(playlist), "Playlist fetched successfully")


@playlist_bp.route("/<string:playlist_id>", methods=["PATCH"])
@owner_required(Playlist, "playlist_id", "Playlist")
def update_playlist(playlist):
    data = playlist_update_schema.load(_request_data())
    if "name" not in data and "description" not in data:
        return error("name or description is required", 400)
    if "name" in data:
        playlist.name = data["name"]
    if "description" in data:
        playlist.description = data["description"]
    db.session.commit()
    return ok(playlist.to_dict(current_user.id), "Playlist updated successfully")


@playlist_bp.route("/<string:playlist_id>", methods=["DELETE"])
@owner_required(Playlist, "playlist_id", "Playlist")
def delete_playlist(playlist):
    db.session.delete(playlist)
    db.session.commit()
    return ok({}, "Playlist deleted successfully")


@playlist_bp.route("/add/<string:video_id>/<string:playlist_id>", methods=["PATCH"])
@owner_required(Playlist, "playlist_id", "Playlist")
def add_video_to_playlist(playlist, video_id):
    vid = parse_id(video_id, "Video ID")
    video = db.session.get(Video, vid)
    if video is None or not video.visible_to(current_user.id):
        return error("Video not found", 404)

    if any(e.video_id == vid for e in playlist.entries):
        return ok(_playlist_payload(playlist), "Video already in playlist")

    last = (
        db.session.query(func.max(PlaylistVideo.position))
        .filter(PlaylistVideo.playlist_id == playlist.id)
        .scalar()
    )
    playlist.entries.append(PlaylistVideo(video_id=vid, position=(last if last is not None else -1) + 1))
    db.session.commit()
    return ok(_playlist_payload(playlist), "Video added to playlist")


@playlist_bp.route("/remove/<string:video_id>/<string:playlist_id>", methods=["PATCH"])
@owner_required(Playlist, "playlist_id", "Playlist")
def remove_video_from_playlist(playlist, video_id):
    vid = parse_id(video_id, "Video ID")
    entry = next((e for e in playlist.entries if e.video_id == vid), None)
    if entry is None:
        return error("Video not found in playlist", 404)
    playlist.entries.remove(entry)
    db.session.commit()
    return ok(_playlist_payload(playlist), "Video removed from playlist")
