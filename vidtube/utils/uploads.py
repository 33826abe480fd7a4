import os
import time
import logging
from typing import Optional, IO, Set

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from vidtube.utils.api_helper import ApiError

logger = logging.getLogger("media")

# Centralized upload validation constants & helpers

ALLOWED_VIDEO_EXT: Set[str] = {'.mp4', '.mov', '.mkv', '.avi', '.webm'}
VIDEO_MIME_PREFIX = 'video/'

ALLOWED_IMAGE_EXT: Set[str] = {'.png', '.jpg', '.jpeg', '.gif', '.webp'}
IMAGE_MIME_PREFIX = 'image/'

_KINDS = {
    'video': (ALLOWED_VIDEO_EXT, VIDEO_MIME_PREFIX),
    'image': (ALLOWED_IMAGE_EXT, IMAGE_MIME_PREFIX),
}


def ext_allowed(filename: str, allowed: Set[str]) -> bool:
    ext = os.path.splitext(filename)[1].lower()
    return ext in allowed


def sniff_mime_stream(fileobj: IO[bytes]) -> Optional[str]:
    """Best-effort MIME sniff from a file-like stream; rewinds to where it was.

    Returns string like 'video/mp4', or None when libmagic is not installed.
    """
    try:
        import magic  # type: ignore
    except ImportError:
        return None
    pos = fileobj.tell()
    head = fileobj.read(2048)
    fileobj.seek(pos)
    try:
        return magic.from_buffer(head, mime=True)
    except magic.MagicException:
        return None


def stage_upload(file: Optional[FileStorage], kind: str) -> Optional[str]:
    """Save a multipart file under UPLOAD_TEMP_DIR and return its local path.

    Returns None when no file was sent. Raises ApiError(400) for a file of the
    wrong kind. Staged files are named <epoch-ms>-<secure filename>.
    """
    if file is None or not file.filename:
        return None
    allowed, mime_prefix = _KINDS[kind]
    filename = secure_filename(file.filename)
    if not filename or not ext_allowed(filename, allowed):
        raise ApiError(400, f"Unsupported {kind} file type")
    mime = sniff_mime_stream(file.stream)
    if mime and not mime.startswith(mime_prefix) and mime != 'application/octet-stream':
        raise ApiError(400, f"Invalid {kind} MIME type")

    temp_dir = current_app.config['UPLOAD_TEMP_DIR']
    os.makedirs(temp_dir, exist_ok=True)
    stamp = int(time.time() * 1000)
    while True:
        path = os.path.join(temp_dir, f"{stamp}-{filename}")
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            # same name staged in the same millisecond
            stamp += 1
            continue
        break
    with os.fdopen(fd, 'wb') as out:
        file.save(out)
    logger.debug("staged %s upload at %s", kind, path)
    return path


def discard_staged(*paths):
    """Remove staged files for a request that was rejected before upload."""
    for path in paths:
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError:
                logger.warning("could not remove staged file %s", path)
