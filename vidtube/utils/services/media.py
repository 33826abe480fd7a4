import os
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

logger = logging.getLogger("media")


def configure_media_host(app) -> None:
    """Configure the Cloudinary SDK from app config (called from create_app)."""
    cloud_name = app.config.get("CLOUDINARY_CLOUD_NAME")
    if not cloud_name:
        app.logger.warning("Media host not configured (CLOUDINARY_CLOUD_NAME missing); uploads will fail")
    cloudinary.config(
        cloud_name=cloud_name,
        api_key=app.config.get("CLOUDINARY_API_KEY"),
        api_secret=app.config.get("CLOUDINARY_API_SECRET"),
        secure=True,
    )


def _remove_local(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning(f"could not remove staged file {path}: {exc}")


def upload_on_media_host(local_path: Optional[str], folder: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Push a staged local file to the media host.

    Args:
        local_path: path written by utils.uploads.stage_upload
        folder: optional remote folder

    Returns:
        The host's result dict (secure_url, public_id, resource_type and,
        for videos, duration) or None on failure. The local file is removed
        either way.
    """
    if not local_path:
        logger.warning("upload_on_media_host called without a local path")
        return None

    options = {"resource_type": "auto"}
    if folder:
        options["folder"] = folder
    try:
        result = cloudinary.uploader.upload(local_path, **options)
    except (CloudinaryError, OSError) as exc:
        logger.error(f"Media upload failed for {local_path}: {exc}", exc_info=True)
        return None
    finally:
        _remove_local(local_path)

    if not result or not result.get("secure_url"):
        logger.warning(f"Media upload for {local_path} returned no secure_url")
        return None
    logger.info(f"Media upload success public_id={result.get('public_id')}")
    return result


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    """Derive a public id from a delivery URL.

    https://res.cloudinary.com/<cloud>/image/upload/v123/folder/name.jpg -> folder/name
    """
    if not url:
        return None
    path = urlparse(url).path
    marker = "/upload/"
    if marker not in path:
        return None
    tail = path.split(marker, 1)[1]
    parts = tail.split("/")
    # drop the version segment (v<digits>) when present
    if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
        parts = parts[1:]
    if not parts:
        return None
    return os.path.splitext("/".join(parts))[0] or None


def delete_media_asset(public_id: Optional[str], resource_type: str = "image") -> bool:
    """Delete an asset from the media host. Missing id is a no-op (False)."""
    if not public_id:
        return False
    try:
        result = cloudinary.uploader.destroy(public_id, resource_type=resource_type, invalidate=True)
    except CloudinaryError as exc:
        logger.error(f"Media delete failed public_id={public_id}: {exc}")
        return False
    deleted = (result or {}).get("result") == "ok"
    if not deleted:
        logger.warning(f"Media delete for public_id={public_id} returned {result!r}")
    return deleted
