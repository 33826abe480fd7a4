import time
import re
import uuid
import logging
from functools import wraps
from collections import defaultdict

import orjson
import redis
from flask import request, current_app

from vidtube.utils.api_helper import error

logger = logging.getLogger("security_utils")

# In-process rate limit store (per worker). Redis is used when REDIS_URL is configured.
_rate_store = defaultdict(list)
_redis_client = None

# 8-72 chars (bcrypt truncates past 72 bytes), at least one letter and one digit
PASSWORD_REGEX = re.compile(r"^(?=.*[A-Za-z])(?=.*\d).{8,72}$")


def init_redis():  # lazy init
    global _redis_client
    if _redis_client is not None:
        return _redis_client
    url = current_app.config.get("REDIS_URL")
    if url:
        try:
            _redis_client = redis.from_url(url)
        except (redis.RedisError, ValueError):
            logger.warning("Redis init failed, falling back to memory store")
            _redis_client = None
    return _redis_client


def reset_rate_limits():
    _rate_store.clear()


def password_strong(password: str) -> bool:
    if not password:
        return False
    return bool(PASSWORD_REGEX.match(password))


def _hit(key: str, limit: int, window_sec: int):
    """Record one hit for key; returns (allowed, retry_after)."""
    global _redis_client
    now = time.time()
    client = init_redis()
    if client:
        try:
            pipe = client.pipeline()
            redis_key = f"rl:{key}:{window_sec}"
            pipe.lpush(redis_key, now)
            pipe.lrange(redis_key, 0, limit)  # newest 'limit + 1' timestamps
            pipe.ltrim(redis_key, 0, limit - 1)
            pipe.expire(redis_key, window_sec)
            _, samples, _, _ = pipe.execute()
            valid = [float(ts) for ts in samples if float(ts) >= now - window_sec]
            if len(valid) > limit:
                return False, max(int((valid[-1] + window_sec) - now), 0)
            return True, None
        except redis.RedisError as e:
            logger.warning(f"Redis rate limit backend unavailable ({e}); falling back to in-memory store")
            # Disable redis client for subsequent calls to avoid repeated exceptions
            _redis_client = None
    bucket = _rate_store[key]
    cutoff = now - window_sec
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)
    if len(bucket) >= limit:
        return False, max(int(bucket[0] + window_sec - now), 0)
    bucket.append(now)
    return True, None


def rate_limit(key_func, limit: int, window_sec: int):
    """Simple decorator to rate limit endpoint calls.
    key_func() -> str key.
    limit: max requests in window
    window_sec: time window in seconds
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_app.config.get("RATELIMIT_ENABLED", True):
                return fn(*args, **kwargs)
            key = key_func()
            allowed, retry_after = _hit(key, limit, window_sec)
            if not allowed:
                logger.warning(f"Rate limit exceeded key={key}")
                resp, status = error("Too many requests", 429, errors=[{"retry_after": retry_after}])
                resp.headers["Retry-After"] = str(retry_after or 0)
                return resp, status
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def ip_key():
    return f"ip:{get_client_ip()}"


def ip_and_path_key():
    return f"ip:{get_client_ip()}:path:{request.path}"


def log_structured(event: str, **fields):
    """Emit structured JSON log line."""
    payload = {"event": event, **fields}
    current_app.logger.info(orjson.dumps(payload, default=str).decode())


def audit_log(event: str, *, actor_id=None, target_user_id=None, detail=None):
    """Persist audit log entry (best-effort; never breaks the request)."""
    from vidtube.extensions import db
    from vidtube.models.AuditLog import AuditLog
    from sqlalchemy.exc import SQLAlchemyError
    try:
        entry = AuditLog(
            event=event,
            user_id=coerce_uuid(actor_id) if actor_id else None,
            target_user_id=coerce_uuid(target_user_id) if target_user_id else None,
            ip=get_client_ip()[:64],
            user_agent=(request.headers.get('User-Agent') or '')[:256] or None,
            detail=detail
        )
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as e:  # pragma: no cover
        db.session.rollback()
        current_app.logger.warning(f"Audit log persist failed: {e}")


def get_client_ip() -> str:
    """Best-effort client IP extraction with basic proxy awareness.

    Trusts only the left-most X-Forwarded-For entry if header is present.
    For deployments behind known proxies prefer PROXY_FIX_NUM (ProxyFix).
    """
    xff = request.headers.get('X-Forwarded-For', '')
    if xff:
        first = xff.split(',')[0].strip()
        if first:
            return first
    return request.remote_addr or ''


def coerce_uuid(value):
    """Return uuid.UUID(value) if possible, else original value.

    JWT identities arrive as strings; UUID columns want uuid.UUID.
    """
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return value
