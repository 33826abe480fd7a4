from __future__ import annotations

import uuid
from typing import Any, Dict, List
from flask import jsonify


class ApiError(Exception):
    """Raised from routes/helpers; rendered by the app-level error handler."""

    def __init__(self, status: int, message: str = "Something went wrong", errors: List[Any] | None = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.errors = errors or []


def ok(data: Any = None, message: str = "Success", status: int = 200):
    """Standard success envelope.

    Returns a JSON response: { statusCode, data, message, success }
    """
    body: Dict[str, Any] = {
        "statusCode": status,
        "data": data if data is not None else {},
        "message": message,
        "success": status < 400,
    }
    return jsonify(body), status


def error(message: str, status: int = 400, *, errors: List[Any] | None = None):
    """Standard error envelope.

    Returns a JSON response: { statusCode, data: null, message, success: false, errors }
    """
    body: Dict[str, Any] = {
        "statusCode": status,
        "data": None,
        "message": message,
        "success": False,
        "errors": errors or [],
    }
    return jsonify(body), status


def parse_id(value: Any, label: str = "ID") -> uuid.UUID:
    """Parse a path id or raise a 400 ApiError ("Invalid <label>")."""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ApiError(400, f"Invalid {label}")


def build_page_dict(docs, page: int, limit: int, total: int):
    pages = max(1, (total + limit - 1) // limit)
    return {
        "docs": docs,
        "totalDocs": total,
        "limit": limit,
        "page": page,
        "totalPages": pages,
        "hasPrevPage": page > 1,
        "hasNextPage": page < pages,
    }
