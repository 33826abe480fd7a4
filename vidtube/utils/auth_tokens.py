"""Auth token helpers.

Centralizes token issuing so login & refresh hand out the same pair and
set the same cookies.
"""
from datetime import timedelta
from flask import current_app, request
from flask_jwt_extended import create_access_token, set_access_cookies, unset_jwt_cookies

from vidtube.models.RefreshToken import RefreshToken


def issue_token_pair(user):
    """Create an access JWT and a persisted (hashed) refresh token.

    The refresh row is added to the session; caller commits.
    Returns (access_token, refresh_row, refresh_plain).
    """
    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={'username': user.username}
    )
    ttl = timedelta(minutes=current_app.config['REFRESH_TOKEN_EXPIRES_MINUTES'])
    rt_obj, refresh_plain = RefreshToken.create_for_user(
        user.id, ttl, request.headers.get('User-Agent'), request.remote_addr)
    return access_token, rt_obj, refresh_plain


def set_auth_cookies(resp, access_token: str, refresh_token: str):
    """httpOnly cookies; only the server can read or rotate them."""
    set_access_cookies(resp, access_token)
    resp.set_cookie(
        current_app.config['REFRESH_COOKIE_NAME'],
        refresh_token,
        max_age=current_app.config['REFRESH_TOKEN_EXPIRES_MINUTES'] * 60,
        httponly=True,
        secure=current_app.config.get('JWT_COOKIE_SECURE', True),
        samesite='Lax',
        path='/',
    )
    return resp


def clear_auth_cookies(resp):
    unset_jwt_cookies(resp)
    resp.delete_cookie(current_app.config['REFRESH_COOKIE_NAME'], path='/')
    return resp
