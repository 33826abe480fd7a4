"""Audit helper utilities to keep event names consistent."""
from typing import Optional
from vidtube.security_utils import audit_log


LOGIN_FAIL_DETAILS = {
    'user_not_found', 'bad_password', 'account_locked', 'account_disabled'
}


def log_login_failed(detail: str, target_user_id: Optional[str] = None):
    """Standardize login_failed audit events.

    Unknown details are coerced to 'other'.
    """
    if detail not in LOGIN_FAIL_DETAILS:
        detail = 'other'
    audit_log('login_failed', target_user_id=target_user_id, detail=detail)
