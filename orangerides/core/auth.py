"""
Caller identity for owner-facing routes.

Authentication itself happens upstream; the authenticated uid is forwarded
in the X-User-Id header.
"""
from typing import Optional

from fastapi import Header

from orangerides.core.errors import AppError


class UnauthenticatedError(AppError):
    code = "unauthenticated"
    status_code = 401


def get_current_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise UnauthenticatedError("Missing X-User-Id header")
    return x_user_id.strip()
