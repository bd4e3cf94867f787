"""
Admin authentication for moderation and inbox endpoints.

Admin requests carry the shared X-Admin-Key header. The key is compared in
constant time and only a short hash of it is ever logged.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from orangerides.core.config import settings
from orangerides.core.errors import ConfigurationError, PermissionError

logger = logging.getLogger("orangerides.admin_auth")


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_id: str  # "admin:<hash>"
    actor_display: Optional[str] = None


def verify_admin_key(header_key: Optional[str]) -> Optional[AdminActor]:
    expected_key = settings.ADMIN_KEY
    if not expected_key:
        raise ConfigurationError("ADMIN_KEY not configured")

    candidate = (header_key or "").strip()
    if not candidate or not hmac.compare_digest(candidate.encode(), expected_key.encode()):
        return None

    key_hash = hashlib.sha256(candidate.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"admin:{key_hash}", actor_display="Admin Key")


def require_admin(request: Request) -> AdminActor:
    """FastAPI dependency: reject requests without a valid X-Admin-Key."""
    actor = verify_admin_key(request.headers.get("X-Admin-Key"))
    if actor is None:
        logger.warning("admin.auth.rejected", extra={"path": request.url.path})
        raise PermissionError("Invalid or missing X-Admin-Key header")
    return actor
