"""
Authentication and authorization dependencies.

- get_current_user: bearer JWT -> User row
- require_role / require_admin: role gates for the admin surface
- require_cron_secret: shared-secret gate for scheduler endpoints
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import ForbiddenError, UnauthorizedError
from core.security import decode_access_token, verify_cron_secret
from models import User, UserRole

logger = logging.getLogger(__name__)

# auto_error=False so missing credentials return 401, not 403
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    if not credentials:
        raise UnauthorizedError()

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    try:
        user_id_uuid = UUID(user_id)
    except ValueError:
        raise UnauthorizedError("Invalid user ID format")

    user = db.query(User).filter(User.id == user_id_uuid).first()
    if not user:
        raise UnauthorizedError("User not found")
    return user


def require_role(allowed_roles: list[str]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role(["ADMIN"]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise ForbiddenError("Forbidden: Admin access required")
        return current_user

    return role_checker


def require_admin(
    current_user: User = Depends(require_role([UserRole.ADMIN]))
) -> User:
    return current_user


def require_cron_secret(request: Request) -> str:
    """
    Gate for scheduler-triggered endpoints.

    Returns the trigger source: the ``x-triggered-by`` header when present
    (manual runs from the dashboard), otherwise "cron".
    """
    auth_header = request.headers.get("authorization") or ""
    token = auth_header[len("Bearer "):] if auth_header.startswith("Bearer ") else None
    if not verify_cron_secret(token):
        logger.warning(f"Rejected cron request to {request.url.path}")
        raise UnauthorizedError("Unauthorized")
    return request.headers.get("x-triggered-by") or "cron"
