"""
Shared dependencies: admin guard, client address
"""
from fastapi import Depends, Request

from app.core.exceptions import UnauthorizedError
from app.schemas.auth import UserResponse
from app.api.v1.auth import get_current_active_user


async def require_admin(
    current_user: UserResponse = Depends(get_current_active_user),
) -> UserResponse:
    """Admin routes: anyone without the ADMIN role gets 401."""
    if not current_user.is_admin:
        raise UnauthorizedError("Admin access required")
    return current_user


def get_client_ip(request: Request) -> str | None:
    """Client address, honouring X-Forwarded-For from a reverse proxy"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)
