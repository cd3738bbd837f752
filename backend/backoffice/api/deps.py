"""
Back-office ledger - API dependencies
FastAPI dependency-injection helpers.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.security import decode_access_token
from backoffice.models.user import User
from backoffice.models.enums import UserRole


# Bearer token scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "message": message},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Return the authenticated user

    Raises:
        HTTPException: 401 when the token is missing, invalid or the user is inactive
    """
    if credentials is None:
        raise _unauthorized("NOT_AUTHENTICATED", "Authentication required")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("INVALID_TOKEN", "Invalid token")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("INVALID_TOKEN", "Token carries no user")

    try:
        user_pk = int(user_id)
    except ValueError:
        raise _unauthorized("INVALID_TOKEN", "Malformed user id")

    result = await db.execute(select(User).where(User.id == user_pk))
    user = result.scalar_one_or_none()

    if user is None:
        raise _unauthorized("USER_NOT_FOUND", "User not found")
    if not user.is_active:
        raise _unauthorized("USER_INACTIVE", "Account is disabled")

    return user


def require_roles(*roles: UserRole):
    """Dependency factory: the current user must hold one of `roles`"""
    async def _require_roles(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "FORBIDDEN", "message": "Insufficient permissions"}
            )
        return current_user

    return _require_roles


get_ledger_user = require_roles(UserRole.ADMIN, UserRole.MANAGER)


async def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Return the current user if admin

    Raises:
        HTTPException: 403 for non-admins
    """
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "message": "Administrator permission required"}
        )
    return current_user
