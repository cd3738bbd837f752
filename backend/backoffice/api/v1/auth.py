"""
Back-office ledger - auth API
Login and current user.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_current_user
from backoffice.core.audit import log_audit
from backoffice.core.config import settings
from backoffice.core.database import get_db
from backoffice.core.security import verify_password, create_access_token
from backoffice.models.user import User
from backoffice.schemas.auth import LoginRequest, LoginResponse, TokenResponse, UserInfo
from backoffice.schemas.common import SuccessResponse

router = APIRouter()


@router.post("/login", response_model=SuccessResponse[LoginResponse])
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Log in

    - email / password authentication
    - issues a JWT access token
    """
    result = await db.execute(
        select(User).where(User.email == login_data.email)
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"}
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "USER_INACTIVE", "message": "Account is disabled"}
        )

    access_token = create_access_token(
        subject=str(user.id),
        role=user.role.value
    )

    user.last_login_at = datetime.utcnow()
    await db.commit()
    await db.refresh(user)

    await log_audit(
        action="USER_LOGIN",
        entity_type="USER",
        entity_id=user.id,
        description=f"{user.email} logged in",
        user=user.email,
    )

    return SuccessResponse(
        data=LoginResponse(
            token=TokenResponse(
                access_token=access_token,
                token_type="bearer",
                expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
            ),
            user=UserInfo.model_validate(user)
        )
    )


@router.get("/me", response_model=SuccessResponse[UserInfo])
async def get_me(
    current_user: User = Depends(get_current_user)
):
    """Current user"""
    return SuccessResponse(data=UserInfo.model_validate(current_user))
