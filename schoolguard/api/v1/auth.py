"""
Authentication API Routes
Password login issuing JWT access tokens
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolguard.core.config import settings
from schoolguard.core.exceptions import AuthenticationException
from schoolguard.core.logging import get_logger
from schoolguard.core.security import create_access_token, verify_password
from schoolguard.core.timeutils import utc_now
from schoolguard.db.models import User as UserModel
from schoolguard.db.session import get_db_session
from schoolguard.models.auth import LoginRequest, PrincipalResponse, TokenResponse

logger = get_logger(__name__)
router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Authenticate user and return a JWT access token

    - **email**: User email address
    - **password**: User password
    """
    result = await db.execute(
        select(UserModel).where(UserModel.email == request.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user or not user.is_active or not verify_password(request.password, user.hashed_password):
        logger.warning(f"Failed login attempt for email: {request.email}")
        raise AuthenticationException(message="Invalid email or password")

    user.last_login_at = utc_now()
    await db.commit()

    token_data = {"sub": str(user.id), "role": user.staff_role.value if user.staff_role else None}
    access_token = create_access_token(token_data)

    logger.info(f"User logged in: {user.email}")

    return TokenResponse(
        access_token=access_token,
        token_type="Bearer",
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=PrincipalResponse.from_user_model(user),
    )
