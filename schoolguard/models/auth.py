"""
Authentication Pydantic Models
Request/response schemas for authentication endpoints
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from schoolguard.permissions.catalog import Role, SchoolLevel


class LoginRequest(BaseModel):
    """Login request schema"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class PrincipalResponse(BaseModel):
    """Authenticated user as seen by the permission engine"""
    user_id: str
    email: str
    full_name: str
    staff_role: Optional[Role] = None
    school_level: Optional[SchoolLevel] = None

    @classmethod
    def from_user_model(cls, user) -> "PrincipalResponse":
        return cls(
            user_id=str(user.id),
            email=user.email,
            full_name=user.full_name,
            staff_role=user.staff_role,
            school_level=user.school_level,
        )


class TokenResponse(BaseModel):
    """JWT token response"""
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: PrincipalResponse
