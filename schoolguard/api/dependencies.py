"""
API Dependencies
Authentication and permission guards for API routes
"""

from typing import Optional, Union

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from schoolguard.core.exceptions import AuthenticationException
from schoolguard.core.security import verify_access_token
from schoolguard.db.session import get_db_session
from schoolguard.permissions.catalog import Action, Resource, Role
from schoolguard.permissions.guard import (
    GuardResult,
    PermissionGuard,
    PermissionRequirement,
    RoleRequirement,
)


def get_permission_guard() -> PermissionGuard:
    """Guard instance configured from settings"""
    return PermissionGuard()


async def get_principal_id(
    authorization: Optional[str] = Header(None),
) -> str:
    """
    Dependency to extract the principal id from a JWT bearer token

    Raises:
        AuthenticationException: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationException(message="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    payload = verify_access_token(token)
    return str(payload["sub"])


def require_permission(resource: Union[Resource, str], action: Union[Action, str]):
    """Dependency factory: the principal must be granted (resource, action)"""
    requirement = PermissionRequirement.of(resource, action)

    async def dependency(
        principal_id: str = Depends(get_principal_id),
        db: AsyncSession = Depends(get_db_session),
        guard: PermissionGuard = Depends(get_permission_guard),
    ) -> GuardResult:
        return await guard.check(db, principal_id, requirement)

    return dependency


def require_roles(*roles: Union[Role, str]):
    """Dependency factory: the principal's role must be one of `roles`"""
    requirement = RoleRequirement.of(*roles)

    async def dependency(
        principal_id: str = Depends(get_principal_id),
        db: AsyncSession = Depends(get_db_session),
        guard: PermissionGuard = Depends(get_permission_guard),
    ) -> GuardResult:
        return await guard.check(db, principal_id, requirement)

    return dependency


async def get_authenticated(
    principal_id: str = Depends(get_principal_id),
    db: AsyncSession = Depends(get_db_session),
    guard: PermissionGuard = Depends(get_permission_guard),
) -> GuardResult:
    """Any active user; carries the context for self-service checks"""
    return await guard.check(db, principal_id)
