"""
Administration API Routes
Role catalog views and permission override management
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolguard.api.dependencies import require_permission, require_roles
from schoolguard.core.exceptions import NotFoundException, UserNotFoundException
from schoolguard.core.logging import get_logger
from schoolguard.db.models import User
from schoolguard.db.session import get_db_session
from schoolguard.models.auth import PrincipalResponse
from schoolguard.models.permission import (
    EffectivePermissionResponse,
    OverrideCreateRequest,
    OverrideResponse,
    RolePermissionResponse,
    RolePermissionsResponse,
    RoleSummary,
    UserPermissionsResponse,
)
from schoolguard.permissions.catalog import ROLE_CONFIGS, Action, Resource, Role, role_grants
from schoolguard.permissions.context import context_for_user, parse_user_id
from schoolguard.permissions.evaluator import effective_permissions
from schoolguard.permissions.guard import GuardResult
from schoolguard.permissions.overrides import OverrideStore

logger = get_logger(__name__)
router = APIRouter()


def _role_permissions(role: Role):
    return [
        RolePermissionResponse(resource=g.resource, action=g.action, scope=g.scope)
        for g in role_grants(role)
    ]


@router.get("/roles", response_model=list[RoleSummary])
async def list_roles(
    _: GuardResult = Depends(require_permission(Resource.ROLE_ASSIGNMENT, Action.VIEW)),
):
    """List staff roles with their branch and grant count"""
    return [
        RoleSummary(
            role=role.value,
            branch=config.branch,
            role_scope=config.role_scope,
            permission_count=len(role_grants(role)),
        )
        for role, config in ROLE_CONFIGS.items()
    ]


@router.get("/roles/{role}/permissions", response_model=RolePermissionsResponse)
async def get_role_permissions(
    role: str,
    _: GuardResult = Depends(require_permission(Resource.ROLE_ASSIGNMENT, Action.VIEW)),
):
    """Default grants of one role"""
    try:
        staff_role = Role(role)
    except ValueError:
        raise NotFoundException("Role")

    config = ROLE_CONFIGS[staff_role]
    return RolePermissionsResponse(
        role=staff_role.value,
        branch=config.branch,
        role_scope=config.role_scope,
        permissions=_role_permissions(staff_role),
    )


@router.get("/users/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
    _: GuardResult = Depends(require_permission(Resource.PERMISSION_OVERRIDES, Action.VIEW)),
):
    """Role grants, all overrides (expired included) and effective permissions of a user"""
    try:
        user = await db.get(User, parse_user_id(user_id))
    except UserNotFoundException:
        raise NotFoundException("User")
    if user is None:
        raise NotFoundException("User")

    context = await context_for_user(db, user)
    overrides = await OverrideStore(db).list_all(user.id)

    return UserPermissionsResponse(
        user=PrincipalResponse.from_user_model(user),
        role_permissions=_role_permissions(user.staff_role) if user.staff_role else [],
        overrides=[OverrideResponse.from_model(o) for o in overrides],
        effective_permissions=[
            EffectivePermissionResponse(
                resource=p.resource,
                action=p.action,
                scope=p.scope,
                source=p.source.value,
                override_id=p.override_id,
            )
            for p in effective_permissions(context)
        ],
    )


@router.post(
    "/users/{user_id}/permissions",
    response_model=OverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_user_override(
    user_id: str,
    request: OverrideCreateRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: GuardResult = Depends(require_permission(Resource.PERMISSION_OVERRIDES, Action.CREATE)),
):
    """
    Create or replace the override for (user, resource, action)

    - **effect**: `grant` widens access, `deny` removes it, regardless of the role default
    - **expires_at**: optional; the override is ignored after this instant
    """
    override = await OverrideStore(db).upsert(
        user_id,
        request.resource,
        request.action,
        granted=request.effect == "grant",
        scope=request.scope,
        expires_at=request.expires_at,
        reason=request.reason,
        granted_by=auth.principal.id,
    )
    logger.info(
        f"Override {request.effect} {request.resource.value}:{request.action.value} "
        f"for user {user_id} by {auth.principal.email}"
    )
    return OverrideResponse.from_model(override)


@router.delete(
    "/users/{user_id}/permissions/{override_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_user_override(
    user_id: str,
    override_id: str,
    db: AsyncSession = Depends(get_db_session),
    auth: GuardResult = Depends(require_permission(Resource.PERMISSION_OVERRIDES, Action.DELETE)),
):
    """Delete one override; 404 if it does not belong to this user"""
    await OverrideStore(db).delete(user_id, override_id)
    logger.info(f"Override {override_id} of user {user_id} deleted by {auth.principal.email}")


@router.post("/overrides/purge-expired")
async def purge_expired_overrides(
    db: AsyncSession = Depends(get_db_session),
    _: GuardResult = Depends(require_roles(Role.PROPRIETAIRE, Role.ADMIN_SYSTEME)),
):
    """Remove overrides whose expiry has passed (transversal roles only)"""
    removed = await OverrideStore(db).purge_expired()
    return {"removed": removed}
