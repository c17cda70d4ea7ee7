"""
Permission Pydantic Models
Request/response schemas for permission checks and override management
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from schoolguard.models.auth import PrincipalResponse
from schoolguard.permissions.catalog import Action, Branch, Resource, RoleScope, Scope


class PermissionCheckRequest(BaseModel):
    """Single permission check"""
    resource: str = Field(..., description="Resource name, e.g. students")
    action: str = Field(..., description="Action: view, create, update, delete, approve, export")


class PermissionCheckResponse(BaseModel):
    granted: bool
    reason: Optional[str] = None
    scope: Optional[Scope] = None


class BatchCheckRequest(BaseModel):
    checks: List[PermissionCheckRequest] = Field(..., max_length=500)


class BatchCheckResultItem(PermissionCheckResponse):
    resource: str
    action: str


class BatchCheckResponse(BaseModel):
    results: List[BatchCheckResultItem]


class EffectivePermissionResponse(BaseModel):
    resource: Resource
    action: Action
    scope: Scope
    source: Literal["role", "override"]
    override_id: Optional[str] = None


class MyPermissionsResponse(BaseModel):
    user: PrincipalResponse
    permissions: List[EffectivePermissionResponse]


class OverrideCreateRequest(BaseModel):
    """Create or replace a permission override"""
    resource: Resource
    action: Action
    scope: Scope = Scope.ALL
    effect: Literal["grant", "deny"]
    expires_at: Optional[datetime] = Field(None, description="Override is ignored after this instant")
    reason: Optional[str] = Field(None, max_length=500)


class OverrideResponse(BaseModel):
    override_id: str
    user_id: str
    resource: Resource
    action: Action
    scope: Scope
    granted: bool
    reason: Optional[str] = None
    granted_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, override) -> "OverrideResponse":
        return cls(
            override_id=str(override.id),
            user_id=str(override.user_id),
            resource=override.resource,
            action=override.action,
            scope=override.scope,
            granted=override.granted,
            reason=override.reason,
            granted_by=str(override.granted_by) if override.granted_by else None,
            expires_at=override.expires_at,
            created_at=override.created_at,
            updated_at=override.updated_at,
        )


class RolePermissionResponse(BaseModel):
    resource: Resource
    action: Action
    scope: Scope


class UserPermissionsResponse(BaseModel):
    """Role grants, overrides and the resulting effective permissions"""
    user: PrincipalResponse
    role_permissions: List[RolePermissionResponse]
    overrides: List[OverrideResponse]
    effective_permissions: List[EffectivePermissionResponse]


class RoleSummary(BaseModel):
    role: str
    branch: Branch
    role_scope: RoleScope
    permission_count: int


class RolePermissionsResponse(BaseModel):
    role: str
    branch: Branch
    role_scope: RoleScope
    permissions: List[RolePermissionResponse]
