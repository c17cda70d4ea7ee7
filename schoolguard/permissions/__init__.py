"""
Permission Engine
Role/resource/action/scope access control with per-user overrides
"""

from schoolguard.permissions.catalog import (
    Action,
    Branch,
    Resource,
    ResourceBranch,
    Role,
    SchoolLevel,
    Scope,
    default_scope,
    is_role_allowed_for_route,
    verify_wall,
)

__all__ = [
    "Action",
    "Branch",
    "Resource",
    "ResourceBranch",
    "Role",
    "SchoolLevel",
    "Scope",
    "default_scope",
    "is_role_allowed_for_route",
    "verify_wall",
]
