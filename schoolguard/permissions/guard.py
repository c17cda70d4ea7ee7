"""
Route Guard
Single choke point that authorizes a principal before any handler logic runs
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from schoolguard.core.config import settings
from schoolguard.core.exceptions import (
    AuthorizationException,
    StoreFailureException,
)
from schoolguard.core.logging import get_logger
from schoolguard.db.models import User
from schoolguard.permissions.catalog import Action, Resource, Role, is_role_allowed_for_route
from schoolguard.permissions.context import PermissionContext, context_for_user, load_principal
from schoolguard.permissions.evaluator import (
    DecisionSource,
    PermissionDecision,
    evaluate,
    parse_action,
    parse_resource,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class RoleRequirement:
    """Any of the listed roles may pass"""

    roles: FrozenSet[Role]

    @classmethod
    def of(cls, *roles: Union[Role, str]) -> "RoleRequirement":
        return cls(frozenset(Role(r) for r in roles))


@dataclass(frozen=True)
class PermissionRequirement:
    """Delegate to the evaluator for one (resource, action)"""

    resource: Resource
    action: Action

    @classmethod
    def of(cls, resource: Union[Resource, str], action: Union[Action, str]) -> "PermissionRequirement":
        return cls(parse_resource(resource), parse_action(action))


@dataclass(frozen=True)
class RouteRequirement:
    """Path-prefix wall check for the request path"""

    path: str


Requirement = Union[RoleRequirement, PermissionRequirement, RouteRequirement]


@dataclass(frozen=True)
class GuardResult:
    principal: User
    context: PermissionContext
    decision: PermissionDecision


class PermissionGuard:
    """
    Authorize a principal against a requirement

    Authentication (token -> principal id) happens before the guard; the guard
    resolves the principal, builds its context and evaluates the requirement.
    """

    def __init__(self, fail_closed: Optional[bool] = None):
        self.fail_closed = settings.PERMISSIONS_FAIL_CLOSED if fail_closed is None else fail_closed

    async def check(
        self,
        db: AsyncSession,
        principal_id: str,
        requirement: Optional[Requirement] = None,
    ) -> GuardResult:
        """
        Returns:
            The validated principal, its context and the granting decision

        Raises:
            UserNotFoundException: If the principal is unknown or inactive
            AuthorizationException: If the requirement is not met
            StoreFailureException: If the store fails and fail-closed is off
        """
        try:
            principal = await load_principal(db, principal_id)
            context = await context_for_user(db, principal)
        except StoreFailureException as e:
            if not self.fail_closed:
                raise
            logger.warning(f"Permission store failure for {principal_id}, failing closed: {e.message}")
            raise AuthorizationException(
                message="Permission store unavailable",
                details=self._denial_details(requirement, "permission store unavailable"),
            )

        decision = self.decide(context, requirement)
        if not decision.granted:
            logger.info(f"Access denied for user {principal_id}: {decision.reason}")
            raise AuthorizationException(
                message="Permission denied",
                details=self._denial_details(requirement, decision.reason),
            )

        return GuardResult(principal=principal, context=context, decision=decision)

    @staticmethod
    def decide(context: PermissionContext, requirement: Optional[Requirement]) -> PermissionDecision:
        """Evaluate a requirement against an already built context"""
        if requirement is None:
            return PermissionDecision(granted=True)

        if isinstance(requirement, PermissionRequirement):
            return evaluate(context, requirement.resource, requirement.action)

        if isinstance(requirement, RoleRequirement):
            if context.role is not None and context.role in requirement.roles:
                return PermissionDecision(granted=True, source=DecisionSource.ROLE)
            return PermissionDecision(granted=False, reason="role not permitted for this operation")

        if is_role_allowed_for_route(context.role, requirement.path):
            return PermissionDecision(granted=True, source=DecisionSource.ROLE)
        return PermissionDecision(granted=False, reason=f"role not permitted on {requirement.path}")

    @staticmethod
    def _denial_details(requirement: Optional[Requirement], reason: Optional[str]) -> dict:
        details = {"reason": reason}
        if isinstance(requirement, PermissionRequirement):
            details["resource"] = requirement.resource.value
            details["action"] = requirement.action.value
        elif isinstance(requirement, RouteRequirement):
            details["path"] = requirement.path
        return details
