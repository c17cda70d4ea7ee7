"""
Permission Evaluator
Pure decision function over a PermissionContext
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from schoolguard.core.exceptions import InvalidRequestException
from schoolguard.permissions.catalog import Action, Resource, Scope, default_scope, role_grants
from schoolguard.permissions.context import PermissionContext

EnumT = TypeVar("EnumT", bound=Enum)


class DecisionSource(str, Enum):
    OVERRIDE = "override"
    ROLE = "role"
    NONE = "none"


@dataclass(frozen=True)
class PermissionDecision:
    granted: bool
    scope: Optional[Scope] = None
    reason: Optional[str] = None
    source: DecisionSource = DecisionSource.NONE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"granted": self.granted}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.scope is not None:
            data["scope"] = self.scope.value
        return data


@dataclass(frozen=True)
class BatchCheckResult:
    resource: str
    action: str
    decision: PermissionDecision

    def to_dict(self) -> Dict[str, Any]:
        return {"resource": self.resource, "action": self.action, **self.decision.to_dict()}


@dataclass(frozen=True)
class EffectivePermission:
    resource: Resource
    action: Action
    scope: Scope
    source: DecisionSource
    override_id: Optional[str] = None


def _coerce(enum_cls: Type[EnumT], value: Union[EnumT, str], kind: str) -> EnumT:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidRequestException(
            message=f"Invalid {kind}: {value}",
            details={kind: str(value)},
        )


def parse_resource(value: Union[Resource, str]) -> Resource:
    return _coerce(Resource, value, "resource")


def parse_action(value: Union[Action, str]) -> Action:
    return _coerce(Action, value, "action")


def evaluate(
    context: PermissionContext,
    resource: Union[Resource, str],
    action: Union[Action, str],
) -> PermissionDecision:
    """
    Decide whether the principal may perform `action` on `resource`

    Order of precedence:
    1. An active override for (resource, action) wins outright, whether it
       widens or narrows the default
    2. Users without a staff role are denied
    3. The default grant table decides

    The returned scope is advisory: callers filter their own data with it.

    Raises:
        InvalidRequestException: If resource or action is outside the catalog
    """
    resource = parse_resource(resource)
    action = parse_action(action)

    override = context.override_for(resource, action)
    if override is not None:
        if override.granted:
            return PermissionDecision(
                granted=True,
                scope=override.scope,
                reason=f"Granted via permission override: {override.reason or 'N/A'}",
                source=DecisionSource.OVERRIDE,
            )
        return PermissionDecision(
            granted=False,
            reason=f"Denied via permission override: {override.reason or 'N/A'}",
            source=DecisionSource.OVERRIDE,
        )

    if context.role is None:
        return PermissionDecision(granted=False, reason="User does not have a staff role assigned")

    scope = default_scope(context.role, resource, action)
    if scope is None:
        return PermissionDecision(
            granted=False,
            reason=f"no default grant for {action.value} on {resource.value}",
        )

    return PermissionDecision(granted=True, scope=scope, source=DecisionSource.ROLE)


def evaluate_batch(
    context: PermissionContext,
    checks: Iterable[Tuple[Union[Resource, str], Union[Action, str]]],
) -> List[BatchCheckResult]:
    """
    Evaluate many (resource, action) pairs against one context, in input order

    Entries outside the catalog are reported as denied instead of failing the
    whole batch.
    """
    results = []
    for resource, action in checks:
        resource_name = resource.value if isinstance(resource, Resource) else str(resource)
        action_name = action.value if isinstance(action, Action) else str(action)
        try:
            decision = evaluate(context, resource, action)
        except InvalidRequestException as e:
            decision = PermissionDecision(granted=False, reason=e.message)
        results.append(BatchCheckResult(resource_name, action_name, decision))
    return results


def effective_permissions(context: PermissionContext) -> List[EffectivePermission]:
    """Role grants with the context's active overrides applied"""
    effective: Dict[Tuple[Resource, Action], EffectivePermission] = {}

    if context.role is not None:
        for grant in role_grants(context.role):
            effective[(grant.resource, grant.action)] = EffectivePermission(
                resource=grant.resource,
                action=grant.action,
                scope=grant.scope,
                source=DecisionSource.ROLE,
            )

    for key in context.overrides:
        override = context.override_for(*key)
        if override is None:
            continue
        if override.granted:
            effective[key] = EffectivePermission(
                resource=override.resource,
                action=override.action,
                scope=override.scope,
                source=DecisionSource.OVERRIDE,
                override_id=override.override_id,
            )
        else:
            effective.pop(key, None)

    order = {a: i for i, a in enumerate(Action)}
    return sorted(effective.values(), key=lambda p: (p.resource.value, order[p.action]))
