"""
Permission Context Builder
Per-request snapshot of everything the evaluator needs about a principal
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolguard.core.exceptions import StoreFailureException, UserNotFoundException
from schoolguard.core.logging import get_logger
from schoolguard.core.timeutils import to_naive_utc, utc_now
from schoolguard.db.models import ClassAssignment, PermissionOverride, User
from schoolguard.permissions.catalog import TEACHING_ROLES, Action, Resource, Role, SchoolLevel, Scope

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActiveOverride:
    """Override row as seen by the evaluator"""

    override_id: str
    resource: Resource
    action: Action
    granted: bool
    scope: Scope = Scope.ALL
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None

    def is_active_at(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now

    @classmethod
    def from_model(cls, row: PermissionOverride) -> "ActiveOverride":
        return cls(
            override_id=str(row.id),
            resource=row.resource,
            action=row.action,
            granted=row.granted,
            scope=row.scope,
            expires_at=row.expires_at,
            reason=row.reason,
        )


@dataclass(frozen=True)
class PermissionContext:
    """
    Facts needed to evaluate any check for one principal

    Built fresh for each request (or batch of checks) and never cached across
    requests, since overrides can change between them.
    """

    user_id: str
    role: Optional[Role]
    school_level: Optional[SchoolLevel] = None
    assigned_class_ids: Tuple[str, ...] = ()
    children_ids: Tuple[str, ...] = ()
    overrides: Mapping[Tuple[Resource, Action], ActiveOverride] = field(
        default_factory=lambda: MappingProxyType({})
    )
    built_at: datetime = field(default_factory=utc_now)

    def override_for(self, resource: Resource, action: Action) -> Optional[ActiveOverride]:
        override = self.overrides.get((resource, action))
        if override is None or not override.is_active_at(self.built_at):
            return None
        return override


def index_overrides(
    rows,
    now: datetime,
) -> Mapping[Tuple[Resource, Action], ActiveOverride]:
    """
    Key active overrides by (resource, action)

    If storage ever holds two rows for one key, the most recently updated wins.
    """
    now = to_naive_utc(now)
    latest: Dict[Tuple[Resource, Action], PermissionOverride] = {}
    for row in rows:
        if not row.is_active_at(now):
            continue
        key = (row.resource, row.action)
        current = latest.get(key)
        if current is None or (row.updated_at or row.created_at) > (current.updated_at or current.created_at):
            latest[key] = row
    return MappingProxyType({key: ActiveOverride.from_model(row) for key, row in latest.items()})


def parse_user_id(user_id: Union[str, uuid.UUID, None]) -> uuid.UUID:
    """Parse a principal id, treating empty or malformed ids as unknown users"""
    if isinstance(user_id, uuid.UUID):
        return user_id
    if not user_id:
        raise UserNotFoundException()
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        raise UserNotFoundException(user_id=str(user_id))


async def load_principal(db: AsyncSession, user_id: Union[str, uuid.UUID, None]) -> User:
    """
    Resolve a principal id to an active user

    Raises:
        UserNotFoundException: If the id is empty, unknown, or the user is inactive
        StoreFailureException: If the user directory cannot be read
    """
    uid = parse_user_id(user_id)
    try:
        result = await db.execute(select(User).where(User.id == uid))
        user = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"User lookup failed for {uid}: {e}")
        raise StoreFailureException(operation="load_principal")

    if not user or not user.is_active:
        logger.warning(f"Permission context requested for unknown or inactive user {uid}")
        raise UserNotFoundException(user_id=str(uid))

    return user


async def context_for_user(
    db: AsyncSession,
    user: User,
    now: Optional[datetime] = None,
) -> PermissionContext:
    """Build a context for an already resolved user"""
    now = to_naive_utc(now) or utc_now()

    try:
        result = await db.execute(
            select(PermissionOverride).where(
                PermissionOverride.user_id == user.id,
                or_(
                    PermissionOverride.expires_at.is_(None),
                    PermissionOverride.expires_at > now,
                ),
            )
        )
        override_rows = result.scalars().all()

        class_ids: Tuple[str, ...] = ()
        if user.staff_role in TEACHING_ROLES:
            result = await db.execute(
                select(ClassAssignment.class_id).where(ClassAssignment.user_id == user.id)
            )
            class_ids = tuple(sorted(set(result.scalars().all())))
    except SQLAlchemyError as e:
        logger.error(f"Override lookup failed for user {user.id}: {e}")
        raise StoreFailureException(operation="build_context")

    return PermissionContext(
        user_id=str(user.id),
        role=user.staff_role,
        school_level=user.school_level,
        assigned_class_ids=class_ids,
        overrides=index_overrides(override_rows, now),
        built_at=now,
    )


async def build_permission_context(
    db: AsyncSession,
    user_id: Union[str, uuid.UUID, None],
    now: Optional[datetime] = None,
) -> PermissionContext:
    """
    Build a PermissionContext for a principal id

    Args:
        db: Database session
        user_id: Principal id
        now: Evaluation time (defaults to current UTC time)

    Returns:
        Context holding the role, school level, assigned classes and every
        override that has not expired at `now`

    Raises:
        UserNotFoundException: If the id does not resolve to an active user
        StoreFailureException: If the user directory or override store fails
    """
    user = await load_principal(db, user_id)
    return await context_for_user(db, user, now)
