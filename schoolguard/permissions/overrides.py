"""
Override Store
CRUD over per-user permission overrides
"""

import uuid
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolguard.core.exceptions import NotFoundException, StoreFailureException
from schoolguard.core.logging import get_logger
from schoolguard.core.timeutils import to_naive_utc, utc_now
from schoolguard.db.models import PermissionOverride, User
from schoolguard.permissions.catalog import Action, Resource, Scope
from schoolguard.permissions.context import parse_user_id
from schoolguard.permissions.evaluator import parse_action, parse_resource

logger = get_logger(__name__)

UserId = Union[str, uuid.UUID]


def _dialect_insert(dialect_name: str):
    """INSERT construct with ON CONFLICT support for the bound backend"""
    if dialect_name == "sqlite":
        return sqlite.insert
    return postgresql.insert


class OverrideStore:
    """
    Persisted grant/revoke exceptions keyed by (user_id, resource, action)

    Writing a second override for the same key replaces the first
    (most-recent-wins). Every storage error surfaces as StoreFailureException.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert(
        self,
        user_id: UserId,
        resource: Union[Resource, str],
        action: Union[Action, str],
        granted: bool,
        scope: Scope = Scope.ALL,
        expires_at: Optional[datetime] = None,
        reason: Optional[str] = None,
        granted_by: Optional[UserId] = None,
    ) -> PermissionOverride:
        """
        Create or replace the override for (user_id, resource, action)

        Raises:
            NotFoundException: If the target user does not exist
            InvalidRequestException: If resource or action is outside the catalog
            StoreFailureException: On storage errors
        """
        uid = self._parse_target(user_id)
        resource = parse_resource(resource)
        action = parse_action(action)
        expires_at = to_naive_utc(expires_at)
        granter = parse_user_id(granted_by) if granted_by else None

        values = {
            "granted": granted,
            "scope": scope,
            "expires_at": expires_at,
            "reason": reason,
            "granted_by": granter,
        }

        try:
            if await self.db.get(User, uid) is None:
                raise NotFoundException("User")

            insert = _dialect_insert(self.db.bind.dialect.name)
            statement = (
                insert(PermissionOverride)
                .values(user_id=uid, resource=resource, action=action, **values)
                .on_conflict_do_update(
                    index_elements=[
                        PermissionOverride.user_id,
                        PermissionOverride.resource,
                        PermissionOverride.action,
                    ],
                    set_={**values, "updated_at": utc_now()},
                )
                .returning(PermissionOverride)
            )
            result = await self.db.execute(
                statement,
                execution_options={"populate_existing": True},
            )
            override = result.scalar_one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to upsert override for user {uid}: {e}")
            raise StoreFailureException(operation="upsert_override")

        logger.info(
            f"Permission override {'grant' if granted else 'deny'} "
            f"{resource.value}:{action.value} set for user {uid}"
        )
        return override

    async def delete(self, user_id: UserId, override_id: UserId) -> None:
        """
        Delete one override of a user

        Raises:
            NotFoundException: If the override does not exist or belongs to another user
            StoreFailureException: On storage errors
        """
        uid = self._parse_target(user_id)
        try:
            oid = uuid.UUID(str(override_id))
        except ValueError:
            raise NotFoundException("Permission override")

        try:
            override = await self.db.get(PermissionOverride, oid)
            if override is None or override.user_id != uid:
                raise NotFoundException("Permission override")

            await self.db.delete(override)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete override {oid}: {e}")
            raise StoreFailureException(operation="delete_override")

        logger.info(f"Permission override {oid} deleted for user {uid}")

    async def list_active(
        self,
        user_id: UserId,
        now: Optional[datetime] = None,
    ) -> List[PermissionOverride]:
        """Overrides of a user that have not expired at `now`"""
        uid = self._parse_target(user_id)
        now = to_naive_utc(now) or utc_now()
        return await self._select(
            select(PermissionOverride)
            .where(
                PermissionOverride.user_id == uid,
                or_(
                    PermissionOverride.expires_at.is_(None),
                    PermissionOverride.expires_at > now,
                ),
            )
            .order_by(PermissionOverride.resource, PermissionOverride.action),
            operation="list_active_overrides",
        )

    async def list_all(self, user_id: UserId) -> List[PermissionOverride]:
        """Every override of a user, expired ones included"""
        uid = self._parse_target(user_id)
        return await self._select(
            select(PermissionOverride)
            .where(PermissionOverride.user_id == uid)
            .order_by(PermissionOverride.resource, PermissionOverride.action),
            operation="list_overrides",
        )

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete overrides whose expiry has passed; returns the number removed"""
        now = to_naive_utc(now) or utc_now()
        try:
            result = await self.db.execute(
                delete(PermissionOverride).where(
                    PermissionOverride.expires_at.is_not(None),
                    PermissionOverride.expires_at <= now,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to purge expired overrides: {e}")
            raise StoreFailureException(operation="purge_expired_overrides")

        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired permission overrides")
        return result.rowcount or 0

    async def _select(self, statement, operation: str) -> List[PermissionOverride]:
        try:
            result = await self.db.execute(statement)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Override store read failed ({operation}): {e}")
            raise StoreFailureException(operation=operation)

    @staticmethod
    def _parse_target(user_id: UserId) -> uuid.UUID:
        if isinstance(user_id, uuid.UUID):
            return user_id
        try:
            return uuid.UUID(str(user_id))
        except ValueError:
            raise NotFoundException("User")
