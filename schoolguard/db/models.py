"""
SQLAlchemy Database Models
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from schoolguard.db.base import Base, TimestampMixin, UUIDMixin
from schoolguard.permissions.catalog import Action, Resource, Role, SchoolLevel, Scope


def _enum_column(enum_cls, length: int = 50) -> Enum:
    """Store enum values (not member names) as plain strings"""
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class User(UUIDMixin, TimestampMixin, Base):
    """User SQLAlchemy model"""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    staff_role: Mapped[Optional[Role]] = mapped_column(_enum_column(Role), nullable=True)
    school_level: Mapped[Optional[SchoolLevel]] = mapped_column(
        _enum_column(SchoolLevel, length=20), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class PermissionOverride(UUIDMixin, TimestampMixin, Base):
    """Per-user exception to the default role grant"""

    __tablename__ = "permission_overrides"
    __table_args__ = (
        UniqueConstraint("user_id", "resource", "action", name="uq_permission_override_key"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    resource: Mapped[Resource] = mapped_column(_enum_column(Resource), nullable=False)
    action: Mapped[Action] = mapped_column(_enum_column(Action, length=20), nullable=False)
    scope: Mapped[Scope] = mapped_column(
        _enum_column(Scope, length=20), nullable=False, default=Scope.ALL
    )
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    granted_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    def is_active_at(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


class ClassAssignment(UUIDMixin, TimestampMixin, Base):
    """Class taught by a staff member (feeds the own_classes scope)"""

    __tablename__ = "class_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "class_id", name="uq_class_assignment"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str] = mapped_column(String(64), nullable=False)
