"""
SQLAlchemy Declarative Base
Shared base class and column mixins
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from schoolguard.core.timeutils import utc_now


class Base(DeclarativeBase):
    """Declarative base for all models"""


class UUIDMixin:
    """UUID primary key"""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    """Creation and update timestamps (naive UTC)"""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )
