"""Declarative base and shared mixins for the siegekeeper schema."""

from datetime import UTC, datetime
from typing import Any, ClassVar

from sqlalchemy import DateTime, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC timestamps.

    SQLite stores datetimes without an offset, so values come back naive.
    Results are re-labelled as UTC and aware inputs are normalized to UTC
    before they are written. Naive inputs are taken to be UTC already.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> Any:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Provides type_annotation_map for automatic type inference from Python types.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
    }


def utc_now() -> datetime:
    """Get current UTC time with timezone awareness.

    Returns:
        datetime: Current time in UTC with timezone info
    """
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin for models that need created_at and updated_at timestamps.

    ``updated_at`` doubles as the last-modified marker that touches bump.
    """

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
    )


class TimestampCreatedMixin:
    """Mixin for append-only records that only need created_at."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
