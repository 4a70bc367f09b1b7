"""Custom SQLAlchemy column types for ultradian."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, TypeDecorator


class UTCDateTime(TypeDecorator[datetime]):
    """
    A DateTime column that always round-trips as timezone-aware UTC.

    SQLite has no native timezone support and returns naive values, so this
    type stores naive UTC (keeping microseconds) and re-attaches UTC on the
    way out.

    Example:
        class MyModel(Base):
            occurred_at: Mapped[datetime] = mapped_column(UTCDateTime)

        obj.occurred_at = datetime(2025, 3, 1, 9, 0, 0, 250000, tzinfo=UTC)
        print(obj.occurred_at)  # 2025-03-01 09:00:00.250000+00:00
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> datetime | None:
        """
        Convert an aware datetime to naive UTC before storing.

        Args:
            value: datetime to store (naive values are taken as UTC)
            dialect: SQLAlchemy dialect

        Returns:
            Naive UTC datetime or None

        Raises:
            ValueError: If value is not a datetime
        """
        if value is None:
            return None

        if not isinstance(value, datetime):
            raise ValueError(
                f"Expected datetime, got {type(value).__name__}: {value!r}"
            )

        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: Any) -> Any:
        """Attach UTC to the stored naive value."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
