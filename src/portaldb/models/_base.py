"""Base model and time helpers for the persisted document.

Every persisted model inherits from :class:`PortalBaseModel`, which maps
the camelCase keys of the stored JSON (``bugRequests``, ``createdAt``)
to snake_case attributes and back.

Account timestamps (``expiry``, ``createdAt``) are stored as epoch
milliseconds; the helpers below convert them to and from aware UTC
datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


class PortalBaseModel(BaseModel):
    """Base for persisted records.

    Records are immutable; state changes replace a record with
    ``model_copy(update=...)``.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
