from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator

T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    items: list[T]
    count: int
    limit: int
    offset: int


def blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def coerce_timestamp(value):
    """Normalise a review/change date before pydantic parses it.

    ``None`` and ``""`` clear the field and a ten-character ``YYYY-MM-DD``
    string means midnight UTC. Other strings go to pydantic's datetime parser
    untouched.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if len(value) == 10:
            return f"{value}T00:00:00+00:00"
    return value


def assume_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


OptionalText = Annotated[str | None, BeforeValidator(blank_to_none)]
Timestamp = Annotated[
    datetime | None, BeforeValidator(coerce_timestamp), AfterValidator(assume_utc)
]
