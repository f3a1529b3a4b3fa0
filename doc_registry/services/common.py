import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, used only for audit stamping."""

    id: uuid.UUID
    email: str | None = None


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail=error_detail("invalid_id", f"Invalid identifier: {value}"),
        )


def error_detail(code: str, message: str, details=None) -> dict:
    return {"code": code, "message": message, "details": details}


def not_found(entity: str, code: str | None = None) -> HTTPException:
    code = code or f"{entity.lower().replace(' ', '_')}_not_found"
    return HTTPException(status_code=404, detail=error_detail(code, f"{entity} not found"))


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise HTTPException(
            status_code=400,
            detail=error_detail(
                "invalid_order_by",
                f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}",
            ),
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)
