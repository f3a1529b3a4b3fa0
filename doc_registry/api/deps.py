import uuid

from fastapi import Header, HTTPException

from doc_registry.db import SessionLocal
from doc_registry.services.common import Actor, error_detail


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_email: str | None = Header(default=None),
) -> Actor:
    """Identity of the caller, set by the upstream authentication layer."""
    if not x_actor_id:
        raise HTTPException(
            status_code=401,
            detail=error_detail("unauthorized", "X-Actor-Id header is required"),
        )
    try:
        actor_id = uuid.UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail=error_detail("unauthorized", "X-Actor-Id must be a UUID"),
        )
    return Actor(id=actor_id, email=x_actor_email or None)


def get_graph_token(x_graph_token: str | None = Header(default=None)) -> str | None:
    return x_graph_token or None
