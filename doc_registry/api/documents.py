from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from doc_registry.api.deps import get_db, get_graph_token, require_actor
from doc_registry.schemas.common import ListResponse
from doc_registry.schemas.documents import (
    ControlLinkCreate,
    ControlRead,
    DeletedDocumentRead,
    DocumentCreate,
    DocumentDetailRead,
    DocumentRead,
    DocumentUpdate,
    VersionHistoryRead,
    VersionNotesRead,
    VersionUpdate,
)
from doc_registry.services import cascade_delete, version_transition
from doc_registry.services.common import Actor
from doc_registry.services.document_controls import document_controls
from doc_registry.services.documents import documents
from doc_registry.services.version_history import version_history

router = APIRouter(prefix="/documents", tags=["documents"])


# ------------------------------------------------------------------
# Document CRUD
# ------------------------------------------------------------------


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
    graph_token: str | None = Depends(get_graph_token),
):
    return documents.create(db, payload, actor, graph_token)


@router.get("", response_model=ListResponse[DocumentRead])
def list_documents(
    doc_type: str | None = Query(
        default=None,
        alias="type",
        pattern="^(POLICY|PROCEDURE|MANUAL|RECORD|TEMPLATE|CERTIFICATE|OTHER)$",
    ),
    status_filter: str | None = Query(
        default=None,
        alias="status",
        pattern="^(DRAFT|IN_REVIEW|APPROVED|SUPERSEDED)$",
    ),
    owner_id: str | None = None,
    next_review_from: datetime | None = None,
    next_review_to: datetime | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    graph_token: str | None = Depends(get_graph_token),
):
    return documents.list_response(
        db,
        doc_type,
        status_filter,
        owner_id,
        next_review_from,
        next_review_to,
        order_by,
        order_dir,
        limit=limit,
        offset=offset,
        graph_token=graph_token,
    )


@router.get("/{document_id}", response_model=DocumentDetailRead)
def get_document(document_id: str, db: Session = Depends(get_db)):
    return documents.get_detail(db, document_id)


@router.patch("/{document_id}", response_model=DocumentRead)
def update_document(
    document_id: str,
    payload: DocumentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
    graph_token: str | None = Depends(get_graph_token),
):
    return documents.update(db, document_id, payload, actor, graph_token)


@router.delete("/{document_id}", response_model=None)
def delete_document(
    document_id: str,
    hard: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    if hard:
        return DeletedDocumentRead(**cascade_delete.hard_delete(db, document_id))
    return DocumentRead.model_validate(documents.soft_delete(db, document_id))


# ------------------------------------------------------------------
# Versions
# ------------------------------------------------------------------


@router.post("/{document_id}/version-updates", response_model=DocumentRead)
def update_version(
    document_id: str,
    payload: VersionUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return version_transition.advance_version(db, document_id, payload, actor)


@router.get("/{document_id}/version-notes", response_model=VersionNotesRead)
def get_version_notes(
    document_id: str,
    version: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return version_history.get_notes(db, document_id, version)


@router.get(
    "/{document_id}/version-history", response_model=list[VersionHistoryRead]
)
def list_version_history(document_id: str, db: Session = Depends(get_db)):
    return version_history.list_for_document(db, document_id)


# ------------------------------------------------------------------
# Control links
# ------------------------------------------------------------------


@router.get("/{document_id}/controls", response_model=list[ControlRead])
def list_document_controls(document_id: str, db: Session = Depends(get_db)):
    return document_controls.list(db, document_id)


@router.post(
    "/{document_id}/controls",
    response_model=ControlRead,
    status_code=status.HTTP_201_CREATED,
)
def link_document_control(
    document_id: str,
    payload: ControlLinkCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return document_controls.link(db, document_id, str(payload.control_id))


@router.delete(
    "/{document_id}/controls/{control_id}", status_code=status.HTTP_204_NO_CONTENT
)
def unlink_document_control(
    document_id: str,
    control_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    document_controls.unlink(db, document_id, control_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
