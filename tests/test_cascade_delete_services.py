import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from doc_registry.models import (
    Acknowledgment,
    Document,
    DocumentControl,
    DocumentRisk,
    DocumentStatus,
    DocumentType,
    DocumentVersionHistory,
    ReviewTask,
    Risk,
    StorageLocation,
)
from doc_registry.services.cascade_delete import _delete_rows, hard_delete


@pytest.fixture()
def populated_document(db_session, person, control):
    doc = Document(
        title="Business Continuity Plan",
        type=DocumentType.MANUAL,
        status=DocumentStatus.APPROVED,
        version="3.0",
        storage_location=StorageLocation.CONFLUENCE,
        confluence_space_key="BCP",
        confluence_page_id="99",
        owner_id=person.id,
    )
    risk = Risk(title="Data centre outage")
    db_session.add_all([doc, risk])
    db_session.flush()
    db_session.add_all(
        [
            ReviewTask(
                document_id=doc.id,
                reviewer_id=person.id,
                due_date=datetime.now(timezone.utc) + timedelta(days=14),
            ),
            Acknowledgment(person_id=person.id, document_id=doc.id, document_version="3.0"),
            DocumentControl(document_id=doc.id, control_id=control.id),
            DocumentRisk(document_id=doc.id, risk_id=risk.id),
            DocumentVersionHistory(
                document_id=doc.id,
                version="3.0",
                notes="Reissued",
                created_by=person.id,
                updated_by=person.id,
            ),
        ]
    )
    db_session.commit()
    db_session.refresh(doc)
    return doc


def _counts(db_session, doc_id):
    return {
        "review_tasks": db_session.query(ReviewTask).filter_by(document_id=doc_id).count(),
        "acknowledgments": db_session.query(Acknowledgment)
        .filter_by(document_id=doc_id)
        .count(),
        "document_controls": db_session.query(DocumentControl)
        .filter_by(document_id=doc_id)
        .count(),
        "document_risks": db_session.query(DocumentRisk).filter_by(document_id=doc_id).count(),
        "version_history": db_session.query(DocumentVersionHistory)
        .filter_by(document_id=doc_id)
        .count(),
        "document": db_session.query(Document).filter_by(id=doc_id).count(),
    }


class TestHardDelete:
    def test_removes_document_and_dependents(self, db_session, populated_document):
        doc_id = populated_document.id
        result = hard_delete(db_session, str(doc_id))
        assert result["id"] == doc_id
        assert result["title"] == "Business Continuity Plan"
        assert result["deleted"] is True
        assert result["removed"] == {
            "review_tasks": 1,
            "acknowledgments": 1,
            "document_controls": 1,
            "document_risks": 1,
            "version_history": 1,
        }
        assert set(_counts(db_session, doc_id).values()) == {0}

    def test_not_found(self, db_session):
        with pytest.raises(HTTPException) as exc:
            hard_delete(db_session, str(uuid.uuid4()))
        assert exc.value.status_code == 404
        assert exc.value.detail["code"] == "document_not_found"

    def test_failure_at_risk_step_rolls_back_everything(
        self, db_session, populated_document
    ):
        doc_id = populated_document.id

        def failing_delete(db, model, document_id):
            if model is DocumentRisk:
                raise OperationalError("DELETE FROM document_risks", {}, Exception("boom"))
            return _delete_rows(db, model, document_id)

        with patch(
            "doc_registry.services.cascade_delete._delete_rows", side_effect=failing_delete
        ):
            with pytest.raises(HTTPException) as exc:
                hard_delete(db_session, str(doc_id))
        assert exc.value.status_code == 500
        assert "boom" not in exc.value.detail["message"]
        assert set(_counts(db_session, doc_id).values()) == {1}

    def test_statement_timeout_maps_to_408(self, db_session, populated_document):
        doc_id = populated_document.id

        class Canceled(Exception):
            sqlstate = "57014"

        def slow_delete(db, model, document_id):
            if model is Acknowledgment:
                raise OperationalError("DELETE FROM acknowledgments", {}, Canceled())
            return _delete_rows(db, model, document_id)

        with patch(
            "doc_registry.services.cascade_delete._delete_rows", side_effect=slow_delete
        ):
            with pytest.raises(HTTPException) as exc:
                hard_delete(db_session, str(doc_id))
        assert exc.value.status_code == 408
        assert exc.value.detail["code"] == "delete_timeout"
        assert "too many related records" in exc.value.detail["message"]
        assert _counts(db_session, doc_id)["review_tasks"] == 1

    def test_exhausted_budget_rolls_back(self, db_session, populated_document):
        doc_id = populated_document.id
        # Budget is spent after the first two steps.
        with patch("doc_registry.services.cascade_delete.time") as fake_time:
            fake_time.monotonic.side_effect = [0.0, 0.0, 0.0, 100.0]
            with pytest.raises(HTTPException) as exc:
                hard_delete(db_session, str(doc_id))
        assert exc.value.status_code == 408
        assert set(_counts(db_session, doc_id).values()) == {1}

    def test_invalidates_cache_after_commit(self, db_session, populated_document, cache_delay):
        doc_id = populated_document.id
        hard_delete(db_session, str(doc_id))
        cache_delay.assert_called_once_with(document_id=str(doc_id))

    def test_no_invalidation_on_failure(self, db_session, populated_document, cache_delay):
        with patch(
            "doc_registry.services.cascade_delete._delete_rows",
            side_effect=OperationalError("DELETE", {}, Exception("boom")),
        ):
            with pytest.raises(HTTPException):
                hard_delete(db_session, str(populated_document.id))
        cache_delay.assert_not_called()
