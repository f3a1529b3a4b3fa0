import uuid

from doc_registry.models import (
    Document,
    DocumentStatus,
    DocumentType,
    ReviewTask,
    StorageLocation,
)


def _create_document(db_session, person, **overrides):
    defaults = dict(
        title="Clear Desk Policy",
        type=DocumentType.POLICY,
        status=DocumentStatus.APPROVED,
        version="1.0",
        storage_location=StorageLocation.CONFLUENCE,
        confluence_space_key="ISMS",
        confluence_page_id="55",
        owner_id=person.id,
    )
    defaults.update(overrides)
    doc = Document(**defaults)
    db_session.add(doc)
    db_session.commit()
    db_session.refresh(doc)
    return doc


def _create_body(person, **overrides):
    body = {
        "title": "Remote Working Procedure",
        "type": "PROCEDURE",
        "storage_location": "CONFLUENCE",
        "version": "1.0",
        "status": "DRAFT",
        "owner_id": str(person.id),
        "confluence_space_key": "ISMS",
        "confluence_page_id": "101",
    }
    body.update(overrides)
    return body


class TestDocumentEndpoints:
    def test_create_document(self, client, auth_headers, person):
        resp = client.post("/documents", json=_create_body(person), headers=auth_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["title"] == "Remote Working Procedure"
        assert data["owner"]["email"] == person.email
        assert data["document_url"].endswith("viewpage.action?pageId=101")
        assert data["requires_acknowledgement"] is False

    def test_create_requires_actor(self, client, person):
        resp = client.post("/documents", json=_create_body(person))
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthorized"

    def test_create_rejects_mixed_providers(self, client, auth_headers, person):
        resp = client.post(
            "/documents",
            json=_create_body(person, sharepoint_item_id="item-1"),
            headers=auth_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_create_rejects_blank_owner(self, client, auth_headers, person):
        resp = client.post(
            "/documents", json=_create_body(person, owner_id=""), headers=auth_headers
        )
        assert resp.status_code == 422

    def test_create_under_api_prefix(self, client, auth_headers, person):
        resp = client.post(
            "/api/v1/documents", json=_create_body(person), headers=auth_headers
        )
        assert resp.status_code == 201

    def test_list_documents(self, client, db_session, person):
        _create_document(db_session, person)
        _create_document(db_session, person, type=DocumentType.MANUAL, title="Manual")
        resp = client.get("/documents", params={"type": "POLICY"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 1
        assert data["items"][0]["title"] == "Clear Desk Policy"

    def test_list_rejects_unknown_status(self, client):
        resp = client.get("/documents", params={"status": "ARCHIVED"})
        assert resp.status_code == 422

    def test_get_document_detail(self, client, db_session, person):
        doc = _create_document(db_session, person)
        resp = client.get(f"/documents/{doc.id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == str(doc.id)
        assert data["current_version_notes"] is None
        assert data["is_overdue_review"] is False

    def test_get_document_not_found(self, client):
        resp = client.get(f"/documents/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json()["code"] == "document_not_found"

    def test_update_document(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person)
        resp = client.patch(
            f"/documents/{doc.id}",
            json={"title": "Clear Desk and Screen Policy"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Clear Desk and Screen Policy"
        assert resp.json()["version"] == "1.0"

    def test_update_rejects_inactive_provider_ids(
        self, client, db_session, auth_headers, person
    ):
        doc = _create_document(db_session, person)
        resp = client.patch(
            f"/documents/{doc.id}",
            json={"sharepoint_item_id": "item-1"},
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_storage_identifiers"

    def test_update_rejects_null_title(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person)
        resp = client.patch(
            f"/documents/{doc.id}", json={"title": None}, headers=auth_headers
        )
        assert resp.status_code == 422

    def test_soft_delete(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person)
        resp = client.delete(f"/documents/{doc.id}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "SUPERSEDED"

    def test_hard_delete(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person)
        db_session.add(
            ReviewTask(
                document_id=doc.id,
                reviewer_id=person.id,
                due_date=doc.created_at,
            )
        )
        db_session.commit()
        resp = client.delete(
            f"/documents/{doc.id}", params={"hard": "true"}, headers=auth_headers
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["deleted"] is True
        assert data["removed"]["review_tasks"] == 1
        assert client.get(f"/documents/{doc.id}").status_code == 404

    def test_hard_delete_not_found(self, client, auth_headers):
        resp = client.delete(
            f"/documents/{uuid.uuid4()}", params={"hard": "true"}, headers=auth_headers
        )
        assert resp.status_code == 404


class TestVersionEndpoints:
    def test_version_update(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person)
        resp = client.post(
            f"/documents/{doc.id}/version-updates",
            json={
                "current_version": "1.0",
                "new_version": "1.1",
                "notes": "Added hot-desking rules",
                "next_review_date": "2027-06-30",
            },
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["version"] == "1.1"
        assert data["last_changed_date"] is not None
        assert data["next_review_date"].startswith("2027-06-30T00:00:00")

    def test_version_mismatch(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person, version="2.0")
        resp = client.post(
            f"/documents/{doc.id}/version-updates",
            json={"current_version": "1.5", "new_version": "2.1", "notes": "late"},
            headers=auth_headers,
        )
        assert resp.status_code == 409
        body = resp.json()
        assert body["code"] == "version_mismatch"
        assert body["details"]["current_version"] == "2.0"

    def test_version_notes_and_history(self, client, db_session, auth_headers, person):
        doc = _create_document(db_session, person)
        client.post(
            f"/documents/{doc.id}/version-updates",
            json={"current_version": "1.0", "new_version": "2.0", "notes": "Rewrite"},
            headers=auth_headers,
        )
        resp = client.get(
            f"/documents/{doc.id}/version-notes", params={"version": "current"}
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "document_id": str(doc.id),
            "version": "2.0",
            "notes": "Rewrite",
        }

        resp = client.get(f"/documents/{doc.id}/version-history")
        assert resp.status_code == 200
        history = resp.json()
        assert [h["version"] for h in history] == ["2.0"]
        assert history[0]["created_by"] == str(person.id)

    def test_version_history_not_found(self, client):
        resp = client.get(f"/documents/{uuid.uuid4()}/version-history")
        assert resp.status_code == 404


class TestControlEndpoints:
    def test_link_list_unlink(self, client, db_session, auth_headers, person, control):
        doc = _create_document(db_session, person)
        resp = client.post(
            f"/documents/{doc.id}/controls",
            json={"control_id": str(control.id)},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["code"] == "A.5.1"

        dup = client.post(
            f"/documents/{doc.id}/controls",
            json={"control_id": str(control.id)},
            headers=auth_headers,
        )
        assert dup.status_code == 409

        listed = client.get(f"/documents/{doc.id}/controls")
        assert [c["code"] for c in listed.json()] == ["A.5.1"]

        resp = client.delete(
            f"/documents/{doc.id}/controls/{control.id}", headers=auth_headers
        )
        assert resp.status_code == 204
        assert client.get(f"/documents/{doc.id}/controls").json() == []


class TestServiceEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_metrics(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "doc_registry_url_resolution_failures_total" in resp.text
