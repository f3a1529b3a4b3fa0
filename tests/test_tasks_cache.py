import dataclasses
import uuid
from unittest.mock import patch

import httpx
import pytest

from doc_registry.config import settings
from doc_registry.services import cache_invalidation
from doc_registry.tasks.cache import invalidate_document_cache
from mocks import FakeHTTPXClient, FakeHTTPXResponse

SERVICE = "http://document-service.local"


def _with_service_url(url):
    return patch(
        "doc_registry.tasks.cache.settings",
        dataclasses.replace(settings, document_service_url=url),
    )


@pytest.fixture()
def doc_id():
    return str(uuid.uuid4())


class TestInvalidateDocumentCacheTask:
    def test_deletes_cached_renderings(self, doc_id) -> None:
        url = f"{SERVICE}/v1/cache/{doc_id}"
        fake = FakeHTTPXClient({url: FakeHTTPXResponse(status_code=204)})
        with _with_service_url(SERVICE), patch("doc_registry.tasks.cache.httpx.Client", fake):
            invalidate_document_cache(document_id=doc_id)
        assert fake.calls == [("DELETE", url)]

    def test_skips_without_service_url(self, doc_id) -> None:
        fake = FakeHTTPXClient()
        with _with_service_url(""), patch("doc_registry.tasks.cache.httpx.Client", fake):
            invalidate_document_cache(document_id=doc_id)
        assert fake.calls == []

    def test_transport_failure_is_logged_not_raised(self, doc_id, caplog) -> None:
        fake = FakeHTTPXClient(
            {f"{SERVICE}/v1/cache/{doc_id}": httpx.ConnectError("refused")}
        )
        with _with_service_url(SERVICE), patch("doc_registry.tasks.cache.httpx.Client", fake):
            invalidate_document_cache(document_id=doc_id)
        assert f"Cache invalidation for document {doc_id} failed" in caplog.text

    def test_error_status_is_absorbed(self, doc_id, caplog) -> None:
        fake = FakeHTTPXClient(
            {f"{SERVICE}/v1/cache/{doc_id}": FakeHTTPXResponse(status_code=503)}
        )
        with _with_service_url(SERVICE), patch("doc_registry.tasks.cache.httpx.Client", fake):
            invalidate_document_cache(document_id=doc_id)
        assert "503" in caplog.text


class TestInvalidateNotifier:
    def test_queues_task(self, cache_delay) -> None:
        document_id = uuid.uuid4()
        cache_invalidation.invalidate(document_id)
        cache_delay.assert_called_once_with(document_id=str(document_id))

    def test_enqueue_failure_is_swallowed(self, cache_delay, caplog) -> None:
        cache_delay.side_effect = ConnectionError("broker down")
        cache_invalidation.invalidate(uuid.uuid4())
        assert "Failed to queue cache invalidation" in caplog.text
