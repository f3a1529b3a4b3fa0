from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

import httpx
from prometheus_client import Counter

from doc_registry.config import Settings, settings
from doc_registry.models.registry import PROVIDER_FIELDS, StorageLocation

logger = logging.getLogger(__name__)

URL_RESOLUTION_FAILURES = Counter(
    "doc_registry_url_resolution_failures_total",
    "Storage URL resolutions that failed upstream",
    ["provider"],
)


class UpstreamResolutionError(Exception):
    """A provider lookup failed. Absorbed by ``resolve``; never propagated."""


@dataclass(frozen=True)
class StorageIdentifiers:
    sharepoint_site_id: str | None = None
    sharepoint_drive_id: str | None = None
    sharepoint_item_id: str | None = None
    confluence_space_key: str | None = None
    confluence_page_id: str | None = None

    @classmethod
    def from_source(cls, source) -> StorageIdentifiers:
        """Build from a document row, a history row or any object with the fields."""
        return cls(**{f.name: getattr(source, f.name, None) for f in dataclasses.fields(cls)})

    def values_for(self, location: StorageLocation) -> tuple[str | None, ...]:
        return tuple(getattr(self, name) for name in PROVIDER_FIELDS[location])

    def is_complete(self, location: StorageLocation) -> bool:
        return all(self.values_for(location))


class StorageLocationResolver:
    """Turns provider identifiers into a browsable document URL.

    SharePoint items are looked up through Microsoft Graph with the caller's
    bearer token; Confluence URLs are composed from the configured base
    address. ``resolve`` returns ``None`` instead of raising.
    """

    def __init__(
        self,
        confluence_base_url: str | None = None,
        graph_api_base_url: str = "https://graph.microsoft.com/v1.0",
        default_site_id: str | None = None,
        default_drive_id: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.confluence_base_url = (confluence_base_url or "").rstrip("/") or None
        self.graph_api_base_url = graph_api_base_url.rstrip("/")
        self.default_site_id = default_site_id or None
        self.default_drive_id = default_drive_id or None
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings) -> StorageLocationResolver:
        return cls(
            confluence_base_url=config.confluence_base_url,
            graph_api_base_url=config.graph_api_base_url,
            default_site_id=config.sharepoint_default_site_id,
            default_drive_id=config.sharepoint_default_drive_id,
            timeout=config.upstream_timeout_seconds,
        )

    def apply_defaults(self, identifiers: StorageIdentifiers) -> StorageIdentifiers:
        """Fill a missing SharePoint site/drive from configuration when an item is given."""
        if not identifiers.sharepoint_item_id:
            return identifiers
        return dataclasses.replace(
            identifiers,
            sharepoint_site_id=identifiers.sharepoint_site_id or self.default_site_id,
            sharepoint_drive_id=identifiers.sharepoint_drive_id or self.default_drive_id,
        )

    def resolve(
        self,
        location: StorageLocation,
        identifiers: StorageIdentifiers,
        access_token: str | None = None,
    ) -> str | None:
        if not identifiers.is_complete(location):
            return None
        if location == StorageLocation.SHAREPOINT:
            return self._resolve_sharepoint(identifiers, access_token)
        return self._resolve_confluence(identifiers)

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def _resolve_confluence(self, identifiers: StorageIdentifiers) -> str | None:
        if not self.confluence_base_url:
            logger.warning("Confluence base URL not configured; cannot build document URL")
            return None
        return (
            f"{self.confluence_base_url}/pages/viewpage.action"
            f"?pageId={identifiers.confluence_page_id}"
        )

    def _resolve_sharepoint(
        self, identifiers: StorageIdentifiers, access_token: str | None
    ) -> str | None:
        site_id, drive_id, item_id = identifiers.values_for(StorageLocation.SHAREPOINT)
        if not access_token:
            logger.warning(
                "No Graph access token supplied; cannot resolve SharePoint item %s",
                item_id,
            )
            return None
        try:
            return self._fetch_sharepoint_url(site_id, drive_id, item_id, access_token)
        except UpstreamResolutionError as e:
            URL_RESOLUTION_FAILURES.labels(provider="sharepoint").inc()
            logger.warning(
                "SharePoint URL resolution failed for site=%s drive=%s item=%s: %s",
                site_id,
                drive_id,
                item_id,
                e,
            )
            return None

    def _fetch_sharepoint_url(
        self, site_id: str, drive_id: str, item_id: str, access_token: str
    ) -> str:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            with httpx.Client(
                base_url=self.graph_api_base_url, headers=headers, timeout=self.timeout
            ) as client:
                item = self._get_json(
                    client, f"/sites/{site_id}/drives/{drive_id}/items/{item_id}"
                )
                if item.get("webUrl"):
                    return item["webUrl"]
                site = self._get_json(client, f"/sites/{site_id}")
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamResolutionError(str(e)) from e

        site_url = site.get("webUrl")
        if not site_url:
            raise UpstreamResolutionError(f"Neither item {item_id} nor its site has a webUrl")
        logger.info("Item %s has no webUrl; using site-relative fallback", item_id)
        return f"{site_url.rstrip('/')}/_layouts/15/Doc.aspx?sourcedoc={item_id}"

    @staticmethod
    def _get_json(client: httpx.Client, path: str) -> dict:
        resp = client.get(path)
        resp.raise_for_status()
        return resp.json()


resolver = StorageLocationResolver.from_settings(settings)
