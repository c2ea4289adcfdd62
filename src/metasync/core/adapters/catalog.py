"""HTTP client for the remote catalog web API.

Every call goes to `<origin>/api/` with basic authentication. Listing
failures surface as `RemoteListingError`, body fetches as `ChunkFetchError`,
so the engine can isolate them per pass and per chunk.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from metasync.core.config import REQUEST_TIMEOUT, Credentials
from metasync.core.errors import ChunkFetchError, RemoteListingError
from metasync.core.models import CatalogItemRef, CatalogObject, HierarchyLevel, TypeSchema

logger = logging.getLogger(__name__)


class HttpCatalogClient:
    """Adapter around the remote catalog web API (schemas, listings, metadata)."""

    def __init__(
        self,
        origin_url: str,
        credentials: Credentials,
        *,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create a client for `<origin_url>/api` using basic authentication."""
        self.origin_url = origin_url.rstrip("/")
        self.http = httpx.Client(
            base_url=f"{self.origin_url}/api/",
            auth=httpx.BasicAuth(credentials.username, credentials.password),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self._schemas: dict[str, TypeSchema] | None = None

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self.http.close()

    def __enter__(self) -> "HttpCatalogClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_json(self, path: str, params: dict[str, str]) -> Any:
        response = self.http.get(path, params=params)
        response.raise_for_status()
        return response.json()

    def schemas(self) -> dict[str, TypeSchema]:
        """Return known types keyed by plural name (fetched once per client)."""
        if self._schemas is None:
            try:
                payload = self._get_json(
                    "schemas.json", {"fields": "name,plural,displayName"}
                )
            except (httpx.HTTPError, ValueError) as exc:
                raise RemoteListingError("schemas", str(exc)) from exc

            schemas: dict[str, TypeSchema] = {}
            for item in payload.get("schemas", []):
                plural = item.get("plural")
                if not plural:
                    continue
                schemas[plural] = TypeSchema(
                    name=plural, display_name=item.get("displayName")
                )
            self._schemas = schemas
        return self._schemas

    def resolve_type(self, name: str) -> TypeSchema | None:
        """Return the schema for a configured type name, or None if unknown."""
        return self.schemas().get(name)

    def list_refs(
        self, type_name: str, filter: str | None = None
    ) -> list[CatalogItemRef]:
        """List `{id, lastUpdated}` for every object of a type (unpaged)."""
        params = {"paging": "false", "fields": "id,lastUpdated"}
        if filter:
            params["filter"] = filter
        try:
            payload = self._get_json(f"{type_name}.json", params)
            items = payload.get(type_name) or []
            return [CatalogItemRef.from_json(item) for item in items]
        except (httpx.HTTPError, ValueError, KeyError, AttributeError) as exc:
            raise RemoteListingError(type_name, str(exc)) from exc

    def list_hierarchy_levels(self, levels_type: str) -> list[HierarchyLevel]:
        """List the hierarchy levels (number and display label)."""
        params = {"paging": "false", "fields": "level,displayName"}
        try:
            payload = self._get_json(f"{levels_type}.json", params)
            return [
                HierarchyLevel(
                    level=int(item["level"]),
                    label=str(item.get("displayName") or item["level"]),
                )
                for item in payload.get(levels_type) or []
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise RemoteListingError(levels_type, str(exc)) from exc

    def fetch_by_ids(
        self, type_name: str, ids: Sequence[str], fields: str
    ) -> dict[str, list[CatalogObject]]:
        """Fetch full bodies for `ids` through the metadata endpoint."""
        params = {"fields": fields, "filter": f"id:in:[{','.join(ids)}]"}
        try:
            payload = self._get_json("metadata.json", params)
        except (httpx.HTTPError, ValueError) as exc:
            raise ChunkFetchError(type_name, list(ids), str(exc)) from exc
        if not isinstance(payload, dict):
            raise ChunkFetchError(type_name, list(ids), "unexpected response body")
        logger.debug("[FETCH] %s: %d ids requested", type_name, len(ids))
        return payload
