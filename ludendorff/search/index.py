from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx
from opentelemetry import trace


tracer = trace.get_tracer("ludendorff.search")


class SearchIndexError(Exception):
    def __init__(self, index_name: str, status_code: int, message: str) -> None:
        self.index_name = index_name
        self.status_code = status_code
        super().__init__(f"Search index '{index_name}' rejected update ({status_code}): {message}")


class SearchIndex(Protocol):
    async def partial_update(self, index_name: str, obj: dict[str, Any]) -> None: ...

    async def aclose(self) -> None: ...


class AlgoliaSearchIndex:
    """Partial object updates against the Algolia REST API."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        *,
        host: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.app_id = app_id
        base_url = host or f"https://{app_id}.algolia.net"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-Algolia-Application-Id": app_id,
                "X-Algolia-API-Key": api_key,
            },
        )

    async def partial_update(self, index_name: str, obj: dict[str, Any]) -> None:
        object_id = obj.get("objectID")
        if not object_id:
            raise ValueError("objectID is required for a partial update")

        body = {key: value for key, value in obj.items() if key != "objectID"}
        url = f"/1/indexes/{quote(index_name, safe='')}/{quote(str(object_id), safe='')}/partial"
        with tracer.start_as_current_span("search.partial_update") as span:
            span.set_attribute("index_name", index_name)
            span.set_attribute("object_id", str(object_id))
            response = await self._client.post(url, params={"createIfNotExists": "true"}, json=body)
            span.set_attribute("http.status_code", response.status_code)
        if response.status_code >= 400:
            raise SearchIndexError(index_name, response.status_code, response.text[:200])

    async def aclose(self) -> None:
        await self._client.aclose()
