"""Page source backed by the Art Institute of Chicago public API."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

import httpx

from gallery_engine.paging import FetchedPage, PageSourceError, Record
from gallery_engine.runtime import telemetry
from gallery_engine.runtime.settings import DEFAULT_API_URL, DEFAULT_FIELDS, DEFAULT_TIMEOUT


def parse_listing(payload: Any, *, page_number: int | None = None) -> FetchedPage:
    """Turn an ``/artworks`` listing body into a ``FetchedPage``."""

    if not isinstance(payload, Mapping):
        raise PageSourceError("listing body is not an object", page_number=page_number)
    data = payload.get("data")
    pagination = payload.get("pagination")
    if not isinstance(data, list) or not isinstance(pagination, Mapping):
        raise PageSourceError(
            "listing body lacks 'data' or 'pagination'", page_number=page_number
        )
    total = pagination.get("total")
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise PageSourceError(f"invalid pagination total {total!r}", page_number=page_number)
    try:
        records = tuple(Record.from_payload(item) for item in data)
    except (AttributeError, ValueError) as exc:
        raise PageSourceError(str(exc), page_number=page_number) from exc
    return FetchedPage(records=records, total_count=total)


class ArticPageSource:
    """Fetches ``/artworks`` listings with an ``httpx.AsyncClient``.

    When no client is injected the source creates one and closes it in
    ``aclose``; an injected client is left for its owner to close.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        fields: Iterable[str] = DEFAULT_FIELDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.fields = tuple(fields)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_page(self, page_number: int, page_size: int) -> FetchedPage:
        params: dict[str, str | int] = {"page": page_number, "limit": page_size}
        if self.fields:
            params["fields"] = ",".join(self.fields)
        url = f"{self.base_url}/artworks"
        with telemetry.span(name="remote::artic_fetch", component="remote"):
            response = await self._client.get(url, params=params, timeout=self.timeout)
            if response.status_code != 200:
                telemetry.record_event(
                    "remote.status",
                    level="warning",
                    data={"page": page_number, "status": response.status_code},
                )
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError as exc:
                raise PageSourceError(
                    "listing body is not valid JSON", page_number=page_number
                ) from exc
            return parse_listing(payload, page_number=page_number)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ArticPageSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["ArticPageSource", "parse_listing"]
