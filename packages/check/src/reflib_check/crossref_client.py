"""Async client for the Crossref REST API (``/works/{doi}``).

Extracts two things from a work record:

- ``update-to`` entries (retractions, expressions of concern, new versions)
- a ``RemoteMetadata`` snapshot for metadata comparison

HTTP and transport failures are returned as unsuccessful results rather than
raised, so one unreachable DOI never aborts a batch check.

Example:
    >>> async with CrossrefClient(mailto="me@example.org") as crossref:
    ...     result = await crossref.query("10.1038/nature12373")
    ...     if result.success:
    ...         print([u.type for u in result.updates])
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import httpx

from reflib_check.rate_limiter import CROSSREF_RPS, RateLimiter
from reflib_common import RemoteMetadataError, get_logger
from reflib_contracts import AuthorName, DateVariable, RemoteMetadata

logger = get_logger(__name__)

CROSSREF_API_BASE = "https://api.crossref.org/works"


@dataclass
class CrossrefUpdate:
    """One ``update-to`` entry of a Crossref work."""

    type: str
    doi: Optional[str] = None
    label: Optional[str] = None
    date: Optional[str] = None


@dataclass
class CrossrefResult:
    success: bool
    updates: list[CrossrefUpdate] = field(default_factory=list)
    metadata: Optional[RemoteMetadata] = None
    error: Optional[str] = None


def format_update_date(updated: Any) -> Optional[str]:
    """Render Crossref ``{"date-parts": [[y, m, d]]}`` as ``YYYY-MM-DD``.

    Missing month/day default to 1.
    """
    if not isinstance(updated, dict):
        return None
    date_parts = updated.get("date-parts")
    if not isinstance(date_parts, list) or not date_parts:
        return None
    parts = date_parts[0]
    if not isinstance(parts, list) or not parts or parts[0] is None:
        return None
    year = parts[0]
    month = parts[1] if len(parts) > 1 and parts[1] is not None else 1
    day = parts[2] if len(parts) > 2 and parts[2] is not None else 1
    return f"{year}-{int(month):02d}-{int(day):02d}"


def _first(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    return str(value)


def _date_variable(message: dict[str, Any]) -> Optional[DateVariable]:
    for key in ("issued", "published-print", "published-online"):
        raw = message.get(key)
        if not isinstance(raw, dict):
            continue
        date_parts = raw.get("date-parts") or []
        if not date_parts or not date_parts[0]:
            continue
        parts = [p for p in date_parts[0] if p is not None]
        if parts:
            return DateVariable(date_parts=[parts])
    return None


def parse_work_metadata(message: dict[str, Any]) -> RemoteMetadata:
    """Build a comparable snapshot from a Crossref ``message`` object."""
    authors = [
        AuthorName(family=a.get("family"), given=a.get("given"))
        for a in message.get("author") or []
        if isinstance(a, dict)
    ]
    return RemoteMetadata(
        title=_first(message.get("title")),
        author=authors or None,
        container_title=_first(message.get("container-title")),
        type=_first(message.get("type")),
        page=_first(message.get("page")),
        volume=_first(message.get("volume")),
        issue=_first(message.get("issue")),
        issued=_date_variable(message),
    )


def parse_updates(message: dict[str, Any]) -> list[CrossrefUpdate]:
    updates = []
    for entry in message.get("update-to") or []:
        if not isinstance(entry, dict):
            continue
        updates.append(
            CrossrefUpdate(
                type=str(entry.get("type") or ""),
                doi=str(entry["DOI"]) if entry.get("DOI") else None,
                label=str(entry["label"]) if entry.get("label") else None,
                date=format_update_date(entry.get("updated")),
            )
        )
    return updates


class CrossrefClient:
    """Async Crossref client with a shared rate limiter."""

    def __init__(
        self,
        mailto: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """Initialize the client.

        Args:
            mailto: Contact address for Crossref's polite pool
            timeout: Request timeout in seconds
            client: Pre-built HTTP client (tests inject a mock transport)
            rate_limiter: Limiter shared across requests
        """
        self.mailto = mailto
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.rate_limiter = rate_limiter or RateLimiter(requests_per_second=CROSSREF_RPS)

    async def __aenter__(self) -> "CrossrefClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def query(self, doi: str) -> CrossrefResult:
        """Fetch a work and return its updates and metadata."""
        await self.rate_limiter.acquire()

        params = {"mailto": self.mailto} if self.mailto else None
        url = f"{CROSSREF_API_BASE}/{quote(doi, safe='')}"
        try:
            response = await self._get_client().get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("crossref_request_failed", doi=doi, error=str(e))
            return CrossrefResult(success=False, error=str(e) or type(e).__name__)

        if response.status_code != 200:
            error = f"Crossref API returned {response.status_code} {response.reason_phrase}"
            logger.warning("crossref_bad_status", doi=doi, status=response.status_code)
            return CrossrefResult(success=False, error=error)

        try:
            data = response.json()
        except ValueError as e:
            return CrossrefResult(success=False, error=f"Invalid Crossref response: {e}")

        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            logger.warning("crossref_malformed_response", doi=doi)
            return CrossrefResult(
                success=False, error="Invalid Crossref response: expected a work object"
            )

        try:
            updates = parse_updates(message)
            metadata = parse_work_metadata(message)
        except (TypeError, ValueError) as e:
            logger.warning("crossref_malformed_response", doi=doi, error=str(e))
            return CrossrefResult(success=False, error=f"Invalid Crossref response: {e}")

        return CrossrefResult(success=True, updates=updates, metadata=metadata)

    async def fetch_metadata(self, doi: str) -> RemoteMetadata:
        """Fetch a work's metadata.

        Raises:
            RemoteMetadataError: If the work cannot be retrieved.
        """
        result = await self.query(doi)
        if not result.success or result.metadata is None:
            raise RemoteMetadataError("crossref", result.error or f"No metadata for {doi}")
        return result.metadata
