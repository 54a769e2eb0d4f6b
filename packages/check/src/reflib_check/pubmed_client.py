"""Async client for PubMed status and metadata.

Two NCBI endpoints are used:

- E-utilities ``esummary`` (JSON): retraction / expression-of-concern status
  from ``pubtype``
- the PMC citation exporter (``ctxp``, CSL-JSON): the ``RemoteMetadata``
  snapshot for PMID-only records, in the same form a PubMed import stores
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from reflib_check.rate_limiter import PUBMED_RPS, PUBMED_RPS_WITH_KEY, RateLimiter
from reflib_common import get_logger
from reflib_contracts import BibliographicRecord, RemoteMetadata

logger = get_logger(__name__)

PUBMED_ESUMMARY_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"
PMC_CSL_URL = "https://pmc.ncbi.nlm.nih.gov/api/ctxp/v1/pubmed/"

RETRACTED_PUBTYPES = frozenset({"Retracted Publication", "Retraction of Publication"})
CONCERN_PUBTYPE = "Expression of Concern"


@dataclass
class PubmedResult:
    success: bool
    is_retracted: bool = False
    has_concern: bool = False
    metadata: Optional[RemoteMetadata] = None
    error: Optional[str] = None


def parse_csl_metadata(data: Any, pmid: str) -> Optional[RemoteMetadata]:
    """Snapshot the exporter item for ``pmid``.

    The exporter answers with one item or an array of items, each with an
    ``id`` of the form ``pmid:<PMID>``. Returns None if no valid item matches.
    """
    items = data if isinstance(data, list) else [data]
    for item in items:
        if not isinstance(item, dict) or item.get("id") != f"pmid:{pmid}":
            continue
        try:
            record = BibliographicRecord.model_validate(item)
        except ValidationError as e:
            logger.warning("pubmed_csl_invalid", pmid=pmid, error=str(e))
            return None
        return RemoteMetadata.from_record(record)
    return None


class PubmedClient:
    """Async PubMed client (esummary status plus CSL metadata)."""

    def __init__(
        self,
        email: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.email = email
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        rps = PUBMED_RPS_WITH_KEY if api_key else PUBMED_RPS
        self.rate_limiter = rate_limiter or RateLimiter(requests_per_second=rps)

    async def __aenter__(self) -> "PubmedClient":
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

    def _params(self, **params: str) -> dict[str, str]:
        if self.email:
            params["email"] = self.email
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def fetch_csl_metadata(self, pmid: str) -> Optional[RemoteMetadata]:
        """Fetch the CSL-JSON item for ``pmid`` from the PMC citation exporter.

        Failures are logged and give None, so the record is simply not
        compared.
        """
        await self.rate_limiter.acquire()

        try:
            response = await self._get_client().get(
                PMC_CSL_URL, params=self._params(format="csl", id=pmid)
            )
        except httpx.HTTPError as e:
            logger.warning("pubmed_csl_request_failed", pmid=pmid, error=str(e))
            return None

        if response.status_code != 200:
            logger.warning("pubmed_csl_bad_status", pmid=pmid, status=response.status_code)
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("pubmed_csl_invalid", pmid=pmid, error=str(e))
            return None
        return parse_csl_metadata(data, pmid)

    async def query(self, pmid: str, include_metadata: bool = True) -> PubmedResult:
        """Fetch the status of one PMID.

        Args:
            pmid: PubMed identifier
            include_metadata: Also fetch the CSL metadata snapshot
        """
        await self.rate_limiter.acquire()

        try:
            response = await self._get_client().get(
                PUBMED_ESUMMARY_URL, params=self._params(db="pubmed", id=pmid, retmode="json")
            )
        except httpx.HTTPError as e:
            logger.warning("pubmed_request_failed", pmid=pmid, error=str(e))
            return PubmedResult(success=False, error=str(e) or type(e).__name__)

        if response.status_code != 200:
            logger.warning("pubmed_bad_status", pmid=pmid, status=response.status_code)
            return PubmedResult(
                success=False,
                error=f"PubMed API returned {response.status_code} {response.reason_phrase}",
            )

        try:
            data = response.json()
        except ValueError as e:
            return PubmedResult(success=False, error=f"Invalid PubMed response: {e}")

        summaries = data.get("result") if isinstance(data, dict) else None
        if not isinstance(summaries, dict):
            logger.warning("pubmed_malformed_response", pmid=pmid)
            return PubmedResult(
                success=False, error="Invalid PubMed response: expected a result object"
            )

        summary = summaries.get(pmid)
        if not isinstance(summary, dict) or "error" in summary:
            return PubmedResult(success=True)

        pubtype_list = summary.get("pubtype")
        if not isinstance(pubtype_list, list):
            pubtype_list = []
        pubtypes = {p for p in pubtype_list if isinstance(p, str)}
        metadata = await self.fetch_csl_metadata(pmid) if include_metadata else None
        return PubmedResult(
            success=True,
            is_retracted=bool(pubtypes & RETRACTED_PUBTYPES),
            has_concern=CONCERN_PUBTYPE in pubtypes,
            metadata=metadata,
        )
