"""
BV-BRC API client for genome, feature, taxonomy and sequence queries.

Queries use the Resource Query Language (RQL) accepted by the BV-BRC data
API. Long ID lists are split into chunks and every query is paged with
``limit(count,offset)`` until a short page comes back.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from typing import Any, Self
from urllib.parse import quote

import httpx

from repgen.core.curation.provider import FeatureRecord
from repgen.core.curation.taxonomy import TaxonomyIndex
from repgen.core.exceptions import RepgenError

logger = logging.getLogger(__name__)

BVBRC_API_BASE = "https://www.bv-brc.org/api"

# Retry configuration defaults
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_RETRY_BACKOFF = 2.0  # exponential multiplier

# Records per page and IDs per query
DEFAULT_PAGE_SIZE = 25000
DEFAULT_CHUNK_SIZE = 200

RNA_FEATURE_TYPES = ("rrna", "rRNA", "misc_RNA")

RQL_CONTENT_TYPE = "application/rqlquery+x-www-form-urlencoded"


class BVBRCAPIError(RepgenError):
    """Error communicating with the BV-BRC API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        suggestion = "Check your internet connection and try again."
        if status_code == 400:
            suggestion = "The query was rejected. Check genome IDs and field names."
        elif status_code == 429:
            suggestion = "Rate limited. Wait a moment and try again."
        elif status_code and status_code >= 500:
            suggestion = "BV-BRC server error. Try again later."

        super().__init__(message=message, suggestion=suggestion)


def rql_value(value: str) -> str:
    """Encode a value for use inside an RQL expression."""
    return quote(str(value), safe="")


def rql_in(field: str, values: Iterable[str]) -> str:
    return f"in({field},({','.join(rql_value(v) for v in values)}))"


def rql_eq(field: str, value: str) -> str:
    return f"eq({field},{rql_value(value)})"


def _chunks(items: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BVBRCClient:
    """Client for BV-BRC data API requests.

    Implements the sequence provider interface used by the genome curator.

    Attributes:
        timeout: Request timeout in seconds
        page_size: Records requested per page
        chunk_size: IDs per query when filtering on an ID list
    """

    def __init__(
        self,
        base_url: str = BVBRC_API_BASE,
        timeout: float = 120.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        page_size: int = DEFAULT_PAGE_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize BV-BRC client.

        Args:
            base_url: Root URL of the data API.
            timeout: Request timeout in seconds.
            max_retries: Maximum retry attempts for transient failures.
            retry_delay: Initial delay between retries in seconds.
            retry_backoff: Exponential backoff multiplier for retries.
            page_size: Records requested per page.
            chunk_size: IDs per query when filtering on an ID list.
        """
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self.page_size = page_size
        self.chunk_size = chunk_size
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __del__(self) -> None:
        """Ensure HTTP client is closed on garbage collection."""
        self.close()

    # ------------------------------------------------------------------
    # Sequence provider interface
    # ------------------------------------------------------------------

    def get_taxonomy(self) -> TaxonomyIndex:
        """Genus IDs and species genetic codes for the whole taxonomy."""
        records = self.query(
            "taxonomy",
            [rql_in("taxon_rank", ["genus", "species"])],
            ["taxon_id", "taxon_rank", "genetic_code"],
        )
        return TaxonomyIndex.from_records(records)

    def get_reference_genomes(self) -> dict[str, str]:
        """Genomes flagged by NCBI as reference or representative."""
        records = self.query(
            "genome",
            [rql_in("reference_genome", ["Reference", "Representative"])],
            ["genome_id", "reference_genome"],
        )
        return {
            rec["genome_id"]: rec["reference_genome"]
            for rec in records
            if rec.get("genome_id") and rec.get("reference_genome")
        }

    def get_seed_features(
        self, genome_ids: Iterable[str], function: str
    ) -> list[FeatureRecord]:
        """PATRIC-annotated features of the given genomes with a product."""
        records = self.query_by_ids(
            "genome_feature",
            "genome_id",
            genome_ids,
            [rql_eq("product", function), rql_eq("annotation", "PATRIC")],
            ["genome_id", "patric_id", "product", "na_sequence_md5", "aa_sequence_md5"],
        )
        return [self._parse_feature(rec) for rec in records]

    def get_rna_features(self, genome_ids: Iterable[str]) -> list[FeatureRecord]:
        """PATRIC-annotated rRNA features of the given genomes."""
        records = self.query_by_ids(
            "genome_feature",
            "genome_id",
            genome_ids,
            [rql_in("feature_type", RNA_FEATURE_TYPES), rql_eq("annotation", "PATRIC")],
            ["genome_id", "patric_id", "product", "na_sequence_md5", "feature_type"],
        )
        return [self._parse_feature(rec) for rec in records]

    def get_sequences(self, md5s: Iterable[str]) -> dict[str, str]:
        """Sequences keyed by MD5. Unknown hashes are absent."""
        records = self.query_by_ids(
            "feature_sequence", "md5", md5s, [], ["md5", "sequence"]
        )
        return {
            rec["md5"]: rec["sequence"]
            for rec in records
            if rec.get("md5") and rec.get("sequence") is not None
        }

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_feature(rec: dict[str, Any]) -> FeatureRecord:
        return FeatureRecord(
            genome_id=str(rec.get("genome_id", "")),
            feature_id=rec.get("patric_id"),
            product=rec.get("product"),
            na_md5=rec.get("na_sequence_md5"),
            aa_md5=rec.get("aa_sequence_md5"),
            feature_type=rec.get("feature_type"),
        )

    def query_by_ids(
        self,
        collection: str,
        key_field: str,
        ids: Iterable[str],
        criteria: list[str],
        fields: list[str],
    ) -> list[dict[str, Any]]:
        """Run a query once per chunk of IDs and concatenate the results."""
        id_list = list(dict.fromkeys(ids))
        results: list[dict[str, Any]] = []
        for chunk in _chunks(id_list, self.chunk_size):
            results.extend(
                self.query(collection, [rql_in(key_field, chunk), *criteria], fields)
            )
        logger.debug(
            "%d %s records retrieved for %d IDs.", len(results), collection, len(id_list)
        )
        return results

    def query(
        self, collection: str, criteria: list[str], fields: list[str]
    ) -> list[dict[str, Any]]:
        """Run one RQL query, following pages until a short page is returned.

        Args:
            collection: Data API collection (e.g., genome_feature)
            criteria: RQL filter expressions, combined with AND
            fields: Fields to select

        Returns:
            List of result records

        Raises:
            BVBRCAPIError: If a request fails
        """
        base = "&".join([*criteria, f"select({','.join(fields)})"])
        results: list[dict[str, Any]] = []
        offset = 0
        while True:
            page = self._post(
                f"/{collection}/", f"{base}&limit({self.page_size},{offset})"
            )
            if not isinstance(page, list):
                raise BVBRCAPIError(
                    f"Unexpected response from BV-BRC {collection} query: {type(page).__name__}"
                )
            results.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        return results

    def _post(self, endpoint: str, query: str) -> Any:
        """Make POST request to the BV-BRC API with retry logic.

        Implements exponential backoff for transient failures (5xx errors,
        connection errors, rate limiting).

        Args:
            endpoint: API endpoint path
            query: RQL query string

        Returns:
            JSON response data

        Raises:
            BVBRCAPIError: If request fails after all retries
        """
        client = self._get_client()
        last_exception: Exception | None = None
        delay = self.retry_delay

        for attempt in range(self.max_retries + 1):
            try:
                response = client.post(
                    endpoint,
                    content=query,
                    headers={"Content-Type": RQL_CONTENT_TYPE},
                )
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                last_exception = e
                status_code = e.response.status_code

                # Don't retry client errors (4xx) except rate limiting (429)
                if 400 <= status_code < 500 and status_code != 429:
                    raise BVBRCAPIError(
                        f"BV-BRC API request failed: {status_code}",
                        status_code=status_code,
                    ) from e

                if status_code == 429:
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after:
                        delay = float(retry_after)

                if attempt < self.max_retries:
                    logger.warning(
                        "BV-BRC API request failed (attempt %d/%d): %s. Retrying in %.1fs...",
                        attempt + 1,
                        self.max_retries + 1,
                        status_code,
                        delay,
                    )
                    time.sleep(delay)
                    delay *= self.retry_backoff

            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries:
                    logger.warning(
                        "BV-BRC API connection error (attempt %d/%d): %s. Retrying in %.1fs...",
                        attempt + 1,
                        self.max_retries + 1,
                        str(e),
                        delay,
                    )
                    time.sleep(delay)
                    delay *= self.retry_backoff

        if isinstance(last_exception, httpx.HTTPStatusError):
            raise BVBRCAPIError(
                f"BV-BRC API request failed after {self.max_retries + 1} attempts: "
                f"{last_exception.response.status_code}",
                status_code=last_exception.response.status_code,
            ) from last_exception
        raise BVBRCAPIError(
            f"BV-BRC API request failed after {self.max_retries + 1} attempts: "
            f"{last_exception}"
        ) from last_exception
