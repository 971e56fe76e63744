"""Typesense destination for search-import records.

Uses the bulk import endpoint, which takes one JSON document per line and
answers with one JSON result per line.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from nexus.core.exceptions import PublishError
from nexus.core.logging import ContextualLogger
from nexus.core.logging import logger as default_logger
from nexus.schemas.activity import SearchImportRecord

API_KEY_HEADER = "X-TYPESENSE-API-KEY"


@dataclass
class ImportSummary:
    """Outcome of one bulk import."""

    success_count: int = 0
    failure_count: int = 0
    errors: List[str] = field(default_factory=list)


def to_jsonl(records: Sequence[Union[SearchImportRecord, Dict[str, Any]]]) -> str:
    """Serialize records as JSON Lines."""
    lines = []
    for record in records:
        if isinstance(record, SearchImportRecord):
            record = record.model_dump(by_alias=True)
        lines.append(json.dumps(record, ensure_ascii=False))
    return "\n".join(lines)


def parse_import_response(body: str) -> ImportSummary:
    """Count per-document results of an import response."""
    summary = ImportSummary()
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            result = json.loads(line)
        except json.JSONDecodeError:
            summary.failure_count += 1
            summary.errors.append(f"Unparseable import result: {line[:200]}")
            continue
        if not isinstance(result, dict):
            summary.failure_count += 1
            summary.errors.append(f"Unexpected import result: {line[:200]}")
            continue
        if result.get("success"):
            summary.success_count += 1
        else:
            summary.failure_count += 1
            summary.errors.append(result.get("error", "unknown error"))
    return summary


class TypesenseDestination:
    """Imports activity records into a Typesense collection."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        collection: str,
        timeout_seconds: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the destination.

        Args:
            base_url: Typesense server URL, e.g. ``https://search.example.com``
            api_key: Admin API key
            collection: Target collection name
            timeout_seconds: Request timeout for the import call
            client: Optional pre-built HTTP client
            logger: Optional contextual logger
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.collection = collection
        self.timeout_seconds = timeout_seconds
        self._client = client
        self.logger = logger or default_logger.with_context(
            component="typesense", collection=collection
        )

    @property
    def import_url(self) -> str:
        """Bulk import endpoint of the collection."""
        return f"{self.base_url}/collections/{self.collection}/documents/import"

    async def import_documents(
        self, records: Sequence[Union[SearchImportRecord, Dict[str, Any]]]
    ) -> ImportSummary:
        """Upsert records into the collection.

        Args:
            records: Search-import records or already-serialized dicts

        Returns:
            ImportSummary with per-document counts

        Raises:
            PublishError: On transport failure or a non-2xx response
        """
        if not records:
            self.logger.info("No records to import")
            return ImportSummary()

        client = self._client or httpx.AsyncClient(timeout=self.timeout_seconds)
        try:
            response = await client.post(
                self.import_url,
                params={"action": "upsert"},
                content=to_jsonl(records).encode("utf-8"),
                headers={API_KEY_HEADER: self.api_key, "Content-Type": "text/plain"},
            )
        except httpx.TransportError as e:
            raise PublishError(f"Typesense import failed: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code >= 400:
            raise PublishError(
                f"Typesense import failed: {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        summary = parse_import_response(response.text)
        self.logger.info(
            f"Imported {summary.success_count} documents, {summary.failure_count} failed"
        )
        for error in summary.errors:
            self.logger.warning(f"Import error: {error}")
        return summary
