"""Writers for the harvest output artifacts.

Two independent files are produced:
- the combined topic manifest, rendered from a text template (near-JSON,
  consumed by the app shell's template build step)
- the search-import document, a JSON array with a timestamped filename
"""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from string import Template
from typing import Dict, Optional, Sequence

import aiofiles

from nexus.core.exceptions import ArtifactWriteError
from nexus.core.logging import ContextualLogger
from nexus.core.logging import logger as default_logger
from nexus.platform.utils.filename_utils import results_filename
from nexus.schemas.activity import SearchImportRecord
from nexus.schemas.topic import TopicOutputDocument

TOPIC_TEMPLATE = Template(
    """{
            "name": {
                "de": "$name_de",
                "en": "$name_en"
            },
            "short_name": {
                "de": "$short_name_de",
                "en": "$short_name_en"
            },
            "description": {
                "de": "$description_de",
                "en": "$description_en"
            },
            "routing_name": "$routing_name",
            "activities": [
                $activities
            ],
            "attributes": $attributes
            }
        """
)


def render_topic_document(document: TopicOutputDocument) -> str:
    """Render the combined topic manifest text.

    Localized strings are inserted verbatim; only the activity entries and
    the attributes list are JSON-serialized.
    """
    activities = ",\n ".join(
        json.dumps(
            stub.model_dump(by_alias=True, exclude_none=True),
            ensure_ascii=False,
            separators=(",", ":"),
        )
        for stub in document.activities
    )
    return TOPIC_TEMPLATE.substitute(
        name_de=document.name.get("de", ""),
        name_en=document.name.get("en", ""),
        short_name_de=document.short_name.get("de", ""),
        short_name_en=document.short_name.get("en", ""),
        description_de=document.description.get("de", ""),
        description_en=document.description.get("en", ""),
        routing_name=document.routing_name,
        activities=activities,
        attributes=json.dumps(document.attributes, ensure_ascii=False),
    )


def render_search_import(records: Sequence[SearchImportRecord]) -> str:
    """Serialize search-import records as a JSON array."""
    return json.dumps(
        [record.model_dump(by_alias=True) for record in records], indent=2, ensure_ascii=False
    )


@dataclass
class ArtifactPaths:
    """Locations of the written artifacts."""

    topic_path: Path
    search_import_path: Path


class ArtifactEmitter:
    """Writes the topic manifest and the search-import document."""

    def __init__(
        self,
        data_output_dir: Path,
        topic_output_dir: Path,
        topic_filename: str,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the emitter.

        Args:
            data_output_dir: Directory of the timestamped search-import file
            topic_output_dir: Directory of the fixed-name topic manifest
            topic_filename: Name of the topic manifest file
            logger: Optional contextual logger
        """
        self.data_output_dir = Path(data_output_dir)
        self.topic_output_dir = Path(topic_output_dir)
        self.topic_filename = topic_filename
        self.logger = logger or default_logger.with_context(component="emitter")

    def ensure_directories(self) -> None:
        """Create the output directories if they don't exist.

        Raises:
            ArtifactWriteError: If a directory cannot be created
        """
        for directory in (self.data_output_dir, self.topic_output_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ArtifactWriteError({str(directory): str(e)}) from e

    async def _write_text(self, path: Path, text: str) -> None:
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(text)

    async def emit(
        self,
        topic_document: TopicOutputDocument,
        records: Sequence[SearchImportRecord],
        moment: Optional[datetime] = None,
    ) -> ArtifactPaths:
        """Write both artifacts.

        Each write is attempted even if the other fails.

        Args:
            topic_document: Combined topic manifest
            records: Search-import records
            moment: Timestamp for the search-import filename (defaults to now)

        Returns:
            Paths of the written files

        Raises:
            ArtifactWriteError: If a directory or either file could not be written
        """
        self.ensure_directories()

        paths = ArtifactPaths(
            topic_path=self.topic_output_dir / self.topic_filename,
            search_import_path=self.data_output_dir / results_filename(moment),
        )
        writes = (
            (paths.topic_path, render_topic_document(topic_document)),
            (paths.search_import_path, render_search_import(records)),
        )

        errors: Dict[str, str] = {}
        for path, text in writes:
            try:
                await self._write_text(path, text)
            except OSError as e:
                self.logger.with_context(path=str(path)).error(f"Failed to write artifact: {e}")
                errors[str(path)] = str(e)
                continue
            self.logger.with_context(path=str(path)).info("Artifact written")

        if errors:
            raise ArtifactWriteError(errors)
        return paths
