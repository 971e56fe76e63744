"""Harvest pipeline: topic manifests in, topic document and search-import file out.

Stages:
1. Fetch every configured topic manifest (ordered by source rank)
2. Merge activity stubs by path, last write wins
3. Locate each activity's metadata (src, then assets)
4. Project located metadata into search-import records
5. Write the combined topic document and the search-import file
"""

from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from nexus.core.config import HarvestConfig
from nexus.core.logging import ContextualLogger, LoggerConfigurator
from nexus.platform.aggregation.dedup import merge_activity_stubs, to_topic_manifests
from nexus.platform.aggregation.locator import ActivityLocator, LocatedActivity, LocateMiss
from nexus.platform.aggregation.projection import build_activity_metadata, to_search_record
from nexus.platform.emitters.artifacts import ArtifactEmitter, ArtifactPaths
from nexus.platform.resolvers.paths import ResolverMode
from nexus.platform.sources.github_contents import GitHubContentsSource
from nexus.schemas.activity import ActivityMetadata, SearchImportRecord
from nexus.schemas.fetch import FetchBatch
from nexus.schemas.topic import ActivityStub, TopicManifest, TopicOutputDocument


@dataclass
class HarvestReport:
    """Everything a harvest run produced, including recoverable failures."""

    source_urls: List[str]
    topic_batch: FetchBatch
    manifests: List[TopicManifest] = field(default_factory=list)
    stubs: List[ActivityStub] = field(default_factory=list)
    located: List[LocatedActivity] = field(default_factory=list)
    misses: List[LocateMiss] = field(default_factory=list)
    activities: List[ActivityMetadata] = field(default_factory=list)
    records: List[SearchImportRecord] = field(default_factory=list)
    artifacts: Optional[ArtifactPaths] = None

    @property
    def successful_sources(self) -> int:
        """Number of sources that produced a parsed payload."""
        return len(self.topic_batch.payloads)

    @property
    def topic_document(self) -> TopicOutputDocument:
        """Combined topic manifest of the de-duplicated stubs."""
        return TopicOutputDocument(activities=self.stubs)


class HarvestPipeline:
    """Runs one harvest against an explicit configuration."""

    def __init__(
        self,
        config: HarvestConfig,
        source: Optional[GitHubContentsSource] = None,
        emitter: Optional[ArtifactEmitter] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Validated harvest configuration
            source: Contents source; built from ``config`` when omitted
            emitter: Artifact emitter; built from ``config`` when omitted
            logger: Optional contextual logger
        """
        self.config = config
        self._source = source
        self.emitter = emitter or ArtifactEmitter(
            data_output_dir=config.data_output_dir,
            topic_output_dir=config.topic_output_dir,
            topic_filename=config.topic_filename,
        )
        self.logger = logger or LoggerConfigurator.configure_logger(
            "nexus.harvest", dimensions={"sources": len(config.sources)}
        )

    def _build_source(self) -> GitHubContentsSource:
        return GitHubContentsSource(
            headers=self.config.headers,
            timeout_seconds=self.config.fetch_timeout_seconds,
            retry_attempts=self.config.fetch_retry_attempts,
            max_concurrency=self.config.max_concurrent_fetches,
        )

    async def collect(self) -> HarvestReport:
        """Fetch, merge, locate and project without writing anything."""
        async with AsyncExitStack() as stack:
            source = self._source
            if source is None:
                source = await stack.enter_async_context(self._build_source())
            return await self._collect(source)

    async def _collect(self, source: GitHubContentsSource) -> HarvestReport:
        urls = [reference.url for reference in self.config.ordered_sources()]
        self.logger.info(f"Fetching {len(urls)} topic manifests")

        topic_batch = await source.fetch_batch(urls, ResolverMode.TOPIC)
        report = HarvestReport(source_urls=urls, topic_batch=topic_batch)

        report.manifests = to_topic_manifests(topic_batch.payloads, logger=self.logger)
        report.stubs = merge_activity_stubs(report.manifests)
        self.logger.info(
            f"Merged {len(report.stubs)} unique activities from {len(report.manifests)} manifests"
        )

        locator = ActivityLocator(source, logger=self.logger)
        report.located, report.misses = await locator.locate_all(report.stubs)

        for item in report.located:
            for metadata in build_activity_metadata(item, logger=self.logger):
                report.activities.append(metadata)
                report.records.append(
                    to_search_record(item.stub.path, metadata, self.config.search_language)
                )

        self.logger.info(
            f"Resolved {len(report.activities)} activities, {len(report.misses)} missing"
        )
        return report

    async def run(self, moment: Optional[datetime] = None) -> HarvestReport:
        """Run the full harvest and write both artifacts.

        Args:
            moment: Timestamp for the search-import filename (defaults to now)

        Returns:
            HarvestReport with artifact paths set

        Raises:
            ArtifactWriteError: If the output directories or files cannot be written
        """
        self.emitter.ensure_directories()
        report = await self.collect()
        report.artifacts = await self.emitter.emit(report.topic_document, report.records, moment)
        return report
