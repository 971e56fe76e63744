"""Two-phase lookup of per-activity metadata files."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from nexus.core.logging import ContextualLogger
from nexus.core.logging import logger as default_logger
from nexus.platform.resolvers.paths import ResolverMode, candidate_urls
from nexus.platform.sources.github_contents import GitHubContentsSource
from nexus.schemas.fetch import FetchBatch
from nexus.schemas.topic import ActivityStub


@dataclass
class LocatedActivity:
    """An activity stub together with the batch its metadata was found in."""

    stub: ActivityStub
    metadata_url: str
    batch: FetchBatch


@dataclass
class LocateMiss:
    """An activity whose metadata could not be found at any candidate location."""

    path: str
    app_name: Optional[str]
    candidates: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class ActivityLocator:
    """Finds each activity's metadata file under ``src/`` first, then ``assets/``."""

    def __init__(self, source: GitHubContentsSource, logger: Optional[ContextualLogger] = None):
        """Initialize with the contents source used for fetching."""
        self.source = source
        self.logger = logger or default_logger.with_context(component="locator")

    @staticmethod
    def _candidate_error(batch: FetchBatch) -> Optional[str]:
        """Return why a candidate batch is unusable, or None if it succeeded."""
        if batch.failures:
            return "; ".join(failure.error for failure in batch.failures.values())
        if not batch.payloads:
            if batch.parse_errors:
                return "; ".join(error.error for error in batch.parse_errors)
            return "empty result"
        if any("element" not in payload for payload in batch.payloads):
            return "no element defined in metadata"
        return None

    async def locate(self, stub: ActivityStub) -> Union[LocatedActivity, LocateMiss]:
        """Fetch the metadata of one activity stub.

        Args:
            stub: De-duplicated stub carrying its owning app's base URL

        Returns:
            LocatedActivity for the first candidate that succeeds, otherwise a LocateMiss
        """
        if not stub.app_git_url:
            return LocateMiss(
                path=stub.path, app_name=stub.app_name, errors=["owning app has no base URL"]
            )

        candidates = candidate_urls(stub.app_git_url, stub.path)
        errors: List[str] = []
        for url in candidates:
            batch = await self.source.fetch_batch([url], ResolverMode.ACTIVITY)
            error = self._candidate_error(batch)
            if error is None:
                return LocatedActivity(stub=stub, metadata_url=url, batch=batch)
            self.logger.with_context(url=url).debug(f"Candidate failed: {error}")
            errors.append(f"{url}: {error}")

        return LocateMiss(
            path=stub.path, app_name=stub.app_name, candidates=candidates, errors=errors
        )

    async def locate_all(
        self, stubs: Sequence[ActivityStub]
    ) -> Tuple[List[LocatedActivity], List[LocateMiss]]:
        """Locate every stub sequentially, preserving stub order.

        Misses are logged as structured warnings and returned alongside the hits.
        """
        located: List[LocatedActivity] = []
        misses: List[LocateMiss] = []
        for stub in stubs:
            outcome = await self.locate(stub)
            if isinstance(outcome, LocateMiss):
                self.logger.with_context(
                    activity_path=outcome.path,
                    app_name=outcome.app_name,
                    candidates=",".join(outcome.candidates),
                ).warning("Activity metadata not found at any candidate location, dropping")
                misses.append(outcome)
            else:
                located.append(outcome)
        return located, misses
