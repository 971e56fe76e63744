"""Activity stub de-duplication across topic manifests."""

from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from nexus.core.logging import ContextualLogger
from nexus.core.logging import logger as default_logger
from nexus.schemas.topic import ActivityStub, TopicManifest


def to_topic_manifests(
    payloads: Iterable[Dict[str, Any]], logger: Optional[ContextualLogger] = None
) -> List[TopicManifest]:
    """Validate decoded payloads as topic manifests, keeping their order.

    Payloads without an ``activities`` list contribute nothing and are skipped.
    """
    log = logger or default_logger.with_context(component="dedup")
    manifests: List[TopicManifest] = []
    for payload in payloads:
        if not isinstance(payload.get("activities"), list):
            log.with_context(app_name=payload.get("appName")).warning(
                "Topic manifest has no activities list, skipping"
            )
            continue
        try:
            manifests.append(TopicManifest.model_validate(payload))
        except ValidationError as e:
            log.with_context(app_name=payload.get("appName")).warning(
                f"Invalid topic manifest: {e.error_count()} validation error(s)"
            )
    return manifests


def merge_activity_stubs(manifests: Iterable[TopicManifest]) -> List[ActivityStub]:
    """Merge activity stubs from all manifests into one list keyed by path.

    Manifests are processed in the given order. A later stub with the same
    path replaces the earlier one entirely, but keeps the position where the
    path was first seen.

    Args:
        manifests: Topic manifests in merge order

    Returns:
        De-duplicated stubs, each tagged with its owning app
    """
    merged: Dict[str, ActivityStub] = {}
    for manifest in manifests:
        for stub in manifest.activities:
            merged[stub.path] = stub.model_copy(
                update={"app_name": manifest.app_name, "app_git_url": manifest.app_git_url}
            )
    return list(merged.values())
