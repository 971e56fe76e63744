"""Projection of located activity metadata into search-import records.

Handles:
- Owner tagging and ``module_src`` resolution of per-activity metadata
- Localized field selection
- Flattening into the search-index record shape
"""

from typing import List, Optional

from pydantic import ValidationError

from nexus.core.logging import ContextualLogger
from nexus.core.logging import logger as default_logger
from nexus.platform.aggregation.locator import LocatedActivity
from nexus.platform.resolvers.paths import resolve_module_src
from nexus.schemas.activity import ActivityMetadata, SearchImportRecord
from nexus.schemas.topic import Localized

FALLBACK_LANGUAGE = "en"


def localized_text(value: Localized, language: str) -> str:
    """Pick one language from a localized mapping.

    Falls back to English, then to the first available value.
    """
    if isinstance(value, str):
        return value
    if not value:
        return ""
    for key in (language, FALLBACK_LANGUAGE):
        if value.get(key):
            return value[key]
    return next(iter(value.values()), "")


def build_activity_metadata(
    located: LocatedActivity, logger: Optional[ContextualLogger] = None
) -> List[ActivityMetadata]:
    """Resolve the metadata payloads of one located activity.

    The owning app comes from the stub (after de-duplication), visibility
    is inherited from the stub and ``module_src`` is resolved against the
    metadata file's own URL.
    """
    log = logger or default_logger.with_context(component="projection")
    stub = located.stub
    activities: List[ActivityMetadata] = []
    for payload in located.batch.payloads:
        data = dict(payload)
        data["appName"] = stub.app_name
        data["appGitUrl"] = stub.app_git_url
        data["visible"] = True if stub.visible is None else stub.visible
        if data.get("module_src"):
            data["module_src"] = resolve_module_src(data["module_src"], located.metadata_url)
        if data.get("required_roles") is None:
            data["required_roles"] = []
        try:
            activities.append(ActivityMetadata.model_validate(data))
        except ValidationError as e:
            log.with_context(activity_path=stub.path).warning(
                f"Invalid activity metadata: {e.error_count()} validation error(s)"
            )
    return activities


def to_search_record(
    path: str, metadata: ActivityMetadata, language: str = FALLBACK_LANGUAGE
) -> SearchImportRecord:
    """Flatten one activity into the search-index record shape."""
    return SearchImportRecord(
        activity_name=localized_text(metadata.name, language),
        activity_path=path,
        activity_description=localized_text(metadata.description, language),
        activity_routing_name=metadata.routing_name or "",
        activity_module_src=metadata.module_src or "",
        activity_tag=[metadata.app_name] if metadata.app_name else [],
        activity_icon=metadata.icon or "",
    )

