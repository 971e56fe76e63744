"""Path and URL resolution for GitHub contents API file descriptors.

Topic and activity metadata files live in ``assets/`` or ``src/`` of their
application repository. Stripping that trailing segment from the file's
contents URL yields the repository base URL, from which sibling files are
located by appending ``src/<path>`` or ``assets/<path>``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List
from urllib.parse import urljoin


class ResolverMode(str, Enum):
    """Which kind of metadata file is being resolved."""

    TOPIC = "topic"
    ACTIVITY = "activity"


# Trailing ".*" tolerates template extensions (.ejs) and query strings (?ref=main).
SUFFIX_PATTERNS = {
    ResolverMode.TOPIC: r"\.topic\.metadata\.json.*$",
    ResolverMode.ACTIVITY: r"\.metadata\.json.*$",
}

CANDIDATE_DIRECTORIES = ("src", "assets")


@dataclass(frozen=True)
class AppLocation:
    """Owning application of a metadata file."""

    app_name: str
    app_git_url: str


def resolve_app_location(name: str, url: str, mode: ResolverMode) -> AppLocation:
    """Derive the owning app name and repository base URL of a metadata file.

    Args:
        name: File name reported by the contents API
        url: File URL reported by the contents API
        mode: Topic or per-activity metadata

    Returns:
        AppLocation. ``app_git_url`` is ``url`` unchanged if the pattern does not match.
    """
    suffix = SUFFIX_PATTERNS[ResolverMode(mode)]
    app_name = re.sub(suffix, "", name, count=1)
    directory = "|".join(CANDIDATE_DIRECTORIES)
    pattern = rf"(?:{directory})/{re.escape(app_name)}{suffix}"
    app_git_url = re.sub(pattern, "", url, count=1)
    return AppLocation(app_name=app_name, app_git_url=app_git_url)


def candidate_urls(app_git_url: str, path: str) -> List[str]:
    """Locations of an activity metadata file, in lookup order (src before assets)."""
    return [f"{app_git_url}{directory}/{path}" for directory in CANDIDATE_DIRECTORIES]


def resolve_module_src(module_src: str, metadata_url: str) -> str:
    """Resolve a module path relative to the metadata file it was declared in."""
    return urljoin(metadata_url, module_src)
