"""Exceptions raised by the nexus harvester.

Only configuration problems and catastrophic I/O failures are raised.
Per-source fetch and parse problems are converted to data
(see ``nexus.schemas.fetch``) so one bad source never aborts a harvest.
"""

from typing import Dict, Optional


class NexusException(Exception):
    """Base exception for the nexus harvester."""

    pass


class ConfigurationError(NexusException):
    """Raised when the harvest configuration is missing or invalid.

    Examples:
    - GITHUB_TOKEN is not set
    - No source references configured
    """

    pass


class ArtifactWriteError(NexusException):
    """Raised when an output artifact could not be written.

    Both artifacts are always attempted; this error carries every failure
    that occurred, keyed by the path that could not be written.
    """

    def __init__(self, errors: Dict[str, str]):
        """Initialize with per-path error messages.

        Args:
            errors: Mapping of output path to error message
        """
        self.errors = errors
        details = "; ".join(f"{path}: {message}" for path, message in errors.items())
        super().__init__(f"Failed to write artifacts: {details}")


class PublishError(NexusException):
    """Raised when the search-index import request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize publish error.

        Args:
            message: Human-readable error
            status_code: HTTP status returned by the search service, if any
        """
        self.status_code = status_code
        super().__init__(message)
