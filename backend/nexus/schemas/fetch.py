"""Transient fetch result types.

These values are created per fetch and consumed by the next pipeline stage.
Recoverable failures are represented here as data instead of exceptions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class FetchFailure:
    """A fetch that did not produce a response body (bad status or transport error)."""

    source_url: str
    error: str
    status_code: Optional[int] = None
    status: str = "failed"


@dataclass
class ParseError:
    """Placeholder for a payload that could not be decoded or parsed."""

    error: str
    source_url: Optional[str] = None
    status: str = "failed"


@dataclass
class ContentsFile:
    """The subset of a GitHub contents API response the harvester reads."""

    source_url: str
    name: str = ""
    url: str = ""
    content: Optional[str] = None
    encoding: Optional[str] = None

    @classmethod
    def from_response(cls, source_url: str, data: Dict[str, Any]) -> "ContentsFile":
        """Build from the decoded JSON body of a contents API response."""
        return cls(
            source_url=source_url,
            name=data.get("name") or "",
            url=data.get("url") or "",
            content=data.get("content"),
            encoding=data.get("encoding"),
        )


FetchOutcome = Union[FetchFailure, ContentsFile]
BatchResult = Union[Dict[str, Any], ParseError]


@dataclass
class FetchBatch:
    """Combined outcome of fetching a list of URLs.

    ``results`` keeps URL order and holds decoded payloads (tagged with
    ``appName`` and ``appGitUrl``) or ``ParseError`` markers.
    """

    timestamp: str
    results: List[BatchResult] = field(default_factory=list)
    failures: Dict[str, FetchFailure] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    success: bool = True

    @property
    def payloads(self) -> List[Dict[str, Any]]:
        """Decoded payloads only, without parse errors."""
        return [result for result in self.results if isinstance(result, dict)]

    @property
    def parse_errors(self) -> List[ParseError]:
        """Parse-error markers in result order."""
        return [result for result in self.results if isinstance(result, ParseError)]
