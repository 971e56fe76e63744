"""Schemas for the nexus harvester."""

from .activity import ActivityMetadata, SearchImportRecord
from .fetch import BatchResult, ContentsFile, FetchBatch, FetchFailure, FetchOutcome, ParseError
from .source import SourceReference
from .topic import ActivityStub, Localized, TopicManifest, TopicOutputDocument

__all__ = [
    "ActivityMetadata",
    "ActivityStub",
    "BatchResult",
    "ContentsFile",
    "FetchBatch",
    "FetchFailure",
    "FetchOutcome",
    "Localized",
    "ParseError",
    "SearchImportRecord",
    "SourceReference",
    "TopicManifest",
    "TopicOutputDocument",
]
