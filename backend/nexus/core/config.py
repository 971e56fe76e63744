"""Configuration for the nexus harvester.

``Settings`` reads the environment (and an optional ``.env`` file).
``HarvestConfig`` is the explicit, validated configuration handed to the
pipeline, so tests can run it against fixture URLs without touching globals.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nexus.core.exceptions import ConfigurationError
from nexus.schemas.source import SourceReference

TOPIC_FILENAME = "dbp-nexus.topic.metadata.json.ejs"
GITHUB_ACCEPT_HEADER = "application/vnd.github.v3+json"
USER_AGENT = "nexus-harvester"

# Lunchlottery keeps its topic metadata under src/ with a plain .json name.
# Ranks make the merge order explicit: higher ranks are merged later and win
# activity-path collisions.
DEFAULT_SOURCES: List[SourceReference] = [
    SourceReference(
        url="https://api.github.com/repos/digital-blueprint/cabinet-app/contents/assets/dbp-cabinet.topic.metadata.json.ejs",
        rank=0,
    ),
    SourceReference(
        url="https://api.github.com/repos/digital-blueprint/dispatch-app/contents/assets/dbp-dispatch.topic.metadata.json.ejs",
        rank=1,
    ),
    SourceReference(
        url="https://api.github.com/repos/digital-blueprint/formalize-app/contents/assets/dbp-formalize.topic.metadata.json.ejs",
        rank=2,
    ),
    SourceReference(
        url="https://api.github.com/repos/digital-blueprint/lunchlottery-app/contents/src/dbp-lunchlottery-app.topic.metadata.json",
        rank=3,
    ),
]


class Settings(BaseSettings):
    """Harvester settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEXUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    github_token: Optional[str] = Field(default=None, alias="GITHUB_TOKEN")

    data_output_dir: Path = Field(default=Path("typesense-data"))
    topic_output_dir: Path = Field(default=Path("assets"))

    fetch_timeout_seconds: float = Field(default=5.0)
    fetch_retry_attempts: int = Field(default=1)
    max_concurrent_fetches: int = Field(default=1)

    search_language: str = Field(default="en")
    log_level: str = Field(default="INFO")

    typesense_url: Optional[str] = Field(default=None, alias="TYPESENSE_URL")
    typesense_api_key: Optional[str] = Field(default=None, alias="TYPESENSE_API_KEY")
    typesense_collection: str = Field(default="nexus--current", alias="TYPESENSE_COLLECTION")


class HarvestConfig(BaseModel):
    """Validated configuration for one harvest run."""

    sources: List[SourceReference]
    github_token: str = Field(..., repr=False)
    data_output_dir: Path = Path("typesense-data")
    topic_output_dir: Path = Path("assets")
    topic_filename: str = TOPIC_FILENAME
    fetch_timeout_seconds: float = 5.0
    fetch_retry_attempts: int = 1
    max_concurrent_fetches: int = 1
    search_language: str = "en"

    @field_validator("sources")
    @classmethod
    def validate_sources(cls, value: List[SourceReference]) -> List[SourceReference]:
        """Require at least one source."""
        if not value:
            raise ValueError("At least one source reference is required")
        return value

    @field_validator("github_token")
    @classmethod
    def validate_token(cls, value: str) -> str:
        """Require a non-blank token."""
        if not value or not value.strip():
            raise ValueError("GitHub token must not be empty")
        return value.strip()

    @field_validator("fetch_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Require a positive timeout."""
        if value <= 0:
            raise ValueError("Fetch timeout must be positive")
        return value

    @field_validator("fetch_retry_attempts", "max_concurrent_fetches")
    @classmethod
    def validate_positive_int(cls, value: int) -> int:
        """Require at least one attempt / one worker."""
        if value < 1:
            raise ValueError("Value must be at least 1")
        return value

    @property
    def headers(self) -> Dict[str, str]:
        """Request headers for the GitHub contents API."""
        return {
            "Authorization": f"token {self.github_token}",
            "Accept": GITHUB_ACCEPT_HEADER,
            "User-Agent": USER_AGENT,
        }

    def ordered_sources(self) -> List[SourceReference]:
        """Sources in merge order: ascending rank, configuration order on ties."""
        return sorted(self.sources, key=lambda source: source.rank)

    @classmethod
    def from_settings(
        cls, settings: Settings, sources: Optional[Sequence[SourceReference]] = None
    ) -> "HarvestConfig":
        """Build a harvest config from environment settings.

        Args:
            settings: Loaded settings
            sources: Source references; defaults to ``DEFAULT_SOURCES``

        Returns:
            Validated harvest config

        Raises:
            ConfigurationError: If the GitHub token is missing or a value is invalid
        """
        if not settings.github_token:
            raise ConfigurationError("GITHUB_TOKEN environment variable is not set")
        try:
            return cls(
                sources=list(sources if sources is not None else DEFAULT_SOURCES),
                github_token=settings.github_token,
                data_output_dir=settings.data_output_dir,
                topic_output_dir=settings.topic_output_dir,
                fetch_timeout_seconds=settings.fetch_timeout_seconds,
                fetch_retry_attempts=settings.fetch_retry_attempts,
                max_concurrent_fetches=settings.max_concurrent_fetches,
                search_language=settings.search_language,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid harvest configuration: {e}") from e
