"""Source reference schema."""

from pydantic import BaseModel, Field, field_validator


class SourceReference(BaseModel):
    """One configured content-API URL pointing at a topic metadata file.

    Sources are merged in ascending ``rank`` order; ties keep configuration
    order. A source that must win activity-path collisions gets a higher rank.
    """

    url: str = Field(..., description="GitHub contents API URL of a topic metadata file")
    rank: int = Field(0, description="Merge priority; higher ranks are merged later and win")

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Reject empty or non-http URLs."""
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Source URL must be http(s): {value!r}")
        return value
