"""Topic manifest schemas."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Localized = Union[Dict[str, str], str]


class ActivityStub(BaseModel):
    """Reference to one activity metadata file inside a topic manifest.

    ``path`` is the de-duplication key. Unknown fields from the manifest are
    preserved so the combined topic document round-trips them.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    path: str
    visible: Optional[bool] = None
    app_name: Optional[str] = Field(None, alias="appName")
    app_git_url: Optional[str] = Field(None, alias="appGitUrl")


class TopicManifest(BaseModel):
    """Per-application topic metadata document."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Localized = Field(default_factory=dict)
    short_name: Localized = Field(default_factory=dict)
    description: Localized = Field(default_factory=dict)
    routing_name: Optional[str] = None
    activities: List[ActivityStub] = Field(default_factory=list)
    attributes: List[Any] = Field(default_factory=list)
    app_name: Optional[str] = Field(None, alias="appName")
    app_git_url: Optional[str] = Field(None, alias="appGitUrl")


class TopicOutputDocument(BaseModel):
    """The combined nexus topic manifest written to the topic output directory."""

    name: Dict[str, str] = Field(default_factory=lambda: {"de": "Nexus", "en": "Nexus"})
    short_name: Dict[str, str] = Field(
        default_factory=lambda: {
            "de": "Nexus-Aktivitätensuche",
            "en": "Nexus Activity Finder",
        }
    )
    description: Dict[str, str] = Field(
        default_factory=lambda: {
            "de": "Diese Anwendung ermöglicht es Ihnen, nach DBP-Aktivitäten zu suchen.",
            "en": "This application enables you to search DBP activities.",
        }
    )
    routing_name: str = "nexus"
    activities: List[ActivityStub] = Field(default_factory=list)
    attributes: List[Any] = Field(default_factory=list)
