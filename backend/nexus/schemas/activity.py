"""Activity metadata and search-import schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from nexus.schemas.topic import Localized


class ActivityMetadata(BaseModel):
    """Fully resolved descriptor of one activity.

    ``element`` is mandatory: metadata without a custom element tag cannot be
    rendered by the app shell and is rejected.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    element: str
    module_src: Optional[str] = None
    routing_name: Optional[str] = None
    name: Localized = Field(default_factory=dict)
    short_name: Localized = Field(default_factory=dict)
    description: Localized = Field(default_factory=dict)
    subscribe: Optional[str] = None
    icon: Optional[str] = None
    required_roles: List[str] = Field(default_factory=list)
    app_name: Optional[str] = Field(None, alias="appName")
    app_git_url: Optional[str] = Field(None, alias="appGitUrl")
    visible: bool = True

    @property
    def subscriptions(self) -> List[str]:
        """Capability names from the comma-separated ``subscribe`` attribute."""
        if not self.subscribe:
            return []
        return [part.strip() for part in self.subscribe.split(",") if part.strip()]


class SearchImportRecord(BaseModel):
    """Flattened activity record imported into the search index."""

    model_config = ConfigDict(populate_by_name=True)

    activity_name: str = Field("", alias="activityName")
    activity_path: str = Field(..., alias="activityPath")
    activity_description: str = Field("", alias="activityDescription")
    activity_routing_name: str = Field("", alias="activityRoutingName")
    activity_module_src: str = Field("", alias="activityModuleSrc")
    activity_tag: List[str] = Field(default_factory=list, alias="activityTag")
    activity_icon: str = Field("", alias="activityIcon")
