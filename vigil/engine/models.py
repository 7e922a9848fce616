"""
Watcher Models

Data models for stored watcher definitions as read from watcher storage.
Watchers are operator-authored documents, so every model keeps keys it does
not know about.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ScheduleSpec(BaseModel):
    """When a watcher runs: a recurrence phrase or a number of seconds."""

    model_config = ConfigDict(extra="allow")

    later: str | None = None  # Human-readable recurrence, e.g. "every 5 minutes"
    interval: int | float | None = None  # Seconds between firings


class Trigger(BaseModel):
    """Trigger section of a watcher."""

    model_config = ConfigDict(extra="allow")

    schedule: ScheduleSpec = Field(default_factory=ScheduleSpec)


class SearchInput(BaseModel):
    """A search request to run against the search backend."""

    model_config = ConfigDict(extra="allow")

    request: dict[str, Any] | None = None


class WatcherInput(BaseModel):
    """Input section of a watcher."""

    model_config = ConfigDict(extra="allow")

    search: SearchInput | None = None


class ScriptSpec(BaseModel):
    """Wrapper around a script expression."""

    model_config = ConfigDict(extra="allow")

    script: str | None = None


class ConditionSpec(BaseModel):
    """Condition evaluated against the search payload."""

    model_config = ConfigDict(extra="allow")

    script: ScriptSpec | None = None


class TransformSpec(BaseModel):
    """Optional transform: a script mutating the payload, or a second search."""

    model_config = ConfigDict(extra="allow")

    script: ScriptSpec | None = None
    search: SearchInput | None = None


class WatcherDefinition(BaseModel):
    """
    A stored alert definition.

    Holds the schedule, the search to run, the condition to test the search
    payload against, an optional transform and the actions to dispatch.
    """

    model_config = ConfigDict(extra="allow")

    uuid: str | None = None
    title: str | None = None
    disable: bool = False
    report: bool = False

    trigger: Trigger = Field(default_factory=Trigger)
    input: WatcherInput = Field(default_factory=WatcherInput)
    condition: ConditionSpec | None = None
    transform: TransformSpec | None = None

    # Action name -> action settings
    actions: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def search_request(self) -> dict[str, Any] | None:
        """The main search request, if configured."""
        if self.input.search is None:
            return None
        return self.input.search.request

    @property
    def condition_script(self) -> str | None:
        """The condition expression, if configured."""
        if self.condition is None or self.condition.script is None:
            return None
        return self.condition.script.script

    @property
    def transform_script(self) -> str | None:
        """The transform script, if configured."""
        if self.transform is None or self.transform.script is None:
            return None
        return self.transform.script.script

    @property
    def transform_request(self) -> dict[str, Any] | None:
        """The transform search request, if configured."""
        if self.transform is None or self.transform.search is None:
            return None
        return self.transform.search.request


class WatcherHit(BaseModel):
    """A watcher record as returned by storage: its id and its definition."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    source: WatcherDefinition | None = Field(default=None, alias="_source")

    def dump(self) -> dict[str, Any]:
        """JSON-compatible form used for structural comparison."""
        return self.model_dump(mode="json", by_alias=True)

    def same_as(self, other: "WatcherHit") -> bool:
        """Check whether two hits carry structurally equal content."""
        return self.dump() == other.dump()


class FiringOutcome(str, Enum):
    """How a single firing of a watcher ended."""

    DISABLED = "disabled"
    NO_ACTIONS = "no_actions"
    REPORT_ONLY = "report_only"
    MALFORMED = "malformed"
    NO_RESULT = "no_result"
    CONDITION_FALSE = "condition_false"
    CONDITION_ERROR = "condition_error"
    TRANSFORM_EMPTY = "transform_empty"
    DISPATCHED = "dispatched"
    SEARCH_ERROR = "search_error"
    TIMEOUT = "timeout"
    FAILED = "failed"
