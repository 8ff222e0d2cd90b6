from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Literal, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .utils import normalize_tags, parse_datetime

DEFAULT_CATEGORY = "General"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Semantic rank used for sorting; higher is more urgent
PRIORITY_RANK: Dict[Priority, int] = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}


def coerce_priority(value: Any) -> Priority:
    """
    Map any incoming priority value onto the enumeration.

    Unknown or missing values become Priority.MEDIUM; they are never stored as-is.
    """
    if isinstance(value, Priority):
        return value
    if isinstance(value, str):
        try:
            return Priority(value.strip().lower())
        except ValueError:
            pass
    if value is not None:
        logger.warning(f"Unknown priority {value!r}; using '{Priority.MEDIUM.value}'")
    return Priority.MEDIUM


_CAMEL_CONFIG = dict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# PUBLIC_INTERFACE
class Todo(BaseModel):
    """
    Immutable snapshot of one todo record.

    Fields:
    - id: unique string identifier, never changes after creation
    - title: non-empty title
    - content: body text (may hold rich-text markup from the editor)
    - completed: completion flag
    - created_at / updated_at: aware datetimes, created_at <= updated_at
    - priority: low/medium/high
    - category: free-form category name ('General' by default)
    - tags: unique tag names in insertion order
    - is_pinned: pinned flag
    - due_date: optional due datetime
    - notes: optional plain-text notes

    Attribute names are snake_case; the persisted/wire form uses camelCase aliases.
    """

    model_config = ConfigDict(**_CAMEL_CONFIG)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    content: str = ""
    completed: bool = False
    created_at: datetime
    updated_at: datetime
    priority: Priority = Priority.MEDIUM
    category: str = DEFAULT_CATEGORY
    tags: Tuple[str, ...] = ()
    is_pinned: bool = False
    due_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, v: Any) -> Priority:
        return coerce_priority(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> Tuple[str, ...]:
        return tuple(normalize_tags(v))

    @field_validator("created_at", "updated_at", "due_date", mode="before")
    @classmethod
    def _parse_datetimes(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)

    @model_validator(mode="after")
    def _check_timestamps(self) -> "Todo":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self

    def to_record(self) -> Dict[str, Any]:
        """Return the JSON-ready persisted form (camelCase keys, ISO8601 datetimes)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


StatusFilter = Literal["all", "active", "completed"]
PriorityFilter = Literal["all", "low", "medium", "high"]
SortField = Literal["createdAt", "updatedAt", "dueDate", "priority"]
SortOrder = Literal["asc", "desc"]

_SORT_FIELD_ALIASES = {
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "due_date": "dueDate",
}


# PUBLIC_INTERFACE
class FilterSpec(BaseModel):
    """
    Criteria applied to the collection to build the filtered view.

    Defaults match an unfiltered list sorted by creation time, newest first.
    """

    model_config = ConfigDict(**_CAMEL_CONFIG)

    status: StatusFilter = "all"
    priority: PriorityFilter = "all"
    category: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = "desc"

    @field_validator("priority", mode="before")
    @classmethod
    def _lower_priority(cls, v: Any) -> Any:
        if v is None:
            return "all"
        if isinstance(v, Priority):
            return v.value
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category(cls, v: Any) -> Any:
        # An empty category selection means "any category"
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> FrozenSet[str]:
        return frozenset(normalize_tags(v))

    @field_validator("sort_by", mode="before")
    @classmethod
    def _accept_snake_sort_field(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _SORT_FIELD_ALIASES.get(v, v)
        return v

    def merged(self, partial: Dict[str, Any]) -> "FilterSpec":
        """Return a new spec with the given fields (snake_case or camelCase) replaced."""
        data = self.model_dump()
        for key, value in partial.items():
            name = _FILTER_FIELD_NAMES.get(key, key)
            if name not in data:
                raise ValueError(f"Unknown filter field: {key}")
            data[name] = value
        return FilterSpec.model_validate(data)


_FILTER_FIELD_NAMES = {to_camel(name): name for name in FilterSpec.model_fields}


# PUBLIC_INTERFACE
class TodoStats(BaseModel):
    """
    Aggregate counts over the whole collection.

    Always satisfies completed + active == total and sum(by_priority.values()) == total.
    """

    model_config = ConfigDict(**_CAMEL_CONFIG)

    total: int = 0
    completed: int = 0
    active: int = 0
    by_priority: Dict[str, int] = Field(
        default_factory=lambda: {p.value: 0 for p in Priority}
    )
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_tag: Dict[str, int] = Field(default_factory=dict)
