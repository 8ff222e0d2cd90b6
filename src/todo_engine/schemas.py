from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import DEFAULT_CATEGORY, Priority, coerce_priority
from .utils import normalize_tags, parse_datetime


def _validate_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


def _default_category(v: Any) -> Any:
    if v is None or (isinstance(v, str) and not v.strip()):
        return DEFAULT_CATEGORY
    return v.strip() if isinstance(v, str) else v


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Form-layer input for creating a todo.

    Accepts camelCase (dueDate, isPinned) or snake_case keys. Missing options
    fall back to the record defaults; unknown priorities are coerced to medium.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "content": "2% milk",
                "priority": "high",
                "category": "Shopping",
                "tags": ["errands"],
                "dueDate": "2025-02-01",
            }
        },
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    content: str = Field(default="", description="Body text from the editor")
    priority: Priority = Field(default=Priority.MEDIUM, description="low, medium or high")
    category: str = Field(default=DEFAULT_CATEGORY, description="Category name")
    tags: List[str] = Field(default_factory=list, description="Tag names")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    is_pinned: bool = Field(default=False, description="Pinned flag")
    notes: Optional[str] = Field(default=None, description="Optional plain-text notes")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> Any:
        """
        Strip whitespace and enforce 1..200 length.
        """
        if v is None:
            raise ValueError("title is required")
        return _validate_title(v) if isinstance(v, str) else v

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Priority:
        return coerce_priority(v)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> Any:
        return _default_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: Any) -> List[str]:
        return normalize_tags(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Optional[datetime]:
        """
        Normalize due_date from str/date/datetime to an aware datetime.
        """
        return parse_datetime(v)

    @field_validator("is_pinned", mode="before")
    @classmethod
    def default_pinned(cls, v: Any) -> Any:
        return False if v is None else v


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Partial update of an existing todo.
    All fields are optional; only provided fields are applied. Passing due_date
    or notes explicitly as None clears them. id, createdAt and updatedAt are
    ignored because the repository owns them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    is_pinned: Optional[bool] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> Any:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        return _validate_title(v) if isinstance(v, str) else v

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Optional[Priority]:
        return None if v is None else coerce_priority(v)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> Any:
        return None if v is None else _default_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: Any) -> Optional[List[str]]:
        return None if v is None else normalize_tags(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)

    def changes(self) -> Dict[str, Any]:
        """
        Return the fields to merge into the stored record.

        Non-nullable fields given as None are dropped; due_date and notes keep an
        explicit None so callers can clear them.
        """
        changes: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name not in {"due_date", "notes"}:
                continue
            changes[name] = tuple(value) if name == "tags" else value
        return changes
