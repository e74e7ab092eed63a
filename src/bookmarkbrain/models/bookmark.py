"""Bookmark data model."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.url_utils import URLValidationError, validate_url_scheme

MAX_TAKEAWAYS = 3


class Category(str, Enum):
    """Closed set of labels a bookmark can be filed under."""

    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    DESIGN = "Design"
    MARKETING = "Marketing"
    PROGRAMMING = "Programming"
    AI = "AI"
    SCIENCE = "Science"
    HEALTH = "Health"
    FINANCE = "Finance"
    NEWS = "News"
    ENTERTAINMENT = "Entertainment"
    EDUCATION = "Education"
    PRODUCTIVITY = "Productivity"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Any) -> "Category":
        """Map a free-form label onto the closed set, defaulting to Other."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            label = value.strip()
            for member in cls:
                if member.value.lower() == label.lower():
                    return member
        return cls.OTHER


class BookmarkStatus(str, Enum):
    """Summarization lifecycle of a bookmark."""

    IMPORTED = "imported"
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"

    @property
    def needs_summary(self) -> bool:
        """Whether a batch run picks this record up."""
        return self in (BookmarkStatus.IMPORTED, BookmarkStatus.ERROR)


def _clean_takeaways(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("takeaways must be a list")
    if len(value) > MAX_TAKEAWAYS:
        raise ValueError(f"Maximum {MAX_TAKEAWAYS} takeaways allowed")
    return [str(item).strip() for item in value]


class SummaryResult(BaseModel):
    """Enrichment fields produced by the summarizer for one URL."""

    title: str = Field(default="", description="Suggested display title")
    summary: str = Field(default="", description="One-line summary")
    takeaways: List[str] = Field(
        default_factory=list, description="Up to 3 key takeaways"
    )
    category: Category = Field(default=Category.OTHER)

    @field_validator("takeaways", mode="before")
    @classmethod
    def validate_takeaways(cls, v: Any) -> List[str]:
        return _clean_takeaways(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Category:
        return Category.coerce(v)


class Bookmark(BaseModel):
    """One saved URL and its enrichment."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier (UUID)",
    )
    url: str = Field(..., description="Absolute http(s) URL, stored exactly as imported")
    title: str = Field(..., description="Display title")
    summary: str = Field(default="", description="Summary text, empty until summarized")
    takeaways: List[str] = Field(
        default_factory=list,
        description="Ordered key takeaways (max 3)",
    )
    category: Category = Field(default=Category.OTHER)
    favicon: str = Field(default="", description="Favicon URL derived from the host")
    status: BookmarkStatus = Field(default=BookmarkStatus.IMPORTED)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the bookmark was imported",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "url": "https://github.com/python/cpython",
                "title": "CPython Official Repository",
                "summary": "Source code of the reference Python implementation.",
                "takeaways": [
                    "Hosts the CPython interpreter source",
                    "Issues and pull requests are tracked on GitHub",
                    "Release branches follow the 3.x cadence",
                ],
                "category": "Programming",
                "favicon": "https://www.google.com/s2/favicons?domain=github.com&sz=32",
                "status": "done",
                "created_at": "2026-02-03T10:30:00Z",
            }
        },
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Only http(s) URLs can be bookmarked."""
        try:
            validate_url_scheme(v)
        except URLValidationError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("takeaways", mode="before")
    @classmethod
    def validate_takeaways(cls, v: Any) -> List[str]:
        return _clean_takeaways(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Category:
        return Category.coerce(v)
