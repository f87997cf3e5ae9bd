"""
Review data models.

Defines the record written to the store, the contact form payload and
the run summary returned to callers.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Review(BaseModel):
    """One review card as extracted from a listing page. Immutable."""

    model_config = ConfigDict(frozen=True)

    reviewer_name: Optional[str] = None
    reviewer_profile: Optional[str] = None
    avatar_url: Optional[str] = None
    contributions: Optional[str] = None
    helpful_votes: Optional[str] = None
    rating: Optional[float] = None
    review_title: Optional[str] = None
    review_date: Optional[str] = None  # trip date text
    trip_type: Optional[str] = None
    review_text: Optional[str] = None
    review_of: Optional[str] = None
    review_of_link: Optional[str] = None
    written_date: Optional[str] = None
    disclaimer: Optional[str] = None
    unique_id: Optional[str] = None
    source_url: Optional[str] = None
    scraped_at: Optional[str] = None

    @property
    def is_identifiable(self) -> bool:
        return bool(self.unique_id)

    def to_row(self) -> dict[str, Any]:
        """Column/value mapping for the store."""
        return self.model_dump()


class ContactMessage(BaseModel):
    """Contact form submission. Missing or null text fields become empty strings."""

    name: str = ""
    email: str = ""
    subject: Optional[str] = None
    message: str = ""

    @field_validator("name", "email", "message", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ScrapeSummary(BaseModel):
    """Outcome of one scrape run, serialized with the public camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    details: Optional[str] = None
    scraped_count: int = Field(default=0, alias="scrapedCount")
    eligible_count: int = Field(default=0, alias="processedForUpsertCount")
    skipped_count: int = Field(default=0, alias="skippedWithoutIdCount")
    accepted_count: Optional[int] = Field(default=None, alias="supabaseResultCount")
    pages_fetched: int = Field(default=0, alias="pagesFetched")
    stop_reason: Optional[str] = Field(default=None, alias="stopReason")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
