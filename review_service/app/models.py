from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import (
    BOOK_ID_PATTERN,
    REVIEW_MAX_LENGTH,
    REVIEW_MIN_LENGTH,
    SCORE_MAX_VALUE,
    SCORE_MIN_VALUE,
)
from .db import ReviewStatus


class ReviewUpdateRequest(BaseModel):
    # Any "id" sent along is ignored; the book of a review never changes
    review: str = Field(min_length=REVIEW_MIN_LENGTH, max_length=REVIEW_MAX_LENGTH)
    score: int = Field(ge=SCORE_MIN_VALUE, le=SCORE_MAX_VALUE)

    @field_validator("review")
    @classmethod
    def review_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Review text is required and cannot be blank")
        return v


class ReviewRequest(ReviewUpdateRequest):
    id: str = Field(pattern=BOOK_ID_PATTERN, description="Gutendex book id")

    @field_validator("id", mode="before")
    @classmethod
    def numeric_id_as_text(cls, v):
        # {"id": 84} is accepted the same as {"id": "84"}
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class ReviewResponse(BaseModel):
    """Outward view of a review. The raw catalog metadata is left out."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    book_id: str
    review_text: str
    score: int
    title: Optional[str] = None
    authors: Optional[str] = None
    cover_url: Optional[str] = None
    processed: bool
    status: ReviewStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; they were written as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
