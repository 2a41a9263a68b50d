"""
Error kinds shared by the catalog client, the review service and the HTTP
layer.

Expected conditions (bad input, unknown book, missing review, catalog
outage) travel back to callers as a ``Result`` carrying a ``Failure``
instead of being raised. Only genuinely unexpected errors are raised, and
those end up as a 500 at the HTTP boundary.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    BOOK_NOT_FOUND = "book_not_found"
    REVIEW_NOT_FOUND = "review_not_found"
    EXTERNAL_SERVICE = "external_service"


HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.BOOK_NOT_FOUND: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.REVIEW_NOT_FOUND: 404,
    ErrorKind.EXTERNAL_SERVICE: 503,
}

EXTERNAL_SERVICE_MESSAGE = "External service temporarily unavailable. Please try again later."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."
VALIDATION_FAILED_MESSAGE = "Validation failed for one or more fields"


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(failure=Failure(kind, message))

    @property
    def failed(self) -> bool:
        return self.failure is not None


def book_not_found_message(book_id: str) -> str:
    return f"Book with ID '{book_id}' not found on Gutendex API"


def review_not_found_message(review_id: int) -> str:
    return f"Review with ID {review_id} not found"


class ErrorResponse(BaseModel):
    """Body returned for every non-2xx JSON response."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: int
    error: str
    message: str
    path: str
    validationErrors: Optional[dict[str, str]] = None
