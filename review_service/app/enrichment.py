"""
enrichment.py: background job run once per newly created review.
Fetches the book's Gutendex metadata and writes title, authors and cover
URL back onto the review row.

Outcomes:
  READY  → metadata fetched (fields extracted as far as possible)
  ERROR  → no book id, catalog failure, or an unexpected error
Either way processed=True afterwards. Nothing is retried.

Only the columns owned by this job are written, so a concurrent update
of review text/score survives and a deleted review stays deleted.
"""
import json
import logging
from typing import Any, Optional

from .db import ReviewStatus
from .gutendex_client import GutendexClient
from .store import ReviewStore

logger = logging.getLogger(__name__)

COVER_FORMAT = "image/jpeg"


def extract_metadata(metadata_json: str) -> dict[str, str]:
    """Pull title, authors and cover_url out of a Gutendex book body.

    Each field is extracted on its own; anything missing or of the wrong
    shape is skipped. A body that is not JSON yields an empty dict.
    """
    try:
        book = json.loads(metadata_json)
    except ValueError as e:
        logger.error(f"Error parsing metadata JSON: {e}")
        return {}
    if not isinstance(book, dict):
        return {}

    fields: dict[str, str] = {}

    title = _text(book.get("title"))
    if title:
        fields["title"] = title

    authors = book.get("authors")
    if isinstance(authors, list):
        names = [
            _text(a.get("name")) for a in authors if isinstance(a, dict)
        ]
        joined = ", ".join(n for n in names if n)
        if joined:
            fields["authors"] = joined

    formats = book.get("formats")
    if isinstance(formats, dict):
        cover_url = _text(formats.get(COVER_FORMAT))
        if cover_url:
            fields["cover_url"] = cover_url

    return fields


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


class ReviewEnricher:
    def __init__(self, store: ReviewStore, catalog: GutendexClient):
        self.store = store
        self.catalog = catalog

    def process(self, review_id: int):
        logger.info(f"Started async processing for review ID: {review_id}")
        try:
            review = self.store.find_by_id(review_id)
            if review is None:
                logger.warning(f"Review with ID {review_id} not found for async processing")
                return

            if not review.book_id or not review.book_id.strip():
                logger.error(f"Review {review_id} has null or empty book ID")
                self._mark_error(review_id)
                return

            result = self.catalog.fetch_metadata(review.book_id)
            if result.failed:
                logger.error(
                    f"Failed async processing for review ID: {review_id}: {result.failure.message}"
                )
                self._mark_error(review_id)
                return

            fields = extract_metadata(result.value)
            logger.debug(f"Extracted {sorted(fields)} for review {review_id}")

            written = self.store.update_fields(
                review_id,
                metadata_json=result.value,
                processed=True,
                status=ReviewStatus.READY,
                **fields,
            )
            if not written:
                logger.warning(f"Review {review_id} was deleted during processing; result dropped")
                return
            logger.info(f"Completed async processing for review ID: {review_id}")

        except Exception:
            logger.exception(f"Failed async processing for review ID: {review_id}")
            self._mark_error(review_id)

    def _mark_error(self, review_id: int):
        try:
            if not self.store.update_fields(review_id, processed=True, status=ReviewStatus.ERROR):
                logger.warning(f"Review {review_id} no longer exists; ERROR status not recorded")
        except Exception as e:
            logger.error(f"Failed to update review {review_id} status to ERROR: {e}")
