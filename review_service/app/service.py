"""
service.py: review use cases.

Validates new reviews against Gutendex, persists them and hands each new
review to the TaskRunner for enrichment. Operations that can fail in an
expected way return a Result; callers check ``result.failed``.
"""
import logging
from typing import Optional

from .db import Review, ReviewStatus
from .enrichment import ReviewEnricher
from .errors import ErrorKind, Result, book_not_found_message, review_not_found_message
from .gutendex_client import GutendexClient
from .models import ReviewRequest, ReviewUpdateRequest
from .store import ReviewStore
from .task_runner import TaskRunner

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(
        self,
        store: ReviewStore,
        catalog: GutendexClient,
        runner: TaskRunner,
        enricher: Optional[ReviewEnricher] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.runner = runner
        self.enricher = enricher or ReviewEnricher(store, catalog)

    def create_review(self, request: ReviewRequest) -> Result[Review]:
        book_id = request.id
        logger.info(f"Creating review for book ID: {book_id}")

        check = self.catalog.fetch_metadata(book_id)
        if check.failed:
            if check.failure.kind == ErrorKind.NOT_FOUND:
                logger.warning(f"Attempted to create review for non-existent book ID: {book_id}")
                return Result.fail(ErrorKind.BOOK_NOT_FOUND, book_not_found_message(book_id))
            # Catalog outages and bad ids end up here too
            logger.error(f"Error validating book ID {book_id} on Gutendex API: {check.failure.message}")
            return Result.fail(
                ErrorKind.BOOK_NOT_FOUND, "Unable to validate book ID. Please try again later."
            )

        review = self.store.create(
            Review(
                book_id=book_id,
                review_text=request.review,
                score=request.score,
                processed=False,
                status=ReviewStatus.PROCESSING,
            )
        )
        logger.info(f"Review created successfully with ID: {review.id}")

        if self.runner.submit(self.enricher.process, review.id):
            logger.debug(f"Queued review {review.id} for async processing")
        else:
            logger.error(f"Failed to queue review {review.id} for async processing; it stays PROCESSING")

        return Result.ok(review)

    def get_review(self, review_id: int) -> Optional[Review]:
        review = self.store.find_by_id(review_id)
        if review is None:
            logger.warning(f"Review not found with ID: {review_id}")
        else:
            logger.info(f"Retrieved review with ID: {review_id}")
        return review

    def update_review(self, review_id: int, request: ReviewUpdateRequest) -> Result[Review]:
        logger.info(f"Updating review with ID: {review_id}")

        if self.store.find_by_id(review_id) is None:
            logger.warning(f"Attempted to update non-existent review ID: {review_id}")
            return Result.fail(ErrorKind.REVIEW_NOT_FOUND, review_not_found_message(review_id))

        written = self.store.update_fields(
            review_id, review_text=request.review, score=request.score
        )
        updated = self.store.find_by_id(review_id) if written else None
        if updated is None:
            # Deleted between the existence check and the write
            return Result.fail(ErrorKind.REVIEW_NOT_FOUND, review_not_found_message(review_id))

        logger.info(f"Review updated successfully with ID: {review_id}")
        return Result.ok(updated)

    def get_all_reviews(self) -> list[Review]:
        reviews = self.store.find_all()
        logger.info(f"Retrieved {len(reviews)} total reviews")
        return reviews

    def get_reviews_by_book_id(self, book_id: Optional[str]) -> Result[list[Review]]:
        if book_id is None or not book_id.strip():
            logger.warning("Attempted to retrieve reviews with null or empty book ID")
            return Result.fail(ErrorKind.INVALID_ARGUMENT, "Book ID cannot be null or empty")

        reviews = self.store.find_by_book_id(book_id)
        logger.info(f"Found {len(reviews)} reviews for book ID: {book_id}")
        return Result.ok(reviews)

    def get_reviews_by_status(self, status: ReviewStatus) -> list[Review]:
        return self.store.find_by_status(status)

    def delete_review(self, review_id: int) -> Result[None]:
        logger.info(f"Deleting review with ID: {review_id}")

        if not self.store.exists_by_id(review_id):
            logger.warning(f"Attempted to delete non-existent review ID: {review_id}")
            return Result.fail(ErrorKind.REVIEW_NOT_FOUND, review_not_found_message(review_id))

        self.store.delete_by_id(review_id)
        logger.info(f"Review deleted successfully with ID: {review_id}")
        return Result.ok(None)

    def search_books(self, query: Optional[str]) -> Result[str]:
        return self.catalog.search(query)
