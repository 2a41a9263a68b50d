"""
Tests for ReviewService.

Gutendex and the worker pool are replaced by StubCatalog and
RecordingRunner; the store is real (in-memory SQLite).
"""

import pytest

from review_service.app.db import ReviewStatus
from review_service.app.errors import ErrorKind
from review_service.app.models import ReviewRequest, ReviewUpdateRequest
from review_service.app.service import ReviewService

from conftest import RecordingRunner


@pytest.fixture
def service(store, catalog, runner):
    return ReviewService(store, catalog, runner)


def frankenstein_request(**overrides):
    data = {"id": "84", "review": "Great book about Frankenstein", "score": 9}
    data.update(overrides)
    return ReviewRequest(**data)


def test_create_review_starts_processing(service, store, runner, catalog):
    """Test that a verified book yields a PROCESSING review and one queued job."""
    result = service.create_review(frankenstein_request())

    assert not result.failed
    review = result.value
    assert review.id is not None
    assert review.status == ReviewStatus.PROCESSING
    assert review.processed is False
    assert review.book_id == "84"
    assert catalog.fetched == ["84"]
    assert len(runner.jobs) == 1
    assert runner.jobs[0][1] == (review.id,)
    assert store.find_by_id(review.id) is not None


def test_create_review_then_enrichment_completes(service, store, runner):
    review = service.create_review(frankenstein_request()).value

    runner.run_all()

    done = service.get_review(review.id)
    assert done.processed is True
    assert done.status == ReviewStatus.READY
    assert done.title == "Frankenstein; Or, The Modern Prometheus"


def test_create_review_unknown_book(service, store, runner, catalog):
    catalog.fail_with(ErrorKind.NOT_FOUND)

    result = service.create_review(frankenstein_request(id="999999"))

    assert result.failure.kind == ErrorKind.BOOK_NOT_FOUND
    assert "999999" in result.failure.message
    assert store.find_all() == []
    assert runner.jobs == []


def test_create_review_catalog_down_reads_as_book_not_found(service, store, runner, catalog):
    catalog.fail_with(ErrorKind.EXTERNAL_SERVICE)

    result = service.create_review(frankenstein_request())

    assert result.failure.kind == ErrorKind.BOOK_NOT_FOUND
    assert result.failure.message == "Unable to validate book ID. Please try again later."
    assert store.find_all() == []
    assert runner.jobs == []


def test_rejected_submission_keeps_review(store, catalog):
    service = ReviewService(store, catalog, RecordingRunner(accept=False))

    result = service.create_review(frankenstein_request())

    assert not result.failed
    kept = store.find_by_id(result.value.id)
    assert kept.status == ReviewStatus.PROCESSING
    assert kept.processed is False


def test_get_review_absent(service):
    assert service.get_review(1) is None


def test_repeated_reads_are_identical(service, runner):
    review = service.create_review(frankenstein_request()).value
    runner.run_all()

    first = service.get_review(review.id)
    second = service.get_review(review.id)
    columns = ["id", "book_id", "review_text", "score", "title", "authors",
               "cover_url", "processed", "status", "created_at", "updated_at"]
    assert [getattr(first, c) for c in columns] == [getattr(second, c) for c in columns]


def test_update_review_changes_only_text_and_score(service, store, runner):
    """Test that book id and enrichment fields survive an update."""
    review = service.create_review(frankenstein_request()).value
    runner.run_all()
    before = store.find_by_id(review.id)

    result = service.update_review(
        review.id, ReviewUpdateRequest(review="Changed my mind, it is fine", score=6)
    )

    after = result.value
    assert after.review_text == "Changed my mind, it is fine"
    assert after.score == 6
    assert after.book_id == before.book_id
    assert after.title == before.title
    assert after.authors == before.authors
    assert after.cover_url == before.cover_url
    assert after.status == before.status
    assert after.processed == before.processed
    assert after.created_at == before.created_at
    assert after.updated_at >= before.updated_at
    assert runner.jobs == []


def test_update_review_absent(service):
    result = service.update_review(7, ReviewUpdateRequest(review="Whatever text", score=5))
    assert result.failure.kind == ErrorKind.REVIEW_NOT_FOUND


def test_get_all_reviews(service):
    service.create_review(frankenstein_request())
    service.create_review(frankenstein_request(id="11"))

    assert len(service.get_all_reviews()) == 2


def test_get_reviews_by_book_id(service):
    older = service.create_review(frankenstein_request(review="Older review")).value
    service.create_review(frankenstein_request(id="11"))
    newer = service.create_review(frankenstein_request(review="Newer review")).value

    result = service.get_reviews_by_book_id("84")
    assert [r.id for r in result.value] == [newer.id, older.id]


@pytest.mark.parametrize("book_id", [None, "", "   "])
def test_get_reviews_by_blank_book_id(service, book_id):
    result = service.get_reviews_by_book_id(book_id)
    assert result.failure.kind == ErrorKind.INVALID_ARGUMENT


def test_get_reviews_by_status(service, runner):
    ready = service.create_review(frankenstein_request()).value
    runner.run_all()
    pending = service.create_review(frankenstein_request(id="11")).value

    assert [r.id for r in service.get_reviews_by_status(ReviewStatus.READY)] == [ready.id]
    assert [r.id for r in service.get_reviews_by_status(ReviewStatus.PROCESSING)] == [pending.id]
    assert service.get_reviews_by_status(ReviewStatus.ERROR) == []


def test_delete_review(service):
    review = service.create_review(frankenstein_request()).value

    assert not service.delete_review(review.id).failed
    assert service.get_review(review.id) is None


def test_delete_review_absent(service):
    result = service.delete_review(99)
    assert result.failure.kind == ErrorKind.REVIEW_NOT_FOUND
