"""
Shared fixtures: an in-memory review store, a canned Gutendex stand-in
and a task runner that only records what it is given.
"""

import json

import pytest

from review_service.app.db import Review, ReviewStatus, init_db, make_engine, make_session_factory
from review_service.app.errors import ErrorKind, Result
from review_service.app.store import ReviewStore


FRANKENSTEIN = {
    "id": 84,
    "title": "Frankenstein; Or, The Modern Prometheus",
    "authors": [{"name": "Shelley, Mary Wollstonecraft", "birth_year": 1797, "death_year": 1851}],
    "formats": {
        "image/jpeg": "https://www.gutenberg.org/cache/epub/84/pg84.cover.medium.jpg",
        "text/html": "https://www.gutenberg.org/ebooks/84.html.images",
    },
}


class StubCatalog:
    """Stands in for GutendexClient; returns whatever it was primed with."""

    def __init__(self, metadata=None, search_result=None):
        self.metadata_result = Result.ok(json.dumps(metadata if metadata is not None else FRANKENSTEIN))
        self.search_result = search_result or Result.ok('{"count": 0, "results": []}')
        self.on_fetch = None
        self.fetched = []
        self.searched = []
        self.closed = False

    def fail_with(self, kind: ErrorKind, message: str = "boom"):
        self.metadata_result = Result.fail(kind, message)

    def fetch_metadata(self, book_id):
        self.fetched.append(book_id)
        if self.on_fetch:
            self.on_fetch(book_id)
        return self.metadata_result

    def search(self, query):
        self.searched.append(query)
        if query is None or not query.strip():
            return Result.fail(ErrorKind.INVALID_ARGUMENT, "Search query cannot be null or empty")
        return self.search_result

    def close(self):
        self.closed = True


class RecordingRunner:
    """Keeps submitted jobs until run_all() is called."""

    def __init__(self, accept=True):
        self.accept = accept
        self.jobs = []

    def submit(self, fn, *args):
        if not self.accept:
            return False
        self.jobs.append((fn, args))
        return True

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for fn, args in jobs:
            fn(*args)

    def shutdown(self, timeout=None):
        return True


@pytest.fixture
def store():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield ReviewStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def catalog():
    return StubCatalog()


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def make_review(store):
    def _make(book_id="84", text="Great book about Frankenstein", score=9):
        return store.create(
            Review(
                book_id=book_id,
                review_text=text,
                score=score,
                processed=False,
                status=ReviewStatus.PROCESSING,
            )
        )
    return _make
