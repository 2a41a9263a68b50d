"""
store.py: persistence for review rows.

Every method opens its own short-lived session, so a ReviewStore can be
shared between request threads and enrichment workers. Rows come back
detached with all columns loaded.
"""
import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import sessionmaker

from .db import Review, ReviewStatus, utcnow

logger = logging.getLogger(__name__)


class ReviewStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, review: Review) -> Review:
        with self._session_factory() as session:
            session.add(review)
            session.commit()
            return review

    def find_by_id(self, review_id: int) -> Optional[Review]:
        with self._session_factory() as session:
            return session.get(Review, review_id)

    def exists_by_id(self, review_id: int) -> bool:
        with self._session_factory() as session:
            found = session.execute(
                select(Review.id).where(Review.id == review_id)
            ).scalar_one_or_none()
            return found is not None

    def save(self, review: Review) -> Review:
        """Upsert keyed by id. Writes every column of ``review``."""
        with self._session_factory() as session:
            merged = session.merge(review)
            session.commit()
            return merged

    def update_fields(self, review_id: int, **fields) -> bool:
        """Write only the given columns of an existing row.

        Returns False when no row matched, which happens when the review
        was deleted in the meantime. ``updated_at`` is always refreshed.
        """
        fields["updated_at"] = utcnow()
        with self._session_factory() as session:
            result = session.execute(
                update(Review).where(Review.id == review_id).values(**fields)
            )
            session.commit()
            return result.rowcount > 0

    def delete_by_id(self, review_id: int):
        with self._session_factory() as session:
            session.execute(delete(Review).where(Review.id == review_id))
            session.commit()

    def find_all(self) -> list[Review]:
        with self._session_factory() as session:
            return list(session.scalars(select(Review)))

    def find_by_book_id(self, book_id: str) -> list[Review]:
        with self._session_factory() as session:
            stmt = (
                select(Review)
                .where(Review.book_id == book_id)
                .order_by(Review.created_at.desc(), Review.id.desc())
            )
            return list(session.scalars(stmt))

    def find_by_status(self, status: ReviewStatus) -> list[Review]:
        with self._session_factory() as session:
            return list(session.scalars(select(Review).where(Review.status == status)))
