from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, create_engine
from sqlalchemy import Enum as SAEnum
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_PATH, DATABASE_URL


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ReviewStatus(str, Enum):
    PROCESSING = "PROCESSING"
    READY = "READY"
    ERROR = "ERROR"


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        Index("idx_book_id", "book_id"),
        Index("idx_status", "status"),
        Index("idx_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    book_id: Mapped[str] = mapped_column(String(50))
    review_text: Mapped[str] = mapped_column(String(2000))
    score: Mapped[int] = mapped_column(Integer)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    authors: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    # Raw catalog response, never serialized outward
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, default=False)
    # Stored as its plain string value ("PROCESSING", "READY", "ERROR")
    status: Mapped[ReviewStatus] = mapped_column(
        SAEnum(ReviewStatus, native_enum=False, length=20, validate_strings=True),
        default=ReviewStatus.PROCESSING,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"Review(id={self.id}, book_id={self.book_id!r}, score={self.score}, "
            f"status={self.status}, processed={self.processed})"
        )


def make_engine(database_url: str = DATABASE_URL) -> Engine:
    """Build an engine usable from request threads and worker threads alike."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        elif database_url == f"sqlite:///{DATABASE_PATH}":
            DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine: Engine):
    Base.metadata.create_all(engine)
