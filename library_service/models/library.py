import uuid
from datetime import datetime
from sqlalchemy import Column, ForeignKey, String, DateTime, Table
from sqlalchemy.orm import Mapped, mapped_column

from library_service.core.database import Base
from library_service.models.outbox import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


author_book = Table(
    "author_book",
    Base.metadata,
    Column("author_id", String(36), ForeignKey("author.id", ondelete="CASCADE"), primary_key=True),
    Column("book_id", String(36), ForeignKey("book.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Author(Base):
    __tablename__ = "author"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(512), nullable=False)


class Book(Base):
    __tablename__ = "book"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
