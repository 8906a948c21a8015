from typing import Dict, List, Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_service.core.exceptions import AuthorNotFoundError, BookNotFoundError
from library_service.core.transaction import session_scope
from library_service.models.library import Author, Book, author_book
from library_service.models.outbox import utcnow
from library_service.schemas.library import BookResponse


class BookRepository:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def create(self, name: str, author_ids: Sequence[str]) -> BookResponse:
        author_ids = _unique(author_ids)
        async with session_scope(self.session_maker) as session:
            await self._ensure_authors_exist(session, author_ids)

            book = Book(name=name)
            session.add(book)
            await session.flush()
            await self._link_authors(session, book.id, author_ids)
            return _to_response(book, author_ids)

    async def get(self, book_id: str) -> BookResponse:
        async with session_scope(self.session_maker) as session:
            book = await session.get(Book, book_id)
            if book is None:
                raise BookNotFoundError(book_id)
            authors = await self._authors_by_book(session, [book.id])
        return _to_response(book, authors.get(book.id, []))

    async def update(self, book_id: str, name: str, author_ids: Sequence[str]) -> BookResponse:
        author_ids = _unique(author_ids)
        async with session_scope(self.session_maker) as session:
            book = await session.get(Book, book_id)
            if book is None:
                raise BookNotFoundError(book_id)
            await self._ensure_authors_exist(session, author_ids)

            book.name = name
            book.updated_at = utcnow()
            await session.execute(delete(author_book).where(author_book.c.book_id == book_id))
            await self._link_authors(session, book_id, author_ids)
            await session.flush()
            await session.refresh(book)
            return _to_response(book, author_ids)

    async def list_by_author(self, author_id: str) -> List[BookResponse]:
        async with session_scope(self.session_maker) as session:
            result = await session.execute(
                select(Book)
                .join(author_book, author_book.c.book_id == Book.id)
                .where(author_book.c.author_id == author_id)
                .order_by(Book.created_at)
            )
            books = list(result.scalars().all())
            authors = await self._authors_by_book(session, [book.id for book in books])
        return [_to_response(book, authors.get(book.id, [])) for book in books]

    async def _ensure_authors_exist(self, session: AsyncSession, author_ids: List[str]) -> None:
        if not author_ids:
            return
        result = await session.execute(select(Author.id).where(Author.id.in_(author_ids)))
        found = set(result.scalars().all())
        for author_id in author_ids:
            if author_id not in found:
                raise AuthorNotFoundError(author_id)

    async def _link_authors(self, session: AsyncSession, book_id: str, author_ids: List[str]) -> None:
        if not author_ids:
            return
        await session.execute(
            insert(author_book),
            [{"author_id": author_id, "book_id": book_id} for author_id in author_ids],
        )

    async def _authors_by_book(self, session: AsyncSession, book_ids: List[str]) -> Dict[str, List[str]]:
        if not book_ids:
            return {}
        result = await session.execute(
            select(author_book.c.book_id, author_book.c.author_id)
            .where(author_book.c.book_id.in_(book_ids))
            .order_by(author_book.c.author_id)
        )
        authors: Dict[str, List[str]] = {}
        for book_id, author_id in result.all():
            authors.setdefault(book_id, []).append(author_id)
        return authors


def _unique(ids: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _to_response(book: Book, author_ids: List[str]) -> BookResponse:
    return BookResponse(
        id=book.id,
        name=book.name,
        author_ids=list(author_ids),
        created_at=book.created_at,
        updated_at=book.updated_at
    )
