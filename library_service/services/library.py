import logging
from typing import List, Sequence
from uuid import UUID

from library_service.core.transaction import Transactor
from library_service.models.outbox import OutboxKind
from library_service.repositories.author import AuthorRepository
from library_service.repositories.book import BookRepository
from library_service.repositories.outbox import OutboxStore
from library_service.schemas.library import (
    AuthorCreate,
    AuthorResponse,
    AuthorUpdate,
    BookCreate,
    BookResponse,
    BookUpdate,
)

logger = logging.getLogger(__name__)


class LibraryService:
    def __init__(
        self,
        authors: AuthorRepository,
        books: BookRepository,
        outbox: OutboxStore,
        transactor: Transactor
    ) -> None:
        self.authors = authors
        self.books = books
        self.outbox = outbox
        self.transactor = transactor

    async def register_author(self, author_data: AuthorCreate) -> AuthorResponse:
        async def unit() -> AuthorResponse:
            author = AuthorResponse.model_validate(await self.authors.create(author_data.name))
            await self.outbox.enqueue(
                OutboxKind.AUTHOR.idempotency_key(author.id),
                OutboxKind.AUTHOR,
                author.model_dump_json().encode()
            )
            return author

        author = await self.transactor.with_tx(unit)
        logger.info(f"Author registered and saved to outbox: {author.id}")
        return author

    async def get_author(self, author_id: str) -> AuthorResponse:
        return AuthorResponse.model_validate(await self.authors.get(author_id))

    async def change_author(self, author_id: str, author_data: AuthorUpdate) -> AuthorResponse:
        author = await self.authors.update(author_id, author_data.name)
        logger.info(f"Author updated: {author_id}")
        return AuthorResponse.model_validate(author)

    async def add_book(self, book_data: BookCreate) -> BookResponse:
        async def unit() -> BookResponse:
            book = await self.books.create(book_data.name, _ids(book_data.author_ids))
            await self.outbox.enqueue(
                OutboxKind.BOOK.idempotency_key(book.id),
                OutboxKind.BOOK,
                book.model_dump_json().encode()
            )
            return book

        book = await self.transactor.with_tx(unit)
        logger.info(f"Book added and saved to outbox: {book.id}")
        return book

    async def get_book(self, book_id: str) -> BookResponse:
        return await self.books.get(book_id)

    async def update_book(self, book_id: str, book_data: BookUpdate) -> BookResponse:
        book = await self.books.update(book_id, book_data.name, _ids(book_data.author_ids))
        logger.info(f"Book updated: {book_id}")
        return book

    async def get_author_books(self, author_id: str) -> List[BookResponse]:
        return await self.books.list_by_author(author_id)


def _ids(ids: Sequence[UUID]) -> List[str]:
    return [str(i) for i in ids]
