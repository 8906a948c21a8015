from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_service.core.database import get_session_maker
from library_service.core.transaction import Transactor
from library_service.repositories.author import AuthorRepository
from library_service.repositories.book import BookRepository
from library_service.repositories.outbox import OutboxStore
from library_service.services.library import LibraryService


def get_library_service(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker)
) -> LibraryService:
    return LibraryService(
        AuthorRepository(session_maker),
        BookRepository(session_maker),
        OutboxStore(session_maker),
        Transactor(session_maker)
    )
