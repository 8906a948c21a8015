from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_service.core.exceptions import AuthorNotFoundError
from library_service.core.transaction import session_scope
from library_service.models.library import Author


class AuthorRepository:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def create(self, name: str) -> Author:
        async with session_scope(self.session_maker) as session:
            author = Author(name=name)
            session.add(author)
            await session.flush()
            return author

    async def get(self, author_id: str) -> Author:
        async with session_scope(self.session_maker) as session:
            author = await session.get(Author, author_id)
        if author is None:
            raise AuthorNotFoundError(author_id)
        return author

    async def update(self, author_id: str, name: str) -> Author:
        async with session_scope(self.session_maker) as session:
            result = await session.execute(
                update(Author)
                .where(Author.id == author_id)
                .values(name=name)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise AuthorNotFoundError(author_id)
        return Author(id=author_id, name=name)
