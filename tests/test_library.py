import json
from uuid import uuid4

import pytest
from pydantic import ValidationError

from library_service.core.exceptions import AuthorNotFoundError, BookNotFoundError
from library_service.models.outbox import OutboxKind, OutboxStatus
from library_service.schemas.library import AuthorCreate, AuthorUpdate, BookCreate, BookUpdate


@pytest.mark.asyncio
async def test_register_author_saves_outbox_message(library_service, fetch_outbox):
    author = await library_service.register_author(AuthorCreate(name="Leo Tolstoy"))

    messages = await fetch_outbox()

    assert len(messages) == 1
    message = messages[0]
    assert message.idempotency_key == f"author_{author.id}"
    assert message.kind == OutboxKind.AUTHOR
    assert message.status == OutboxStatus.CREATED.value
    assert json.loads(message.raw_data) == {"id": author.id, "name": "Leo Tolstoy"}


@pytest.mark.asyncio
async def test_register_author_is_rolled_back_when_enqueue_fails(library_service, monkeypatch):
    created = []
    original_create = library_service.authors.create

    async def tracking_create(name):
        author = await original_create(name)
        created.append(author.id)
        return author

    async def failing_enqueue(idempotency_key, kind, payload):
        raise RuntimeError("outbox unavailable")

    monkeypatch.setattr(library_service.authors, "create", tracking_create)
    monkeypatch.setattr(library_service.outbox, "enqueue", failing_enqueue)

    with pytest.raises(RuntimeError):
        await library_service.register_author(AuthorCreate(name="Ghost Writer"))

    assert len(created) == 1
    with pytest.raises(AuthorNotFoundError):
        await library_service.get_author(created[0])


@pytest.mark.asyncio
async def test_add_book_saves_outbox_message(library_service, fetch_outbox):
    author = await library_service.register_author(AuthorCreate(name="Fyodor Dostoevsky"))

    book = await library_service.add_book(BookCreate(name="The Idiot", author_ids=[author.id]))

    assert book.author_ids == [author.id]
    messages = await fetch_outbox()
    assert [m.idempotency_key for m in messages] == [f"author_{author.id}", f"book_{book.id}"]
    payload = json.loads(messages[1].raw_data)
    assert payload["id"] == book.id
    assert payload["name"] == "The Idiot"
    assert payload["author_ids"] == [author.id]


@pytest.mark.asyncio
async def test_add_book_with_unknown_author_writes_nothing(library_service, fetch_outbox):
    with pytest.raises(AuthorNotFoundError):
        await library_service.add_book(BookCreate(name="Orphan", author_ids=[str(uuid4())]))

    assert await fetch_outbox() == []


@pytest.mark.asyncio
async def test_add_book_deduplicates_author_ids(library_service):
    author = await library_service.register_author(AuthorCreate(name="Ivan Turgenev"))

    book = await library_service.add_book(
        BookCreate(name="Fathers and Sons", author_ids=[author.id, author.id])
    )

    assert book.author_ids == [author.id]
    assert (await library_service.get_book(book.id)).author_ids == [author.id]


@pytest.mark.asyncio
async def test_change_author(library_service):
    author = await library_service.register_author(AuthorCreate(name="Gogol"))

    updated = await library_service.change_author(author.id, AuthorUpdate(name="Nikolai Gogol"))

    assert updated.id == author.id
    assert updated.name == "Nikolai Gogol"
    assert (await library_service.get_author(author.id)).name == "Nikolai Gogol"


@pytest.mark.asyncio
async def test_change_missing_author_raises(library_service):
    with pytest.raises(AuthorNotFoundError):
        await library_service.change_author("missing", AuthorUpdate(name="Nobody"))


@pytest.mark.asyncio
async def test_update_book_replaces_authors(library_service):
    first = await library_service.register_author(AuthorCreate(name="Ilf"))
    second = await library_service.register_author(AuthorCreate(name="Petrov"))
    book = await library_service.add_book(BookCreate(name="Twelve Chairs", author_ids=[first.id]))

    updated = await library_service.update_book(
        book.id, BookUpdate(name="The Twelve Chairs", author_ids=[second.id])
    )

    assert updated.name == "The Twelve Chairs"
    assert updated.author_ids == [second.id]
    assert await library_service.get_author_books(first.id) == []
    assert [b.id for b in await library_service.get_author_books(second.id)] == [book.id]


@pytest.mark.asyncio
async def test_update_book_authors_only_refreshes_updated_at(library_service):
    first = await library_service.register_author(AuthorCreate(name="Arkady Strugatsky"))
    second = await library_service.register_author(AuthorCreate(name="Boris Strugatsky"))
    book = await library_service.add_book(BookCreate(name="Roadside Picnic", author_ids=[first.id]))
    before = (await library_service.get_book(book.id)).updated_at

    await library_service.update_book(book.id, BookUpdate(name="Roadside Picnic", author_ids=[second.id]))

    after = await library_service.get_book(book.id)
    assert after.author_ids == [second.id]
    assert after.updated_at > before


def test_book_author_ids_must_be_uuids():
    with pytest.raises(ValidationError):
        BookCreate(name="Lost", author_ids=["Aboba"])


@pytest.mark.asyncio
async def test_get_missing_book_raises(library_service):
    with pytest.raises(BookNotFoundError):
        await library_service.get_book("missing")


@pytest.mark.asyncio
async def test_get_author_books_lists_in_creation_order(library_service):
    author = await library_service.register_author(AuthorCreate(name="Anton Chekhov"))
    titles = ["The Seagull", "Uncle Vanya", "Three Sisters"]
    for title in titles:
        await library_service.add_book(BookCreate(name=title, author_ids=[author.id]))
    await library_service.add_book(BookCreate(name="Unrelated"))

    books = await library_service.get_author_books(author.id)

    assert [b.name for b in books] == titles
    assert all(b.author_ids == [author.id] for b in books)
