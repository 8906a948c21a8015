class LibraryError(Exception):
    pass


class AuthorNotFoundError(LibraryError):
    def __init__(self, author_id: str) -> None:
        super().__init__(f"Author {author_id} not found")
        self.author_id = author_id


class BookNotFoundError(LibraryError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book {book_id} not found")
        self.book_id = book_id


class UnsupportedKindError(LibraryError):
    """Raised when no delivery handler is registered for an outbox kind."""

    def __init__(self, kind: int) -> None:
        super().__init__(f"Unsupported outbox kind: {kind}")
        self.kind = kind


class DeliveryError(LibraryError):
    pass
