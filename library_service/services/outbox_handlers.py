import logging
from typing import Awaitable, Callable, Dict, Mapping, Optional

import httpx
from pydantic import ValidationError

from library_service.core.exceptions import DeliveryError, UnsupportedKindError
from library_service.models.outbox import OutboxKind
from library_service.schemas.library import AuthorResponse, BookResponse

logger = logging.getLogger(__name__)

KindHandler = Callable[[bytes], Awaitable[None]]


class KindHandlerRegistry:
    """Maps an outbox kind to the coroutine that delivers its payload."""

    def __init__(self, handlers: Optional[Mapping[OutboxKind, KindHandler]] = None) -> None:
        self._handlers: Dict[int, KindHandler] = {}
        for kind, handler in (handlers or {}).items():
            self.register(kind, handler)

    def register(self, kind: OutboxKind, handler: KindHandler) -> None:
        self._handlers[int(kind)] = handler

    def resolve(self, kind: int) -> KindHandler:
        handler = self._handlers.get(int(kind))
        if handler is None:
            raise UnsupportedKindError(kind)
        return handler


def http_notification_handler(
    client: httpx.AsyncClient,
    url: str,
    extract_id: Callable[[bytes], str]
) -> KindHandler:
    async def handler(payload: bytes) -> None:
        try:
            entity_id = extract_id(payload)
        except (ValueError, ValidationError) as e:
            raise DeliveryError(f"Cannot deserialize outbox payload: {e}") from e

        response = await client.post(url, json={"id": entity_id})
        if not response.is_success:
            raise DeliveryError(f"Request to {url} failed with status {response.status_code}")

        logger.debug(f"Notified {url} about {entity_id}")

    return handler


def _book_id(payload: bytes) -> str:
    return BookResponse.model_validate_json(payload).id


def _author_id(payload: bytes) -> str:
    return AuthorResponse.model_validate_json(payload).id


def build_http_registry(client: httpx.AsyncClient, book_url: str, author_url: str) -> KindHandlerRegistry:
    return KindHandlerRegistry({
        OutboxKind.BOOK: http_notification_handler(client, book_url, _book_id),
        OutboxKind.AUTHOR: http_notification_handler(client, author_url, _author_id),
    })
