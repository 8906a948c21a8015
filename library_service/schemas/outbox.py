from pydantic import BaseModel


class OutboxData(BaseModel):
    """A claimed outbox row, as handed to the dispatcher.

    ``kind`` stays a plain int so rows written with a kind this build does
    not know about can still be claimed and reported.
    """

    idempotency_key: str
    kind: int
    raw_data: bytes
