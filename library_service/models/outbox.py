from datetime import datetime, timezone
from enum import Enum, IntEnum
from sqlalchemy import String, LargeBinary, DateTime, SmallInteger, Index
from sqlalchemy.orm import Mapped, mapped_column

from library_service.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutboxKind(IntEnum):
    BOOK = 0
    AUTHOR = 1

    def __str__(self) -> str:
        return self.name.lower()

    def idempotency_key(self, entity_id: str) -> str:
        return f"{self}_{entity_id}"


class OutboxStatus(str, Enum):
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"


class OutboxMessage(Base):
    __tablename__ = "outbox"

    idempotency_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    kind: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    raw_data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OutboxStatus.CREATED.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_outbox_status_created', 'status', 'created_at'),
    )
