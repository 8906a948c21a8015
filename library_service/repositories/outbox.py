import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import and_, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_service.core.transaction import session_scope
from library_service.models.outbox import OutboxMessage, OutboxStatus, utcnow
from library_service.schemas.outbox import OutboxData

logger = logging.getLogger(__name__)


class OutboxStore:
    """Durable queue of messages that must reach an external system.

    Every operation joins the ambient transaction when there is one, so an
    enqueue issued inside ``Transactor.with_tx`` commits or rolls back
    together with the domain write next to it. Database errors are raised
    unchanged; retrying is left to the dispatcher, which simply claims the
    row again once its lease runs out.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def enqueue(self, idempotency_key: str, kind: int, payload: bytes) -> None:
        async with session_scope(self.session_maker) as session:
            now = utcnow()
            stmt = (
                _dialect_insert(session)
                .values(
                    idempotency_key=idempotency_key,
                    kind=int(kind),
                    raw_data=payload,
                    status=OutboxStatus.CREATED.value,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
            )
            result = await session.execute(stmt)
            inserted = result.rowcount > 0

        if not inserted:
            logger.info(f"Outbox message {idempotency_key} already enqueued, skipping")
        else:
            logger.debug(f"Enqueued outbox message {idempotency_key} (kind {int(kind)})")

    async def claim_batch(self, batch_size: int, lease_ttl: timedelta) -> List[OutboxData]:
        """Lease up to ``batch_size`` pending messages, oldest first.

        Pending means CREATED, or IN_PROGRESS with a lease older than
        ``lease_ttl``. Selection and the move to IN_PROGRESS happen in one
        statement, and rows locked by a concurrent claimer are skipped, so
        two callers never get the same message while its lease is live.
        """
        now = utcnow()
        stmt = _claim_statement(batch_size, now - lease_ttl, now)

        async with session_scope(self.session_maker) as session:
            result = await session.execute(stmt)
            rows = result.all()

        # RETURNING does not preserve the subquery order.
        rows = sorted(rows, key=lambda row: (row.created_at, row.idempotency_key))
        return [
            OutboxData(idempotency_key=row.idempotency_key, kind=row.kind, raw_data=row.raw_data)
            for row in rows
        ]

    async def mark_processed(self, idempotency_keys: Sequence[str]) -> None:
        if not idempotency_keys:
            return

        stmt = (
            update(OutboxMessage)
            .where(OutboxMessage.idempotency_key.in_(list(idempotency_keys)))
            .values(status=OutboxStatus.SUCCESS.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        async with session_scope(self.session_maker) as session:
            await session.execute(stmt)


def _dialect_insert(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(OutboxMessage)
    if dialect == "sqlite":
        return sqlite.insert(OutboxMessage)
    raise RuntimeError(f"Outbox enqueue is not supported on {dialect}")


def _claim_statement(batch_size: int, lease_expired_before: datetime, now: Optional[datetime] = None):
    candidates = (
        select(OutboxMessage.idempotency_key)
        .where(
            or_(
                OutboxMessage.status == OutboxStatus.CREATED.value,
                and_(
                    OutboxMessage.status == OutboxStatus.IN_PROGRESS.value,
                    OutboxMessage.updated_at < lease_expired_before,
                ),
            )
        )
        .order_by(OutboxMessage.created_at)
        .limit(batch_size)
        .with_for_update(skip_locked=True)
    )
    return (
        update(OutboxMessage)
        .where(OutboxMessage.idempotency_key.in_(candidates))
        .values(status=OutboxStatus.IN_PROGRESS.value, updated_at=now or utcnow())
        .returning(
            OutboxMessage.idempotency_key,
            OutboxMessage.kind,
            OutboxMessage.raw_data,
            OutboxMessage.created_at,
        )
        .execution_options(synchronize_session=False)
    )
