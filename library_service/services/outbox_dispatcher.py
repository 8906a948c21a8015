import asyncio
import logging
from datetime import timedelta
from functools import partial
from typing import List

from library_service.core.transaction import Transactor
from library_service.repositories.outbox import OutboxStore
from library_service.schemas.outbox import OutboxData
from library_service.services.outbox_handlers import KindHandlerRegistry

logger = logging.getLogger(__name__)


class OutboxDispatcher:
    """Delivers outbox messages with a pool of polling workers.

    Workers share nothing in process; the claim statement in the store is
    what keeps them off each other's rows. A message whose handler cannot
    be resolved or fails stays IN_PROGRESS and is retried once its lease
    expires. Delivery is at-least-once, so consumers must be idempotent.
    """

    def __init__(
        self,
        store: OutboxStore,
        registry: KindHandlerRegistry,
        transactor: Transactor,
        enabled: bool = True
    ) -> None:
        self.store = store
        self.registry = registry
        self.transactor = transactor
        self.enabled = enabled

    def start(
        self,
        shutdown: asyncio.Event,
        worker_count: int,
        batch_size: int,
        poll_interval: timedelta,
        lease_ttl: timedelta
    ) -> List[asyncio.Task]:
        """Spawn the worker tasks and return them without waiting.

        Setting ``shutdown`` stops every worker after its current batch.
        Must be called from a running event loop.
        """
        if not self.enabled:
            logger.info("Outbox dispatcher is disabled")
            return []

        tasks = [
            asyncio.create_task(
                self._worker_loop(worker_id, shutdown, batch_size, poll_interval, lease_ttl),
                name=f"outbox-worker-{worker_id}"
            )
            for worker_id in range(worker_count)
        ]
        logger.info(
            f"Outbox dispatcher started with {worker_count} workers "
            f"(batch size {batch_size}, poll interval {poll_interval}, lease {lease_ttl})"
        )
        return tasks

    async def _worker_loop(
        self,
        worker_id: int,
        shutdown: asyncio.Event,
        batch_size: int,
        poll_interval: timedelta,
        lease_ttl: timedelta
    ) -> None:
        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=poll_interval.total_seconds())
            except asyncio.TimeoutError:
                pass
            if shutdown.is_set():
                break

            try:
                await self.process_batch(batch_size, lease_ttl)
            except Exception as e:
                logger.error(f"Outbox worker {worker_id} failed to process batch: {e}", exc_info=True)

        logger.info(f"Outbox worker {worker_id} stopped")

    async def process_batch(self, batch_size: int, lease_ttl: timedelta) -> List[str]:
        """Claim one batch, deliver it, and mark the delivered keys.

        The claim is committed before any handler runs, so no row lock is
        held across external calls. Returns the keys marked processed.
        """
        messages = await self.transactor.with_tx(
            partial(self.store.claim_batch, batch_size, lease_ttl)
        )
        if not messages:
            return []

        logger.info(f"Claimed {len(messages)} outbox messages")

        success_keys = []
        for message in messages:
            if await self._deliver(message):
                success_keys.append(message.idempotency_key)

        await self.transactor.with_tx(partial(self.store.mark_processed, success_keys))

        failed = len(messages) - len(success_keys)
        if failed:
            logger.warning(
                f"{failed} of {len(messages)} outbox messages were not delivered "
                f"and will be retried after lease expiry"
            )
        return success_keys

    async def _deliver(self, message: OutboxData) -> bool:
        try:
            handler = self.registry.resolve(message.kind)
        except Exception as e:
            logger.error(f"Cannot resolve handler for outbox message {message.idempotency_key}: {e}")
            return False

        try:
            await handler(message.raw_data)
        except Exception as e:
            logger.error(
                f"Failed to deliver outbox message {message.idempotency_key} "
                f"(kind {message.kind}): {type(e).__name__}: {e}",
                exc_info=True
            )
            return False

        logger.info(f"Delivered outbox message {message.idempotency_key}")
        return True
