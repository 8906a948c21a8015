import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from library_service.core.logging import setup_logging
from library_service.core.config import settings
from library_service.core.database import engine, async_session_maker, Base
from library_service.core.transaction import Transactor
from library_service.models import library, outbox  # noqa: F401  (register tables)
from library_service.api.authors import router as authors_router
from library_service.api.books import router as books_router
from library_service.api.health import router as health_router
from library_service.repositories.outbox import OutboxStore
from library_service.services.outbox_dispatcher import OutboxDispatcher
from library_service.services.outbox_handlers import build_http_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    shutdown = asyncio.Event()
    http_client = httpx.AsyncClient(timeout=settings.outbox_http_timeout_seconds)

    dispatcher = OutboxDispatcher(
        OutboxStore(async_session_maker),
        build_http_registry(
            http_client,
            settings.outbox_book_send_url,
            settings.outbox_author_send_url
        ),
        Transactor(async_session_maker),
        enabled=settings.outbox_enabled
    )
    app.state.outbox_workers = dispatcher.start(
        shutdown,
        settings.outbox_workers,
        settings.outbox_batch_size,
        settings.outbox_poll_interval,
        settings.outbox_lease_ttl
    )

    yield

    shutdown.set()
    await asyncio.gather(*app.state.outbox_workers, return_exceptions=True)
    await http_client.aclose()
    await engine.dispose()
    logger.info("Library service stopped")


app = FastAPI(
    title="Library Service",
    description="Authors and books catalog with transactional outbox notifications",
    version="0.1.0",
    lifespan=lifespan
)

cors_origins = settings.cors_origins.split(",") if settings.cors_origins else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(authors_router)
app.include_router(books_router)
