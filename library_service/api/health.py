from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library_service.core.config import settings
from library_service.core.database import get_session_maker

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    request: Request,
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker)
) -> dict[str, str | dict[str, str]]:
    health = {"status": "healthy", "checks": {}}

    try:
        async with session_maker() as session:
            await session.execute(text("SELECT 1"))
        health["checks"]["database"] = "healthy"
    except Exception as e:
        health["checks"]["database"] = f"unhealthy: {str(e)}"
        health["status"] = "unhealthy"

    if not settings.outbox_enabled:
        health["checks"]["outbox"] = "disabled"
    else:
        workers = getattr(request.app.state, "outbox_workers", [])
        running = sum(1 for task in workers if not task.done())
        health["checks"]["outbox"] = f"{running} workers running"

    return health
