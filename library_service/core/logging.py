import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from library_service.core.config import settings

_HANDLER_NAME = "library_service.json"


def setup_logging(level: Optional[str] = None) -> None:
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)

    # The lifespan may run more than once per process (tests, reloads).
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
            static_fields={"service": settings.service_name},
        )
    )
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
