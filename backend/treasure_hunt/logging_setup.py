from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from treasure_hunt.config import settings

def configure_logging(level: str | None = None):
    level_no = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(level_no, int):
        level_no = logging.INFO

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    shared = [
        structlog.contextvars.merge_contextvars,
        timestamper,
        structlog.processors.add_log_level,
    ]
    structlog.configure(
        processors=[
            *shared,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        cache_logger_on_first_use=True,
    )
    # uvicorn / httpx records go through the same JSON shape
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.EventRenamer("message"),
                structlog.processors.JSONRenderer(),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level_no)
    logging.getLogger("httpx").setLevel(max(level_no, logging.WARNING))
