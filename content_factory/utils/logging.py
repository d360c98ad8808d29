"""Logging configuration using loguru.

Every record carries a ``component`` extra. Records emitted while a job runs
also carry ``job_id``, ``job_type``, ``article_id`` and ``worker_id`` through
:func:`job_logging_context`, so stage logs can be filtered per job without
threading ids through every call.
"""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

from content_factory.models.config import LoggingConfig

DEFAULT_COMPONENT = "content_factory"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> {extra}"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]}:{function}:{line} | {message} {extra}"


def setup_logging(config: LoggingConfig, component: str = DEFAULT_COMPONENT) -> None:
    """
    Replace loguru's default handler with a console sink and a rotating file sink.

    Args:
        config: Logging configuration
        component: Default ``component`` extra for records not bound by
            :func:`get_logger`
    """
    logger.remove()
    logger.configure(extra={"component": component})

    logger.add(
        sys.stderr,
        level=config.level,
        format=CONSOLE_FORMAT,
        colorize=config.colorize,
        backtrace=config.level == "DEBUG",
        diagnose=False,
    )

    log_path = Path(config.file_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path,
        level=config.level,
        format=FILE_FORMAT,
        rotation=config.rotation,
        retention=config.retention,
        compression=config.compression,
        serialize=config.serialize,
        enqueue=True,
    )

    logger.info(
        "Logging configured",
        level=config.level,
        file=str(log_path),
        serialize=config.serialize,
    )


def get_logger(component: str) -> "Logger":
    """Logger bound to a component name, typically ``__name__``."""
    return logger.bind(component=component)


@contextmanager
def job_logging_context(
    job_id: str,
    job_type: str,
    article_id: str | None = None,
    worker_id: str | None = None,
) -> Iterator[None]:
    """
    Attach job identifiers to every record logged inside the block.

    The context lives in a context variable, so concurrent jobs in one batch
    keep their own identifiers.
    """
    with logger.contextualize(job_id=job_id, job_type=job_type, article_id=article_id, worker_id=worker_id):
        yield
