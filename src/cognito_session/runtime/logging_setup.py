"""Loguru sink setup driven by ``LoggingConfig``."""

import sys
from pathlib import Path

from loguru import logger

from src.cognito_session.runtime.context import get_config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging() -> None:
    """Replace loguru's sinks with a console sink and an optional file sink.

    The console is always human readable. The file sink, when
    ``logging.file`` is set, writes one JSON record per line for
    ``format: json`` and the console layout otherwise.
    """
    config = get_config()
    settings = config.logging
    # Variable values in tracebacks can include tokens
    verbose_tracebacks = config.app.environment != "production"

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.level,
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=verbose_tracebacks,
        diagnose=verbose_tracebacks,
    )

    if settings.file:
        log_path = Path(settings.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        as_json = settings.format == "json"
        logger.add(
            str(log_path),
            level=settings.level,
            format="{message}" if as_json else CONSOLE_FORMAT,
            serialize=as_json,
            rotation=f"{settings.max_size_mb} MB",
            retention=settings.backup_count,
            backtrace=verbose_tracebacks,
            diagnose=verbose_tracebacks,
        )

    logger.debug(f"Logging configured at {settings.level}, file sink: {settings.file or 'none'}")
