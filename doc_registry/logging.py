import logging
import sys

from doc_registry.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int | str | None = None) -> None:
    """Idempotent logging configuration for the service."""
    logging.basicConfig(
        level=level or settings.log_level.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx logs every request at INFO; upstream calls are logged by callers.
    logging.getLogger("httpx").setLevel(logging.WARNING)
