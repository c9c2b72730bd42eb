"""Logging setup for the claim document pipeline.

One stdout handler on the root logger, plus a small adapter that tags
records with the document they concern so interleaved batch output can
be followed per document.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

# Third-party loggers that log every HTTP request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    HTTP client request logs are kept at WARNING unless ``level`` is DEBUG.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(numeric_level)

    chatty_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


class DocumentLogAdapter(logging.LoggerAdapter):
    """Prefix messages with ``[document_id filename]``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        return f"[{extra['document_id']} {extra['filename']}] {msg}", kwargs


def document_logger(
    logger: logging.Logger, document_id: str, filename: str
) -> DocumentLogAdapter:
    """Wrap ``logger`` so every record names one document."""
    return DocumentLogAdapter(
        logger, {"document_id": document_id, "filename": filename}
    )
