"""Logging helpers shared by the CLI and the callback entry point."""

from __future__ import annotations

import logging
import re
from typing import Callable

_WHITESPACE = re.compile(r"\s+")
_LONG_WORD = re.compile(r"^(.{42}).{10,}(.{8})$", re.DOTALL)

PACKAGE_LOGGER = "sitemirror"


def shorten_message(message: str) -> str:
    """Abbreviate words longer than 75 characters (typically URLs)."""
    if len(message) <= 50:
        return message
    words = []
    for word in _WHITESPACE.split(message):
        if len(word) > 75:
            word = _LONG_WORD.sub(r"\1...\2", word)
        words.append(word)
    return " ".join(words)


class ShorteningFormatter(logging.Formatter):
    """Formatter that abbreviates overlong words in the message."""

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        record.message = shorten_message(record.message)
        return super().formatMessage(record)


class CallbackHandler(logging.Handler):
    """Forward formatted log messages to a ``log(message)`` hook."""

    def __init__(self, callback: Callable[[str], None], level: int = logging.NOTSET):
        super().__init__(level)
        self.callback = callback

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.callback(self.format(record))
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(
        ShorteningFormatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
    )
    logging.basicConfig(level=level, handlers=[handler])
    # httpx logs every request at INFO; the mirror logs its own status line
    logging.getLogger("httpx").setLevel(logging.WARNING)
