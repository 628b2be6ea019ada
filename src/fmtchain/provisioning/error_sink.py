# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Scoped capture of errors a library reports through ``logging``.

Some formatter libraries report failures by logging them rather than raising.
:func:`capture_errors` attaches an :class:`ErrorSink` to the library's logger
for the duration of a single call and always detaches it afterwards.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ..errors import BoundaryError


class ErrorSink(logging.Handler):
    """Collect error records emitted by the thread that created the sink."""

    def __init__(self, level: int = logging.ERROR) -> None:
        super().__init__(level)
        self._thread_id = threading.get_ident()
        self.messages: list[str] = []

    def filter(self, record: logging.LogRecord) -> bool:
        return record.thread == self._thread_id and super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())

    def raise_if_errors(self, context: str) -> None:
        """Raise :class:`BoundaryError` listing the captured messages, if any."""

        if self.messages:
            details = "\n".join(f"  {message}" for message in self.messages)
            raise BoundaryError(f"{context} reported errors:\n{details}")


@contextmanager
def capture_errors(logger_name: str, level: int = logging.ERROR) -> Iterator[ErrorSink]:
    """Attach a fresh :class:`ErrorSink` to ``logger_name`` for the ``with`` block."""

    logger = logging.getLogger(logger_name)
    sink = ErrorSink(level)
    logger.addHandler(sink)
    try:
        yield sink
    finally:
        logger.removeHandler(sink)


__all__ = ["ErrorSink", "capture_errors"]
