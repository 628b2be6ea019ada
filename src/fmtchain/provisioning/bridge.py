# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Child-side entry point of the isolated boundary.

This script runs in a fresh interpreter started with ``-I -S``, so only the
standard library is importable until the artifact roots passed on the command
line are prepended to ``sys.path``. It must therefore import nothing outside
the standard library.

Protocol: one JSON request on stdin, one JSON response on stdout.

Request: ``{"entry_point": "module:attr", "action": "format" | "probe",
"text": str, "path": str | null, "loggers": [str]}``.

Response: ``{"output": str}`` on success, or ``{"error": str, "lints": [...]}``.
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
import sys


class _Sink(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.ERROR)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def _resolve(entry_point: str):
    module_name, _, attribute = entry_point.partition(":")
    target = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    if not callable(target):
        raise TypeError(f"{entry_point} is not callable")
    return target


def _accepts_path(function) -> bool:
    try:
        parameters = list(inspect.signature(function).parameters.values())
    except (TypeError, ValueError):
        return False
    positional = [p for p in parameters if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    return len(positional) >= 2 or any(p.kind is p.VAR_POSITIONAL for p in parameters)


def _lints_of(exc: BaseException) -> list[dict[str, object]]:
    lints = []
    for lint in getattr(exc, "lints", None) or ():
        if isinstance(lint, dict):
            lints.append(lint)
        else:
            lints.append(
                {
                    "line_start": getattr(lint, "line_start", 1),
                    "line_end": getattr(lint, "line_end", None),
                    "rule_id": str(getattr(lint, "rule_id", type(exc).__name__)),
                    "detail": str(getattr(lint, "detail", exc)),
                },
            )
    return lints


def _handle(request: dict[str, object]) -> dict[str, object]:
    function = _resolve(str(request["entry_point"]))
    if request.get("action") == "probe":
        return {"output": ""}
    text = str(request.get("text", ""))
    if _accepts_path(function):
        output = function(text, request.get("path"))
    else:
        output = function(text)
    if output is None:
        output = text
    if not isinstance(output, str):
        raise TypeError(f"{request['entry_point']} returned {type(output).__name__}, expected str")
    return {"output": output}


def main(argv: list[str]) -> int:
    sys.path[:0] = argv[1:]
    request = json.loads(sys.stdin.read())
    real_stdout = sys.stdout
    sys.stdout = sys.stderr
    sink = _Sink()
    loggers = [logging.getLogger(name) for name in request.get("loggers", [])]
    for logger in loggers:
        logger.addHandler(sink)
    try:
        response = _handle(request)
    except Exception as exc:
        response = {"error": f"{type(exc).__name__}: {exc}", "lints": _lints_of(exc)}
    finally:
        for logger in loggers:
            logger.removeHandler(sink)
        sys.stdout = real_stdout
    if "error" not in response and sink.messages:
        response = {"error": "\n".join(sink.messages), "lints": []}
    real_stdout.write(json.dumps(response))
    real_stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
