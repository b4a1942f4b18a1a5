"""
Structured logging on top of the standard library ``logging`` module.

Every log line is an event name plus key=value context, e.g.
``info publisher relay_accepted path=posts/a.md relay=wss://nos.lol``.
[Logger][nostr_writer.core.logger.Logger] attaches the context to the
record as the ``structured_kv`` extra; the formatter installed by
[setup_logging()][nostr_writer.core.logger.setup_logging] renders it as
key=value pairs or, with ``json_output=True``, as one JSON object per line.
Plain ``logging.getLogger()`` records from the nips and utils layers go
through the same formatter.

Examples:
    ```python
    logger = Logger("publisher").bind(path="posts/a.md")
    logger.info("relay_accepted", relay="wss://nos.lol")
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any


DEFAULT_MAX_VALUE_LENGTH = 1000

_NEEDS_QUOTES = frozenset(' ="\'\n')


def _clip(value: Any, limit: int | None) -> str:
    text = str(value)
    if limit and len(text) > limit:
        return f"{text[:limit]}...<truncated {len(text) - limit} chars>"
    return text


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = DEFAULT_MAX_VALUE_LENGTH,
    prefix: str = " ",
) -> str:
    """Render *kwargs* as ``key=value`` pairs joined by spaces.

    Empty values and values containing whitespace, quotes or ``=`` are
    double-quoted with backslash escapes. Returns ``""`` for an empty mapping.
    """
    if not kwargs:
        return ""
    rendered = []
    for key, value in kwargs.items():
        text = _clip(value, max_value_length)
        if text and _NEEDS_QUOTES.isdisjoint(text):
            rendered.append(f"{key}={text}")
            continue
        text = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        rendered.append(f'{key}="{text}"')
    return prefix + " ".join(rendered)


class StructuredFormatter(logging.Formatter):
    """``level name message key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        line += format_kv_pairs(getattr(record, "structured_kv", {}))
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created, datetime.UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "structured_kv", {}))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class Logger:
    """Named logger whose methods take context as keyword arguments.

    Args:
        name: Logger name, usually the component (``publisher``, ``fetcher``).
        max_value_length: Values longer than this are truncated; ``None``
            disables truncation.
        context: Fields prepended to every record.
    """

    def __init__(
        self,
        name: str,
        *,
        max_value_length: int | None = DEFAULT_MAX_VALUE_LENGTH,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._max_value_length = max_value_length
        self._context = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> Logger:
        """Return a child logger that adds *context* to every record."""
        return Logger(
            self._logger.name,
            max_value_length=self._max_value_length,
            context={**self._context, **context},
        )

    def _log(self, level: int, msg: str, fields: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._context, **fields}
        clipped = {key: _clip(value, self._max_value_length) for key, value in merged.items()}
        self._logger.log(level, msg, extra={"structured_kv": clipped}, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs, exc_info=True)


def setup_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Install a single stderr handler on the root logger.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if json_output else StructuredFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(getattr(logging, level.upper()))
