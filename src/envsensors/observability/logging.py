"""Structured logging for envsensors.

Loggers from get_logger() take keyword arguments as structured fields.
The fields are rendered after the message as ``key=value`` pairs:

    logger = get_logger(__name__)
    logger.debug("I2C bus opened", bus=1, address=0x40)
    # 2024-05-01 12:00:00,000 - envsensors.drivers.i2c - DEBUG -
    #     I2C bus opened | bus=1 address=64

A driver binds its identity once and logs through the returned adapter,
so every line it emits names the sensor and its bus address:

    log = logger.bind(sensor="bmx280", address="0x77")
    log.debug("Power mode set", mode="NORMAL")
    # ... - Power mode set | sensor=bmx280 address=0x77 mode=NORMAL

Every logger hangs below ``envsensors``, which owns the only handler and
does not propagate. get_logger() installs that handler on first use
(INFO, stderr) unless configure_logging() ran before.

Pass device values as fields, never pre-formatted into the message, so
the message text stays constant and greppable.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Mapping, MutableMapping
from typing import IO, Any, cast

#: Name of the package root logger. All module loggers hang below it.
ROOT_LOGGER_NAME = "envsensors"

_configured = False
_config_lock = threading.Lock()


class StructuredLogger(logging.Logger):
    """Logger whose extra keyword arguments become structured fields.

    ``exc_info``, ``extra``, ``stack_info`` and ``stacklevel`` keep their
    standard meaning. Everything else is stored on the record as the
    ``structured_data`` dict.

    Usage:
        logger.info("Register updated", register="0xF4", after="0x27")
    """

    def _log(  # type: ignore[override]
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: Mapping[str, object] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **fields: Any,
    ) -> None:
        record_extra = dict(extra or {})
        record_extra["structured_data"] = fields
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=record_extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )

    def bind(self, **fields: Any) -> DeviceLogger:
        """Return an adapter that adds ``fields`` to every record.

        Args:
            **fields: Fields identifying the emitter, typically ``sensor``
                and ``address``.

        Returns:
            DeviceLogger logging through this logger.

        Example:
            >>> log = get_logger("envsensors.example").bind(sensor="htu21d")
            >>> log.info("Resolution set", resolution="RH8_T12")
        """
        return DeviceLogger(self, fields)


class DeviceLogger(logging.LoggerAdapter):
    """Adapter carrying the bound fields of one device.

    Per-call fields override bound fields with the same key.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return msg, {**(self.extra or {}), **kwargs}


class StructuredFormatter(logging.Formatter):
    """Text formatter appending structured fields as ``| key=value ...``."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt or self.DEFAULT_FORMAT, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = getattr(record, "structured_data", None)
        if not fields:
            return text
        pairs = " ".join(f"{key}={_format_value(val)}" for key, val in fields.items())
        return f"{text} | {pairs}"


def _format_value(value: Any) -> str:
    """Render one field value.

    None becomes ``null``. Strings containing spaces are quoted, as an
    error description like "Error: HeaterFault" would be. Dicts and
    lists are rendered as JSON. Anything else goes through str().
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"' if " " in value else value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


def configure_logging(
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
    force: bool = False,
) -> None:
    """Install the envsensors log handler.

    Args:
        level: Minimum level, as a number or a name such as "DEBUG".
        stream: Destination for log lines. Default: sys.stderr.
        force: Replace an installed handler. Without it, calls after
            the first leave the configuration unchanged.
    """
    global _configured

    with _config_lock:
        if _configured and not force:
            return
        logging.setLoggerClass(StructuredLogger)
        root = logging.getLogger(ROOT_LOGGER_NAME)
        _remove_handlers(root)

        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
        root.setLevel(level)
        root.propagate = False
        _configured = True


def reset_logging() -> None:
    """Remove the envsensors handler. The next get_logger() reinstalls it."""
    global _configured

    with _config_lock:
        _remove_handlers(logging.getLogger(ROOT_LOGGER_NAME))
        _configured = False


def _remove_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> StructuredLogger:
    """Get the structured logger for a module.

    Args:
        name: Logger name, normally ``__name__``.

    Returns:
        StructuredLogger accepting keyword fields.
    """
    if not _configured:
        configure_logging()
    return cast(StructuredLogger, logging.getLogger(name))
