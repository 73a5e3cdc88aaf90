"""Observability module for envsensors.

Provides structured logging for the sensor drivers.

Example:
    from envsensors.observability import get_logger

    logger = get_logger(__name__)
    logger.info("HTU21D connected", address="0x40")

    log = logger.bind(sensor="bmx280", address="0x77")
    log.debug("Oversampling set", channel="pressure", level="X4")
"""

from envsensors.observability.logging import (
    DeviceLogger,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "DeviceLogger",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
