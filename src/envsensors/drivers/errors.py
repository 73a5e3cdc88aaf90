"""Exception hierarchy for the sensor drivers.

Every driver raises subclasses of SensorError, so callers can catch at
either level:

    # Specific
    except DeviceNotOpenError: ...

    # Any driver failure
    except SensorError: ...

The stdlib bases are kept where a caller would reasonably expect them:
TransportError is an OSError (it wraps bus I/O failures) and the
illegal-state family are RuntimeErrors.
"""

from __future__ import annotations

__all__ = [
    "SensorError",
    "TransportError",
    "IllegalStateError",
    "DeviceNotOpenError",
    "UnsupportedOperationError",
    "ConfigurationError",
    "BringUpError",
]


class SensorError(Exception):
    """Base class for all sensor driver errors."""


class TransportError(SensorError, OSError):
    """Raised when a register port read or write fails.

    Never retried by the drivers; always surfaced to the caller.
    """


class IllegalStateError(SensorError, RuntimeError):
    """Raised when an operation is not legal in the driver's current state."""


class DeviceNotOpenError(IllegalStateError):
    """Raised when a closed driver is asked to do I/O."""

    def __init__(self, message: str = "I2C device not open") -> None:
        super().__init__(message)


class UnsupportedOperationError(IllegalStateError):
    """Raised when the connected chip variant lacks a capability."""


class ConfigurationError(SensorError):
    """Raised when a read is requested for a measurement that is disabled."""


class BringUpError(SensorError):
    """Raised when a driver cannot complete bring-up during construction.

    The register port has already been released when this is raised.
    The underlying failure, if any, is chained as __cause__.
    """
