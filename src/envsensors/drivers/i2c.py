"""I2C register port protocol for sensor drivers.

Provides the abstraction every driver talks through, plus a thin adapter
over smbus2 for real hardware. Drivers never touch the bus directly:
they receive an already-opened RegisterPort and own it from then on.

Protocols:
    RegisterPort: Byte/word/buffer register access to one I2C device

Classes:
    SMBusRegisterPort: RegisterPort backed by smbus2.SMBus

Functions:
    open_register_port: Open an SMBusRegisterPort by bus and address

Example:
    # For testing - create a simulated port
    from envsensors.drivers.sensors.twin import SimulatedRegisterPort

    port = SimulatedRegisterPort()
    port.load(0xD0, b"\\x60")
    driver = Bmx280(port)

    # For hardware
    port = open_register_port(1, 0x77)
    driver = Bmx280(port)

Testing:
    The protocol enables unit testing without hardware by injecting a
    simulated register file. See envsensors.drivers.sensors.twin and
    tests/drivers/test_i2c.py.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from envsensors.drivers.errors import TransportError
from envsensors.observability import get_logger

logger = get_logger(__name__)


@runtime_checkable
class RegisterPort(Protocol):  # pragma: no cover
    """Protocol for register-level access to a single I2C device.

    The subset of SMBus transactions the drivers use. Registers are
    byte-addressed (0-255). Every method may raise TransportError.

    Note:
        Implementations need not be thread-safe. Drivers serialize
        access per device with their own lock.
    """

    def read_byte(self, register: int) -> int:
        """Read one unsigned byte (0-255) from a register.

        Args:
            register: Register address (0-255).

        Returns:
            Unsigned byte value.

        Raises:
            TransportError: If the bus transaction fails.
        """
        ...

    def read_word(self, register: int) -> int:
        """Read one unsigned 16-bit SMBus word (0-65535).

        SMBus words are little-endian: the byte at ``register`` is the
        low byte and the byte at ``register + 1`` the high byte.

        Args:
            register: Register address of the low byte.

        Returns:
            Unsigned word value. Callers sign-extend where needed.

        Raises:
            TransportError: If the bus transaction fails.
        """
        ...

    def read_buffer(self, register: int, length: int) -> bytes:
        """Read ``length`` consecutive bytes starting at a register.

        Args:
            register: First register address.
            length: Number of bytes to read (1-32).

        Returns:
            A new bytes object of exactly ``length`` bytes.

        Raises:
            TransportError: If the bus transaction fails.
        """
        ...

    def write_byte(self, register: int, value: int) -> None:
        """Write one byte to a register.

        Raises:
            TransportError: If the bus transaction fails.
        """
        ...

    def write_buffer(self, register: int, data: bytes) -> None:
        """Write bytes starting at a register.

        An empty ``data`` sends the register address alone, which some
        devices treat as a command (e.g. CCS811 APP_START).

        Raises:
            TransportError: If the bus transaction fails.
        """
        ...

    def close(self) -> None:
        """Release the underlying bus handle.

        Raises:
            TransportError: If the bus cannot be closed cleanly.
        """
        ...


@contextmanager
def _bus_errors(operation: str, address: int, register: int | None) -> Iterator[None]:
    """Translate OSError from the bus into TransportError."""
    try:
        yield
    except OSError as e:
        where = f" register 0x{register:02X}" if register is not None else ""
        raise TransportError(
            f"I2C {operation} failed at 0x{address:02X}{where}: {e}"
        ) from e


class SMBusRegisterPort:
    """RegisterPort backed by an smbus2.SMBus handle.

    Owns the SMBus handle it is given. Closing the port closes the bus.

    Testing:
        Pass any object with the smbus2.SMBus method names (a MagicMock
        works) to the constructor instead of opening a real bus.
    """

    def __init__(self, bus: Any, address: int) -> None:
        """Wrap an open SMBus handle for one device address.

        Args:
            bus: Open smbus2.SMBus instance (or compatible double).
            address: 7-bit I2C address of the device.
        """
        self._bus = bus
        self.address = address

    def read_byte(self, register: int) -> int:
        with _bus_errors("read_byte", self.address, register):
            return int(self._bus.read_byte_data(self.address, register)) & 0xFF

    def read_word(self, register: int) -> int:
        with _bus_errors("read_word", self.address, register):
            return int(self._bus.read_word_data(self.address, register)) & 0xFFFF

    def read_buffer(self, register: int, length: int) -> bytes:
        with _bus_errors("read_buffer", self.address, register):
            data = self._bus.read_i2c_block_data(self.address, register, length)
        return bytes(data)

    def write_byte(self, register: int, value: int) -> None:
        with _bus_errors("write_byte", self.address, register):
            self._bus.write_byte_data(self.address, register, value & 0xFF)

    def write_buffer(self, register: int, data: bytes) -> None:
        with _bus_errors("write_buffer", self.address, register):
            if data:
                self._bus.write_i2c_block_data(self.address, register, list(data))
            else:
                # SMBus "send byte": the register address is the whole message
                self._bus.write_byte(self.address, register)

    def close(self) -> None:
        with _bus_errors("close", self.address, None):
            self._bus.close()

    def __repr__(self) -> str:
        return f"SMBusRegisterPort(address=0x{self.address:02X})"


def open_register_port(bus: int | str, address: int) -> SMBusRegisterPort:
    """Open an I2C bus and return a RegisterPort for one device.

    Args:
        bus: Bus number (e.g. 1) or device path (e.g. "/dev/i2c-1").
        address: 7-bit I2C address of the device.

    Returns:
        SMBusRegisterPort owning a freshly opened smbus2.SMBus.

    Raises:
        TransportError: If the bus cannot be opened.

    Example:
        >>> port = open_register_port(1, 0x40)
        >>> driver = Htu21d(port)
    """
    from smbus2 import SMBus

    try:
        handle = SMBus(bus)
    except OSError as e:
        raise TransportError(f"Failed to open I2C bus {bus}: {e}") from e

    logger.debug("I2C bus opened", bus=bus, address=address)
    return SMBusRegisterPort(handle, address)


__all__ = [
    "RegisterPort",
    "SMBusRegisterPort",
    "open_register_port",
]
