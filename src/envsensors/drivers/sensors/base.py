"""Shared lifecycle for register-based sensor drivers.

RegisterDevice owns one RegisterPort from construction until close().
Subclasses implement _connect() with their bring-up sequence and build
their query API on _read_sample() and _update_register().

Lifecycle:
    Driver(port)  -> Open    (bring-up succeeded)
                  -> raises  (bring-up failed, port already released)
    close()       -> Closed  (irreversible, idempotent)

Every I/O helper here checks the open state before touching the port
and holds the driver's re-entrant lock for the whole transaction, so a
combined read (temperature then pressure, say) can hold the lock across
several samples without interleaving with another thread.

Example:
    with Bmx280.open(1) as sensor:
        sensor.set_temperature_oversampling(Oversampling.X1)
        print(sensor.read_temperature())
"""

from __future__ import annotations

import threading
from types import TracebackType
from typing import Any, ClassVar, Self

from envsensors.drivers.errors import BringUpError, DeviceNotOpenError
from envsensors.drivers.i2c import RegisterPort, open_register_port
from envsensors.drivers.sensors.codec import assemble_sample, replace_field
from envsensors.observability import get_logger

logger = get_logger(__name__)

__all__ = ["RegisterDevice"]


class RegisterDevice:
    """Base class for drivers talking to one device through a RegisterPort.

    Subclasses set the class attributes and implement ``_connect``.

    Attributes:
        SENSOR_TYPE: Short type string used in logs and info dicts.
        SENSOR_NAME: Human-readable sensor name.
        DEFAULT_I2C_ADDRESS: Address used by ``open`` when none is given.
        CAPABILITIES: Quantities the sensor family can measure.

    Thread Safety:
        Reads, configuration changes and close are serialized by a
        per-instance RLock. One instance may be shared between threads.
    """

    SENSOR_TYPE: ClassVar[str] = "i2c"
    SENSOR_NAME: ClassVar[str] = "I2C sensor"
    DEFAULT_I2C_ADDRESS: ClassVar[int] = 0x00
    CAPABILITIES: ClassVar[tuple[str, ...]] = ()

    def __init__(self, port: RegisterPort, address: int | None = None) -> None:
        """Take ownership of an open port and run the bring-up sequence.

        Business context: Drivers are constructed ready to use or not at
        all. A half-initialised device would leave the bus handle open
        with nobody responsible for closing it, so on any bring-up
        failure the port is released here before the error propagates.

        Args:
            port: Already-opened register port for the device. Ownership
                passes to the driver, even when construction fails.
            address: I2C address, for identification only. Defaults to
                the port's ``address`` attribute when it has one.

        Raises:
            BringUpError: If bring-up fails. Transport failures are
                chained as ``__cause__``.

        Example:
            >>> port = open_register_port(1, 0x40)
            >>> sensor = Htu21d(port)
        """
        self._port: RegisterPort | None = port
        self._address: int | None = (
            address if address is not None else getattr(port, "address", None)
        )
        self._lock = threading.RLock()
        self._log = logger.bind(
            sensor=self.SENSOR_TYPE, address=self._format_address()
        )

        try:
            self._connect(port)
        except BringUpError as e:
            self._release_after_failure(e)
            raise
        except OSError as e:
            self._release_after_failure(e)
            raise BringUpError(f"{self.SENSOR_NAME} bring-up failed: {e}") from e
        except Exception as e:
            self._release_after_failure(e)
            raise

        self._log.info("Sensor connected")

    @classmethod
    def open(cls, bus: int | str, address: int | None = None) -> Self:
        """Open the I2C bus and construct a driver for the device.

        Args:
            bus: Bus number (1) or device path ("/dev/i2c-1").
            address: I2C address. Defaults to ``DEFAULT_I2C_ADDRESS``.

        Returns:
            Connected driver instance.

        Raises:
            TransportError: If the bus cannot be opened.
            BringUpError: If the device does not complete bring-up.
        """
        if address is None:
            address = cls.DEFAULT_I2C_ADDRESS
        port = open_register_port(bus, address)
        return cls(port, address=address)

    def _connect(self, port: RegisterPort) -> None:
        """Run the sensor-specific bring-up sequence.

        Called once from ``__init__`` while the port is owned but before
        the driver is handed to the caller.
        """
        raise NotImplementedError

    def _release_after_failure(self, error: BaseException) -> None:
        """Close the port after a failed bring-up.

        A failure while closing is logged and dropped so the original
        bring-up error is the one the caller sees.
        """
        port, self._port = self._port, None
        self._log.error("Sensor bring-up failed", error=str(error))
        if port is None:
            return
        try:
            port.close()
        except Exception as e:  # noqa: BLE001
            self._log.warning(
                "Failed to release port after bring-up failure", error=str(e)
            )

    def _require_open(self) -> RegisterPort:
        """Return the owned port, or raise if the driver is closed.

        Raises:
            DeviceNotOpenError: If close() has been called.
        """
        port = self._port
        if port is None:
            raise DeviceNotOpenError()
        return port

    def _read_sample(self, register: int, length: int) -> int:
        """Read and assemble one raw ADC sample.

        Args:
            register: First data register of the sample.
            length: 2 for a 16-bit sample, 3 for a 20-bit sample.

        Returns:
            Unsigned raw sample.

        Raises:
            DeviceNotOpenError: If the driver is closed (no I/O happens).
            TransportError: If the register read fails.
        """
        with self._lock:
            port = self._require_open()
            return assemble_sample(port.read_buffer(register, length))

    def _update_register(self, register: int, mask: int, shift: int, value: int) -> int:
        """Read-modify-write one bit field of a control register.

        Args:
            register: Control register address.
            mask: Field mask in register position.
            shift: Bit position of the field.
            value: New (unshifted) field value.

        Returns:
            The byte written back.

        Raises:
            DeviceNotOpenError: If the driver is closed (no I/O happens).
            TransportError: If the read or the write fails.
        """
        with self._lock:
            port = self._require_open()
            current = port.read_byte(register)
            updated = replace_field(current, mask, shift, value)
            port.write_byte(register, updated)
            self._log.debug(
                "Register updated",
                register=f"0x{register:02X}",
                before=f"0x{current:02X}",
                after=f"0x{updated:02X}",
            )
            return updated

    @property
    def is_open(self) -> bool:
        """Whether the driver still owns its register port."""
        return self._port is not None

    @property
    def address(self) -> int | None:
        """I2C address of the device, if known."""
        return self._address

    def _format_address(self) -> str | None:
        return f"0x{self._address:02X}" if self._address is not None else None

    def get_info(self) -> dict[str, Any]:
        """Get sensor identification and capabilities.

        Subclasses extend the returned dict with chip details.

        Raises:
            DeviceNotOpenError: If the driver is closed.
        """
        self._require_open()
        return {
            "type": self.SENSOR_TYPE,
            "name": self.SENSOR_NAME,
            "address": self._address,
            "capabilities": list(self.CAPABILITIES),
        }

    def get_status(self) -> dict[str, Any]:
        """Get driver status.

        Raises:
            DeviceNotOpenError: If the driver is closed.
        """
        self._require_open()
        return {
            "connected": True,
            "type": self.SENSOR_TYPE,
            "address": self._address,
        }

    def close(self) -> None:
        """Close the driver and release the register port.

        Only the first call closes the port; later calls return without
        doing anything. The driver is closed even if the port raises.

        Raises:
            TransportError: If the port fails to close.
        """
        with self._lock:
            port, self._port = self._port, None
            if port is None:
                return
            port.close()
        self._log.info("Sensor closed")

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"{type(self).__name__}(address={self._format_address()}, {state})"
