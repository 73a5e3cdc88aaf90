"""Lifecycle tests for RegisterDevice.

Covers the open/closed state machine shared by every driver: bring-up
failure handling, idempotent close, closed-state guards, context
manager use and the open() classmethod.

The HTU21D is used as the concrete driver where real bring-up I/O is
needed; a minimal subclass covers the generic error paths.
"""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest

from envsensors.drivers.errors import (
    BringUpError,
    DeviceNotOpenError,
    IllegalStateError,
    TransportError,
)
from envsensors.drivers.i2c import RegisterPort
from envsensors.drivers.sensors import Htu21d, RegisterDevice
from envsensors.drivers.sensors.twin import SimulatedRegisterPort, htu21d_port


class _StubDevice(RegisterDevice):
    """Driver whose bring-up reads one byte, or raises a given error."""

    SENSOR_TYPE = "stub"
    SENSOR_NAME = "Stub"
    CAPABILITIES = ("temperature",)

    error: Exception | None = None

    def _connect(self, port: RegisterPort) -> None:
        if self.error is not None:
            raise self.error
        port.read_byte(0x00)


class TestBringUp:
    """Tests for construction and bring-up failure handling."""

    def test_successful_bring_up_is_open(
        self, htu21d_twin: SimulatedRegisterPort, log_stream: io.StringIO
    ) -> None:
        """Verifies a successful bring-up leaves the driver open and logged.

        Assertion Strategy:
        - is_open is True and the port is untouched by close().
        - "Sensor connected" is logged with the sensor type.
        """
        sensor = Htu21d(htu21d_twin)

        assert sensor.is_open
        assert htu21d_twin.close_calls == 0
        assert "Sensor connected" in log_stream.getvalue()
        assert "sensor=htu21d" in log_stream.getvalue()

    def test_transport_failure_becomes_bring_up_error(
        self, htu21d_twin: SimulatedRegisterPort
    ) -> None:
        """Verifies a transport fault during bring-up is wrapped and chained.

        Arrangement:
        1. The HTU21D user register read (0xE7) fails.

        Action:
        Construct the driver.

        Assertion Strategy:
        - BringUpError is raised, naming the sensor.
        - __cause__ is the original TransportError.
        - The port was closed exactly once.

        Testing Principle:
        A failed constructor must not leak the bus handle.
        """
        htu21d_twin.fail_registers.add(0xE7)

        with pytest.raises(BringUpError, match="HTU21D bring-up failed") as exc_info:
            Htu21d(htu21d_twin)

        assert isinstance(exc_info.value.__cause__, TransportError)
        assert htu21d_twin.close_calls == 1

    def test_bring_up_error_propagates_unchanged(self) -> None:
        """Verifies a BringUpError from _connect is not re-wrapped."""
        port = SimulatedRegisterPort()
        original = BringUpError("device says no")

        class Refusing(_StubDevice):
            error = original

        with pytest.raises(BringUpError) as exc_info:
            Refusing(port)

        assert exc_info.value is original
        assert port.closed

    def test_unexpected_error_propagates_and_releases(self) -> None:
        """Verifies non-I/O errors propagate as-is after releasing the port."""
        port = SimulatedRegisterPort()

        class Broken(_StubDevice):
            error = ValueError("bad image")

        with pytest.raises(ValueError, match="bad image"):
            Broken(port)

        assert port.close_calls == 1

    def test_close_failure_during_release_is_logged(
        self, log_stream: io.StringIO
    ) -> None:
        """Verifies a failing close does not mask the bring-up error.

        Arrangement:
        1. Every port operation fails, including close().

        Action:
        Construct the driver.

        Assertion Strategy:
        - The bring-up error is what the caller sees.
        - The close failure is logged as a warning.

        Testing Principle:
        The first failure is the useful one; cleanup noise goes to logs.
        """
        port = SimulatedRegisterPort()
        port.fail_all = True
        port.fail_close = True

        with pytest.raises(BringUpError):
            _StubDevice(port)

        output = log_stream.getvalue()
        assert "Sensor bring-up failed" in output
        assert "Failed to release port after bring-up failure" in output

    def test_address_defaults_to_port_address(self) -> None:
        sensor = _StubDevice(SimulatedRegisterPort(address=0x33))

        assert sensor.address == 0x33

    def test_explicit_address_wins(self) -> None:
        sensor = _StubDevice(SimulatedRegisterPort(address=0x33), address=0x44)

        assert sensor.address == 0x44


class TestClose:
    """Tests for close() and the closed state."""

    def test_close_is_idempotent(self, htu21d: Htu21d) -> None:
        """Verifies only the first close() reaches the port.

        Assertion Strategy:
        close_calls stays at 1 after three close() calls.
        """
        port = htu21d._port
        assert isinstance(port, SimulatedRegisterPort)

        htu21d.close()
        htu21d.close()
        htu21d.close()

        assert port.close_calls == 1
        assert not htu21d.is_open

    def test_reads_after_close_raise_without_io(
        self, htu21d: Htu21d, htu21d_twin: SimulatedRegisterPort
    ) -> None:
        """Verifies a closed driver raises before touching the port.

        Arrangement:
        1. Connected driver, then closed.
        2. Snapshot of the port's read/write counts.

        Action:
        Call each query and configuration operation.

        Assertion Strategy:
        - Each raises DeviceNotOpenError ("I2C device not open").
        - No reads or writes were recorded after close.
        """
        htu21d.close()
        reads = len(htu21d_twin.reads)
        writes = len(htu21d_twin.writes)

        for operation in (
            htu21d.read_temperature,
            htu21d.read_humidity,
            htu21d.read,
            htu21d.get_info,
            htu21d.get_status,
        ):
            with pytest.raises(DeviceNotOpenError, match="I2C device not open"):
                operation()

        assert len(htu21d_twin.reads) == reads
        assert len(htu21d_twin.writes) == writes

    def test_not_open_error_is_illegal_state(self, htu21d: Htu21d) -> None:
        """Verifies callers can catch the closed state as IllegalStateError."""
        htu21d.close()

        with pytest.raises(IllegalStateError):
            htu21d.read_temperature()

    def test_close_failure_still_closes(
        self, htu21d: Htu21d, htu21d_twin: SimulatedRegisterPort
    ) -> None:
        """Verifies a port close error surfaces but leaves the driver closed."""
        htu21d_twin.fail_close = True

        with pytest.raises(TransportError):
            htu21d.close()

        assert not htu21d.is_open
        htu21d.close()
        assert htu21d_twin.close_calls == 1

    def test_close_logs(self, htu21d: Htu21d, log_stream: io.StringIO) -> None:
        htu21d.close()

        assert "Sensor closed" in log_stream.getvalue()


class TestContextManagerAndOpen:
    """Tests for with-statement use and the open() classmethod."""

    def test_context_manager_closes(self, htu21d_twin: SimulatedRegisterPort) -> None:
        """Verifies leaving the with block closes the port."""
        with Htu21d(htu21d_twin) as sensor:
            assert sensor.is_open

        assert not sensor.is_open
        assert htu21d_twin.closed

    def test_context_manager_closes_on_error(
        self, htu21d_twin: SimulatedRegisterPort
    ) -> None:
        """Verifies the port is closed when the body raises."""
        with pytest.raises(KeyError), Htu21d(htu21d_twin):
            raise KeyError("boom")

        assert htu21d_twin.close_calls == 1

    def test_open_uses_default_address(self) -> None:
        """Verifies open() opens the bus at DEFAULT_I2C_ADDRESS.

        Arrangement:
        1. open_register_port patched to return a simulated HTU21D.

        Action:
        Htu21d.open(1).

        Assertion Strategy:
        - The port factory was called with (1, 0x40).
        - The driver is open and reports address 0x40.
        """
        with patch(
            "envsensors.drivers.sensors.base.open_register_port",
            return_value=htu21d_port(),
        ) as mock_open:
            sensor = Htu21d.open(1)

        mock_open.assert_called_once_with(1, 0x40)
        assert sensor.is_open
        assert sensor.address == 0x40

    def test_open_with_explicit_address(self) -> None:
        with patch(
            "envsensors.drivers.sensors.base.open_register_port",
            return_value=htu21d_port(),
        ) as mock_open:
            sensor = Htu21d.open("/dev/i2c-3", 0x41)

        mock_open.assert_called_once_with("/dev/i2c-3", 0x41)
        assert sensor.address == 0x41

    def test_open_bus_failure_propagates(self) -> None:
        """Verifies a bus that cannot be opened raises TransportError."""
        with (
            patch(
                "envsensors.drivers.sensors.base.open_register_port",
                side_effect=TransportError("no bus"),
            ),
            pytest.raises(TransportError, match="no bus"),
        ):
            Htu21d.open(7)


class TestInfoAndRepr:
    """Tests for the generic info/status/repr."""

    def test_base_info(self) -> None:
        sensor = _StubDevice(SimulatedRegisterPort(address=0x10))

        assert sensor.get_info() == {
            "type": "stub",
            "name": "Stub",
            "address": 0x10,
            "capabilities": ["temperature"],
        }
        assert sensor.get_status() == {
            "connected": True,
            "type": "stub",
            "address": 0x10,
        }

    def test_repr_tracks_state(self, htu21d: Htu21d) -> None:
        """Verifies repr shows the address and open/closed state."""
        assert repr(htu21d) == "Htu21d(address=0x40, open)"

        htu21d.close()

        assert repr(htu21d) == "Htu21d(address=0x40, closed)"

    def test_connect_not_implemented(self) -> None:
        """Verifies the base class cannot be used without _connect."""
        port = SimulatedRegisterPort()

        with pytest.raises(NotImplementedError):
            RegisterDevice(port)

        assert port.closed
