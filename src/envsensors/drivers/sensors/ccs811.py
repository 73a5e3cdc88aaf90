"""CCS811 indoor air quality sensor driver.

Hardware: ams CCS811 metal-oxide gas sensor
- eCO2: 400 to 8192 ppm
- TVOC: 0 to 1187 ppb
- Default I2C address 0x5B (0x5A with ADDR low)

The CCS811 boots into its bootloader. Bring-up checks the status
register for errors and a valid application image, then sends the
APP_START command (a write with no data) to switch to application mode.
The nWAKE and nRESET lines are not handled here; nWAKE must be held low
by the board or the caller while talking to the device.

Example:
    from envsensors.drivers.sensors import Ccs811, MeasurementMode

    with Ccs811.open(1) as sensor:
        sensor.set_mode(MeasurementMode.EVERY_1S)
        if sensor.data_ready:
            result = sensor.read_algorithm_results()
            print(result.eco2_ppm, result.tvoc_ppb)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from envsensors.drivers.errors import BringUpError, TransportError
from envsensors.drivers.i2c import RegisterPort
from envsensors.drivers.sensors.base import RegisterDevice
from envsensors.drivers.sensors.codec import Ccs811Error, describe_error
from envsensors.drivers.sensors.compensation import (
    decode_algorithm_result,
    decode_version,
)
from envsensors.drivers.sensors.types import (
    AirQualityReading,
    AlgorithmResult,
    MeasurementMode,
)

__all__ = ["Ccs811", "CHIP_ID_CCS811"]

CHIP_ID_CCS811 = 0x81

# Registers
REG_STATUS = 0x00
REG_MEAS_MODE = 0x01
REG_ALG_RESULT_DATA = 0x02
REG_HW_ID = 0x20
REG_FW_BOOT_VERSION = 0x23
REG_FW_APP_VERSION = 0x24
REG_ERROR_ID = 0xE0
REG_APP_START = 0xF4
REG_SW_RESET = 0xFF

DRIVE_MODE_MASK = 0b0111_0000
DRIVE_MODE_SHIFT = 4

# STATUS bits
STATUS_ERROR = 1 << 0
STATUS_DATA_READY = 1 << 3
STATUS_APP_VALID = 1 << 4
STATUS_FW_MODE = 1 << 7

SW_RESET_SEQUENCE = bytes([0x11, 0xE5, 0x72, 0x8A])


class Ccs811(RegisterDevice):
    """Driver for the CCS811 air quality sensor.

    Attributes:
        chip_id: Value of the HW_ID register (0x81 on a genuine part).
    """

    SENSOR_TYPE = "ccs811"
    SENSOR_NAME = "CCS811"
    DEFAULT_I2C_ADDRESS = 0x5B
    CAPABILITIES = ("eco2", "tvoc")

    def _connect(self, port: RegisterPort) -> None:
        self._mode = MeasurementMode.IDLE
        self.chip_id = port.read_byte(REG_HW_ID) & 0xFF
        if self.chip_id != CHIP_ID_CCS811:
            self._log.warning("Unexpected hardware id", chip_id=f"0x{self.chip_id:02X}")
        self._start_application(port)

    def _start_application(self, port: RegisterPort) -> None:
        """Check STATUS and switch the device from boot to application mode.

        Raises:
            BringUpError: If STATUS reports an error (the message lists
                the ERROR_ID flags) or no valid application is present.
            TransportError: If a register access fails.
        """
        status = port.read_byte(REG_STATUS)
        if status & STATUS_ERROR:
            raise BringUpError(describe_error(port.read_byte(REG_ERROR_ID)))
        if not status & STATUS_APP_VALID:
            raise BringUpError("CCS811 application not valid")
        port.write_buffer(REG_APP_START, b"")

    def start_application(self) -> None:
        """Start the application firmware after a soft reset.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            BringUpError: If the device reports an error or has no valid
                application.
            TransportError: If a register access fails.
        """
        with self._lock:
            self._start_application(self._require_open())
        self._log.info("Application started")

    def soft_reset(self) -> None:
        """Reset the device into its bootloader.

        The measurement mode returns to IDLE. Call start_application()
        (after the device's 2 ms start-up time) before measuring again.
        """
        with self._lock:
            port = self._require_open()
            port.write_buffer(REG_SW_RESET, SW_RESET_SEQUENCE)
            self._mode = MeasurementMode.IDLE
        self._log.info("Soft reset issued")

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> MeasurementMode:
        """Measurement mode last written to the device."""
        return self._mode

    def set_mode(self, mode: MeasurementMode) -> None:
        """Set the drive mode (MEAS_MODE bits 6:4).

        Performs one read and one write of MEAS_MODE. Interrupt and
        threshold bits are preserved.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If the register access fails.
        """
        mode = MeasurementMode(mode)
        with self._lock:
            self._update_register(
                REG_MEAS_MODE, DRIVE_MODE_MASK, DRIVE_MODE_SHIFT, mode
            )
            self._mode = mode
        self._log.debug("Measurement mode set", mode=mode.name)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def _read_status(self) -> int:
        with self._lock:
            return self._require_open().read_byte(REG_STATUS)

    @property
    def data_ready(self) -> bool:
        """Whether a new algorithm result is available. Reads STATUS."""
        return bool(self._read_status() & STATUS_DATA_READY)

    def read_error(self) -> Ccs811Error:
        """Read and decode the ERROR_ID register.

        Returns:
            Ccs811Error flags; empty when no error is latched.
        """
        with self._lock:
            error_id = self._require_open().read_byte(REG_ERROR_ID)
        return Ccs811Error(error_id & 0x3F)

    def get_status(self) -> dict[str, Any]:
        """Get driver state plus the decoded STATUS register.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If STATUS cannot be read.
        """
        status = super().get_status()
        value = self._read_status()
        status.update(
            {
                "mode": self._mode.name,
                "error": bool(value & STATUS_ERROR),
                "data_ready": bool(value & STATUS_DATA_READY),
                "app_valid": bool(value & STATUS_APP_VALID),
                "firmware_mode": "application" if value & STATUS_FW_MODE else "boot",
            }
        )
        return status

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        info["chip_id"] = self.chip_id
        return info

    # -------------------------------------------------------------------------
    # Measurement
    # -------------------------------------------------------------------------

    def read_algorithm_results(self) -> AlgorithmResult:
        """Read the current eCO2 and TVOC values.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If the read fails.
        """
        with self._lock:
            buffer = self._require_open().read_buffer(REG_ALG_RESULT_DATA, 4)
        return decode_algorithm_result(buffer)

    def read(self) -> AirQualityReading:
        """Read the algorithm result into a timestamped AirQualityReading."""
        result = self.read_algorithm_results()
        return AirQualityReading(
            eco2_ppm=result.eco2_ppm,
            tvoc_ppb=result.tvoc_ppb,
            timestamp=datetime.now(UTC),
        )

    def _read_version(self, register: int) -> str | None:
        with self._lock:
            port = self._require_open()
            try:
                buffer = port.read_buffer(register, 2)
            except TransportError as e:
                self._log.debug(
                    "Version read failed",
                    register=f"0x{register:02X}",
                    error=str(e),
                )
                return None
        return decode_version(buffer)

    def read_boot_version(self) -> str | None:
        """Read the bootloader version as "major.minor.trivial".

        Returns:
            Version string, or None if the read fails.

        Raises:
            DeviceNotOpenError: If the driver is closed.
        """
        return self._read_version(REG_FW_BOOT_VERSION)

    def read_app_version(self) -> str | None:
        """Read the application firmware version, or None if the read fails."""
        return self._read_version(REG_FW_APP_VERSION)
