"""BMP280 / BME280 pressure, temperature and humidity sensor driver.

Hardware: Bosch BMP280 (pressure + temperature) and BME280 (pressure +
temperature + humidity). Both share the register map; the chip id at
0xD0 tells them apart and decides whether humidity is available.

Measurements are disabled after power-on: every oversampling setting is
SKIPPED until the caller enables it, and reading a disabled quantity
raises ConfigurationError without touching the bus.

Pressure and humidity compensation need the "fine temperature" from the
temperature formula, so every read of either quantity samples and
compensates temperature first, within the same locked sequence.

Example:
    from envsensors.drivers.sensors import Bmx280, Oversampling, PowerMode

    with Bmx280.open(1) as sensor:
        sensor.set_temperature_oversampling(Oversampling.X2)
        sensor.set_pressure_oversampling(Oversampling.X16)
        sensor.set_mode(PowerMode.NORMAL)
        temperature, pressure = sensor.read_temperature_and_pressure()
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from envsensors.drivers.errors import ConfigurationError, UnsupportedOperationError
from envsensors.drivers.i2c import RegisterPort
from envsensors.drivers.sensors.base import RegisterDevice
from envsensors.drivers.sensors.calibration import (
    Bmx280Calibration,
    load_bmx280_calibration,
)
from envsensors.drivers.sensors.compensation import (
    compensate_bmx280_humidity,
    compensate_bmx280_pressure,
    compensate_bmx280_temperature,
)
from envsensors.drivers.sensors.types import (
    CHIP_ID_BME280,
    CHIP_ID_BMP280,
    ChipVariant,
    EnvironmentalReading,
    Oversampling,
    PowerMode,
)

__all__ = ["Bmx280"]

# Registers
REG_ID = 0xD0
REG_CTRL_HUM = 0xF2
REG_CTRL_MEAS = 0xF4
REG_PRESS = 0xF7
REG_TEMP = 0xFA
REG_HUM = 0xFD

# ctrl_meas / ctrl_hum fields
POWER_MODE_MASK = 0b0000_0011
OVERSAMPLING_PRESSURE_MASK = 0b0001_1100
OVERSAMPLING_PRESSURE_SHIFT = 2
OVERSAMPLING_TEMPERATURE_MASK = 0b1110_0000
OVERSAMPLING_TEMPERATURE_SHIFT = 5
OVERSAMPLING_HUMIDITY_MASK = 0b0000_0111


class Bmx280(RegisterDevice):
    """Driver for the BMP280 and BME280 environmental sensors.

    Bring-up reads the chip id and the factory calibration. An unknown
    chip id is treated as a BMP280 (no humidity) and logged.

    Attributes:
        chip_id: Raw value of the id register.
        variant: ChipVariant derived from the chip id.
        calibration: Immutable factory calibration.
    """

    SENSOR_TYPE = "bmx280"
    SENSOR_NAME = "BMP280/BME280"
    DEFAULT_I2C_ADDRESS = 0x77
    CAPABILITIES = ("temperature", "pressure", "humidity")

    # Datasheet limits
    # https://cdn-shop.adafruit.com/datasheets/BST-BMP280-DS001-11.pdf
    MIN_TEMP_C = -40.0
    MAX_TEMP_C = 85.0
    MIN_PRESSURE_HPA = 300.0
    MAX_PRESSURE_HPA = 1100.0
    MAX_POWER_CONSUMPTION_TEMP_UA = 325.0
    MAX_POWER_CONSUMPTION_PRESSURE_UA = 720.0
    MAX_FREQ_HZ = 181.0
    MIN_FREQ_HZ = 23.1

    def _connect(self, port: RegisterPort) -> None:
        self._mode = PowerMode.SLEEP
        self._temperature_oversampling = Oversampling.SKIPPED
        self._pressure_oversampling = Oversampling.SKIPPED
        self._humidity_oversampling = Oversampling.SKIPPED

        self.chip_id = port.read_byte(REG_ID) & 0xFF
        self.variant = ChipVariant.from_chip_id(self.chip_id)
        if self.chip_id not in (CHIP_ID_BMP280, CHIP_ID_BME280):
            self._log.warning(
                "Unknown chip id, assuming no humidity support",
                chip_id=f"0x{self.chip_id:02X}",
            )

        self.calibration: Bmx280Calibration = load_bmx280_calibration(
            port, self.variant.has_humidity
        )

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> PowerMode:
        """Power mode last written to the device."""
        return self._mode

    @property
    def temperature_oversampling(self) -> Oversampling:
        return self._temperature_oversampling

    @property
    def pressure_oversampling(self) -> Oversampling:
        return self._pressure_oversampling

    @property
    def humidity_oversampling(self) -> Oversampling:
        return self._humidity_oversampling

    def set_mode(self, mode: PowerMode) -> None:
        """Set the power mode (ctrl_meas bits 1:0).

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If the register access fails.
        """
        mode = PowerMode(mode)
        with self._lock:
            self._update_register(REG_CTRL_MEAS, POWER_MODE_MASK, 0, mode)
            self._mode = mode
        self._log.debug("Power mode set", mode=mode.name)

    def set_temperature_oversampling(self, oversampling: Oversampling) -> None:
        """Set temperature oversampling (ctrl_meas bits 7:5).

        SKIPPED disables temperature measurement, and with it pressure
        and humidity, which depend on it.
        """
        oversampling = Oversampling(oversampling)
        with self._lock:
            self._update_register(
                REG_CTRL_MEAS,
                OVERSAMPLING_TEMPERATURE_MASK,
                OVERSAMPLING_TEMPERATURE_SHIFT,
                oversampling,
            )
            self._temperature_oversampling = oversampling
        self._log.debug(
            "Oversampling set", channel="temperature", level=oversampling.name
        )

    def set_pressure_oversampling(self, oversampling: Oversampling) -> None:
        """Set pressure oversampling (ctrl_meas bits 4:2)."""
        oversampling = Oversampling(oversampling)
        with self._lock:
            self._update_register(
                REG_CTRL_MEAS,
                OVERSAMPLING_PRESSURE_MASK,
                OVERSAMPLING_PRESSURE_SHIFT,
                oversampling,
            )
            self._pressure_oversampling = oversampling
        self._log.debug("Oversampling set", channel="pressure", level=oversampling.name)

    def set_humidity_oversampling(self, oversampling: Oversampling) -> None:
        """Set humidity oversampling (ctrl_hum bits 2:0). BME280 only.

        The device applies ctrl_hum changes on the next write to
        ctrl_meas, i.e. the next set_mode() or oversampling change.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            UnsupportedOperationError: If the chip has no humidity sensor.
            TransportError: If the register access fails.
        """
        oversampling = Oversampling(oversampling)
        with self._lock:
            self._require_open()
            self._require_humidity()
            self._update_register(
                REG_CTRL_HUM, OVERSAMPLING_HUMIDITY_MASK, 0, oversampling
            )
            self._humidity_oversampling = oversampling
        self._log.debug("Oversampling set", channel="humidity", level=oversampling.name)

    # -------------------------------------------------------------------------
    # Measurement
    # -------------------------------------------------------------------------

    def _require_humidity(self) -> None:
        if not self.variant.has_humidity:
            raise UnsupportedOperationError(
                f"Chip id 0x{self.chip_id:02X} does not support humidity measurement"
            )

    @staticmethod
    def _require_enabled(oversampling: Oversampling, channel: str) -> None:
        if oversampling == Oversampling.SKIPPED:
            raise ConfigurationError(f"{channel} oversampling is skipped")

    def _sample_temperature(self) -> tuple[float, float]:
        """Sample and compensate temperature. Caller holds the lock."""
        raw = self._read_sample(REG_TEMP, 3)
        return compensate_bmx280_temperature(raw, self.calibration.temperature)

    def _sample_pressure(self, fine: float) -> float:
        raw = self._read_sample(REG_PRESS, 3)
        return compensate_bmx280_pressure(raw, fine, self.calibration.pressure)

    def _sample_humidity(self, fine: float) -> float:
        raw = self._read_sample(REG_HUM, 2)
        return compensate_bmx280_humidity(raw, fine, self.calibration.humidity)

    def read_temperature(self) -> float:
        """Read the current temperature in degrees Celsius.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            ConfigurationError: If temperature oversampling is SKIPPED.
            TransportError: If the read fails.
        """
        with self._lock:
            self._require_open()
            self._require_enabled(self._temperature_oversampling, "temperature")
            temperature, _ = self._sample_temperature()
        return temperature

    def read_pressure(self) -> float:
        """Read the current barometric pressure in hPa.

        Samples temperature as well; prefer read_temperature_and_pressure()
        when both are needed.
        """
        return self.read_temperature_and_pressure()[1]

    def read_humidity(self) -> float:
        """Read the current relative humidity in %RH. BME280 only."""
        return self.read_temperature_and_humidity()[1]

    def read_temperature_and_pressure(self) -> tuple[float, float]:
        """Read temperature and pressure from one locked sequence.

        Returns:
            (temperature_c, pressure_hpa)

        Raises:
            DeviceNotOpenError: If the driver is closed.
            ConfigurationError: If temperature or pressure oversampling
                is SKIPPED. Raised before any register read.
            TransportError: If a read fails.
        """
        with self._lock:
            self._require_open()
            self._require_enabled(self._temperature_oversampling, "temperature")
            self._require_enabled(self._pressure_oversampling, "pressure")
            temperature, fine = self._sample_temperature()
            pressure = self._sample_pressure(fine)
        return temperature, pressure

    def read_temperature_and_humidity(self) -> tuple[float, float]:
        """Read temperature and humidity from one locked sequence.

        Returns:
            (temperature_c, humidity_rh)

        Raises:
            DeviceNotOpenError: If the driver is closed.
            UnsupportedOperationError: If the chip has no humidity sensor.
            ConfigurationError: If temperature or humidity oversampling
                is SKIPPED.
            TransportError: If a read fails.
        """
        with self._lock:
            self._require_open()
            self._require_humidity()
            self._require_enabled(self._temperature_oversampling, "temperature")
            self._require_enabled(self._humidity_oversampling, "humidity")
            temperature, fine = self._sample_temperature()
            humidity = self._sample_humidity(fine)
        return temperature, humidity

    def read_temperature_pressure_and_humidity(self) -> tuple[float, float, float]:
        """Read all three quantities from one locked sequence. BME280 only.

        Returns:
            (temperature_c, pressure_hpa, humidity_rh)
        """
        with self._lock:
            self._require_open()
            self._require_humidity()
            self._require_enabled(self._temperature_oversampling, "temperature")
            self._require_enabled(self._pressure_oversampling, "pressure")
            self._require_enabled(self._humidity_oversampling, "humidity")
            temperature, fine = self._sample_temperature()
            pressure = self._sample_pressure(fine)
            humidity = self._sample_humidity(fine)
        return temperature, pressure, humidity

    def read(self) -> EnvironmentalReading:
        """Read every enabled quantity into an EnvironmentalReading.

        Temperature must be enabled. Pressure and humidity are included
        when their oversampling is enabled (and, for humidity, when the
        chip supports it); otherwise they are None.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            ConfigurationError: If temperature oversampling is SKIPPED.
            TransportError: If a read fails.
        """
        with self._lock:
            self._require_open()
            self._require_enabled(self._temperature_oversampling, "temperature")
            temperature, fine = self._sample_temperature()
            pressure = None
            humidity = None
            if self._pressure_oversampling != Oversampling.SKIPPED:
                pressure = self._sample_pressure(fine)
            if (
                self.variant.has_humidity
                and self._humidity_oversampling != Oversampling.SKIPPED
            ):
                humidity = self._sample_humidity(fine)
        return EnvironmentalReading(
            temperature=temperature,
            pressure=pressure,
            humidity=humidity,
            timestamp=datetime.now(UTC),
        )

    # -------------------------------------------------------------------------
    # Info
    # -------------------------------------------------------------------------

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        capabilities = ["temperature", "pressure"]
        if self.variant.has_humidity:
            capabilities.append("humidity")
        info.update(
            {
                "name": self.variant.name,
                "chip_id": self.chip_id,
                "variant": self.variant.value,
                "capabilities": capabilities,
                "temperature_range_c": (self.MIN_TEMP_C, self.MAX_TEMP_C),
                "pressure_range_hpa": (self.MIN_PRESSURE_HPA, self.MAX_PRESSURE_HPA),
            }
        )
        return info

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        status.update(
            {
                "mode": self._mode.name,
                "temperature_oversampling": self._temperature_oversampling.name,
                "pressure_oversampling": self._pressure_oversampling.name,
                "humidity_oversampling": self._humidity_oversampling.name,
            }
        )
        return status
