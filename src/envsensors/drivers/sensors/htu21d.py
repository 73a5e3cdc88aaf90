"""HTU21D temperature and humidity sensor driver.

Hardware: TE Connectivity HTU21D(F)
- Temperature: -40 to +125 C
- Relative humidity: 0 to 100 %RH
- Default I2C address 0x40

The HTU21D has no calibration registers; the conversion formulas use
fixed datasheet coefficients (see compensation.py). Measurements are
triggered in "no hold master" mode and read back as two bytes.

Example:
    from envsensors.drivers.sensors import Htu21d

    with Htu21d.open(1) as sensor:
        temperature, humidity = sensor.read_temperature_and_humidity()
        print(f"{temperature:.2f} C, {humidity:.1f} %RH")
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from envsensors.drivers.i2c import RegisterPort
from envsensors.drivers.sensors.base import RegisterDevice
from envsensors.drivers.sensors.codec import decode_resolution, encode_resolution
from envsensors.drivers.sensors.compensation import (
    compensate_htu21d_humidity,
    compensate_htu21d_temperature,
)
from envsensors.drivers.sensors.types import EnvironmentalReading, Resolution

__all__ = ["Htu21d"]

# Registers / commands
REG_TEMP_NO_HOLD = 0xF3
REG_HUM_NO_HOLD = 0xF5
REG_USER_WRITE = 0xE6
REG_USER_READ = 0xE7
CMD_SOFT_RESET = 0xFE


class Htu21d(RegisterDevice):
    """Driver for the HTU21D temperature and humidity sensor.

    Bring-up reads the current resolution from the user register and
    issues a soft reset. The reset puts the device back to RH12_T14,
    so ``resolution`` starts there whatever was read before it.
    """

    SENSOR_TYPE = "htu21d"
    SENSOR_NAME = "HTU21D"
    DEFAULT_I2C_ADDRESS = 0x40
    CAPABILITIES = ("temperature", "humidity")

    # Datasheet limits
    # https://cdn-shop.adafruit.com/datasheets/1899_HTU21D.pdf
    MIN_TEMP_C = -40.0
    MAX_TEMP_C = 125.0
    MIN_RH = 0.0
    MAX_RH = 100.0
    MAX_POWER_CONSUMPTION_UA = 500.0

    def _connect(self, port: RegisterPort) -> None:
        previous = decode_resolution(port.read_byte(REG_USER_READ))
        port.write_buffer(CMD_SOFT_RESET, b"")
        self._resolution = Resolution.RH12_T14
        if previous is not self._resolution:
            self._log.debug(
                "Soft reset restored default resolution", previous=previous.name
            )

    @property
    def resolution(self) -> Resolution:
        """Measurement resolution currently set on the device."""
        return self._resolution

    def set_resolution(self, resolution: Resolution) -> None:
        """Set the humidity/temperature measurement resolution.

        Reads the user register, replaces bits 7 and 0 and writes it
        back. Heater and battery bits are preserved.

        Args:
            resolution: New resolution.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If the register access fails.
        """
        resolution = Resolution(resolution)
        with self._lock:
            port = self._require_open()
            current = port.read_byte(REG_USER_READ)
            port.write_byte(REG_USER_WRITE, encode_resolution(current, resolution))
            self._resolution = resolution
        self._log.debug("Resolution set", resolution=resolution.name)

    def read_temperature(self) -> float:
        """Read the current temperature in degrees Celsius.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If the read fails.
        """
        return compensate_htu21d_temperature(self._read_sample(REG_TEMP_NO_HOLD, 2))

    def read_humidity(self) -> float:
        """Read the current relative humidity in %RH.

        Raises:
            DeviceNotOpenError: If the driver is closed.
            TransportError: If the read fails.
        """
        return compensate_htu21d_humidity(self._read_sample(REG_HUM_NO_HOLD, 2))

    def read_temperature_and_humidity(self) -> tuple[float, float]:
        """Read temperature and humidity as one locked sequence.

        Returns:
            (temperature_c, humidity_rh)
        """
        with self._lock:
            raw_temp = self._read_sample(REG_TEMP_NO_HOLD, 2)
            raw_hum = self._read_sample(REG_HUM_NO_HOLD, 2)
        return (
            compensate_htu21d_temperature(raw_temp),
            compensate_htu21d_humidity(raw_hum),
        )

    def read(self) -> EnvironmentalReading:
        """Read both quantities into a timestamped EnvironmentalReading."""
        temperature, humidity = self.read_temperature_and_humidity()
        return EnvironmentalReading(
            temperature=temperature,
            humidity=humidity,
            timestamp=datetime.now(UTC),
        )

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        info.update(
            {
                "temperature_range_c": (self.MIN_TEMP_C, self.MAX_TEMP_C),
                "humidity_range_rh": (self.MIN_RH, self.MAX_RH),
                "max_power_consumption_ua": self.MAX_POWER_CONSUMPTION_UA,
            }
        )
        return info

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        status["resolution"] = self._resolution.name
        return status
