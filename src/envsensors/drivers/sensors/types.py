"""Sensor type definitions.

This module contains the enums and data classes shared by
the sensor drivers. Keeping them separate avoids circular imports
between the drivers, the pure codec/compensation modules and the
digital twin.

Types defined here:
- PowerMode, Oversampling: BMx280 control register fields
- MeasurementMode: CCS811 drive mode
- Resolution: HTU21D measurement resolution
- ChipVariant: BMP280 vs BME280 capability tag
- EnvironmentalReading, AirQualityReading, AlgorithmResult: results

Every IntEnum value here is the encoding written to the device.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum


class PowerMode(IntEnum):
    """BMx280 power mode (ctrl_meas bits 1:0)."""

    SLEEP = 0b00
    FORCED = 0b01
    NORMAL = 0b11


class Oversampling(IntEnum):
    """BMx280 oversampling multiplier. SKIPPED disables the measurement."""

    SKIPPED = 0
    X1 = 1
    X2 = 2
    X4 = 3
    X8 = 4
    X16 = 5


class MeasurementMode(IntEnum):
    """CCS811 drive mode (MEAS_MODE bits 6:4)."""

    IDLE = 0  # Idle, low current mode
    EVERY_1S = 1  # Constant power, IAQ measurement every second
    EVERY_10S = 2  # Pulse heating, IAQ measurement every 10 seconds
    EVERY_60S = 3  # Low power pulse heating, every 60 seconds
    EVERY_250MS = 4  # Constant power, raw measurement every 250 ms


class Resolution(IntEnum):
    """HTU21D measurement resolution, humidity bits / temperature bits.

    The two-bit value is stored split across user register bit 7
    (high) and bit 0 (low).
    """

    RH12_T14 = 0b00
    RH8_T12 = 0b01
    RH10_T13 = 0b10
    RH11_T11 = 0b11


class ChipVariant(Enum):
    """BMx280 chip variant, decided once from the chip id register."""

    BMP280 = "bmp280"
    BME280 = "bme280"

    @property
    def has_humidity(self) -> bool:
        """Whether this variant has a humidity channel."""
        return self is ChipVariant.BME280

    @classmethod
    def from_chip_id(cls, chip_id: int) -> ChipVariant:
        """Map a chip id register value to a variant.

        Only 0x60 identifies a BME280. Every other id is treated as a
        pressure/temperature-only part.
        """
        if chip_id == CHIP_ID_BME280:
            return cls.BME280
        return cls.BMP280


#: Chip id register values for the BMx280 family.
CHIP_ID_BMP280 = 0x58
CHIP_ID_BME280 = 0x60


@dataclass(frozen=True)
class AlgorithmResult:
    """CCS811 algorithm result.

    Attributes:
        eco2_ppm: Equivalent CO2 in parts per million.
        tvoc_ppb: Total volatile organic compounds in parts per billion.
    """

    eco2_ppm: int
    tvoc_ppb: int


@dataclass
class EnvironmentalReading:
    """One combined environmental measurement.

    Quantities a sensor cannot measure, or that are disabled in its
    current configuration, are None.

    Attributes:
        temperature: Temperature in Celsius.
        pressure: Barometric pressure in hPa.
        humidity: Relative humidity in %RH.
        timestamp: When the reading was taken (UTC).
    """

    temperature: float
    timestamp: datetime
    pressure: float | None = None
    humidity: float | None = None


@dataclass
class AirQualityReading:
    """One CCS811 measurement with its timestamp."""

    eco2_ppm: int
    tvoc_ppb: int
    timestamp: datetime


__all__ = [
    "PowerMode",
    "Oversampling",
    "MeasurementMode",
    "Resolution",
    "ChipVariant",
    "CHIP_ID_BMP280",
    "CHIP_ID_BME280",
    "AlgorithmResult",
    "EnvironmentalReading",
    "AirQualityReading",
]
