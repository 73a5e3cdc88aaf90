"""I2C environmental sensor drivers.

This module provides drivers for three register-based I2C sensors and
the pieces they are built from. Key components:

- Htu21d: temperature and humidity
- Bmx280: BMP280/BME280 pressure, temperature (and humidity)
- Ccs811: eCO2 and TVOC air quality
- SimulatedRegisterPort and the *_port builders: digital twin devices
- codec / compensation / calibration: pure decoding and conversion

Example:
    from envsensors.drivers.sensors import Bmx280, Oversampling

    # For real hardware
    with Bmx280.open(1) as sensor:
        sensor.set_temperature_oversampling(Oversampling.X1)
        print(sensor.read_temperature())

    # For testing (no hardware required)
    from envsensors.drivers.sensors import bmx280_port

    sensor = Bmx280(bmx280_port())
"""

# Import order: types first (avoid circular imports), then implementations
from envsensors.drivers.sensors.types import (
    CHIP_ID_BME280,
    CHIP_ID_BMP280,
    AirQualityReading,
    AlgorithmResult,
    ChipVariant,
    EnvironmentalReading,
    MeasurementMode,
    Oversampling,
    PowerMode,
    Resolution,
)

from envsensors.drivers.sensors.base import RegisterDevice
from envsensors.drivers.sensors.bmx280 import Bmx280
from envsensors.drivers.sensors.calibration import (
    Bmx280Calibration,
    load_bmx280_calibration,
)
from envsensors.drivers.sensors.ccs811 import CHIP_ID_CCS811, Ccs811
from envsensors.drivers.sensors.codec import Ccs811Error, describe_error
from envsensors.drivers.sensors.htu21d import Htu21d
from envsensors.drivers.sensors.twin import (
    DigitalTwinConfig,
    SimulatedRegisterPort,
    bmx280_port,
    ccs811_port,
    htu21d_port,
)

__all__ = [
    # Enums and constants
    "PowerMode",
    "Oversampling",
    "MeasurementMode",
    "Resolution",
    "ChipVariant",
    "CHIP_ID_BMP280",
    "CHIP_ID_BME280",
    "CHIP_ID_CCS811",
    # Data classes
    "AlgorithmResult",
    "EnvironmentalReading",
    "AirQualityReading",
    "Bmx280Calibration",
    # Drivers
    "RegisterDevice",
    "Htu21d",
    "Bmx280",
    "Ccs811",
    # Decoders
    "Ccs811Error",
    "describe_error",
    "load_bmx280_calibration",
    # Digital twin
    "DigitalTwinConfig",
    "SimulatedRegisterPort",
    "htu21d_port",
    "bmx280_port",
    "ccs811_port",
]
