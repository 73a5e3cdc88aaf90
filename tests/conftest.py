"""Pytest configuration and fixtures for envsensors tests.

This module provides fixtures that apply across all test modules:
simulated register ports for each sensor, connected drivers built on
them, and isolation of the global logging and factory state.

No fixture touches a real I2C bus; the smbus2 adapter is tested with
MagicMock handles in tests/drivers/test_i2c.py.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from envsensors.drivers import config as driver_config
from envsensors.drivers.sensors import (
    CHIP_ID_BMP280,
    Bmx280,
    Bmx280Calibration,
    Ccs811,
    DigitalTwinConfig,
    Htu21d,
    Oversampling,
    SimulatedRegisterPort,
    bmx280_port,
    ccs811_port,
    htu21d_port,
)
from envsensors.observability import configure_logging, reset_logging


@pytest.fixture(autouse=True)
def reset_global_factory() -> Iterator[None]:
    """Reset the driver factory singleton around every test.

    Business context:
    configure()/use_hardware() replace a module-level singleton. Without
    a reset, a test switching to hardware mode would leak that mode into
    every later test that calls get_factory().

    Yields:
        None. The singleton is cleared before and after the test.
    """
    driver_config._factory = None
    yield
    driver_config._factory = None


@pytest.fixture
def log_stream() -> Iterator[io.StringIO]:
    """Capture envsensors log output at DEBUG level.

    The envsensors root logger does not propagate, so caplog cannot see
    its records. This fixture reconfigures logging onto a StringIO and
    restores the default configuration afterwards.

    Yields:
        io.StringIO receiving formatted log lines.

    Example:
        >>> def test_logs(log_stream):
        ...     Htu21d(htu21d_port())
        ...     assert "Sensor connected" in log_stream.getvalue()
    """
    stream = io.StringIO()
    configure_logging(level=logging.DEBUG, stream=stream, force=True)
    yield stream
    reset_logging()
    configure_logging(force=True)


@pytest.fixture
def twin_config() -> DigitalTwinConfig:
    """Default digital twin values (datasheet BMx280 example codes)."""
    return DigitalTwinConfig()


@pytest.fixture
def htu21d_twin(twin_config: DigitalTwinConfig) -> SimulatedRegisterPort:
    """Simulated HTU21D register port."""
    return htu21d_port(twin_config)


@pytest.fixture
def bme280_twin(twin_config: DigitalTwinConfig) -> SimulatedRegisterPort:
    """Simulated BME280 register port (chip id 0x60)."""
    return bmx280_port(twin_config)


@pytest.fixture
def bmp280_twin() -> SimulatedRegisterPort:
    """Simulated BMP280 register port (chip id 0x58, no humidity block)."""
    calibration = DigitalTwinConfig().bmx280_calibration
    return bmx280_port(
        DigitalTwinConfig(
            bmx280_chip_id=CHIP_ID_BMP280,
            bmx280_calibration=Bmx280Calibration(
                temperature=calibration.temperature,
                pressure=calibration.pressure,
            ),
        )
    )


@pytest.fixture
def ccs811_twin(twin_config: DigitalTwinConfig) -> SimulatedRegisterPort:
    """Simulated CCS811 register port in boot mode with a valid app."""
    return ccs811_port(twin_config)


@pytest.fixture
def htu21d(htu21d_twin: SimulatedRegisterPort) -> Htu21d:
    """Connected HTU21D driver on a simulated port."""
    return Htu21d(htu21d_twin)


@pytest.fixture
def bme280(bme280_twin: SimulatedRegisterPort) -> Bmx280:
    """Connected BME280 driver with every measurement enabled at X1.

    The port's read/write logs are cleared after setup so tests see only
    the I/O their own action caused.
    """
    sensor = Bmx280(bme280_twin)
    sensor.set_temperature_oversampling(Oversampling.X1)
    sensor.set_pressure_oversampling(Oversampling.X1)
    sensor.set_humidity_oversampling(Oversampling.X1)
    bme280_twin.reads.clear()
    bme280_twin.writes.clear()
    return sensor


@pytest.fixture
def bmp280(bmp280_twin: SimulatedRegisterPort) -> Bmx280:
    """Connected BMP280 driver with default (all SKIPPED) oversampling."""
    return Bmx280(bmp280_twin)


@pytest.fixture
def ccs811(ccs811_twin: SimulatedRegisterPort) -> Ccs811:
    """Connected CCS811 driver with its application started."""
    sensor = Ccs811(ccs811_twin)
    ccs811_twin.reads.clear()
    ccs811_twin.writes.clear()
    return sensor
