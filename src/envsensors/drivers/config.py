"""Driver configuration and factory.

Supports switching between real I2C hardware and digital twin (simulated)
register ports for testing and development without physical sensors.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum

from envsensors.drivers.i2c import RegisterPort, open_register_port
from envsensors.drivers.sensors import (
    Bmx280,
    Ccs811,
    DigitalTwinConfig,
    Htu21d,
    SimulatedRegisterPort,
    bmx280_port,
    ccs811_port,
    htu21d_port,
)
from envsensors.observability import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_I2C_BUS = 1


class DriverMode(Enum):
    """Driver mode selection."""

    HARDWARE = "hardware"  # Real I2C bus via smbus2
    DIGITAL_TWIN = "digital_twin"  # Simulated register ports


@dataclass
class DriverConfig:
    """Configuration for driver selection and bus settings.

    Attributes:
        mode: HARDWARE for real devices, DIGITAL_TWIN for simulation.
        i2c_bus: I2C bus number or device path (e.g. 1 or "/dev/i2c-1").
        htu21d_address: I2C address of the HTU21D.
        bmx280_address: I2C address of the BMP280/BME280.
        ccs811_address: I2C address of the CCS811.
        twin: Values served by the simulated sensors.
    """

    mode: DriverMode = DriverMode.DIGITAL_TWIN

    # Bus settings (for hardware mode)
    i2c_bus: int | str = DEFAULT_I2C_BUS
    htu21d_address: int = Htu21d.DEFAULT_I2C_ADDRESS
    bmx280_address: int = Bmx280.DEFAULT_I2C_ADDRESS
    ccs811_address: int = Ccs811.DEFAULT_I2C_ADDRESS

    # Digital twin settings
    twin: DigitalTwinConfig = field(default_factory=DigitalTwinConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DriverConfig:
        """Build a configuration from environment variables.

        Business context: Lets a deployment switch a Raspberry Pi from
        simulation to the real bus, or move a sensor to its alternate
        address, without code changes.

        Variables (all optional):
            ENVSENSORS_MODE: "hardware" or "digital_twin".
            I2C_BUS: Bus number, or a /dev/i2c-N path.
            HTU21D_ADDR, BMX280_ADDR, CCS811_ADDR: Addresses, decimal or
                prefixed ("0x76").

        Args:
            environ: Mapping to read instead of os.environ.

        Returns:
            DriverConfig with defaults for every unset variable.

        Raises:
            ValueError: If a variable is set to an unparseable value.

        Example:
            >>> cfg = DriverConfig.from_env({"BMX280_ADDR": "0x76"})
            >>> hex(cfg.bmx280_address)
            '0x76'
        """
        env = os.environ if environ is None else environ
        config = cls()

        mode = env.get("ENVSENSORS_MODE")
        if mode:
            config.mode = DriverMode(mode.strip().lower())

        bus = env.get("I2C_BUS")
        if bus:
            config.i2c_bus = bus if bus.startswith("/") else int(bus, 0)

        for var, attr in (
            ("HTU21D_ADDR", "htu21d_address"),
            ("BMX280_ADDR", "bmx280_address"),
            ("CCS811_ADDR", "ccs811_address"),
        ):
            value = env.get(var)
            if value:
                setattr(config, attr, int(value, 0))

        return config


class DriverFactory:
    """Factory for creating sensor drivers based on configuration.

    Provides a centralized way to create the HTU21D, BMx280 and CCS811
    drivers on either the real I2C bus or a simulated register port.

    Thread Safety:
        Not thread-safe. The global factory singleton should be
        configured once at startup before concurrent access. The drivers
        it creates are individually thread-safe.
    """

    def __init__(self, config: DriverConfig | None = None):
        """Initialize driver factory with hardware/simulation configuration.

        Default config uses digital twin simulation, so development and
        CI work without sensors attached.

        Business context: Central configuration point determining whether
        the application talks to real sensors or simulated ones. Set once
        at startup; every create_* call follows it.

        Args:
            config: DriverConfig; None uses DriverConfig() defaults.

        Example:
            >>> factory = DriverFactory()  # Digital twin mode
            >>> sensor = factory.create_bmx280()
        """
        self.config = config or DriverConfig()

    def open_port(self, address: int) -> RegisterPort:
        """Open a register port for one device address.

        HARDWARE mode opens the configured I2C bus through smbus2.
        DIGITAL_TWIN mode returns a blank SimulatedRegisterPort.

        Raises:
            TransportError: If the bus cannot be opened (hardware mode).
        """
        if self.config.mode == DriverMode.HARDWARE:
            return open_register_port(self.config.i2c_bus, address)
        return SimulatedRegisterPort(address=address)

    def create_htu21d(self) -> Htu21d:
        """Create a connected HTU21D driver.

        Raises:
            TransportError: If the bus cannot be opened (hardware mode).
            BringUpError: If the device fails bring-up.
        """
        address = self.config.htu21d_address
        if self.config.mode == DriverMode.HARDWARE:
            return Htu21d.open(self.config.i2c_bus, address)
        return Htu21d(htu21d_port(self.config.twin), address=address)

    def create_bmx280(self) -> Bmx280:
        """Create a connected BMP280/BME280 driver.

        Raises:
            TransportError: If the bus cannot be opened (hardware mode).
            BringUpError: If the device fails bring-up.
        """
        address = self.config.bmx280_address
        if self.config.mode == DriverMode.HARDWARE:
            return Bmx280.open(self.config.i2c_bus, address)
        return Bmx280(bmx280_port(self.config.twin), address=address)

    def create_ccs811(self) -> Ccs811:
        """Create a connected CCS811 driver with its application started.

        Raises:
            TransportError: If the bus cannot be opened (hardware mode).
            BringUpError: If the device reports an error or has no
                valid application.
        """
        address = self.config.ccs811_address
        if self.config.mode == DriverMode.HARDWARE:
            return Ccs811.open(self.config.i2c_bus, address)
        return Ccs811(ccs811_port(self.config.twin), address=address)


# =============================================================================
# Global Singletons
# =============================================================================
# Thread Safety: These globals are NOT thread-safe. Configure once at startup
# before spawning threads.

_factory: DriverFactory | None = None


def get_factory() -> DriverFactory:
    """Get the global driver factory singleton.

    Returns the global DriverFactory instance, creating it with default
    config (DIGITAL_TWIN mode) on first access. Use configure(),
    use_hardware() or use_digital_twin() to change configuration.

    Returns:
        DriverFactory singleton.

    Example:
        >>> factory = get_factory()  # Default digital twin
        >>> use_hardware()
        >>> factory = get_factory()  # New factory, hardware mode
    """
    global _factory
    if _factory is None:
        _factory = DriverFactory()
    return _factory


def configure(config: DriverConfig) -> None:
    """Replace the global factory with one using the given configuration.

    Drivers already created keep the port they were created with.

    Args:
        config: New driver configuration.

    Example:
        >>> configure(DriverConfig.from_env())
    """
    global _factory
    _factory = DriverFactory(config)
    logger.info(
        "Driver factory configured",
        mode=config.mode.value,
        i2c_bus=config.i2c_bus,
    )


def _copy_config_with_mode(mode: DriverMode) -> DriverConfig:
    """Copy the current factory config with a different mode."""
    return replace(get_factory().config, mode=mode)


def use_digital_twin(preserve_config: bool = False) -> None:
    """Switch to digital twin mode for simulated sensors.

    Args:
        preserve_config: If True, keep the current bus, addresses and
            twin values. If False (default), reset all config to defaults.

    Example:
        >>> use_digital_twin()
        >>> get_factory().create_htu21d().read_temperature()
        21.501
    """
    if preserve_config:
        configure(_copy_config_with_mode(DriverMode.DIGITAL_TWIN))
    else:
        configure(DriverConfig(mode=DriverMode.DIGITAL_TWIN))


def use_hardware(preserve_config: bool = False) -> None:
    """Switch to hardware mode for sensors on a real I2C bus.

    Requires smbus2 and an accessible /dev/i2c-N device when drivers are
    created; switching itself always succeeds.

    Args:
        preserve_config: If True, keep the current bus, addresses and
            twin values. If False (default), reset all config to defaults.
    """
    if preserve_config:
        configure(_copy_config_with_mode(DriverMode.HARDWARE))
    else:
        configure(DriverConfig(mode=DriverMode.HARDWARE))
