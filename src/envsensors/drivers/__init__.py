"""Hardware drivers for I2C environmental sensors.

Supports two modes:
- HARDWARE: Real sensors on an I2C bus (via smbus2)
- DIGITAL_TWIN: Simulated register ports for testing without hardware

Use drivers.config to switch modes:
    from envsensors.drivers import config
    config.use_digital_twin()  # or config.use_hardware()

Register Port Protocol:
    RegisterPort lets every driver run against a real bus or a
    simulated register file without code changes.

    from envsensors.drivers import RegisterPort
"""

from envsensors.drivers import config, errors, sensors
from envsensors.drivers.config import (
    DriverConfig,
    DriverFactory,
    DriverMode,
    configure,
    get_factory,
    use_digital_twin,
    use_hardware,
)
from envsensors.drivers.errors import (
    BringUpError,
    ConfigurationError,
    DeviceNotOpenError,
    IllegalStateError,
    SensorError,
    TransportError,
    UnsupportedOperationError,
)
from envsensors.drivers.i2c import RegisterPort, SMBusRegisterPort, open_register_port

__all__ = [
    # Submodules
    "config",
    "errors",
    "sensors",
    # Configuration
    "DriverMode",
    "DriverConfig",
    "DriverFactory",
    "get_factory",
    "configure",
    "use_digital_twin",
    "use_hardware",
    # Register port
    "RegisterPort",
    "SMBusRegisterPort",
    "open_register_port",
    # Errors
    "SensorError",
    "TransportError",
    "IllegalStateError",
    "DeviceNotOpenError",
    "UnsupportedOperationError",
    "ConfigurationError",
    "BringUpError",
]
