"""User-space drivers for I2C environmental sensors.

Drivers for the HTU21D, BMP280/BME280 and CCS811, with datasheet
compensation, a digital twin for hardware-free development, and
structured logging.

Example:
    from envsensors.drivers import get_factory

    sensor = get_factory().create_bmx280()
"""

__version__ = "0.1.0"
