"""BMx280 factory calibration loading.

The BMP280 and BME280 store trimming coefficients in non-volatile
registers. They are read once at bring-up and never change afterwards.

Register layout (datasheet table 16 / BME280 table 16):

    0x88..0x8D  dig_T1 (u16), dig_T2 (s16), dig_T3 (s16)
    0x8E..0x9F  dig_P1 (u16), dig_P2..dig_P9 (s16)
    0xA1        dig_H1 (u8)                       BME280 only
    0xE1..0xE2  dig_H2 (s16)                      BME280 only
    0xE3        dig_H3 (u8)                       BME280 only
    0xE4..0xE6  dig_H4, dig_H5 (s12, nibble split) BME280 only
    0xE7        dig_H6 (s8)                       BME280 only
"""

from __future__ import annotations

from dataclasses import dataclass

from envsensors.drivers.i2c import RegisterPort
from envsensors.drivers.sensors.codec import split_humidity_nibbles, to_signed

__all__ = [
    "Bmx280Calibration",
    "load_bmx280_calibration",
]

REG_TEMP_CALIB = (0x88, 0x8A, 0x8C)
REG_PRESS_CALIB = (0x8E, 0x90, 0x92, 0x94, 0x96, 0x98, 0x9A, 0x9C, 0x9E)
REG_HUM_CALIB_1 = 0xA1
REG_HUM_CALIB_2 = 0xE1
REG_HUM_CALIB_3 = 0xE3
REG_HUM_CALIB_4 = 0xE4
REG_HUM_CALIB_6 = 0xE7


@dataclass(frozen=True)
class Bmx280Calibration:
    """Immutable calibration coefficients of one BMx280 device.

    Attributes:
        temperature: (dig_T1, dig_T2, dig_T3).
        pressure: (dig_P1, ..., dig_P9).
        humidity: (dig_H1, ..., dig_H6), or () on chips without humidity.
    """

    temperature: tuple[int, int, int]
    pressure: tuple[int, ...]
    humidity: tuple[int, ...] = ()


def _read_words(port: RegisterPort, registers: tuple[int, ...]) -> tuple[int, ...]:
    """Read words where the first is unsigned and the rest signed."""
    first, *rest = registers
    values = [port.read_word(first) & 0xFFFF]
    values.extend(to_signed(port.read_word(reg), 16) for reg in rest)
    return tuple(values)


def load_bmx280_calibration(
    port: RegisterPort, with_humidity: bool
) -> Bmx280Calibration:
    """Read the calibration coefficients from a BMx280.

    Args:
        port: Open register port of the device.
        with_humidity: Also read the BME280 humidity block.

    Returns:
        Bmx280Calibration populated from the device.

    Raises:
        TransportError: If any register read fails.
    """
    t1, t2, t3 = _read_words(port, REG_TEMP_CALIB)
    pressure = _read_words(port, REG_PRESS_CALIB)

    humidity: tuple[int, ...] = ()
    if with_humidity:
        h1 = port.read_byte(REG_HUM_CALIB_1) & 0xFF
        h2 = to_signed(port.read_word(REG_HUM_CALIB_2), 16)
        h3 = port.read_byte(REG_HUM_CALIB_3) & 0xFF
        h4, h5 = split_humidity_nibbles(port.read_buffer(REG_HUM_CALIB_4, 3))
        h6 = to_signed(port.read_byte(REG_HUM_CALIB_6), 8)
        humidity = (h1, h2, h3, h4, h5, h6)

    return Bmx280Calibration(
        temperature=(t1, t2, t3),
        pressure=pressure,
        humidity=humidity,
    )
