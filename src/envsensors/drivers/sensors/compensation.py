"""Compensation formulas: raw ADC codes to physical units.

Pure functions, no I/O. Each follows the manufacturer's datasheet:

- HTU21D: https://cdn-shop.adafruit.com/datasheets/1899_HTU21D.pdf (p14),
  integer form of T = -46.85 + 175.72 * S / 2^16 and
  RH = -6 + 125 * S / 2^16.
- BMP280/BME280: floating point compensation from BST-BMP280-DS001 and
  BST-BME280-DS001, section 8.1 / 4.2.3.
- CCS811: no compensation; result and version bytes are decoded as-is.

BMx280 pressure and humidity depend on the "fine temperature" produced
by the temperature formula, so callers must compensate temperature
first, from a sample taken in the same read sequence.
"""

from __future__ import annotations

from collections.abc import Sequence

from envsensors.drivers.sensors.types import AlgorithmResult

__all__ = [
    "compensate_htu21d_temperature",
    "compensate_htu21d_humidity",
    "compensate_bmx280_temperature",
    "compensate_bmx280_pressure",
    "compensate_bmx280_humidity",
    "decode_algorithm_result",
    "decode_version",
]

# The two low bits of HTU21D samples are status bits, not data
_HTU21D_STATUS_MASK = 0xFFFC


def compensate_htu21d_temperature(raw: int) -> float:
    """Convert an HTU21D temperature sample to Celsius.

    Args:
        raw: 16-bit sample as read from the device (status bits included).

    Returns:
        Temperature in degrees Celsius (-40 to +125 in range).

    Example:
        >>> compensate_htu21d_temperature(28671)
        30.016
    """
    temp = ((21965 * (raw & _HTU21D_STATUS_MASK)) >> 13) - 46850
    return temp / 1000


def compensate_htu21d_humidity(raw: int) -> float:
    """Convert an HTU21D humidity sample to %RH.

    Not clamped: the sensor may report slightly outside 0-100 near the
    extremes, as the datasheet notes.

    Example:
        >>> compensate_htu21d_humidity(26662)
        44.849
    """
    hum = ((15625 * (raw & _HTU21D_STATUS_MASK)) >> 13) - 6000
    return hum / 1000


def compensate_bmx280_temperature(
    raw: int, calibration: Sequence[int]
) -> tuple[float, float]:
    """Compensate a BMx280 20-bit temperature sample.

    Args:
        raw: 20-bit temperature sample (adc_T).
        calibration: dig_T1..dig_T3.

    Returns:
        (temperature_c, fine_temperature). The fine value feeds the
        pressure and humidity formulas.

    Example:
        >>> t, fine = compensate_bmx280_temperature(519888, (27504, 26435, -1000))
        >>> round(t, 2)
        25.08
    """
    dig_t1, dig_t2, dig_t3 = calibration[0], calibration[1], calibration[2]

    adc_t = float(raw)
    var1 = (adc_t / 16384.0 - dig_t1 / 1024.0) * dig_t2
    delta = adc_t / 131072.0 - dig_t1 / 8192.0
    var2 = delta * delta * dig_t3
    fine = var1 + var2
    return fine / 5120.0, fine


def compensate_bmx280_pressure(
    raw: int, fine_temperature: float, calibration: Sequence[int]
) -> float:
    """Compensate a BMx280 20-bit pressure sample.

    Args:
        raw: 20-bit pressure sample (adc_P).
        fine_temperature: Fine value from compensate_bmx280_temperature.
        calibration: dig_P1..dig_P9.

    Returns:
        Pressure in hPa. Returns 0.0 when the dig_P1 term makes the
        denominator zero instead of dividing by zero.
    """
    dig_p1, dig_p2, dig_p3, dig_p4, dig_p5, dig_p6, dig_p7, dig_p8, dig_p9 = (
        calibration[:9]
    )

    var1 = fine_temperature / 2.0 - 64000.0
    var2 = var1 * var1 * dig_p6 / 32768.0
    var2 = var2 + var1 * dig_p5 * 2.0
    var2 = var2 / 4.0 + dig_p4 * 65536.0
    var1 = (dig_p3 * var1 * var1 / 524288.0 + dig_p2 * var1) / 524288.0
    var1 = (1.0 + var1 / 32768.0) * dig_p1
    if var1 == 0.0:
        return 0.0

    p = 1048576.0 - float(raw)
    p = (p - var2 / 4096.0) * 6250.0 / var1
    var1 = dig_p9 * p * p / 2147483648.0
    var2 = p * dig_p8 / 32768.0
    p = p + (var1 + var2 + dig_p7) / 16.0
    return p / 100.0


def compensate_bmx280_humidity(
    raw: int, fine_temperature: float, calibration: Sequence[int]
) -> float:
    """Compensate a BME280 16-bit humidity sample.

    Args:
        raw: 16-bit humidity sample (adc_H).
        fine_temperature: Fine value from compensate_bmx280_temperature.
        calibration: dig_H1..dig_H6.

    Returns:
        Relative humidity in %RH, clamped to [0, 100].
    """
    dig_h1, dig_h2, dig_h3, dig_h4, dig_h5, dig_h6 = calibration[:6]

    adc_h = float(raw)
    var_h = fine_temperature - 76800.0
    var_h = (adc_h - (dig_h4 * 64.0 + dig_h5 / 16384.0 * var_h)) * (
        dig_h2
        / 65536.0
        * (1.0 + dig_h6 / 67108864.0 * var_h * (1.0 + dig_h3 / 67108864.0 * var_h))
    )
    var_h = var_h * (1.0 - dig_h1 * var_h / 524288.0)
    return min(100.0, max(0.0, var_h))


def decode_algorithm_result(buffer: bytes) -> AlgorithmResult:
    """Decode the first four bytes of CCS811 ALG_RESULT_DATA.

    Both quantities are big-endian 16-bit words: eCO2 then TVOC.

    Example:
        >>> decode_algorithm_result(bytes([0x01, 0x90, 0x00, 0x0A]))
        AlgorithmResult(eco2_ppm=400, tvoc_ppb=10)
    """
    if len(buffer) < 4:
        raise ValueError(f"Algorithm result needs 4 bytes, got {len(buffer)}")
    return AlgorithmResult(
        eco2_ppm=(buffer[0] << 8) | buffer[1],
        tvoc_ppb=(buffer[2] << 8) | buffer[3],
    )


def decode_version(buffer: bytes) -> str:
    """Decode a CCS811 two-byte firmware version as "major.minor.trivial".

    Major and minor are the high and low nibbles of the first byte;
    trivial is the whole second byte.

    Example:
        >>> decode_version(bytes([0x10, 0x00]))
        '1.0.0'
    """
    if len(buffer) < 2:
        raise ValueError(f"Version needs 2 bytes, got {len(buffer)}")
    major = (buffer[0] & 0xF0) >> 4
    minor = buffer[0] & 0x0F
    trivial = buffer[1]
    return f"{major}.{minor}.{trivial}"
