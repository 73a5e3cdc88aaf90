"""Unit tests for the compensation formulas.

Expected values come from the HTU21D and BMP280 datasheets: the BMP280
datasheet's worked example gives 25.08 C and 100653.27 Pa for its
published calibration and raw codes.

Example:
    pdm run pytest tests/drivers/sensors/test_compensation.py -v
"""

from __future__ import annotations

import pytest

from envsensors.drivers.sensors.compensation import (
    compensate_bmx280_humidity,
    compensate_bmx280_pressure,
    compensate_bmx280_temperature,
    compensate_htu21d_humidity,
    compensate_htu21d_temperature,
    decode_algorithm_result,
    decode_version,
)
from envsensors.drivers.sensors.types import AlgorithmResult

DIG_T = (27504, 26435, -1000)
DIG_P = (36477, -10685, 3024, 2855, 140, -7, 15500, -14600, 6000)
DIG_H = (75, 362, 0, 313, 50, 30)
ADC_T = 519888
ADC_P = 415148


class TestHtu21dCompensation:
    """Tests for the HTU21D fixed-coefficient formulas."""

    def test_temperature_datasheet_value(self) -> None:
        """Verifies raw 28671 converts to about 30.02 C.

        Arrangement:
        1. Raw code 28671 (0x6FFF); the two status bits are masked off.

        Action:
        Compensate the temperature.

        Assertion Strategy:
        Result within 0.03 C of 30.02 (exactly 30.016 with integer math).

        Testing Principle:
        Anchors the formula to a known device reading.
        """
        assert compensate_htu21d_temperature(28671) == pytest.approx(30.02, abs=0.03)
        assert compensate_htu21d_temperature(28671) == 30.016

    def test_humidity_datasheet_value(self) -> None:
        """Verifies raw 26662 converts to about 44.85 %RH."""
        assert compensate_htu21d_humidity(26662) == pytest.approx(44.85, abs=0.045)

    def test_status_bits_are_masked(self) -> None:
        """Verifies the two low status bits never change the result.

        Arrangement:
        1. Four raw codes differing only in bits 1:0.

        Assertion Strategy:
        All compensate to the same temperature and humidity.

        Testing Principle:
        The status bits flag measurement type, not data. Forgetting the
        mask would shift readings by up to 0.008 C.
        """
        base = 0x6FFC
        temperatures = {compensate_htu21d_temperature(base | bits) for bits in range(4)}
        humidities = {compensate_htu21d_humidity(base | bits) for bits in range(4)}

        assert len(temperatures) == 1
        assert len(humidities) == 1

    def test_deterministic_and_order_independent(self) -> None:
        """Verifies repeated and interleaved calls give identical results."""
        first = [compensate_htu21d_temperature(r) for r in (100, 28671, 65535)]
        compensate_htu21d_humidity(26662)
        second = [compensate_htu21d_temperature(r) for r in (100, 28671, 65535)]

        assert first == second

    def test_range_extremes(self) -> None:
        """Verifies raw 0 and 0xFFFF land at the formula's ends."""
        assert compensate_htu21d_temperature(0) == -46.85
        assert compensate_htu21d_temperature(0xFFFF) == pytest.approx(128.86, abs=0.01)
        assert compensate_htu21d_humidity(0) == -6.0


class TestBmx280Temperature:
    """Tests for BMx280 temperature compensation."""

    def test_datasheet_example(self) -> None:
        """Verifies the datasheet example: adc_T 519888 -> 25.08 C.

        Assertion Strategy:
        Temperature rounds to 25.08 and the fine value matches the
        datasheet's t_fine of about 128422.

        Testing Principle:
        Pressure and humidity depend on the fine value, so it is checked
        alongside the Celsius result.
        """
        temperature, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        assert temperature == pytest.approx(25.08, abs=0.01)
        assert fine == pytest.approx(128422.29, abs=0.5)

    def test_fine_is_5120_times_celsius(self) -> None:
        temperature, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        assert fine / 5120.0 == pytest.approx(temperature)


class TestBmx280Pressure:
    """Tests for BMx280 pressure compensation."""

    def test_datasheet_example(self) -> None:
        """Verifies the datasheet example: adc_P 415148 -> 1006.53 hPa.

        Arrangement:
        1. Fine temperature from the datasheet temperature example.
        2. Datasheet pressure calibration dig_P1..dig_P9.

        Action:
        Compensate the pressure.

        Assertion Strategy:
        Result is 100653.27 Pa expressed in hPa.
        """
        _, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        assert compensate_bmx280_pressure(ADC_P, fine, DIG_P) == pytest.approx(
            1006.5327, abs=0.01
        )

    def test_zero_denominator_returns_zero(self) -> None:
        """Verifies dig_P1 == 0 returns 0.0 instead of dividing by zero.

        Arrangement:
        1. Pressure calibration with dig_P1 = 0, so var1 is exactly 0.

        Action:
        Compensate any raw pressure.

        Assertion Strategy:
        Returns 0.0 and raises nothing.

        Testing Principle:
        Erased or unread calibration must not crash the caller.
        """
        _, fine = compensate_bmx280_temperature(ADC_T, DIG_T)
        calibration = (0,) + DIG_P[1:]

        assert compensate_bmx280_pressure(ADC_P, fine, calibration) == 0.0

    def test_all_zero_calibration_returns_zero(self) -> None:
        assert compensate_bmx280_pressure(ADC_P, 0.0, (0,) * 9) == 0.0


class TestBmx280Humidity:
    """Tests for BME280 humidity compensation."""

    def test_typical_value(self) -> None:
        """Verifies a mid-range sample lands near 55 %RH.

        Arrangement:
        1. Fine temperature from the datasheet example (~25 C).
        2. Typical humidity trimming (75, 362, 0, 313, 50, 30).
        3. adc_H = 30000.

        Assertion Strategy:
        Result within 0.05 of the hand-computed 55.0 %RH.
        """
        _, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        humidity = compensate_bmx280_humidity(30000, fine, DIG_H)

        assert humidity == pytest.approx(55.0, abs=0.05)

    def test_clamped_to_100(self) -> None:
        """Verifies results above 100 %RH saturate at 100.

        Arrangement:
        1. adc_H 0xFFFF with typical trimming computes to ~247 %RH.

        Testing Principle:
        Clamping is a boundary guarantee, not a best effort.
        """
        _, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        assert compensate_bmx280_humidity(0xFFFF, fine, DIG_H) == 100.0

    def test_clamped_to_0(self) -> None:
        """Verifies negative results saturate at 0."""
        _, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        assert compensate_bmx280_humidity(0, fine, DIG_H) == 0.0

    @pytest.mark.parametrize("raw", [0, 1000, 20000, 26000, 40000, 65535])
    def test_always_within_bounds(self, raw: int) -> None:
        _, fine = compensate_bmx280_temperature(ADC_T, DIG_T)

        assert 0.0 <= compensate_bmx280_humidity(raw, fine, DIG_H) <= 100.0


class TestCcs811Decoding:
    """Tests for CCS811 result and version decoding."""

    def test_algorithm_result_big_endian(self) -> None:
        """Verifies eCO2 and TVOC are big-endian words in that order."""
        result = decode_algorithm_result(bytes([0x01, 0x90, 0x00, 0x0A]))

        assert result == AlgorithmResult(eco2_ppm=400, tvoc_ppb=10)

    def test_algorithm_result_ignores_trailing_bytes(self) -> None:
        """Verifies STATUS/ERROR bytes after the first four are ignored."""
        result = decode_algorithm_result(bytes([0x04, 0x00, 0x00, 0x20, 0x98, 0x00]))

        assert result == AlgorithmResult(eco2_ppm=1024, tvoc_ppb=32)

    def test_algorithm_result_short_buffer_raises(self) -> None:
        with pytest.raises(ValueError, match="4 bytes"):
            decode_algorithm_result(b"\x01\x90")

    def test_version_nibbles(self) -> None:
        """Verifies major/minor are the high/low nibbles of byte 0.

        Arrangement:
        1. Bytes 0x21 0x05.

        Assertion Strategy:
        "2.1.5": the major nibble is shifted down, not left as 0x20.
        """
        assert decode_version(bytes([0x21, 0x05])) == "2.1.5"

    def test_version_trivial_is_full_byte(self) -> None:
        assert decode_version(bytes([0x10, 0xFF])) == "1.0.255"

    def test_version_short_buffer_raises(self) -> None:
        with pytest.raises(ValueError, match="2 bytes"):
            decode_version(b"\x10")
