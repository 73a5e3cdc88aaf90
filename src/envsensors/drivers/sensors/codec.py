"""Bit-level register codecs shared by the sensor drivers.

Pure functions with no I/O: sign extension, sample assembly from raw
buffers, read-modify-write field replacement and the flag decoders.
The drivers call these between port reads and writes; tests exercise
them directly.

Example:
    >>> assemble_sample(b"\\x7e\\xed\\x00")
    519888
    >>> hex(replace_field(0xFF, 0b00011100, 2, 0))
    '0xe3'
"""

from __future__ import annotations

from enum import IntFlag

from envsensors.drivers.sensors.types import Resolution

__all__ = [
    "to_signed",
    "assemble_sample",
    "split_humidity_nibbles",
    "replace_field",
    "decode_resolution",
    "encode_resolution",
    "Ccs811Error",
    "describe_error",
]


def to_signed(value: int, bits: int) -> int:
    """Sign-extend a two's complement field of the given width.

    Args:
        value: Unsigned field value. Bits above ``bits`` are ignored.
        bits: Field width (8, 12, 16, ...).

    Returns:
        Signed integer in [-2**(bits-1), 2**(bits-1) - 1].

    Example:
        >>> to_signed(0xFC18, 16)
        -1000
        >>> to_signed(0x7F, 8)
        127
    """
    mask = (1 << bits) - 1
    value &= mask
    if value & (1 << (bits - 1)):
        return value - (1 << bits)
    return value


def assemble_sample(buffer: bytes) -> int:
    """Assemble a raw ADC sample from a big-endian register buffer.

    Two bytes give a 16-bit sample ``msb << 8 | lsb``. Three bytes give
    a 20-bit sample ``msb[7:0] lsb[7:0] xlsb[7:4]``; the low nibble of
    the last byte is not part of the conversion result and is dropped.

    Args:
        buffer: 2 or 3 bytes as read from the data registers.

    Returns:
        Unsigned sample, at most 16 or 20 bits wide.

    Raises:
        ValueError: If the buffer is not 2 or 3 bytes long.
    """
    if len(buffer) == 2:
        return (buffer[0] << 8) | buffer[1]
    if len(buffer) == 3:
        return ((buffer[0] << 16) | (buffer[1] << 8) | (buffer[2] & 0xF0)) >> 4
    raise ValueError(f"Sample buffer must be 2 or 3 bytes, got {len(buffer)}")


def split_humidity_nibbles(buffer: bytes) -> tuple[int, int]:
    """Decode the BME280 dig_H4/dig_H5 pair from registers 0xE4..0xE6.

    The two 12-bit coefficients share the middle register::

        dig_H4 = 0xE4[7:0] << 4 | 0xE5[3:0]
        dig_H5 = 0xE6[7:0] << 4 | 0xE5[7:4]

    Both are signed; the high byte carries the sign, as in the
    manufacturer's reference code.

    Args:
        buffer: The three bytes read from 0xE4, 0xE5, 0xE6.

    Returns:
        (dig_H4, dig_H5)

    Raises:
        ValueError: If the buffer is not 3 bytes long.

    Example:
        >>> split_humidity_nibbles(bytes([0x13, 0x2A, 0x03]))
        (314, 50)
    """
    if len(buffer) != 3:
        raise ValueError(f"Humidity nibble buffer must be 3 bytes, got {len(buffer)}")
    e4, e5, e6 = buffer[0], buffer[1], buffer[2]
    h4 = (e4 << 4) | (e5 & 0x0F)
    h5 = (e6 << 4) | (e5 >> 4)
    return to_signed(h4, 12), to_signed(h5, 12)


def replace_field(current: int, mask: int, shift: int, value: int) -> int:
    """Replace one bit field of a control register byte.

    Clears exactly the bits in ``mask`` and ORs in ``value << shift``.
    Bits outside the mask are returned unchanged.

    Args:
        current: Current register byte.
        mask: Field mask, already in register position.
        shift: Bit position of the field's least significant bit.
        value: New field value (unshifted).

    Returns:
        New register byte.

    Raises:
        ValueError: If ``value`` does not fit in the field.

    Example:
        >>> bin(replace_field(0b1000_0011, 0b0111_0000, 4, 4))
        '0b11000011'
    """
    encoded = value << shift
    if value < 0 or encoded & ~mask:
        raise ValueError(f"Value {value} does not fit field mask 0b{mask:08b}")
    return ((current & 0xFF) & ~mask) | encoded


# HTU21D user register resolution bits
_RESOLUTION_HIGH_BIT = 0b1000_0000
_RESOLUTION_LOW_BIT = 0b0000_0001


def decode_resolution(user_register: int) -> Resolution:
    """Extract the HTU21D resolution from its user register.

    Example:
        >>> decode_resolution(0b1000_0010)
        <Resolution.RH10_T13: 2>
    """
    high = 1 if user_register & _RESOLUTION_HIGH_BIT else 0
    low = 1 if user_register & _RESOLUTION_LOW_BIT else 0
    return Resolution((high << 1) | low)


def encode_resolution(user_register: int, resolution: Resolution) -> int:
    """Write a resolution into an HTU21D user register byte.

    Only bits 7 and 0 change; heater, battery and reserved bits are
    preserved.
    """
    value = (user_register & 0xFF) & ~(_RESOLUTION_HIGH_BIT | _RESOLUTION_LOW_BIT)
    if resolution & 0b10:
        value |= _RESOLUTION_HIGH_BIT
    if resolution & 0b01:
        value |= _RESOLUTION_LOW_BIT
    return value


class Ccs811Error(IntFlag):
    """Flags of the CCS811 ERROR_ID register (0xE0)."""

    MSG_INVALID = 1 << 0
    READ_REG_INVALID = 1 << 1
    MEAS_MODE_INVALID = 1 << 2
    MAX_RESISTANCE = 1 << 3
    HEATER_FAULT = 1 << 4
    HEATER_SUPPLY = 1 << 5


# Fixed report order, most severe first
_ERROR_TOKENS: tuple[tuple[Ccs811Error, str], ...] = (
    (Ccs811Error.HEATER_SUPPLY, "HeaterSupply"),
    (Ccs811Error.HEATER_FAULT, "HeaterFault"),
    (Ccs811Error.MAX_RESISTANCE, "MaxResistance"),
    (Ccs811Error.MEAS_MODE_INVALID, "MeasModeInvalid"),
    (Ccs811Error.READ_REG_INVALID, "ReadRegInvalid"),
    (Ccs811Error.MSG_INVALID, "MsgInvalid"),
)


def describe_error(error_id: int) -> str:
    """Compose a readable message from a CCS811 ERROR_ID byte.

    Each set flag contributes one token, in a fixed order. Unset flags
    are omitted.

    Example:
        >>> describe_error(0b0011_0001)
        'Error: HeaterSupply HeaterFault MsgInvalid'
    """
    tokens = [name for flag, name in _ERROR_TOKENS if error_id & flag]
    if not tokens:
        return "Error: no error flags set"
    return "Error: " + " ".join(tokens)
