"""Digital twin register ports for testing without hardware.

SimulatedRegisterPort implements the RegisterPort protocol over an
in-memory 256-byte register file. The builders below load it with a
register image that the real drivers accept, so Htu21d, Bmx280 and
Ccs811 run unchanged against it.

Example:
    from envsensors.drivers.sensors import Bmx280, Oversampling
    from envsensors.drivers.sensors.twin import bmx280_port

    sensor = Bmx280(bmx280_port())
    sensor.set_temperature_oversampling(Oversampling.X1)
    print(sensor.read_temperature())  # 25.08

Testing:
    The port records every read and write and can be told to fail:

    port = ccs811_port()
    port.fail_registers.add(0x23)
    sensor = Ccs811(port)
    assert sensor.read_boot_version() is None
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from envsensors.drivers.errors import TransportError
from envsensors.drivers.sensors.calibration import Bmx280Calibration
from envsensors.drivers.sensors.types import CHIP_ID_BME280
from envsensors.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "SimulatedRegisterPort",
    "DigitalTwinConfig",
    "DATASHEET_CALIBRATION",
    "htu21d_port",
    "bmx280_port",
    "ccs811_port",
]

#: Calibration from the BMP280 datasheet's worked example, plus typical
#: BME280 humidity trimming values.
DATASHEET_CALIBRATION = Bmx280Calibration(
    temperature=(27504, 26435, -1000),
    pressure=(36477, -10685, 3024, 2855, 140, -7, 15500, -14600, 6000),
    humidity=(75, 362, 0, 313, 50, 30),
)


class SimulatedRegisterPort:
    """In-memory RegisterPort.

    Reads and writes go to a flat 256-byte register file, except for
    mailbox registers: a multi-byte read from a mailbox returns the
    mailbox contents, independent of neighbouring addresses (the CCS811
    version and result registers behave this way).

    Attributes:
        address: I2C address, for identification.
        reads: (register, length) of every read, in order.
        writes: (register, data) of every write, in order.
        close_calls: Number of times close() was called.
        fail_registers: Registers whose access raises TransportError.
        fail_all: When True every operation raises TransportError.
        fail_close: When True close() raises TransportError.
        on_write: Command callbacks keyed by register. A write to such a
            register runs the callback with the data instead of storing it.
    """

    def __init__(self, address: int = 0x00) -> None:
        self.address = address
        self._memory = bytearray(256)
        self._mailboxes: dict[int, bytes] = {}
        self.reads: list[tuple[int, int]] = []
        self.writes: list[tuple[int, bytes]] = []
        self.close_calls = 0
        self.fail_registers: set[int] = set()
        self.fail_all = False
        self.fail_close = False
        self.on_write: dict[int, Callable[[bytes], None]] = {}

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def load(self, register: int, data: bytes) -> None:
        """Place bytes in the register file starting at ``register``."""
        end = register + len(data)
        if end > len(self._memory):
            raise ValueError(f"Image at 0x{register:02X} overruns the register file")
        self._memory[register:end] = data

    def set_mailbox(self, register: int, data: bytes) -> None:
        """Serve ``data`` for reads at ``register`` instead of the file."""
        self._mailboxes[register] = bytes(data)

    def peek(self, register: int) -> int:
        """Return a register file byte without recording a read."""
        return self._memory[register]

    def _check(self, operation: str, register: int) -> None:
        if self.closed:
            raise TransportError(f"Simulated {operation} on closed port")
        if self.fail_all or register in self.fail_registers:
            raise TransportError(
                f"Simulated {operation} failure at register 0x{register:02X}"
            )

    def _fetch(self, register: int, length: int) -> bytes:
        self.reads.append((register, length))
        if register in self._mailboxes:
            data = self._mailboxes[register][:length]
            return data.ljust(length, b"\x00")
        if register + length > len(self._memory):
            raise TransportError(f"Read past end of register file at 0x{register:02X}")
        return bytes(self._memory[register : register + length])

    def read_byte(self, register: int) -> int:
        self._check("read_byte", register)
        return self._fetch(register, 1)[0]

    def read_word(self, register: int) -> int:
        self._check("read_word", register)
        low, high = self._fetch(register, 2)
        return low | (high << 8)

    def read_buffer(self, register: int, length: int) -> bytes:
        self._check("read_buffer", register)
        return self._fetch(register, length)

    def write_byte(self, register: int, value: int) -> None:
        self.write_buffer(register, bytes([value & 0xFF]))

    def write_buffer(self, register: int, data: bytes) -> None:
        self._check("write", register)
        data = bytes(data)
        self.writes.append((register, data))
        # Command registers are handled by their callback, not stored
        handler = self.on_write.get(register)
        if handler is not None:
            handler(data)
        elif data:
            self.load(register, data)

    def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise TransportError("Simulated close failure")

    def __repr__(self) -> str:
        return (
            f"SimulatedRegisterPort(address=0x{self.address:02X}, "
            f"reads={len(self.reads)}, writes={len(self.writes)})"
        )


@dataclass
class DigitalTwinConfig:
    """Values served by the simulated sensors.

    Attributes:
        temperature: HTU21D temperature in Celsius.
        humidity: HTU21D relative humidity in %RH.
        bmx280_chip_id: Chip id served at 0xD0 (0x60 BME280, 0x58 BMP280).
        bmx280_calibration: Calibration image for the BMx280.
        bmx280_raw_temperature: 20-bit adc_T served at 0xFA.
        bmx280_raw_pressure: 20-bit adc_P served at 0xF7.
        bmx280_raw_humidity: 16-bit adc_H served at 0xFD.
        eco2_ppm: CCS811 eCO2 result.
        tvoc_ppb: CCS811 TVOC result.
        ccs811_boot_version: Two FW_BOOT_VERSION bytes.
        ccs811_app_version: Two FW_APP_VERSION bytes.
    """

    temperature: float = 21.5
    humidity: float = 45.0
    bmx280_chip_id: int = CHIP_ID_BME280
    bmx280_calibration: Bmx280Calibration = DATASHEET_CALIBRATION
    bmx280_raw_temperature: int = 519888
    bmx280_raw_pressure: int = 415148
    bmx280_raw_humidity: int = 30000
    eco2_ppm: int = 400
    tvoc_ppb: int = 0
    ccs811_boot_version: bytes = b"\x10\x00"
    ccs811_app_version: bytes = b"\x11\x00"


def _htu21d_raw(value: float, scale: int, offset: int) -> int:
    """Invert an HTU21D conversion formula to a 16-bit sample code."""
    raw = round((value * 1000 + offset) * 8192 / scale)
    return max(0, min(raw, 0xFFFF)) & 0xFFFC


def htu21d_port(config: DigitalTwinConfig | None = None) -> SimulatedRegisterPort:
    """Build a simulated HTU21D.

    The user register reads back the default 0x02 (12/14 bit). Writes
    to the user write command update it. A soft reset restores the
    default and keeps only the heater bit.
    """
    config = config or DigitalTwinConfig()
    port = SimulatedRegisterPort(address=0x40)
    port.load(0xE7, b"\x02")
    port.on_write[0xE6] = lambda data: port.load(0xE7, data)

    def soft_reset(_: bytes) -> None:
        port.load(0xE7, bytes([port.peek(0xE7) & 0x04 | 0x02]))

    port.on_write[0xFE] = soft_reset
    raw_temperature = _htu21d_raw(config.temperature, 21965, 46850)
    raw_humidity = _htu21d_raw(config.humidity, 15625, 6000)
    port.set_mailbox(0xF3, raw_temperature.to_bytes(2, "big"))
    port.set_mailbox(0xF5, raw_humidity.to_bytes(2, "big"))
    logger.debug("Simulated HTU21D created", temperature=config.temperature)
    return port


def _pack_word(value: int) -> bytes:
    return (value & 0xFFFF).to_bytes(2, "little")


def _pack_sample20(raw: int) -> bytes:
    return bytes([(raw >> 12) & 0xFF, (raw >> 4) & 0xFF, (raw & 0x0F) << 4])


def bmx280_port(config: DigitalTwinConfig | None = None) -> SimulatedRegisterPort:
    """Build a simulated BMP280/BME280 with calibration and data registers."""
    config = config or DigitalTwinConfig()
    calibration = config.bmx280_calibration
    port = SimulatedRegisterPort(address=0x77)

    port.load(0xD0, bytes([config.bmx280_chip_id]))
    port.load(0x88, b"".join(_pack_word(v) for v in calibration.temperature))
    port.load(0x8E, b"".join(_pack_word(v) for v in calibration.pressure))

    if calibration.humidity:
        h1, h2, h3, h4, h5, h6 = calibration.humidity
        port.load(0xA1, bytes([h1 & 0xFF]))
        port.load(0xE1, _pack_word(h2))
        port.load(0xE3, bytes([h3 & 0xFF]))
        port.load(
            0xE4,
            bytes(
                [
                    (h4 >> 4) & 0xFF,
                    (h4 & 0x0F) | ((h5 & 0x0F) << 4),
                    (h5 >> 4) & 0xFF,
                    h6 & 0xFF,
                ]
            ),
        )

    port.load(0xF7, _pack_sample20(config.bmx280_raw_pressure))
    port.load(0xFA, _pack_sample20(config.bmx280_raw_temperature))
    port.load(0xFD, (config.bmx280_raw_humidity & 0xFFFF).to_bytes(2, "big"))
    logger.debug("Simulated BMx280 created", chip_id=f"0x{config.bmx280_chip_id:02X}")
    return port


def ccs811_port(config: DigitalTwinConfig | None = None) -> SimulatedRegisterPort:
    """Build a simulated CCS811 in boot mode with a valid application.

    APP_START sets the firmware-mode status bit and SW_RESET clears it.
    """
    config = config or DigitalTwinConfig()
    port = SimulatedRegisterPort(address=0x5B)

    port.load(0x00, b"\x10")  # APP_VALID, boot mode
    port.load(0x20, b"\x81")
    port.set_mailbox(
        0x02,
        config.eco2_ppm.to_bytes(2, "big") + config.tvoc_ppb.to_bytes(2, "big"),
    )
    port.set_mailbox(0x23, config.ccs811_boot_version)
    port.set_mailbox(0x24, config.ccs811_app_version)

    def app_start(_: bytes) -> None:
        port.load(0x00, bytes([port.peek(0x00) | 0x80]))

    def sw_reset(_: bytes) -> None:
        port.load(0x00, bytes([port.peek(0x00) & ~0x80 & 0xFF]))

    port.on_write[0xF4] = app_start
    port.on_write[0xFF] = sw_reset
    logger.debug("Simulated CCS811 created", eco2_ppm=config.eco2_ppm)
    return port
