"""
EV3 Brick Session
=================

``Brick`` wraps one transport and offers one method per brick verb:
battery, sound, sensors, motors and the filesystem. Each verb is a
single request; verbs that read a value reserve exactly the reply width
they decode and return a plain Python value.

Usage
-----
    from ev3_sdk import Brick, ConnectionConfig, IoType, Motor

    config = ConnectionConfig(io_type=IoType.BLUETOOTH, serial_port="/dev/rfcomm0")
    with Brick.connect(config) as brick:
        print(f"{brick.battery_voltage():.2f} V")
        brick.beep()
        brick.output_power(0, Motor.A, 50)
        brick.output_start(0, Motor.A)

Errors
------
Verbs raise ``DeviceError`` when the brick rejects a request,
``DecodeError`` subclasses for malformed replies and ``CommsError``
subclasses when the transport fails. After a CommsError the session
should be closed and a new one opened.
"""

import logging
import time
from typing import Final, Iterator, Optional

from ev3_sdk.comms.link import Link
from ev3_sdk.comms.transport import Transport
from ev3_sdk.config import ConnectionConfig
from ev3_sdk.device import BrakeMode, Motor, motor_port_number
from ev3_sdk.errors import EV3Error
from ev3_sdk.protocol import commands
from ev3_sdk.protocol.listing import FileEntry
from ev3_sdk.protocol.transfer import (
    DEFAULT_MAX_CHUNK_LENGTH,
    FileTransfer,
    ProgressCallback,
)

logger = logging.getLogger(__name__)


# Reply widths reserved in global scratch
FLOAT_WIDTH: Final[int] = 4
INT32_WIDTH: Final[int] = 4
PERCENT_WIDTH: Final[int] = 1
NAME_WIDTH: Final[int] = 12
SYMBOL_WIDTH: Final[int] = 5

BEEP_FREQUENCY: Final[int] = 1000


class Brick:
    """
    A session with one EV3 brick.

    The transport is opened on construction and closed exactly once by
    ``close()`` or on leaving a ``with`` block. If opening fails the
    transport is closed before the error propagates.

    Args:
        transport: Unopened (or already open) transport.
        handle_delay: Seconds between BEGIN_DOWNLOAD and CONTINUE_DOWNLOAD;
                      None for the default.

    Thread Safety:
        This class is NOT thread-safe. Only use from a single thread.
    """

    def __init__(self, transport: Transport, handle_delay: Optional[float] = None):
        self.transport = transport
        self._closed = False
        try:
            transport.open()
        except BaseException:
            self._closed = True
            try:
                transport.close()
            except (EV3Error, OSError) as e:
                logger.warning("Error closing transport after failed open: %s", e)
            raise

        self.link = Link(transport)
        self.files = FileTransfer(self.link, handle_delay=handle_delay)
        logger.info("Session opened on %r", transport)

    @classmethod
    def connect(cls, config: Optional[ConnectionConfig] = None, **kwargs) -> "Brick":
        """Open a session using ``config`` (default: from the environment)."""
        if config is None:
            config = ConnectionConfig.from_env()
        logger.info("Connecting to EV3 over %s", config.describe())
        return cls(config.create_transport(), **kwargs)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.transport.close()
        logger.info("Session closed")

    def __enter__(self) -> "Brick":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Battery
    # -------------------------------------------------------------------------

    def battery_voltage(self) -> float:
        """Battery voltage in volts."""
        msg = self.link.direct(global_bytes=FLOAT_WIDTH)
        commands.ui_read_get_vbatt(msg)
        reply = self.link.exchange(msg, payload_length=FLOAT_WIDTH)
        voltage = reply.as_float32()
        logger.debug("Battery voltage: %.3f V", voltage)
        return voltage

    def battery_level(self) -> int:
        """Battery level in percent."""
        msg = self.link.direct(global_bytes=PERCENT_WIDTH)
        commands.ui_read_get_lbatt(msg)
        reply = self.link.exchange(msg, payload_length=PERCENT_WIDTH)
        return reply.as_uint8()

    # -------------------------------------------------------------------------
    # Sound
    # -------------------------------------------------------------------------

    def play_tone(self, volume: int, frequency: int, duration: int) -> None:
        """
        Play a tone without waiting for it to finish.

        Args:
            volume: 0..100.
            frequency: Hz.
            duration: Milliseconds.
        """
        msg = self.link.direct(expect_reply=False)
        commands.sound_tone(msg, volume, frequency, duration)
        self.link.send(msg)

    def beep(self, volume: int = 10, duration: int = 100) -> None:
        """Play a 1000 Hz tone."""
        self.play_tone(volume, BEEP_FREQUENCY, duration)

    def play_three_tones(self) -> None:
        """Play three rising tones, each after the previous one ends."""
        msg = self.link.direct(expect_reply=False)
        commands.three_tones(msg)
        self.link.send(msg)

    # -------------------------------------------------------------------------
    # Sensors
    # -------------------------------------------------------------------------

    def input_device_get_name(self, layer: int, no: int) -> str:
        """Name of the device on sensor port ``no``."""
        msg = self.link.direct(global_bytes=NAME_WIDTH)
        commands.input_device_get_name(msg, layer, no, NAME_WIDTH)
        reply = self.link.exchange(msg, payload_length=NAME_WIDTH)
        return reply.as_cstring(0, NAME_WIDTH)

    def input_device_symbol(self, layer: int, no: int) -> str:
        """Unit symbol of the device's current mode, e.g. ``"cm"``."""
        msg = self.link.direct(global_bytes=SYMBOL_WIDTH)
        commands.input_device_get_symbol(msg, layer, no, SYMBOL_WIDTH)
        reply = self.link.exchange(msg, payload_length=SYMBOL_WIDTH)
        return reply.as_cstring(0, SYMBOL_WIDTH)

    def input_device_clear_all(self, layer: int) -> None:
        """Clear all sensor values and counters on ``layer``."""
        msg = self.link.direct()
        commands.input_device_clr_all(msg, layer)
        self.link.exchange(msg, payload_length=0)

    def input_read_si(self, layer: int, no: int, mode: int) -> float:
        """Sensor reading in SI units for ``mode``."""
        msg = self.link.direct(global_bytes=FLOAT_WIDTH)
        commands.input_read_si(msg, layer, no, mode)
        reply = self.link.exchange(msg, payload_length=FLOAT_WIDTH)
        return reply.as_float32()

    def sample_sensor(
        self,
        layer: int,
        no: int,
        mode: int,
        count: int,
        interval: float = 0.1,
    ) -> Iterator[tuple[float, float]]:
        """
        Read a sensor ``count`` times, ``interval`` seconds apart.

        Yields:
            (seconds since the first reading, SI value)
        """
        start = time.monotonic()
        for i in range(count):
            if i:
                time.sleep(interval)
            value = self.input_read_si(layer, no, mode)
            yield time.monotonic() - start, value

    # -------------------------------------------------------------------------
    # Motors
    # -------------------------------------------------------------------------

    def output_stop(self, layer: int, nos: int, brake: int = BrakeMode.COAST) -> None:
        msg = self.link.direct(expect_reply=False)
        commands.output_stop(msg, layer, nos, brake)
        self.link.send(msg)

    def output_stop_all(self) -> None:
        """Brake every motor on the master brick."""
        self.output_stop(0, Motor.ALL, BrakeMode.BRAKE)

    def output_power(self, layer: int, nos: int, power: int) -> None:
        """Set power (-100..100) for the motors in ``nos``; see output_start."""
        msg = self.link.direct(expect_reply=False)
        commands.output_power(msg, layer, nos, power)
        self.link.send(msg)

    def output_start(self, layer: int, nos: int) -> None:
        msg = self.link.direct(expect_reply=False)
        commands.output_start(msg, layer, nos)
        self.link.send(msg)

    def output_step_speed(
        self,
        layer: int,
        nos: int,
        speed: int,
        step1: int,
        step2: int,
        step3: int,
        brake: int = BrakeMode.BRAKE,
    ) -> None:
        """
        Move motors through a ramp-up/constant/ramp-down profile.

        Args:
            speed: -100..100.
            step1: Degrees to ramp up over.
            step2: Degrees at constant speed.
            step3: Degrees to ramp down over.
            brake: Brake or coast at the end.
        """
        msg = self.link.direct(expect_reply=False)
        commands.output_step_speed(msg, layer, nos, speed, step1, step2, step3, brake)
        self.link.send(msg)

    def output_clear_count(self, layer: int, nos: int) -> None:
        """Reset the tacho counts of the motors in ``nos``."""
        msg = self.link.direct(expect_reply=False)
        commands.output_clr_count(msg, layer, nos)
        self.link.send(msg)

    def output_get_count(self, layer: int, nos: int) -> int:
        """
        Tacho count in degrees of a single motor.

        Args:
            nos: Bitmask selecting exactly one motor (Motor.A .. Motor.D).
        """
        msg = self.link.direct(global_bytes=INT32_WIDTH)
        commands.output_get_count(msg, layer, motor_port_number(nos))
        reply = self.link.exchange(msg, payload_length=INT32_WIDTH)
        count = reply.as_uint32_le()
        logger.debug("Tacho count: %d degrees", count)
        return count

    # -------------------------------------------------------------------------
    # Filesystem
    # -------------------------------------------------------------------------

    def upload_file(
        self,
        data: bytes,
        destination: str,
        chunk_size: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Write ``data`` to ``destination`` on the brick."""
        self.files.upload(data, destination, chunk_size=chunk_size, progress=progress)

    def download_file(
        self,
        source: str,
        max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
        progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """Read ``source`` from the brick."""
        return self.files.download(source, max_chunk_length, progress=progress)

    def list_files(
        self, path: str, max_length: int = DEFAULT_MAX_CHUNK_LENGTH
    ) -> list[FileEntry]:
        return self.files.list_files(path, max_length)

    def create_dir(self, path: str) -> None:
        self.files.create_dir(path)

    def delete_file(self, path: str) -> None:
        self.files.delete_file(path)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Brick({self.transport!r}, {state})"
