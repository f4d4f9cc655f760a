"""
EV3 Device Constants
====================

Names for the numbers that verbs take: daisy-chain layers, sensor
ports, motor port masks, brake modes and common sensor modes.

Ports
-----
Sensor ports are numbered 0..3 (labelled 1..4 on the brick). Motor
ports are addressed by bitmask so one command can drive several motors
at once::

    Motor.A | Motor.D   # 0x09
"""

from enum import IntEnum, IntFlag


class Layer(IntEnum):
    """Brick in a daisy chain; MASTER is the one the PC talks to."""

    MASTER = 0
    SLAVE_1 = 1
    SLAVE_2 = 2
    SLAVE_3 = 3


class InputPort(IntEnum):
    PORT_1 = 0
    PORT_2 = 1
    PORT_3 = 2
    PORT_4 = 3


class Motor(IntFlag):
    """Output port bitmask (NOS)."""

    A = 0x01
    B = 0x02
    C = 0x04
    D = 0x08
    ALL = 0x0F

    @classmethod
    def parse(cls, letters: str) -> "Motor":
        """
        Parse port letters such as ``"AD"``.

        Raises:
            ValueError: On empty input or an unknown letter.
        """
        if not letters:
            raise ValueError("No motor ports given")
        mask = cls(0)
        for letter in letters.upper():
            if letter not in "ABCD":
                raise ValueError(f"Unknown motor port: {letter!r}")
            mask |= cls[letter]
        return mask


class BrakeMode(IntEnum):
    COAST = 0
    BRAKE = 1


def motor_port_number(nos: int) -> int:
    """
    Convert a single-motor bitmask to its port number.

    ``output_get_count`` and friends address one motor by number
    (A=0 .. D=3) rather than by mask.

    Raises:
        ValueError: If ``nos`` does not select exactly one motor.
    """
    if nos not in (Motor.A, Motor.B, Motor.C, Motor.D):
        raise ValueError(f"Expected exactly one motor port, got mask 0x{nos:02X}")
    return int(nos).bit_length() - 1


# =============================================================================
# Sensor Modes
# =============================================================================

class TouchMode(IntEnum):
    TOUCH = 0
    BUMPS = 1


class ColorMode(IntEnum):
    REFLECTED = 0
    AMBIENT = 1
    COLOR = 2


class UltrasonicMode(IntEnum):
    DISTANCE_CM = 0
    DISTANCE_IN = 1
    LISTEN = 2


class GyroMode(IntEnum):
    ANGLE = 0
    RATE = 1


class InfraredMode(IntEnum):
    PROXIMITY = 0
    SEEK = 1
    REMOTE = 2


class LargeMotorMode(IntEnum):
    DEGREES = 0
    ROTATIONS = 1
    POWER = 2
