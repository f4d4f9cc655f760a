"""
EV3 Protocol Constants
======================

Numeric values shared by the encoder, the decoder, and the byte-code
image builder. Values follow the lms2012 firmware (``bytecodes.h`` and
``c_com.h``).

Command Types
-------------
The fifth byte of every request selects Direct vs System and whether the
brick answers:

    0x00  DIRECT_REPLY       0x80  DIRECT_NO_REPLY
    0x01  SYSTEM_REPLY       0x81  SYSTEM_NO_REPLY

Reply Types
-----------
The fifth byte of every reply:

    0x02  DIRECT_REPLY       0x04  DIRECT_REPLY_ERROR
    0x03  SYSTEM_REPLY       0x05  SYSTEM_REPLY_ERROR
"""

from enum import IntEnum
from typing import Final


# =============================================================================
# Header Constants
# =============================================================================

# Length prefix width; never counted in itself
LENGTH_FIELD_SIZE: Final[int] = 2

# Largest value of the 16-bit length field
MAX_MESSAGE_LENGTH: Final[int] = 0xFFFF

# len(2) + seq(2) + reply type(1)
REPLY_HEADER_SIZE: Final[int] = 5

# Direct header scratch limits: low 10 bits global, high 6 bits local
MAX_GLOBAL_BYTES: Final[int] = 0x3FF
MAX_LOCAL_BYTES: Final[int] = 0x3F
LOCAL_BYTES_SHIFT: Final[int] = 10

MAX_SEQUENCE_ID: Final[int] = 0xFFFF


class CommandType(IntEnum):
    """Request command type byte."""

    DIRECT_REPLY = 0x00
    SYSTEM_REPLY = 0x01
    DIRECT_NO_REPLY = 0x80
    SYSTEM_NO_REPLY = 0x81

    @property
    def is_system(self) -> bool:
        return bool(self & 0x01)

    @property
    def expects_reply(self) -> bool:
        return not self & 0x80


class ReplyType(IntEnum):
    """Reply type byte."""

    DIRECT_REPLY = 0x02
    SYSTEM_REPLY = 0x03
    DIRECT_REPLY_ERROR = 0x04
    SYSTEM_REPLY_ERROR = 0x05

    @property
    def is_system(self) -> bool:
        return self in (ReplyType.SYSTEM_REPLY, ReplyType.SYSTEM_REPLY_ERROR)

    @property
    def is_error(self) -> bool:
        return self in (ReplyType.DIRECT_REPLY_ERROR, ReplyType.SYSTEM_REPLY_ERROR)


# =============================================================================
# System Commands
# =============================================================================

class SystemCommand(IntEnum):
    """
    System command opcodes.

    Naming follows the brick's point of view: BEGIN_DOWNLOAD moves a file
    from the PC *down* to the brick, BEGIN_UPLOAD moves it *up* to the PC.
    """

    BEGIN_DOWNLOAD = 0x92
    CONTINUE_DOWNLOAD = 0x93
    BEGIN_UPLOAD = 0x94
    CONTINUE_UPLOAD = 0x95
    BEGIN_GETFILE = 0x96
    CONTINUE_GETFILE = 0x97
    CLOSE_FILEHANDLE = 0x98
    LIST_FILES = 0x99
    CONTINUE_LIST_FILES = 0x9A
    CREATE_DIR = 0x9B
    DELETE_FILE = 0x9C
    LIST_OPEN_HANDLES = 0x9D
    WRITEMAILBOX = 0x9E
    BLUETOOTHPIN = 0x9F
    ENTERFWUPDATE = 0xA0


class SystemStatus(IntEnum):
    """
    Status byte carried by every system reply after the echoed opcode.

    Only SUCCESS and END_OF_FILE indicate a usable reply.
    """

    SUCCESS = 0x00
    UNKNOWN_HANDLE = 0x01
    HANDLE_NOT_READY = 0x02
    CORRUPT_FILE = 0x03
    NO_HANDLES_AVAILABLE = 0x04
    NO_PERMISSION = 0x05
    ILLEGAL_PATH = 0x06
    FILE_EXISTS = 0x07
    END_OF_FILE = 0x08
    SIZE_ERROR = 0x09
    UNKNOWN_ERROR = 0x0A
    ILLEGAL_FILENAME = 0x0B
    ILLEGAL_CONNECTION = 0x0C

    @classmethod
    def describe(cls, code: int) -> str:
        """Get human-readable description of a status code."""
        descriptions = {
            0x00: "Success",
            0x01: "Unknown handle",
            0x02: "Handle not ready",
            0x03: "Corrupt file",
            0x04: "No handles available",
            0x05: "No permission",
            0x06: "Illegal path",
            0x07: "File exists",
            0x08: "End of file",
            0x09: "Size error",
            0x0A: "Unknown error",
            0x0B: "Illegal filename",
            0x0C: "Illegal connection",
        }
        return descriptions.get(code, f"Unknown status (0x{code:02X})")


# Statuses that leave a system reply usable
SYSTEM_OK_STATUSES: Final[frozenset] = frozenset(
    {SystemStatus.SUCCESS, SystemStatus.END_OF_FILE}
)


# =============================================================================
# Direct Command Opcodes
# =============================================================================

class Opcode(IntEnum):
    """Virtual machine opcodes used by this SDK."""

    ERROR = 0x00
    NOP = 0x01
    OBJECT_END = 0x0A

    UI_READ = 0x81
    UI_WRITE = 0x82

    SOUND = 0x94
    SOUND_TEST = 0x95
    SOUND_READY = 0x96

    INPUT_DEVICE_LIST = 0x98
    INPUT_DEVICE = 0x99
    INPUT_READ = 0x9A
    INPUT_READY = 0x9C
    INPUT_READSI = 0x9D

    OUTPUT_STOP = 0xA3
    OUTPUT_POWER = 0xA4
    OUTPUT_SPEED = 0xA5
    OUTPUT_START = 0xA6
    OUTPUT_POLARITY = 0xA7
    OUTPUT_READY = 0xAA
    OUTPUT_STEP_POWER = 0xAC
    OUTPUT_TIME_POWER = 0xAD
    OUTPUT_STEP_SPEED = 0xAE
    OUTPUT_TIME_SPEED = 0xAF
    OUTPUT_CLR_COUNT = 0xB2
    OUTPUT_GET_COUNT = 0xB3


class UIReadSubcode(IntEnum):
    """Sub-commands of opUI_READ."""

    GET_VBATT = 1
    GET_IBATT = 2
    GET_OS_VERS = 3
    GET_TBATT = 5
    GET_HW_VERS = 9
    GET_FW_VERS = 10
    GET_LBATT = 18


class SoundSubcode(IntEnum):
    """Sub-commands of opSOUND."""

    BREAK = 0
    TONE = 1
    PLAY = 2
    REPEAT = 3


class InputDeviceSubcode(IntEnum):
    """Sub-commands of opINPUT_DEVICE."""

    GET_TYPEMODE = 5
    GET_SYMBOL = 6
    CLR_ALL = 10
    GET_CONNECTION = 12
    STOP_ALL = 13
    GET_NAME = 21
    GET_MODENAME = 22


# =============================================================================
# Operand Prefix Bits
# =============================================================================

class ParamFlag(IntEnum):
    """
    Bits of an operand's leading format byte.

    Short form (bit 7 clear) packs a small value into the byte itself.
    Long form (bit 7 set) names the width of what follows in bits 0-2.
    """

    SHORT = 0x00
    LONG = 0x80
    CONST = 0x00
    VARIABLE = 0x40
    LOCAL = 0x00
    GLOBAL = 0x20
    ONE_BYTE = 0x01
    TWO_BYTES = 0x02
    FOUR_BYTES = 0x03
    STRING = 0x04


# Masks for short-form operands
SHORT_VALUE_MASK: Final[int] = 0x3F
SHORT_INDEX_MASK: Final[int] = 0x1F
