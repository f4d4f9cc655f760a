"""
Opcode Record Builders
======================

One function per opcode the SDK uses. Each appends a complete opcode
record (opcode byte, sub-code where there is one, operands) to a target
that exposes ``append_opcode``. Both ``Message`` and byte-code
``VMThread`` objects qualify, so the same builder serves live requests
and ``.rbf`` program images.

Direct Command Operands
-----------------------
Layer, port and sub-code operands are short constants (LC0). Values
whose range exceeds -31..31 use the long forms documented per builder.
Result-bearing opcodes write into global variable ``index`` (GV0),
which selects the byte offset in the reply payload.

System Command Arguments
------------------------
Raw little-endian integers and NUL-terminated paths, no operand tags.

Example
-------
    msg = Message.new_direct(seq, global_bytes=4)
    input_read_si(msg, layer=0, no=InputPort.PORT_1, mode=0)
"""

from typing import Protocol

from ev3_sdk.protocol.opcodes import (
    InputDeviceSubcode,
    Opcode,
    SoundSubcode,
    SystemCommand,
    UIReadSubcode,
)
from ev3_sdk.protocol.operands import (
    cstring,
    gv,
    lc0,
    lc1,
    lc2,
    lc4,
    u8,
    u16,
    u32,
)


class OpcodeTarget(Protocol):
    """Anything opcode records can be appended to."""

    def append_opcode(self, code: int, *operands: bytes) -> object:
        ...


# =============================================================================
# UI
# =============================================================================

def ui_read_get_vbatt(target: OpcodeTarget, index: int = 0) -> None:
    """Battery voltage in volts, DATAF (4 bytes) at global ``index``."""
    target.append_opcode(Opcode.UI_READ, lc0(UIReadSubcode.GET_VBATT), gv(index))


def ui_read_get_lbatt(target: OpcodeTarget, index: int = 0) -> None:
    """Battery level in percent, DATA8 (1 byte) at global ``index``."""
    target.append_opcode(Opcode.UI_READ, lc0(UIReadSubcode.GET_LBATT), gv(index))


# =============================================================================
# Sound
# =============================================================================

def sound_tone(target: OpcodeTarget, volume: int, frequency: int, duration: int) -> None:
    """
    Play a tone.

    Args:
        volume: 0..100 (LC1).
        frequency: Hz, 250..10000 (LC2).
        duration: Milliseconds (LC2).
    """
    target.append_opcode(
        Opcode.SOUND,
        lc0(SoundSubcode.TONE),
        lc1(volume),
        lc2(frequency),
        lc2(duration),
    )


def sound_ready(target: OpcodeTarget) -> None:
    """Wait until the current sound has finished."""
    target.append_opcode(Opcode.SOUND_READY)


# (volume, frequency Hz, duration ms)
THREE_TONES = ((5, 440, 500), (10, 880, 500), (15, 1320, 500))


def three_tones(target: OpcodeTarget) -> None:
    """Three rising tones, each waiting for the previous one to end."""
    for volume, frequency, duration in THREE_TONES:
        sound_tone(target, volume, frequency, duration)
        sound_ready(target)


# =============================================================================
# Input
# =============================================================================

def input_device_get_name(
    target: OpcodeTarget, layer: int, no: int, length: int, index: int = 0
) -> None:
    """Device name of ``length`` bytes (NUL padded) at global ``index``."""
    target.append_opcode(
        Opcode.INPUT_DEVICE,
        lc0(InputDeviceSubcode.GET_NAME),
        lc0(layer),
        lc0(no),
        lc1(length),
        gv(index),
    )


def input_device_get_symbol(
    target: OpcodeTarget, layer: int, no: int, length: int, index: int = 0
) -> None:
    """Unit symbol of the current mode, ``length`` bytes at global ``index``."""
    target.append_opcode(
        Opcode.INPUT_DEVICE,
        lc0(InputDeviceSubcode.GET_SYMBOL),
        lc0(layer),
        lc0(no),
        lc1(length),
        gv(index),
    )


def input_device_clr_all(target: OpcodeTarget, layer: int) -> None:
    """Clear all device counters and values on ``layer``."""
    target.append_opcode(
        Opcode.INPUT_DEVICE, lc0(InputDeviceSubcode.CLR_ALL), lc0(layer)
    )


def input_read_si(
    target: OpcodeTarget,
    layer: int,
    no: int,
    mode: int,
    type_: int = 0,
    index: int = 0,
) -> None:
    """
    Read a sensor in SI units, DATAF (4 bytes) at global ``index``.

    ``type_`` 0 keeps the type the brick detected.
    """
    target.append_opcode(
        Opcode.INPUT_READSI,
        lc0(layer),
        lc0(no),
        lc0(type_),
        lc0(mode),
        gv(index),
    )


# =============================================================================
# Output
# =============================================================================

def output_stop(target: OpcodeTarget, layer: int, nos: int, brake: int) -> None:
    target.append_opcode(Opcode.OUTPUT_STOP, lc0(layer), lc0(nos), lc0(brake))


def output_power(target: OpcodeTarget, layer: int, nos: int, power: int) -> None:
    """Set motor power, -100..100 (LC1)."""
    target.append_opcode(Opcode.OUTPUT_POWER, lc0(layer), lc0(nos), lc1(power))


def output_start(target: OpcodeTarget, layer: int, nos: int) -> None:
    target.append_opcode(Opcode.OUTPUT_START, lc0(layer), lc0(nos))


def output_step_speed(
    target: OpcodeTarget,
    layer: int,
    nos: int,
    speed: int,
    step1: int,
    step2: int,
    step3: int,
    brake: int,
) -> None:
    """
    Run motors at constant speed through a three-phase step profile.

    Args:
        speed: -100..100 (LC1).
        step1: Ramp-up degrees (LC4).
        step2: Constant-speed degrees (LC4).
        step3: Ramp-down degrees (LC4).
        brake: 0 coast, 1 brake.
    """
    target.append_opcode(
        Opcode.OUTPUT_STEP_SPEED,
        lc0(layer),
        lc0(nos),
        lc1(speed),
        lc4(step1),
        lc4(step2),
        lc4(step3),
        lc0(brake),
    )


def output_clr_count(target: OpcodeTarget, layer: int, nos: int) -> None:
    target.append_opcode(Opcode.OUTPUT_CLR_COUNT, lc0(layer), lc0(nos))


def output_get_count(target: OpcodeTarget, layer: int, no: int, index: int = 0) -> None:
    """
    Tacho count, DATA32 (4 bytes) at global ``index``.

    Unlike the other output opcodes this one takes a port number
    (0..3), not a bitmask.
    """
    target.append_opcode(Opcode.OUTPUT_GET_COUNT, lc0(layer), lc0(no), gv(index))


def object_end(target: OpcodeTarget) -> None:
    target.append_opcode(Opcode.OBJECT_END)


# =============================================================================
# System Commands
# =============================================================================

def begin_download(target: OpcodeTarget, size: int, path: str) -> None:
    """Open ``path`` on the brick for writing ``size`` bytes."""
    target.append_opcode(SystemCommand.BEGIN_DOWNLOAD, u32(size), cstring(path))


def continue_download(target: OpcodeTarget, handle: int, chunk: bytes) -> None:
    target.append_opcode(SystemCommand.CONTINUE_DOWNLOAD, u8(handle), bytes(chunk))


def begin_upload(target: OpcodeTarget, max_length: int, path: str) -> None:
    """Open ``path`` on the brick for reading, first chunk up to ``max_length``."""
    target.append_opcode(SystemCommand.BEGIN_UPLOAD, u16(max_length), cstring(path))


def continue_upload(target: OpcodeTarget, handle: int, max_length: int) -> None:
    target.append_opcode(SystemCommand.CONTINUE_UPLOAD, u8(handle), u16(max_length))


def list_files(target: OpcodeTarget, max_length: int, path: str) -> None:
    target.append_opcode(SystemCommand.LIST_FILES, u16(max_length), cstring(path))


def continue_list_files(target: OpcodeTarget, handle: int, max_length: int) -> None:
    target.append_opcode(
        SystemCommand.CONTINUE_LIST_FILES, u8(handle), u16(max_length)
    )


def create_dir(target: OpcodeTarget, path: str) -> None:
    target.append_opcode(SystemCommand.CREATE_DIR, cstring(path))


def delete_file(target: OpcodeTarget, path: str) -> None:
    target.append_opcode(SystemCommand.DELETE_FILE, cstring(path))
