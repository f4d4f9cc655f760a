"""
Operand Encoding
================

Every operand in a direct-command opcode stream describes its own width
through a leading format byte, so the brick can walk the stream without
an external schema. This module turns Python values into those encoded
operands.

Format Byte Layout
------------------
    Short form (bit 7 = 0)
        0 0 v v v v v v    constant, 6-bit two's complement (-31..31)
        0 1 0 i i i i i    local variable, index 0..31
        0 1 1 i i i i i    global variable, index 0..31

    Long form (bit 7 = 1)
        1 0 0 0 0 w w w    constant, w = 1/2/3 for 1/2/4 bytes, 4 for string
        1 1 0 0 0 w w w    local variable, index in the next w bytes
        1 1 1 0 0 w w w    global variable, index in the next w bytes

Multi-byte values are little-endian. A 32-bit float constant uses the
4-byte constant prefix followed by its IEEE-754 bits.

System commands do not use tags. Their arguments are raw little-endian
integers and NUL-terminated strings, built with ``u8``/``u16``/``u32``/
``cstring`` below.

Usage
-----
    >>> from ev3_sdk.protocol.operands import lc0, lc2, gv0
    >>> lc0(1) + lc2(440) + gv0(0)
    b'\\x01\\x82\\xb8\\x01`'
"""

import struct
from typing import Final

from ev3_sdk.errors import EncodingError
from ev3_sdk.protocol.opcodes import (
    SHORT_INDEX_MASK,
    SHORT_VALUE_MASK,
    ParamFlag,
)


# =============================================================================
# Ranges
# =============================================================================

LC0_MIN: Final[int] = -31
LC0_MAX: Final[int] = 31

_SIGNED_RANGES: Final[dict[int, tuple[int, int]]] = {
    1: (-0x80, 0x7F),
    2: (-0x8000, 0x7FFF),
    4: (-0x80000000, 0x7FFFFFFF),
}

_UNSIGNED_MAX: Final[dict[int, int]] = {1: 0xFF, 2: 0xFFFF, 4: 0xFFFFFFFF}

_WIDTH_FLAG: Final[dict[int, int]] = {
    1: ParamFlag.ONE_BYTE,
    2: ParamFlag.TWO_BYTES,
    4: ParamFlag.FOUR_BYTES,
}

_SIGNED_FORMAT: Final[dict[int, str]] = {1: "<b", 2: "<h", 4: "<i"}
_UNSIGNED_FORMAT: Final[dict[int, str]] = {1: "<B", 2: "<H", 4: "<I"}


def _check_signed(value: int, width: int) -> None:
    low, high = _SIGNED_RANGES[width]
    if not low <= value <= high:
        raise EncodingError(
            f"Value {value} does not fit a signed {width * 8}-bit operand "
            f"({low}..{high})"
        )


def _check_unsigned(value: int, width: int, what: str = "value") -> None:
    if not 0 <= value <= _UNSIGNED_MAX[width]:
        raise EncodingError(
            f"{what.capitalize()} {value} does not fit {width * 8} unsigned bits"
        )


# =============================================================================
# Constants
# =============================================================================

def lc0(value: int) -> bytes:
    """Short constant, packed into the format byte (-31..31)."""
    if not LC0_MIN <= value <= LC0_MAX:
        raise EncodingError(
            f"Value {value} does not fit a short constant ({LC0_MIN}..{LC0_MAX})"
        )
    return bytes([(value & SHORT_VALUE_MASK) | ParamFlag.SHORT | ParamFlag.CONST])


def _long_constant(value: int, width: int) -> bytes:
    _check_signed(value, width)
    prefix = ParamFlag.LONG | ParamFlag.CONST | _WIDTH_FLAG[width]
    return bytes([prefix]) + struct.pack(_SIGNED_FORMAT[width], value)


def lc1(value: int) -> bytes:
    """8-bit signed constant."""
    return _long_constant(value, 1)


def lc2(value: int) -> bytes:
    """16-bit signed constant."""
    return _long_constant(value, 2)


def lc4(value: int) -> bytes:
    """32-bit signed constant."""
    return _long_constant(value, 4)


def lcf(value: float) -> bytes:
    """32-bit IEEE-754 float constant."""
    prefix = ParamFlag.LONG | ParamFlag.CONST | ParamFlag.FOUR_BYTES
    try:
        packed = struct.pack("<f", value)
    except (OverflowError, struct.error) as e:
        raise EncodingError(f"Value {value!r} is not a 32-bit float: {e}") from e
    return bytes([prefix]) + packed


def lcs(text: str) -> bytes:
    """NUL-terminated string constant."""
    return bytes([ParamFlag.LONG | ParamFlag.CONST | ParamFlag.STRING]) + cstring(text)


def lc(value: int) -> bytes:
    """
    Integer constant in the narrowest form that holds it.

    Args:
        value: Signed integer in the 32-bit range.

    Returns:
        LC0, LC1, LC2 or LC4 encoding.
    """
    if LC0_MIN <= value <= LC0_MAX:
        return lc0(value)
    for width in (1, 2, 4):
        low, high = _SIGNED_RANGES[width]
        if low <= value <= high:
            return _long_constant(value, width)
    raise EncodingError(f"Value {value} does not fit a 32-bit operand")


# =============================================================================
# Variables
# =============================================================================

def _short_variable(index: int, scope: int) -> bytes:
    if not 0 <= index <= SHORT_INDEX_MASK:
        raise EncodingError(
            f"Variable index {index} does not fit the short form (0..{SHORT_INDEX_MASK})"
        )
    return bytes([index | ParamFlag.SHORT | ParamFlag.VARIABLE | scope])


def _long_variable(index: int, width: int, scope: int) -> bytes:
    _check_unsigned(index, width, "variable index")
    prefix = ParamFlag.LONG | ParamFlag.VARIABLE | scope | _WIDTH_FLAG[width]
    return bytes([prefix]) + struct.pack(_UNSIGNED_FORMAT[width], index)


def lv0(index: int) -> bytes:
    """Local variable, short form."""
    return _short_variable(index, ParamFlag.LOCAL)


def lv1(index: int) -> bytes:
    return _long_variable(index, 1, ParamFlag.LOCAL)


def lv2(index: int) -> bytes:
    return _long_variable(index, 2, ParamFlag.LOCAL)


def lv4(index: int) -> bytes:
    return _long_variable(index, 4, ParamFlag.LOCAL)


def gv0(index: int) -> bytes:
    """Global variable, short form. Direct-reply results land here."""
    return _short_variable(index, ParamFlag.GLOBAL)


def gv1(index: int) -> bytes:
    return _long_variable(index, 1, ParamFlag.GLOBAL)


def gv2(index: int) -> bytes:
    return _long_variable(index, 2, ParamFlag.GLOBAL)


def gv4(index: int) -> bytes:
    return _long_variable(index, 4, ParamFlag.GLOBAL)


def gv(index: int) -> bytes:
    """Global variable in the narrowest form that holds the index."""
    if 0 <= index <= SHORT_INDEX_MASK:
        return gv0(index)
    for width in (1, 2, 4):
        if 0 <= index <= _UNSIGNED_MAX[width]:
            return _long_variable(index, width, ParamFlag.GLOBAL)
    raise EncodingError(f"Variable index {index} does not fit 32 bits")


# =============================================================================
# Raw System Command Arguments
# =============================================================================

def u8(value: int) -> bytes:
    _check_unsigned(value, 1)
    return struct.pack("<B", value)


def u16(value: int) -> bytes:
    _check_unsigned(value, 2)
    return struct.pack("<H", value)


def u32(value: int) -> bytes:
    _check_unsigned(value, 4)
    return struct.pack("<I", value)


def cstring(text: str) -> bytes:
    """
    Encode text as a NUL-terminated UTF-8 string.

    Raises:
        EncodingError: If the text already contains a NUL character.
    """
    if "\x00" in text:
        raise EncodingError(f"String operand contains NUL: {text!r}")
    return text.encode("utf-8") + b"\x00"
