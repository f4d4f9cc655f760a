"""
EV3 Byte-code Module
====================

Builds ``.rbf`` programs for the brick's virtual machine from the same
opcode builders used for direct commands.

Quick Start
-----------
    from ev3_sdk.bytecode import three_tone_program
    three_tone_program().write("tones.rbf")
"""

from ev3_sdk.bytecode.image import (
    DEFAULT_VERSION_INFO,
    IMAGE_SIGNATURE,
    PROGRAM_HEADER_SIZE,
    THREAD_HEADER_SIZE,
    ProgramImage,
    VMThread,
    three_tone_program,
)

__all__ = [
    "DEFAULT_VERSION_INFO",
    "IMAGE_SIGNATURE",
    "PROGRAM_HEADER_SIZE",
    "THREAD_HEADER_SIZE",
    "ProgramImage",
    "VMThread",
    "three_tone_program",
]
