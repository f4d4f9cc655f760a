"""
RBF Program Image Builder
=========================

Builds standalone ``.rbf`` byte-code programs that the brick's virtual
machine runs from its filesystem. The instructions are produced by the
same opcode builders used for direct commands, so a sequence that works
live can be saved as a program and uploaded.

Image Layout
------------
    ┌──────────────────────────────────────────────┐
    │ Program header (16 bytes)                    │
    │   "LEGO" │ image size u32 │ version u16      │
    │   object count u16 │ global bytes u32        │
    ├──────────────────────────────────────────────┤
    │ Thread header × N (12 bytes each)            │
    │   offset u32 │ owner u16 │ triggers u16      │
    │   local bytes u32                            │
    ├──────────────────────────────────────────────┤
    │ Thread 1 instructions ... opOBJECT_END       │
    │ Thread 2 instructions ... opOBJECT_END       │
    └──────────────────────────────────────────────┘

All integers are little-endian. Offsets count from the start of the
image; the image size includes the header.

Usage
-----
    from ev3_sdk.bytecode import ProgramImage
    from ev3_sdk.protocol import commands

    image = ProgramImage()
    thread = image.add_thread()
    commands.sound_tone(thread, 10, 1000, 200)
    image.write("beep")   # writes beep.rbf
"""

import logging
import struct
from pathlib import Path
from typing import Final, Union

from ev3_sdk.errors import EncodingError
from ev3_sdk.protocol import commands
from ev3_sdk.protocol.message import OpcodeStream

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

IMAGE_SIGNATURE: Final[bytes] = b"LEGO"

# Firmware byte-code version 1.04
DEFAULT_VERSION_INFO: Final[int] = 104

PROGRAM_HEADER_SIZE: Final[int] = 16
THREAD_HEADER_SIZE: Final[int] = 12

RBF_SUFFIX: Final[str] = ".rbf"


class VMThread(OpcodeStream):
    """
    One VM thread (object) of a program.

    Opcode builders append to it exactly as they append to a Message.
    ``opOBJECT_END`` is added by ``ProgramImage.build``.
    """

    def __init__(self, local_bytes: int = 0):
        super().__init__()
        self.local_bytes = local_bytes

    @property
    def instructions(self) -> bytes:
        """Thread body as stored in the image, terminator included."""
        end = OpcodeStream()
        commands.object_end(end)
        return self.body + end.body

    def __len__(self) -> int:
        return len(self.instructions)


class ProgramImage:
    """
    An ``.rbf`` program being assembled.

    Attributes:
        global_bytes: Global variable space shared by all threads.
        version_info: Byte-code version stored in the header.
        threads: Threads in image order; the first one starts the program.
    """

    def __init__(self, global_bytes: int = 0, version_info: int = DEFAULT_VERSION_INFO):
        self.global_bytes = global_bytes
        self.version_info = version_info
        self.threads: list[VMThread] = []

    def add_thread(self, local_bytes: int = 0) -> VMThread:
        thread = VMThread(local_bytes)
        self.threads.append(thread)
        return thread

    def build(self) -> bytes:
        """
        Serialize the program.

        Returns:
            Complete ``.rbf`` image.

        Raises:
            EncodingError: If there are no threads or a header field
                           is out of range.
        """
        if not self.threads:
            raise EncodingError("Program image has no threads")

        bodies = [thread.instructions for thread in self.threads]
        offset = PROGRAM_HEADER_SIZE + THREAD_HEADER_SIZE * len(self.threads)
        image_size = offset + sum(len(body) for body in bodies)

        try:
            image = bytearray(
                struct.pack(
                    "<4sIHHI",
                    IMAGE_SIGNATURE,
                    image_size,
                    self.version_info,
                    len(self.threads),
                    self.global_bytes,
                )
            )
            for thread, body in zip(self.threads, bodies):
                image.extend(struct.pack("<IHHI", offset, 0, 0, thread.local_bytes))
                offset += len(body)
        except struct.error as e:
            raise EncodingError(f"Program header field out of range: {e}") from e

        for body in bodies:
            image.extend(body)

        logger.debug(
            "Built program image: %d bytes, %d threads", len(image), len(self.threads)
        )
        return bytes(image)

    def write(self, path: Union[str, Path]) -> Path:
        """
        Build and write the image, adding ``.rbf`` if ``path`` has no suffix.

        Returns:
            The path written.
        """
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(RBF_SUFFIX)
        data = self.build()
        path.write_bytes(data)
        logger.info("Wrote %s (%d bytes)", path, len(data))
        return path


def three_tone_program() -> ProgramImage:
    """A one-thread program playing three rising tones in sequence."""
    image = ProgramImage()
    thread = image.add_thread()
    commands.three_tones(thread)
    return image
