"""
EV3 Request Messages
====================

A ``Message`` is one outgoing request: a header plus either a stream of
direct-command opcode records or a single system command with its raw
arguments.

Wire Layout
-----------
Direct command::

    ┌────────┬────────┬──────┬──────────────┬────────────────┐
    │ Length │  Seq   │ Type │ Local/Global │   Opcodes...   │
    │  2 LE  │  2 LE  │  1   │     2 LE     │                │
    └────────┴────────┴──────┴──────────────┴────────────────┘

System command::

    ┌────────┬────────┬──────┬─────────┬─────────────┐
    │ Length │  Seq   │ Type │ Command │ Raw args... │
    │  2 LE  │  2 LE  │  1   │    1    │             │
    └────────┴────────┴──────┴─────────┴─────────────┘

The length prefix counts every byte after itself. The direct header
packs the scratch sizes as ``(local_bytes << 10) | global_bytes``.

Example
-------
    from ev3_sdk.protocol.message import Message
    from ev3_sdk.protocol import commands

    msg = Message.new_direct(0x2A, global_bytes=4)
    commands.ui_read_get_vbatt(msg)
    msg.finalize().hex()   # "08002a00000400810160"
"""

import logging
import struct
from typing import Final

from ev3_sdk.errors import EncodingError, EncodingOverflowError
from ev3_sdk.protocol.opcodes import (
    LOCAL_BYTES_SHIFT,
    MAX_GLOBAL_BYTES,
    MAX_LOCAL_BYTES,
    MAX_MESSAGE_LENGTH,
    MAX_SEQUENCE_ID,
    CommandType,
)

logger = logging.getLogger(__name__)


# seq(2) + type(1)
_COMMON_HEADER_SIZE: Final[int] = 3

# packed local/global scratch sizes
_DIRECT_SCRATCH_SIZE: Final[int] = 2


class OpcodeStream:
    """
    Append-only buffer of opcode records.

    Shared by live requests and by byte-code threads, so the opcode
    builders in ``ev3_sdk.protocol.commands`` emit identical bytes for
    both. Operands are pre-encoded byte strings (see
    ``ev3_sdk.protocol.operands``) and are written in the order given.
    """

    def __init__(self) -> None:
        self._body = bytearray()

    @property
    def body(self) -> bytes:
        """Encoded opcode records appended so far."""
        return bytes(self._body)

    def append_opcode(self, code: int, *operands: bytes) -> "OpcodeStream":
        """
        Append one opcode byte followed by its encoded operands.

        Args:
            code: Opcode or system command byte (0..255).
            *operands: Already-encoded operand bytes.

        Returns:
            self, so calls may be chained.

        Raises:
            EncodingError: If the opcode does not fit in one byte.
        """
        if not 0 <= code <= 0xFF:
            raise EncodingError(f"Opcode must be 0-255, got {code}")
        self._body.append(code)
        for operand in operands:
            self._body.extend(operand)
        return self


class Message(OpcodeStream):
    """
    One outgoing EV3 request.

    Build with ``new_direct`` or ``new_system``, append opcode records,
    then call ``finalize`` for the wire bytes. ``finalize`` does not
    consume the message; calling it twice yields identical bytes.

    Attributes:
        sequence_id: Correlates the request with its reply (0..0xFFFF).
        command_type: Direct or System, with or without reply.
        global_bytes: Reply scratch reserved for a direct command.
        local_bytes: Local scratch for a direct command.
    """

    def __init__(
        self,
        sequence_id: int,
        command_type: CommandType,
        global_bytes: int = 0,
        local_bytes: int = 0,
    ):
        super().__init__()

        if not 0 <= sequence_id <= MAX_SEQUENCE_ID:
            raise EncodingError(
                f"Sequence id must be 0-{MAX_SEQUENCE_ID}, got {sequence_id}"
            )
        if not 0 <= global_bytes <= MAX_GLOBAL_BYTES:
            raise EncodingError(
                f"Global bytes must be 0-{MAX_GLOBAL_BYTES}, got {global_bytes}"
            )
        if not 0 <= local_bytes <= MAX_LOCAL_BYTES:
            raise EncodingError(
                f"Local bytes must be 0-{MAX_LOCAL_BYTES}, got {local_bytes}"
            )
        if command_type.is_system and (global_bytes or local_bytes):
            raise EncodingError("System commands carry no scratch sizes")

        self.sequence_id = sequence_id
        self.command_type = command_type
        self.global_bytes = global_bytes
        self.local_bytes = local_bytes

    @classmethod
    def new_direct(
        cls,
        sequence_id: int,
        global_bytes: int = 0,
        local_bytes: int = 0,
        expect_reply: bool = True,
    ) -> "Message":
        """Start a direct command reserving the given scratch sizes."""
        command_type = (
            CommandType.DIRECT_REPLY if expect_reply else CommandType.DIRECT_NO_REPLY
        )
        return cls(sequence_id, command_type, global_bytes, local_bytes)

    @classmethod
    def new_system(cls, sequence_id: int, expect_reply: bool = True) -> "Message":
        """Start a system command. Exactly one command may be appended."""
        command_type = (
            CommandType.SYSTEM_REPLY if expect_reply else CommandType.SYSTEM_NO_REPLY
        )
        return cls(sequence_id, command_type)

    @property
    def is_system(self) -> bool:
        return self.command_type.is_system

    @property
    def expects_reply(self) -> bool:
        return self.command_type.expects_reply

    def append_opcode(self, code: int, *operands: bytes) -> "Message":
        if self.is_system and self._body:
            raise EncodingError("A system message carries a single command")
        super().append_opcode(code, *operands)
        return self

    def encoded_length(self) -> int:
        """Value of the length field: every byte after the prefix."""
        length = _COMMON_HEADER_SIZE + len(self._body)
        if not self.is_system:
            length += _DIRECT_SCRATCH_SIZE
        return length

    def finalize(self) -> bytes:
        """
        Produce the wire bytes for this request.

        Returns:
            Length prefix, header and body.

        Raises:
            EncodingOverflowError: If the length field would exceed 0xFFFF.
        """
        length = self.encoded_length()
        if length > MAX_MESSAGE_LENGTH:
            raise EncodingOverflowError(length, MAX_MESSAGE_LENGTH)

        frame = bytearray(struct.pack("<HHB", length, self.sequence_id, self.command_type))
        if not self.is_system:
            scratch = (self.local_bytes << LOCAL_BYTES_SHIFT) | self.global_bytes
            frame.extend(struct.pack("<H", scratch))
        frame.extend(self._body)

        logger.debug(
            "Encoded message: seq=%d type=%s body_len=%d wire_len=%d",
            self.sequence_id, self.command_type.name, len(self._body),
            len(frame),
        )
        return bytes(frame)

    def __repr__(self) -> str:
        body = self._body[:20].hex() + "..." if len(self._body) > 20 else self._body.hex()
        return (
            f"Message(seq={self.sequence_id}, type={self.command_type.name}, "
            f"global={self.global_bytes}, local={self.local_bytes}, "
            f"body[{len(self._body)}]={body})"
        )
