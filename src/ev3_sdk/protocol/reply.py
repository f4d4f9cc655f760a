"""
EV3 Reply Decoding
==================

Parses one reply frame into a ``Reply`` and reinterprets payload bytes
as little-endian integers, floats and strings.

Wire Layout
-----------
    ┌────────┬────────┬──────┬────────────────────┐
    │ Length │  Seq   │ Type │      Payload       │
    │  2 LE  │  2 LE  │  1   │                    │
    └────────┴────────┴──────┴────────────────────┘

For a direct reply the payload is the global scratch the request
reserved. For a system reply it starts with the echoed system command
and a status byte, followed by command-specific data::

    ┌─────────┬────────┬──────────┐
    │ Command │ Status │  Data    │
    │    1    │   1    │          │
    └─────────┴────────┴──────────┘

Offsets given to the accessors are relative to the payload, so the
first payload byte (full-frame offset 5) is offset 0.

Validation Order
----------------
1. Header present and frame as long as its own length prefix
2. Sequence id equals the request's
3. Reply type is not an error type, system status is usable
4. Payload width equals the declared width, when one is declared
"""

import logging
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ev3_sdk.errors import (
    DecodeError,
    DeviceError,
    PayloadLengthError,
    SequenceMismatchError,
    TruncatedReplyError,
)
from ev3_sdk.protocol.opcodes import (
    LENGTH_FIELD_SIZE,
    REPLY_HEADER_SIZE,
    SYSTEM_OK_STATUSES,
    ReplyType,
    SystemCommand,
    SystemStatus,
)

logger = logging.getLogger(__name__)

# echoed command(1) + status(1)
SYSTEM_PREFIX_SIZE = 2


class ReplyStatus(Enum):
    """Outcome carried by the reply type byte."""

    OK = "ok"
    ERROR = "error"


# =============================================================================
# Reply Class
# =============================================================================

@dataclass(frozen=True)
class Reply:
    """
    A decoded reply frame.

    Attributes:
        sequence_id: Sequence id echoed from the request.
        reply_type: Raw reply type (direct/system, ok/error).
        payload: Bytes after the 5-byte header.
    """

    sequence_id: int
    reply_type: ReplyType
    payload: bytes

    @property
    def status(self) -> ReplyStatus:
        return ReplyStatus.ERROR if self.reply_type.is_error else ReplyStatus.OK

    @property
    def is_system(self) -> bool:
        return self.reply_type.is_system

    @property
    def system_command(self) -> Optional[int]:
        """Echoed system command, or None for direct replies."""
        if not self.is_system or not self.payload:
            return None
        return self.payload[0]

    @property
    def system_status(self) -> Optional[int]:
        """System status byte, or None for direct replies."""
        if not self.is_system or len(self.payload) < SYSTEM_PREFIX_SIZE:
            return None
        return self.payload[1]

    @property
    def data(self) -> bytes:
        """Payload with the system command/status prefix removed."""
        if self.is_system:
            return self.payload[SYSTEM_PREFIX_SIZE:]
        return self.payload

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def _slice(self, offset: int, width: int, what: str) -> bytes:
        if offset < 0 or offset + width > len(self.payload):
            raise TruncatedReplyError(offset + width, len(self.payload), what)
        return self.payload[offset:offset + width]

    def as_float32(self, offset: int = 0) -> float:
        """Little-endian IEEE-754 single at ``offset``."""
        return struct.unpack("<f", self._slice(offset, 4, "float32"))[0]

    def as_uint32_le(self, offset: int = 0) -> int:
        return struct.unpack("<I", self._slice(offset, 4, "uint32"))[0]

    def as_int32_le(self, offset: int = 0) -> int:
        return struct.unpack("<i", self._slice(offset, 4, "int32"))[0]

    def as_uint8(self, offset: int = 0) -> int:
        return self._slice(offset, 1, "uint8")[0]

    def as_cstring(self, offset: int = 0, length: Optional[int] = None) -> str:
        """
        Text starting at ``offset``, cut at the first NUL.

        Trailing whitespace is stripped. Bytes that are not valid UTF-8
        are replaced rather than rejected, since device name fields are
        fixed-width and may hold stale bytes after the terminator.

        Args:
            offset: Payload offset of the first character.
            length: Field width; defaults to the rest of the payload.
        """
        if length is None:
            if offset > len(self.payload):
                raise TruncatedReplyError(offset, len(self.payload), "string")
            raw = self._slice(offset, len(self.payload) - offset, "string")
        else:
            raw = self._slice(offset, length, "string")
        text = raw.split(b"\x00", 1)[0]
        return text.decode("utf-8", errors="replace").rstrip()

    def to_bytes(self) -> bytes:
        """Re-encode this reply as a wire frame."""
        length = 3 + len(self.payload)
        header = struct.pack("<HHB", length, self.sequence_id, self.reply_type)
        return header + self.payload

    def __repr__(self) -> str:
        payload = (
            self.payload[:20].hex() + "..."
            if len(self.payload) > 20
            else self.payload.hex()
        )
        return (
            f"Reply(seq={self.sequence_id}, type={self.reply_type.name}, "
            f"payload[{len(self.payload)}]={payload})"
        )


# =============================================================================
# Decoder
# =============================================================================

def decode_reply(
    data: bytes,
    expected_sequence_id: int,
    payload_length: Optional[int] = None,
) -> Reply:
    """
    Decode a reply frame and check it against its request.

    Args:
        data: Received bytes, length prefix included. Bytes past the
              length the prefix announces are ignored.
        expected_sequence_id: Sequence id of the request.
        payload_length: Exact payload width the request declared, or None
                        to accept any width.

    Returns:
        The decoded Reply.

    Raises:
        TruncatedReplyError: Header, frame, or payload shorter than required.
        SequenceMismatchError: Reply belongs to another request.
        PayloadLengthError: Payload wider than declared.
        DeviceError: Error reply type, or an unusable system status.
        DecodeError: Unknown reply type byte.
    """
    if len(data) < REPLY_HEADER_SIZE:
        raise TruncatedReplyError(REPLY_HEADER_SIZE, len(data), "reply header")

    length, sequence_id, type_byte = struct.unpack_from("<HHB", data)
    frame_end = LENGTH_FIELD_SIZE + length
    if frame_end < REPLY_HEADER_SIZE:
        raise TruncatedReplyError(REPLY_HEADER_SIZE, frame_end, "reply header")
    if len(data) < frame_end:
        raise TruncatedReplyError(frame_end, len(data), "reply frame")
    if len(data) > frame_end:
        logger.debug("Ignoring %d bytes after reply frame", len(data) - frame_end)

    if sequence_id != expected_sequence_id:
        raise SequenceMismatchError(expected_sequence_id, sequence_id)

    try:
        reply_type = ReplyType(type_byte)
    except ValueError:
        raise DecodeError(f"Unknown reply type 0x{type_byte:02X}") from None

    payload = bytes(data[REPLY_HEADER_SIZE:frame_end])
    reply = Reply(sequence_id, reply_type, payload)

    logger.debug(
        "Decoded reply: seq=%d type=%s payload_len=%d",
        sequence_id, reply_type.name, len(payload)
    )

    _check_status(reply)

    if payload_length is not None:
        if len(payload) < payload_length:
            raise TruncatedReplyError(payload_length, len(payload), "reply payload")
        if len(payload) > payload_length:
            raise PayloadLengthError(payload_length, len(payload))

    return reply


def _check_status(reply: Reply) -> None:
    """Raise DeviceError when the brick reported a failure."""
    if not reply.is_system:
        if reply.reply_type.is_error:
            raise DeviceError(
                f"Direct command {reply.sequence_id} failed",
                sequence_id=reply.sequence_id,
            )
        return

    status = reply.system_status
    if status is None:
        if reply.reply_type.is_error:
            raise DeviceError(
                f"System command {reply.sequence_id} failed",
                sequence_id=reply.sequence_id,
            )
        raise TruncatedReplyError(
            SYSTEM_PREFIX_SIZE, len(reply.payload), "system reply"
        )

    if reply.reply_type.is_error or status not in SYSTEM_OK_STATUSES:
        raise DeviceError(
            f"{_command_name(reply.system_command)} failed: "
            f"{SystemStatus.describe(status)}",
            status=status,
            sequence_id=reply.sequence_id,
        )


def _command_name(code: Optional[int]) -> str:
    try:
        return SystemCommand(code).name
    except ValueError:
        return f"System command 0x{code:02X}"
