"""
EV3 Command Link
================

A ``Link`` performs one request/reply round trip at a time over a
``Transport``. It owns sequence-id generation, so every request it
builds carries a fresh id and every reply is checked against it.

Round Trip
----------
    1. Build a Message with ``link.direct(...)`` or ``link.system()``
    2. Append opcode records (``ev3_sdk.protocol.commands``)
    3. ``link.exchange(msg)`` for replies, ``link.send(msg)`` otherwise

Sequence ids count up from the starting value and wrap from 0xFFFF to
0. Only one request is ever in flight; the link is not thread-safe.

Usage:
    link = Link(transport)
    msg = link.direct(global_bytes=4)
    commands.ui_read_get_vbatt(msg)
    volts = link.exchange(msg, payload_length=4).as_float32()
"""

import logging
from typing import Final, Optional

from ev3_sdk.comms.transport import Transport
from ev3_sdk.errors import EncodingError
from ev3_sdk.protocol.message import Message
from ev3_sdk.protocol.opcodes import MAX_SEQUENCE_ID
from ev3_sdk.protocol.reply import Reply, decode_reply

logger = logging.getLogger(__name__)


class Link:
    """Request/reply correlation over a single transport."""

    # Longest frame prefix shown in hex dumps
    HEX_DUMP_LIMIT: Final[int] = 64

    def __init__(self, transport: Transport, first_sequence_id: int = 0):
        if not 0 <= first_sequence_id <= MAX_SEQUENCE_ID:
            raise EncodingError(
                f"Sequence id must be 0-{MAX_SEQUENCE_ID}, got {first_sequence_id}"
            )
        self.transport = transport
        self._next_sequence_id = first_sequence_id

    def next_sequence_id(self) -> int:
        """Return the next sequence id and advance, wrapping at 0xFFFF."""
        sequence_id = self._next_sequence_id
        self._next_sequence_id = (sequence_id + 1) & MAX_SEQUENCE_ID
        return sequence_id

    # -------------------------------------------------------------------------
    # Message Factories
    # -------------------------------------------------------------------------

    def direct(
        self, global_bytes: int = 0, local_bytes: int = 0, expect_reply: bool = True
    ) -> Message:
        return Message.new_direct(
            self.next_sequence_id(), global_bytes, local_bytes, expect_reply
        )

    def system(self, expect_reply: bool = True) -> Message:
        return Message.new_system(self.next_sequence_id(), expect_reply)

    # -------------------------------------------------------------------------
    # Round Trips
    # -------------------------------------------------------------------------

    def send(self, message: Message) -> None:
        """Write a request without reading a reply."""
        frame = message.finalize()
        self.transport.write(frame)
        logger.debug("Sent %d bytes: %s", len(frame), self._hex(frame))

    def exchange(self, message: Message, payload_length: Optional[int] = None) -> Reply:
        """
        Write a request and decode its reply.

        Args:
            message: Request built with a reply-expecting command type.
            payload_length: Exact payload width to enforce, or None.

        Returns:
            Decoded reply.

        Raises:
            ValueError: If the message asks the brick not to reply.
            DecodeError: Malformed or misdirected reply.
            DeviceError: The brick reported a failure.
            CommsError: Transport failure.
        """
        if not message.expects_reply:
            raise ValueError(
                f"{message.command_type.name} request gets no reply; use send()"
            )

        self.send(message)
        data = self.transport.read()
        logger.debug("Received %d bytes: %s", len(data), self._hex(data))
        return decode_reply(data, message.sequence_id, payload_length)

    def _hex(self, data: bytes) -> str:
        if len(data) > self.HEX_DUMP_LIMIT:
            return data[:self.HEX_DUMP_LIMIT].hex() + "..."
        return data.hex()
