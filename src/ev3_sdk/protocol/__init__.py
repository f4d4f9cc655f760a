"""
EV3 Protocol Layer
==================

Encoding and decoding of the LEGO Mindstorms EV3 command/reply protocol,
independent of any transport.

Module Structure
----------------
- **opcodes**: Command types, reply types, opcodes and status codes
- **operands**: LC/LV/GV operand encoding and raw system arguments
- **message**: Outgoing request framing (``Message``)
- **commands**: One builder per opcode, shared with the byte-code builder
- **reply**: Reply decoding and little-endian accessors (``Reply``)
- **listing**: ``LIST_FILES`` text parsing
- **transfer**: Begin/continue file transfer over a ``Link``

Quick Start
-----------
    from ev3_sdk.protocol import Message, commands, decode_reply

    msg = Message.new_direct(7, global_bytes=4)
    commands.ui_read_get_vbatt(msg)
    transport.write(msg.finalize())

    reply = decode_reply(transport.read(), expected_sequence_id=7,
                         payload_length=4)
    print(f"Battery: {reply.as_float32():.2f} V")
"""

from ev3_sdk.protocol import commands, operands
from ev3_sdk.protocol.listing import FileEntry, parse_listing
from ev3_sdk.protocol.message import Message, OpcodeStream
from ev3_sdk.protocol.opcodes import (
    CommandType,
    InputDeviceSubcode,
    Opcode,
    ReplyType,
    SoundSubcode,
    SystemCommand,
    SystemStatus,
    UIReadSubcode,
)
from ev3_sdk.protocol.reply import Reply, ReplyStatus, decode_reply
from ev3_sdk.protocol.transfer import (
    DEFAULT_MAX_CHUNK_LENGTH,
    FileTransfer,
    ProgressCallback,
    TransferState,
)

__all__ = [
    # Submodules
    "commands",
    "operands",
    # Constants and enums
    "CommandType",
    "ReplyType",
    "SystemCommand",
    "SystemStatus",
    "Opcode",
    "UIReadSubcode",
    "SoundSubcode",
    "InputDeviceSubcode",
    # Encoding
    "Message",
    "OpcodeStream",
    # Decoding
    "Reply",
    "ReplyStatus",
    "decode_reply",
    # Listings
    "FileEntry",
    "parse_listing",
    # Transfer
    "DEFAULT_MAX_CHUNK_LENGTH",
    "FileTransfer",
    "ProgressCallback",
    "TransferState",
]
