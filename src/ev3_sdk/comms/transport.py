"""
Transport Capability
====================

The protocol layer talks to the brick through any object with four
methods: ``open``, ``write``, ``read`` and ``close``. ``read`` returns
exactly one reply frame, length prefix included, so the decoder never
deals with partial frames.

Stream transports (serial, Bluetooth RFCOMM, TCP) deliver bytes without
frame boundaries. ``read_frame`` reassembles one frame from such a
stream by reading the 2-byte length prefix and then exactly that many
bytes.
"""

import struct
from typing import Callable, Protocol, runtime_checkable

from ev3_sdk.errors import TimeoutError, TransportError
from ev3_sdk.protocol.opcodes import LENGTH_FIELD_SIZE


@runtime_checkable
class Transport(Protocol):
    """Bidirectional byte channel to one brick."""

    def open(self) -> None:
        """Acquire the underlying channel. Raises ConnectionError."""
        ...

    def write(self, data: bytes) -> None:
        """Send one complete request frame. Raises TransportError."""
        ...

    def read(self) -> bytes:
        """Receive one complete reply frame. Raises TransportError/TimeoutError."""
        ...

    def close(self) -> None:
        """Release the channel. Safe to call on a closed transport."""
        ...


def read_frame(read_some: Callable[[int], bytes], description: str = "brick") -> bytes:
    """
    Read one length-prefixed frame from a byte stream.

    Args:
        read_some: Reads up to n bytes, returning fewer (possibly none) on
                   timeout. ``serial.Serial.read`` and ``socket.recv``
                   wrappers both fit.
        description: Peer name used in error messages.

    Returns:
        The complete frame, length prefix included.

    Raises:
        TimeoutError: Nothing arrived before the read timed out.
        TransportError: The stream ended or stalled mid-frame.
    """
    prefix = _read_exactly(read_some, LENGTH_FIELD_SIZE, description, started=False)
    (length,) = struct.unpack("<H", prefix)
    body = _read_exactly(read_some, length, description, started=True)
    return prefix + body


def _read_exactly(
    read_some: Callable[[int], bytes], count: int, description: str, started: bool
) -> bytes:
    buffer = bytearray()
    while len(buffer) < count:
        chunk = read_some(count - len(buffer))
        if not chunk:
            if not buffer and not started:
                raise TimeoutError(f"No reply from {description}")
            raise TransportError(
                f"Incomplete frame from {description}: "
                f"expected {count} bytes, got {len(buffer)}"
            )
        buffer.extend(chunk)
    return bytes(buffer)
