"""
EV3 SDK Error Hierarchy
=======================

This module defines the exception hierarchy for the entire EV3 SDK.
All exceptions inherit from EV3Error, allowing callers to catch all
SDK-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
EV3Error (base)
├── EncodingError - request cannot be encoded (bad operand or header value)
│   └── EncodingOverflowError - request longer than the 16-bit length field
├── DecodeError - reply cannot be decoded
│   ├── TruncatedReplyError - fewer bytes than header or payload require
│   ├── SequenceMismatchError - reply belongs to a different request
│   ├── PayloadLengthError - payload wider than the caller declared
│   └── ListingFormatError - malformed LIST_FILES line
├── DeviceError - the brick answered with an error status
└── CommsError (transport)
    ├── ConnectionError - cannot open or unlock the transport
    ├── TransportError - read/write failure on an open transport
    └── TimeoutError - no reply within the transport timeout

Recovery Guidance
-----------------
- EncodingError: caller error, fix the arguments. Never retried.
- DecodeError: fatal to the in-flight call. Safe to re-issue the call
  with a fresh sequence id.
- DeviceError: the device rejected the request. The cause is unknown to
  the client, so nothing retries automatically.
- CommsError: the session is unusable. Close the Brick and reopen.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class EV3Error(Exception):
    """
    Base exception for all EV3 SDK errors.

    All exceptions in the SDK inherit from this class, allowing callers
    to catch all SDK-related errors with a single except clause:

        try:
            voltage = brick.battery_voltage()
        except EV3Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Encoding Exceptions
# =============================================================================

class EncodingError(EV3Error):
    """
    A request could not be encoded.

    Raised when:
    - An operand value does not fit the requested width
    - Global/local scratch sizes exceed the packed header fields
    - A sequence id is outside 0..0xFFFF
    - A string operand contains a NUL byte
    """
    pass


class EncodingOverflowError(EncodingError):
    """
    The encoded request is longer than the 16-bit length field allows.

    The length prefix counts every byte after itself, so the largest
    encodable request is 0xFFFF + 2 bytes on the wire.
    """

    def __init__(self, length: int, limit: int = 0xFFFF):
        self.length = length
        self.limit = limit
        super().__init__(
            f"Encoded message length {length} exceeds 16-bit limit ({limit})"
        )


# =============================================================================
# Decode Exceptions
# =============================================================================

class DecodeError(EV3Error):
    """Base exception for malformed or misdirected replies."""
    pass


class TruncatedReplyError(DecodeError):
    """
    Reply shorter than required.

    Raised when the buffer does not hold the 5-byte reply header, holds
    fewer bytes than its own length prefix announces, or holds fewer
    payload bytes than the requesting opcode declared.
    """

    def __init__(self, needed: int, available: int, what: str = "reply"):
        self.needed = needed
        self.available = available
        super().__init__(
            f"Truncated {what}: need {needed} bytes, got {available}"
        )


class SequenceMismatchError(DecodeError):
    """
    Reply sequence id differs from the request's.

    The reply is never returned to the caller, even though its payload
    may be well formed.
    """

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Sequence mismatch: expected {expected}, got {actual}"
        )


class PayloadLengthError(DecodeError):
    """Reply payload is wider than the requesting opcode declared."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Payload length mismatch: expected {expected} bytes, got {actual}"
        )


class ListingFormatError(DecodeError):
    """A LIST_FILES line matches neither the file nor the directory shape."""

    def __init__(self, line: str, line_number: int):
        self.line = line
        self.line_number = line_number
        super().__init__(f"Malformed listing line {line_number}: {line!r}")


# =============================================================================
# Device Exceptions
# =============================================================================

class DeviceError(EV3Error):
    """
    The brick answered with an error status.

    For system commands the device also reports a status code (see
    ``SystemStatus``), kept in ``status``. Direct command errors carry no
    further detail, so ``status`` is None.

    Attributes:
        status: System status code, or None for direct commands.
        sequence_id: Sequence id of the failed request, when known.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        sequence_id: Optional[int] = None,
    ):
        self.status = status
        self.sequence_id = sequence_id
        super().__init__(message)


# =============================================================================
# Communication Exceptions
# =============================================================================

class CommsError(EV3Error):
    """Base exception for transport errors."""
    pass


class ConnectionError(CommsError):
    """
    Cannot connect to the brick.

    Raised when:
    - Serial port or Bluetooth device node not found
    - Permission denied
    - No Wi-Fi beacon or the unlock handshake is refused
    - USB device not present
    """
    pass


class TransportError(CommsError):
    """
    I/O failure on an open transport.

    The session is left in an undefined state and must be closed and
    reopened.
    """
    pass


class TimeoutError(CommsError):
    """
    Communication timeout error.

    Raised when a transport read times out waiting for the brick.

    Note:
        This is an EV3-specific TimeoutError, distinct from the
        Python builtin TimeoutError. It inherits from CommsError
        for consistent error handling in the comms module.
    """
    pass
