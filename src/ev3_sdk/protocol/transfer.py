"""
EV3 File Transfer Protocol
==========================

Moves files between the PC and the brick with pairs of system commands.
The first command of a pair opens the file and the brick answers with a
one-byte handle; the second carries that handle unchanged. A handle is
only good for the transfer that produced it.

Direction naming follows the brick: "download" is PC → brick, "upload"
is brick → PC. The methods below are named from the PC's side.

Sending a File (PC → brick)
---------------------------
```
PC                                        BRICK
 | ── BEGIN_DOWNLOAD size, path ──────────→ |
 | ←──────────── SUCCESS, handle ────────── |
 |        (wait for handle to register)      |
 | ── CONTINUE_DOWNLOAD handle, bytes ────→ |
 | ←──────────── END_OF_FILE ────────────── |
```

Fetching a File (brick → PC)
----------------------------
```
PC                                        BRICK
 | ── BEGIN_UPLOAD max_len, path ─────────→ |
 | ←──── status, size, handle, chunk ────── |
 | ── CONTINUE_UPLOAD handle, max_len ────→ |   while size not reached
 | ←──── status, handle, chunk ──────────── |   and status != END_OF_FILE
```

Only the single-round-trip fetch has been observed against real
hardware. The CONTINUE_UPLOAD loop follows the firmware's documented
layout.

Transfer States
---------------
    IDLE → AWAITING_BEGIN_REPLY → AWAITING_CONTINUE_REPLY → COMPLETE
                    └──────────────────────┴──────────────→ FAILED

Every transfer starts again from IDLE; nothing carries over.
"""

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable, Final, Optional

from ev3_sdk.errors import (
    DecodeError,
    EV3Error,
    PayloadLengthError,
    TruncatedReplyError,
)
from ev3_sdk.protocol import commands
from ev3_sdk.protocol.listing import FileEntry, parse_listing
from ev3_sdk.protocol.opcodes import SystemStatus
from ev3_sdk.protocol.reply import SYSTEM_PREFIX_SIZE, Reply

if TYPE_CHECKING:
    from ev3_sdk.comms.link import Link

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Chunk requested per BEGIN_UPLOAD/CONTINUE_UPLOAD; keeps a reply inside
# one 1024-byte USB report
DEFAULT_MAX_CHUNK_LENGTH: Final[int] = 1000

# Offsets within the system reply payload (after command and status)
_BEGIN_SIZE_OFFSET: Final[int] = SYSTEM_PREFIX_SIZE
_BEGIN_HANDLE_OFFSET: Final[int] = SYSTEM_PREFIX_SIZE + 4
_BEGIN_DATA_OFFSET: Final[int] = SYSTEM_PREFIX_SIZE + 5
_CONTINUE_DATA_OFFSET: Final[int] = SYSTEM_PREFIX_SIZE + 1

# Type alias for progress callback: (bytes_done, total_bytes) -> None
ProgressCallback = Callable[[int, int], None]


class TransferState(Enum):
    IDLE = "idle"
    AWAITING_BEGIN_REPLY = "awaiting_begin_reply"
    AWAITING_CONTINUE_REPLY = "awaiting_continue_reply"
    COMPLETE = "complete"
    FAILED = "failed"


# =============================================================================
# File Transfer
# =============================================================================

class FileTransfer:
    """
    File and directory operations on the brick's filesystem.

    Remote paths are relative to ``/home/root/lms2012/sys`` unless
    absolute.

    Thread Safety:
        This class is NOT thread-safe. Only use from a single thread.

    Example:
        transfer = FileTransfer(link)
        transfer.upload(Path("prg.rbf").read_bytes(), "../apps/tst/tst.rbf")
        data = transfer.download("../apps/tst/tst.rbf")
    """

    # Seconds the brick needs before a fresh handle accepts data
    HANDLE_DELAY: Final[float] = 1.0

    def __init__(self, link: "Link", handle_delay: Optional[float] = None):
        self._link = link
        self.handle_delay = self.HANDLE_DELAY if handle_delay is None else handle_delay
        self._state = TransferState.IDLE

    @property
    def state(self) -> TransferState:
        return self._state

    def _fail(self, operation: str, error: EV3Error) -> None:
        logger.info("%s failed: %s", operation, error)
        self._state = TransferState.FAILED

    # -------------------------------------------------------------------------
    # PC → Brick
    # -------------------------------------------------------------------------

    def upload(
        self,
        data: bytes,
        destination: str,
        chunk_size: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Write ``data`` to ``destination`` on the brick.

        Args:
            data: File content.
            destination: Remote path; missing directories are created.
            chunk_size: Bytes per CONTINUE_DOWNLOAD; None sends one chunk.
            progress: Called with (bytes_sent, total) after each chunk.

        Raises:
            ValueError: If chunk_size is not positive.
            DeviceError: The brick refused the file or a chunk.
            DecodeError: A reply was malformed or misdirected.
        """
        if chunk_size is not None and chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        data = bytes(data)
        total = len(data)
        step = chunk_size or max(total, 1)
        chunks = [data[i:i + step] for i in range(0, total, step)] or [b""]

        self._state = TransferState.IDLE
        logger.info("Sending %d bytes to %s", total, destination)

        try:
            self._state = TransferState.AWAITING_BEGIN_REPLY
            msg = self._link.system()
            commands.begin_download(msg, total, destination)
            reply = self._link.exchange(msg)
            handle = self._trailing_handle(reply)
            logger.debug("BEGIN_DOWNLOAD handle=%d", handle)

            time.sleep(self.handle_delay)

            self._state = TransferState.AWAITING_CONTINUE_REPLY
            sent = 0
            for chunk in chunks:
                msg = self._link.system()
                commands.continue_download(msg, handle, chunk)
                self._link.exchange(msg)
                sent += len(chunk)
                logger.debug("Sent chunk: %d/%d bytes", sent, total)
                if progress:
                    progress(sent, total)
        except EV3Error as e:
            self._fail("Upload", e)
            raise

        self._state = TransferState.COMPLETE
        logger.info("Sent %s (%d bytes)", destination, total)

    @staticmethod
    def _trailing_handle(reply: Reply) -> int:
        if len(reply.payload) <= SYSTEM_PREFIX_SIZE:
            raise TruncatedReplyError(
                SYSTEM_PREFIX_SIZE + 1, len(reply.payload), "BEGIN_DOWNLOAD reply"
            )
        return reply.payload[-1]

    # -------------------------------------------------------------------------
    # Brick → PC
    # -------------------------------------------------------------------------

    def download(
        self,
        source: str,
        max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
        progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """
        Read ``source`` from the brick.

        Args:
            source: Remote path.
            max_chunk_length: Largest chunk the brick may return per reply.
            progress: Called with (bytes_received, total) after each reply.

        Returns:
            File content.

        Raises:
            DeviceError: The brick refused the request.
            DecodeError: Malformed reply, or more/fewer bytes than announced.
        """
        self._state = TransferState.IDLE
        logger.info("Fetching %s", source)

        try:
            self._state = TransferState.AWAITING_BEGIN_REPLY
            msg = self._link.system()
            commands.begin_upload(msg, max_chunk_length, source)
            reply = self._link.exchange(msg)
            total, handle, received = self._begin_reply_fields(reply)
            logger.debug("BEGIN_UPLOAD size=%d handle=%d", total, handle)
            if progress:
                progress(len(received), total)

            self._state = TransferState.AWAITING_CONTINUE_REPLY
            status = reply.system_status
            while len(received) < total and status != SystemStatus.END_OF_FILE:
                msg = self._link.system()
                commands.continue_upload(msg, handle, max_chunk_length)
                reply = self._link.exchange(msg)
                chunk = reply.payload[_CONTINUE_DATA_OFFSET:]
                if not chunk:
                    raise DecodeError(
                        f"CONTINUE_UPLOAD returned no data at {len(received)}/{total} bytes"
                    )
                received.extend(chunk)
                status = reply.system_status
                if progress:
                    progress(len(received), total)

            if len(received) > total:
                raise PayloadLengthError(total, len(received))
            if len(received) < total:
                raise TruncatedReplyError(total, len(received), "file")
        except EV3Error as e:
            self._fail("Download", e)
            raise

        self._state = TransferState.COMPLETE
        logger.info("Fetched %s (%d bytes)", source, total)
        return bytes(received)

    @staticmethod
    def _begin_reply_fields(reply: Reply) -> tuple[int, int, bytearray]:
        """Split a BEGIN_UPLOAD/LIST_FILES reply into size, handle, data."""
        total = reply.as_uint32_le(_BEGIN_SIZE_OFFSET)
        handle = reply.as_uint8(_BEGIN_HANDLE_OFFSET)
        return total, handle, bytearray(reply.payload[_BEGIN_DATA_OFFSET:])

    # -------------------------------------------------------------------------
    # Directory Management
    # -------------------------------------------------------------------------

    def read_listing(
        self, path: str, max_length: int = DEFAULT_MAX_CHUNK_LENGTH
    ) -> str:
        """
        Raw LIST_FILES text for ``path``.

        Listings longer than ``max_length`` are completed with
        CONTINUE_LIST_FILES.

        Raises:
            DeviceError: The brick refused the request.
            DecodeError: Malformed reply, or more/fewer bytes than announced.
        """
        self._state = TransferState.IDLE

        try:
            self._state = TransferState.AWAITING_BEGIN_REPLY
            msg = self._link.system()
            commands.list_files(msg, max_length, path)
            reply = self._link.exchange(msg)
            total, handle, text = self._begin_reply_fields(reply)

            self._state = TransferState.AWAITING_CONTINUE_REPLY
            status = reply.system_status
            while len(text) < total and status != SystemStatus.END_OF_FILE:
                msg = self._link.system()
                commands.continue_list_files(msg, handle, max_length)
                reply = self._link.exchange(msg)
                chunk = reply.payload[_CONTINUE_DATA_OFFSET:]
                if not chunk:
                    raise DecodeError(
                        f"CONTINUE_LIST_FILES returned no data at {len(text)}/{total} bytes"
                    )
                text.extend(chunk)
                status = reply.system_status

            if len(text) > total:
                raise PayloadLengthError(total, len(text))
            if len(text) < total:
                raise TruncatedReplyError(total, len(text), "listing")
        except EV3Error as e:
            self._fail("Listing", e)
            raise

        self._state = TransferState.COMPLETE
        logger.debug("Listing of %s: %d bytes", path, len(text))
        return text.decode("utf-8", errors="replace")

    def list_files(
        self, path: str, max_length: int = DEFAULT_MAX_CHUNK_LENGTH
    ) -> list[FileEntry]:
        """Entries of the directory at ``path``."""
        return parse_listing(self.read_listing(path, max_length))

    def create_dir(self, path: str) -> None:
        msg = self._link.system()
        commands.create_dir(msg, path)
        self._link.exchange(msg)
        logger.info("Created directory %s", path)

    def delete_file(self, path: str) -> None:
        """Delete a file or an empty directory."""
        msg = self._link.system()
        commands.delete_file(msg, path)
        self._link.exchange(msg)
        logger.info("Deleted %s", path)
