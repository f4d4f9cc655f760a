"""
Tests for File Transfer
=======================

Drives FileTransfer against the scripted FakeTransport and checks both
the requests written and the data returned.
"""

import struct
from unittest.mock import Mock, patch

import pytest

from ev3_sdk.errors import (
    DecodeError,
    DeviceError,
    PayloadLengthError,
    SequenceMismatchError,
    TruncatedReplyError,
)
from ev3_sdk.protocol.opcodes import (
    CommandType,
    ReplyType,
    SystemCommand,
    SystemStatus,
)
from ev3_sdk.protocol.reply import Reply
from ev3_sdk.protocol.transfer import FileTransfer, TransferState


def begin_reply_data(size, handle, data=b""):
    return struct.pack("<IB", size, handle) + data


@pytest.fixture
def transfer(link):
    return FileTransfer(link, handle_delay=0)


# =============================================================================
# PC → Brick
# =============================================================================

class TestUpload:
    """Tests for BEGIN_DOWNLOAD / CONTINUE_DOWNLOAD."""

    def test_single_chunk(self, transport, transfer):
        transport.queue_system(b"\x05")
        transport.queue_system(b"\x05")

        transfer.upload(b"hello", "../prjs/a.rbf")

        begin, cont = transport.written
        assert begin[4] == CommandType.SYSTEM_REPLY
        assert begin[5] == SystemCommand.BEGIN_DOWNLOAD
        assert begin[6:10] == struct.pack("<I", 5)
        assert begin[10:] == b"../prjs/a.rbf\x00"
        assert cont[5] == SystemCommand.CONTINUE_DOWNLOAD
        assert transfer.state is TransferState.COMPLETE

    def test_handle_used_verbatim(self, transport, transfer):
        transport.queue_system(b"\x05")
        transport.queue_system(b"\x05")

        transfer.upload(b"\x01\x02", "x")

        cont = transport.written[1]
        assert cont[6] == 0x05
        assert cont[7:] == b"\x01\x02"

    def test_handle_is_last_byte(self, transport, transfer):
        transport.queue_system(b"\x00\x00\x09")
        transport.queue_system()

        transfer.upload(b"z", "x")

        assert transport.written[1][6] == 0x09

    def test_sequence_ids_advance(self, transport, transfer):
        transport.queue_system(b"\x01")
        transport.queue_system()

        transfer.upload(b"z", "x")

        first, second = (struct.unpack_from("<H", f, 2)[0] for f in transport.written)
        assert second == first + 1

    def test_chunked_with_progress(self, transport, transfer):
        transport.queue_system(b"\x03")
        for _ in range(3):
            transport.queue_system()
        progress = Mock()

        transfer.upload(b"abcdefg", "x", chunk_size=3, progress=progress)

        chunks = [frame[7:] for frame in transport.written[1:]]
        assert chunks == [b"abc", b"def", b"g"]
        assert [c.args for c in progress.call_args_list] == [(3, 7), (6, 7), (7, 7)]

    def test_empty_file(self, transport, transfer):
        transport.queue_system(b"\x01")
        transport.queue_system()

        transfer.upload(b"", "x")

        assert len(transport.written) == 2
        assert transport.written[1][7:] == b""

    def test_waits_for_handle(self, transport, link):
        transport.queue_system(b"\x01")
        transport.queue_system()
        transfer = FileTransfer(link)

        with patch("ev3_sdk.protocol.transfer.time.sleep") as sleep:
            transfer.upload(b"z", "x")

        sleep.assert_called_once_with(FileTransfer.HANDLE_DELAY)

    def test_refused(self, transport, transfer):
        transport.queue_system(status=SystemStatus.ILLEGAL_PATH)

        with pytest.raises(DeviceError):
            transfer.upload(b"z", "/bad")

        assert transfer.state is TransferState.FAILED
        assert len(transport.written) == 1

    def test_begin_reply_for_other_request(self, transport, transfer):
        payload = bytes([SystemCommand.BEGIN_DOWNLOAD, SystemStatus.SUCCESS, 0x05])
        transport.queue_raw(Reply(99, ReplyType.SYSTEM_REPLY, payload).to_bytes())

        with pytest.raises(SequenceMismatchError):
            transfer.upload(b"z", "x")

        assert transfer.state is TransferState.FAILED
        assert len(transport.written) == 1

    def test_truncated_continue_reply(self, transport, transfer):
        transport.queue_system(b"\x05")
        payload = bytes([SystemCommand.CONTINUE_DOWNLOAD, SystemStatus.SUCCESS])
        transport.queue_raw(Reply(1, ReplyType.SYSTEM_REPLY, payload).to_bytes()[:-1])

        with pytest.raises(TruncatedReplyError):
            transfer.upload(b"z", "x")

        assert transfer.state is TransferState.FAILED

    def test_begin_reply_without_handle(self, transport, transfer):
        transport.queue_system()
        with pytest.raises(TruncatedReplyError):
            transfer.upload(b"z", "x")

    def test_invalid_chunk_size(self, transfer):
        with pytest.raises(ValueError):
            transfer.upload(b"z", "x", chunk_size=0)


# =============================================================================
# Brick → PC
# =============================================================================

class TestDownload:
    """Tests for BEGIN_UPLOAD / CONTINUE_UPLOAD."""

    def test_single_reply(self, transport, transfer):
        transport.queue_system(begin_reply_data(5, 2, b"hello"), SystemStatus.END_OF_FILE)

        assert transfer.download("a.txt") == b"hello"

        (begin,) = transport.written
        assert begin[5] == SystemCommand.BEGIN_UPLOAD
        assert begin[6:8] == struct.pack("<H", 1000)
        assert begin[8:] == b"a.txt\x00"

    def test_multiple_chunks(self, transport, transfer):
        transport.queue_system(begin_reply_data(10, 2, b"hell"))
        transport.queue_system(b"\x02" + b"o wo")
        transport.queue_system(b"\x02" + b"rl", SystemStatus.END_OF_FILE)
        progress = Mock()

        data = transfer.download("a.txt", max_chunk_length=4, progress=progress)

        assert data == b"hello worl"
        cont = transport.written[1]
        assert cont[5] == SystemCommand.CONTINUE_UPLOAD
        assert cont[6] == 2
        assert cont[7:9] == struct.pack("<H", 4)
        assert progress.call_args_list[-1].args == (10, 10)
        assert transfer.state is TransferState.COMPLETE

    def test_empty_file(self, transport, transfer):
        transport.queue_system(begin_reply_data(0, 1), SystemStatus.END_OF_FILE)
        assert transfer.download("empty") == b""

    def test_more_than_announced(self, transport, transfer):
        transport.queue_system(begin_reply_data(2, 1, b"abc"))
        with pytest.raises(PayloadLengthError):
            transfer.download("x")
        assert transfer.state is TransferState.FAILED

    def test_end_of_file_before_size(self, transport, transfer):
        transport.queue_system(begin_reply_data(10, 1, b"abc"), SystemStatus.END_OF_FILE)
        with pytest.raises(TruncatedReplyError):
            transfer.download("x")

    def test_empty_continue_reply(self, transport, transfer):
        transport.queue_system(begin_reply_data(10, 1, b"abc"))
        transport.queue_system(b"\x01")
        with pytest.raises(DecodeError, match="no data"):
            transfer.download("x")

    def test_missing_file(self, transport, transfer):
        transport.queue_system(status=SystemStatus.UNKNOWN_HANDLE, error=True)
        with pytest.raises(DeviceError):
            transfer.download("missing")


# =============================================================================
# Directory Management
# =============================================================================

class TestDirectories:
    """Tests for LIST_FILES, CREATE_DIR and DELETE_FILE."""

    def test_list_files(self, transport, transfer):
        text = b"d41d8cd98f00b204e9800998ecf8427e 00000000 empty.rbf\nsubdir/\n"
        transport.queue_system(begin_reply_data(len(text), 0, text), SystemStatus.END_OF_FILE)

        entries = transfer.list_files("../prjs/")

        assert [e.name for e in entries] == ["empty.rbf", "subdir"]
        (request,) = transport.written
        assert request[5] == SystemCommand.LIST_FILES
        assert request[8:] == b"../prjs/\x00"

    def test_listing_continues(self, transport, transfer):
        transport.queue_system(begin_reply_data(7, 3, b"a/\nb"))
        transport.queue_system(b"\x03" + b"/\n\n", SystemStatus.END_OF_FILE)

        text = transfer.read_listing("/", max_length=4)

        assert text == "a/\nb/\n\n"
        assert transport.written[1][5] == SystemCommand.CONTINUE_LIST_FILES
        assert transport.written[1][6] == 3
        assert transfer.state is TransferState.COMPLETE

    def test_listing_empty_continue_reply(self, transport, transfer):
        transport.queue_system(begin_reply_data(40, 3, b"a/\nb"))
        transport.queue_system(b"\x03")

        with pytest.raises(DecodeError, match="no data"):
            transfer.read_listing("/")

        assert transfer.state is TransferState.FAILED

    def test_listing_end_of_file_before_size(self, transport, transfer):
        transport.queue_system(begin_reply_data(40, 3, b"a/\n"), SystemStatus.END_OF_FILE)

        with pytest.raises(TruncatedReplyError):
            transfer.read_listing("/")

        assert transfer.state is TransferState.FAILED

    def test_listing_more_than_announced(self, transport, transfer):
        transport.queue_system(begin_reply_data(2, 3, b"a/\n"), SystemStatus.END_OF_FILE)

        with pytest.raises(PayloadLengthError):
            transfer.list_files("/")

        assert transfer.state is TransferState.FAILED

    def test_create_dir(self, transport, transfer):
        transport.queue_system()
        transfer.create_dir("../prjs/new")
        assert transport.written[0][5:] == b"\x9b../prjs/new\x00"

    def test_delete_file(self, transport, transfer):
        transport.queue_system()
        transfer.delete_file("../prjs/new")
        assert transport.written[0][5] == SystemCommand.DELETE_FILE

    def test_create_existing_dir(self, transport, transfer):
        transport.queue_system(status=SystemStatus.FILE_EXISTS, error=True)
        with pytest.raises(DeviceError) as exc_info:
            transfer.create_dir("../prjs")
        assert exc_info.value.status == SystemStatus.FILE_EXISTS
