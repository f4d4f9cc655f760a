"""
Tests for Request Message Encoding
==================================

Covers header layout, scratch packing, length limits and the
idempotence of ``finalize``.
"""

import pytest

from ev3_sdk.errors import EncodingError, EncodingOverflowError
from ev3_sdk.protocol import commands
from ev3_sdk.protocol.message import Message, OpcodeStream
from ev3_sdk.protocol.opcodes import CommandType, SystemCommand


# =============================================================================
# Direct Commands
# =============================================================================

class TestDirectMessage:
    """Tests for direct command framing."""

    def test_battery_request_bytes(self):
        msg = Message.new_direct(0x2A, global_bytes=4)
        commands.ui_read_get_vbatt(msg)
        assert msg.finalize() == bytes.fromhex("08002a00000400810160")

    def test_no_reply_type(self):
        msg = Message.new_direct(1, expect_reply=False)
        frame = msg.finalize()
        assert frame[4] == CommandType.DIRECT_NO_REPLY
        assert not msg.expects_reply

    def test_scratch_packing(self):
        msg = Message.new_direct(0, global_bytes=0x3FF, local_bytes=0x3F)
        frame = msg.finalize()
        assert frame[5:7] == b"\xff\xff"

    def test_local_bytes_shift(self):
        msg = Message.new_direct(0, global_bytes=4, local_bytes=1)
        assert msg.finalize()[5:7] == bytes.fromhex("0404")

    def test_empty_direct_length(self):
        assert Message.new_direct(0).finalize() == bytes.fromhex("0500000000" "0000")

    def test_global_bytes_range(self):
        with pytest.raises(EncodingError):
            Message.new_direct(0, global_bytes=1024)

    def test_local_bytes_range(self):
        with pytest.raises(EncodingError):
            Message.new_direct(0, local_bytes=64)

    def test_sequence_range(self):
        Message.new_direct(0xFFFF)
        with pytest.raises(EncodingError):
            Message.new_direct(0x10000)
        with pytest.raises(EncodingError):
            Message.new_direct(-1)

    def test_opcodes_appended_in_order(self):
        msg = Message.new_direct(0, expect_reply=False)
        msg.append_opcode(0x01).append_opcode(0x02, b"\x03")
        assert msg.body == b"\x01\x02\x03"

    def test_opcode_range(self):
        with pytest.raises(EncodingError):
            Message.new_direct(0).append_opcode(0x100)


# =============================================================================
# System Commands
# =============================================================================

class TestSystemMessage:
    """Tests for system command framing."""

    def test_system_header_has_no_scratch(self):
        msg = Message.new_system(3)
        commands.create_dir(msg, "d")
        assert msg.finalize() == bytes.fromhex("0600" "0300" "01" "9b") + b"d\x00"

    def test_system_no_reply(self):
        msg = Message.new_system(3, expect_reply=False)
        assert msg.finalize()[4] == CommandType.SYSTEM_NO_REPLY

    def test_single_command_only(self):
        msg = Message.new_system(0)
        msg.append_opcode(SystemCommand.CREATE_DIR, b"a\x00")
        with pytest.raises(EncodingError, match="single command"):
            msg.append_opcode(SystemCommand.DELETE_FILE, b"a\x00")

    def test_system_rejects_scratch(self):
        with pytest.raises(EncodingError):
            Message(0, CommandType.SYSTEM_REPLY, global_bytes=4)

    def test_is_system(self):
        assert Message.new_system(0).is_system
        assert not Message.new_direct(0).is_system


# =============================================================================
# Finalize
# =============================================================================

class TestFinalize:
    """Tests for length limits and repeatability."""

    def test_finalize_twice_identical(self):
        msg = Message.new_direct(9, global_bytes=12)
        commands.input_device_get_name(msg, 0, 0, 12)
        assert msg.finalize() == msg.finalize()

    def test_length_field_counts_bytes_after_itself(self):
        msg = Message.new_direct(0)
        msg.append_opcode(0x01, b"\x00" * 10)
        frame = msg.finalize()
        assert int.from_bytes(frame[:2], "little") == len(frame) - 2
        assert msg.encoded_length() == len(frame) - 2

    def test_maximum_length_accepted(self):
        # 3 header + 2 scratch + 1 opcode + 65529 operand bytes = 0xFFFF
        msg = Message.new_direct(0)
        msg.append_opcode(0x01, b"\x00" * 65529)
        frame = msg.finalize()
        assert frame[:2] == b"\xff\xff"
        assert len(frame) == 0xFFFF + 2

    def test_one_byte_over_limit(self):
        msg = Message.new_direct(0)
        msg.append_opcode(0x01, b"\x00" * 65530)
        with pytest.raises(EncodingOverflowError) as exc_info:
            msg.finalize()
        assert exc_info.value.length == 0x10000

    def test_overflow_is_encoding_error(self):
        assert issubclass(EncodingOverflowError, EncodingError)

    def test_system_maximum_length(self):
        msg = Message.new_system(0)
        msg.append_opcode(SystemCommand.CONTINUE_DOWNLOAD, b"\x00" * (0xFFFF - 4))
        assert msg.finalize()[:2] == b"\xff\xff"

    def test_repr(self):
        msg = Message.new_direct(5, global_bytes=4)
        assert "seq=5" in repr(msg)
        assert "DIRECT_REPLY" in repr(msg)


class TestOpcodeStream:
    """Tests for the shared opcode buffer."""

    def test_starts_empty(self):
        assert OpcodeStream().body == b""

    def test_body_is_a_copy(self):
        stream = OpcodeStream()
        stream.append_opcode(0x01)
        body = stream.body
        stream.append_opcode(0x02)
        assert body == b"\x01"
