"""
Tests for the RBF Program Image Builder
=======================================
"""

import struct

import pytest

from ev3_sdk.bytecode import (
    DEFAULT_VERSION_INFO,
    PROGRAM_HEADER_SIZE,
    THREAD_HEADER_SIZE,
    ProgramImage,
    VMThread,
    three_tone_program,
)
from ev3_sdk.errors import EncodingError
from ev3_sdk.protocol import commands


class TestVMThread:
    """Tests for thread bodies."""

    def test_terminated_with_object_end(self):
        thread = VMThread()
        commands.sound_ready(thread)
        assert thread.instructions == b"\x96\x0a"
        assert len(thread) == 2

    def test_builders_match_direct_commands(self):
        thread = VMThread()
        commands.sound_tone(thread, 10, 1000, 100)
        assert thread.body == b"\x94\x01\x81\x0a\x82\xe8\x03\x82\x64\x00"


class TestProgramImage:
    """Tests for image layout."""

    def test_header(self):
        image = ProgramImage(global_bytes=8)
        commands.sound_ready(image.add_thread(local_bytes=4))
        data = image.build()

        signature, size, version, objects, globals_ = struct.unpack_from("<4sIHHI", data)
        assert signature == b"LEGO"
        assert size == len(data)
        assert version == DEFAULT_VERSION_INFO
        assert objects == 1
        assert globals_ == 8

    def test_thread_header(self):
        image = ProgramImage()
        commands.sound_ready(image.add_thread(local_bytes=4))
        data = image.build()

        offset, owner, triggers, local = struct.unpack_from("<IHHI", data, PROGRAM_HEADER_SIZE)
        assert offset == PROGRAM_HEADER_SIZE + THREAD_HEADER_SIZE
        assert (owner, triggers) == (0, 0)
        assert local == 4
        assert data[offset:] == b"\x96\x0a"

    def test_two_thread_offsets(self):
        image = ProgramImage()
        commands.sound_ready(image.add_thread())
        commands.sound_ready(image.add_thread())
        data = image.build()

        first = struct.unpack_from("<I", data, PROGRAM_HEADER_SIZE)[0]
        second = struct.unpack_from("<I", data, PROGRAM_HEADER_SIZE + THREAD_HEADER_SIZE)[0]
        assert first == PROGRAM_HEADER_SIZE + 2 * THREAD_HEADER_SIZE
        assert second == first + 2
        assert len(data) == second + 2

    def test_no_threads(self):
        with pytest.raises(EncodingError):
            ProgramImage().build()

    def test_header_field_out_of_range(self):
        image = ProgramImage(version_info=0x10000)
        image.add_thread()
        with pytest.raises(EncodingError):
            image.build()

    def test_write_adds_suffix(self, tmp_path):
        path = three_tone_program().write(tmp_path / "tones")
        assert path.name == "tones.rbf"
        assert path.read_bytes()[:4] == b"LEGO"

    def test_write_keeps_suffix(self, tmp_path):
        path = three_tone_program().write(str(tmp_path / "t.rbf"))
        assert path == tmp_path / "t.rbf"


class TestThreeToneProgram:
    """Tests for the bundled example program."""

    def test_structure(self):
        data = three_tone_program().build()
        instructions = data[PROGRAM_HEADER_SIZE + THREAD_HEADER_SIZE:]
        assert instructions.count(b"\x94\x01") == 3
        assert instructions.endswith(b"\x96\x0a")
