"""
Tests for the ev3link Command-Line Interface
============================================

Commands run through click's CliRunner with ``Brick.connect`` patched to
return a session on the scripted FakeTransport.
"""

import struct
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from ev3_sdk import __version__
from ev3_sdk.brick import Brick
from ev3_sdk.cli.errors import ExitCode
from ev3_sdk.cli.ev3link import main, progress_bar
from ev3_sdk.comms.serial import PortInfo
from ev3_sdk.comms.wifi import Beacon
from ev3_sdk.errors import ConnectionError
from ev3_sdk.protocol.opcodes import SystemStatus


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def connected(brick):
    """Patch Brick.connect to hand out the FakeTransport session."""
    with patch.object(Brick, "connect", return_value=brick) as connect:
        yield connect


def body(frame):
    return frame[7:]


# =============================================================================
# Group Options
# =============================================================================

class TestMainGroup:
    """Tests for global options and configuration."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("battery", "motor", "sensor", "upload", "ls", "bytecode"):
            assert command in result.output

    def test_options_reach_config(self, runner, connected, transport):
        transport.queue_direct(struct.pack("<f", 8.0))
        transport.queue_direct(b"\x64")

        result = runner.invoke(
            main,
            ["--io-type", "wifi", "--address", "10.0.0.5", "--serial-number", "abc",
             "--timeout", "2", "battery"],
        )

        assert result.exit_code == 0, result.output
        config = connected.call_args.args[0]
        assert config.io_type.value == "wifi"
        assert config.wifi_address == "10.0.0.5"
        assert config.serial_number == "abc"
        assert config.timeout == 2.0

    def test_discover_address(self, runner, connected, transport):
        transport.queue_direct(struct.pack("<f", 8.0))
        transport.queue_direct(b"\x64")

        result = runner.invoke(main, ["--io-type", "wifi", "--address", "discover", "battery"])

        assert result.exit_code == 0, result.output
        assert connected.call_args.args[0].wifi_address is None

    def test_invalid_env_io_type(self, runner):
        result = runner.invoke(main, ["battery"], env={"EV3_IO_TYPE": "zigbee"})
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_connection_failure(self, runner):
        with patch.object(Brick, "connect", side_effect=ConnectionError("no brick")):
            result = runner.invoke(main, ["battery"])
        assert result.exit_code == ExitCode.DEVICE_ERROR
        assert "Connection error: no brick" in result.output


# =============================================================================
# Discovery Commands
# =============================================================================

class TestDiscovery:
    """Tests for ports and discover."""

    def test_ports(self, runner):
        ports = [PortInfo("/dev/rfcomm0", "n/a")]
        with patch("ev3_sdk.cli.ev3link.list_serial_ports", return_value=ports), \
                patch("ev3_sdk.cli.ev3link.find_ev3_port", return_value="/dev/rfcomm0"):
            result = runner.invoke(main, ["ports"])
        assert result.exit_code == 0
        assert "/dev/rfcomm0" in result.output
        assert "Likely EV3 port" in result.output

    def test_discover(self, runner):
        beacon = Beacon("192.168.0.9", 49152, "0016533dbaf5", 5555, "EV3", "EV3")
        with patch("ev3_sdk.cli.ev3link.discover_brick", return_value=beacon):
            result = runner.invoke(main, ["discover", "--wait", "1"])
        assert result.exit_code == 0
        assert "192.168.0.9:5555" in result.output
        assert "0016533dbaf5" in result.output

    def test_discover_nothing(self, runner):
        with patch(
            "ev3_sdk.cli.ev3link.discover_brick",
            side_effect=ConnectionError("No EV3 beacon received within 1.0s"),
        ):
            result = runner.invoke(main, ["discover", "--wait", "1"])
        assert result.exit_code == ExitCode.DEVICE_ERROR


# =============================================================================
# Brick Verbs
# =============================================================================

class TestVerbs:
    """Tests for battery, sound, motor and sensor commands."""

    def test_battery(self, runner, connected, transport):
        transport.queue_direct(struct.pack("<f", 7.5))
        transport.queue_direct(b"\x55")

        result = runner.invoke(main, ["battery"])

        assert result.exit_code == 0, result.output
        assert "Voltage: 7.50 V" in result.output
        assert "85%" in result.output
        assert transport.close_calls == 1

    def test_tone(self, runner, connected, transport):
        result = runner.invoke(main, ["tone", "20", "440", "500"])
        assert result.exit_code == 0, result.output
        assert body(transport.written[0]).startswith(b"\x94\x01\x81\x14")

    def test_tone_out_of_range(self, runner, connected, transport):
        result = runner.invoke(main, ["tone", "200", "440", "500"])
        assert result.exit_code == 2
        assert transport.written == []

    def test_tones(self, runner, connected, transport):
        result = runner.invoke(main, ["tones"])
        assert result.exit_code == 0, result.output
        assert len(transport.written) == 1

    def test_beep(self, runner, connected, transport):
        result = runner.invoke(main, ["beep", "--volume", "50"])
        assert result.exit_code == 0, result.output
        assert b"\x82\xe8\x03" in transport.written[0]

    def test_motor_start_with_power(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "start", "AD", "--power", "50"])
        assert result.exit_code == 0, result.output
        assert body(transport.written[0]) == b"\xa4\x00\x09\x81\x32"
        assert body(transport.written[1]) == b"\xa6\x00\x09"

    def test_motor_bad_port(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "start", "E"])
        assert result.exit_code == 2
        assert transport.written == []

    def test_motor_stop_all(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "stop"])
        assert result.exit_code == 0, result.output
        assert body(transport.written[0]) == b"\xa3\x00\x0f\x01"

    def test_motor_stop_brake(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "stop", "B", "--brake"])
        assert result.exit_code == 0, result.output
        assert body(transport.written[0]) == b"\xa3\x00\x02\x01"

    def test_motor_step(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "step", "A", "50", "90", "360", "90", "--coast"])
        assert result.exit_code == 0, result.output
        assert body(transport.written[0])[:1] == b"\xae"
        assert body(transport.written[0]).endswith(b"\x00")

    def test_motor_count(self, runner, connected, transport):
        transport.queue_direct(struct.pack("<I", 720))
        result = runner.invoke(main, ["motor", "count", "C"])
        assert result.exit_code == 0, result.output
        assert "720 degrees" in result.output

    def test_motor_count_needs_one_port(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "count", "AB"])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_motor_reset(self, runner, connected, transport):
        result = runner.invoke(main, ["motor", "reset", "ABCD"])
        assert result.exit_code == 0, result.output
        assert body(transport.written[0]) == b"\xb2\x00\x0f"

    def test_sensor_read(self, runner, connected, transport):
        transport.queue_direct(struct.pack("<f", 42.0))
        transport.queue_direct(b"cm\x00\x00\x00")

        result = runner.invoke(main, ["sensor", "read", "4"])

        assert result.exit_code == 0, result.output
        assert "42 cm" in result.output
        assert body(transport.written[0])[2] == 3

    def test_sensor_samples(self, runner, connected, transport):
        for value in (1.0, 2.0):
            transport.queue_direct(struct.pack("<f", value))

        result = runner.invoke(main, ["sensor", "read", "1", "-n", "2", "--interval", "0"])

        assert result.exit_code == 0, result.output
        assert len(result.output.strip().splitlines()) == 2

    def test_sensor_name(self, runner, connected, transport):
        transport.queue_direct(b"US-DIST-CM\x00\x00")
        result = runner.invoke(main, ["sensor", "name", "1"])
        assert result.exit_code == 0, result.output
        assert "US-DIST-CM" in result.output

    def test_sensor_port_range(self, runner, connected):
        result = runner.invoke(main, ["sensor", "name", "5"])
        assert result.exit_code == 2

    def test_device_error_exit_code(self, runner, connected, transport):
        transport.queue_direct(b"\x00", error=True)
        result = runner.invoke(main, ["battery"])
        assert result.exit_code == ExitCode.DEVICE_ERROR
        assert "Brick error" in result.output

    def test_timeout_exit_code(self, runner, connected, transport):
        result = runner.invoke(main, ["battery"])
        assert result.exit_code == ExitCode.DEVICE_ERROR
        assert "Communication error" in result.output


# =============================================================================
# File Commands
# =============================================================================

class TestFiles:
    """Tests for upload, download, ls, mkdir, rm and bytecode."""

    def test_upload(self, runner, connected, transport):
        transport.queue_system(b"\x02")
        transport.queue_system(b"\x02")

        with runner.isolated_filesystem():
            Path("prog.rbf").write_bytes(b"LEGO1234")
            result = runner.invoke(main, ["upload", "prog.rbf", "../prjs/p/prog.rbf"])

        assert result.exit_code == 0, result.output
        assert "Transfer complete" in result.output
        assert transport.written[1][7:] == b"LEGO1234"

    def test_upload_missing_file(self, runner, connected):
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["upload", "nope.rbf", "x"])
        assert result.exit_code == 2

    def test_download(self, runner, connected, transport):
        transport.queue_system(struct.pack("<IB", 5, 1) + b"hello", SystemStatus.END_OF_FILE)

        with runner.isolated_filesystem():
            result = runner.invoke(main, ["download", "../prjs/p/log.txt"])
            saved = Path("log.txt").read_bytes()

        assert result.exit_code == 0, result.output
        assert saved == b"hello"

    def test_ls(self, runner, connected, transport):
        text = b"0" * 32 + b" 0000000A prog.rbf\nsub/\n"
        transport.queue_system(struct.pack("<IB", len(text), 0) + text, SystemStatus.END_OF_FILE)

        result = runner.invoke(main, ["ls", "../prjs/p/"])

        assert result.exit_code == 0, result.output
        assert "prog.rbf" in result.output
        assert "sub/" in result.output

    def test_mkdir_exists(self, runner, connected, transport):
        transport.queue_system(status=SystemStatus.FILE_EXISTS, error=True)
        result = runner.invoke(main, ["mkdir", "../prjs/p"])
        assert result.exit_code == ExitCode.DEVICE_ERROR
        assert "File exists" in result.output

    def test_rm(self, runner, connected, transport):
        transport.queue_system()
        result = runner.invoke(main, ["rm", "../prjs/p/prog.rbf"])
        assert result.exit_code == 0, result.output
        assert "Deleted" in result.output

    def test_bytecode(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["bytecode", "tones"])
            data = Path("tones.rbf").read_bytes()
        assert result.exit_code == 0, result.output
        assert data[:4] == b"LEGO"


class TestProgressBar:
    """Tests for the transfer progress display."""

    def test_complete(self, capsys):
        progress_bar(10, 10)
        assert "100% (10/10 bytes)" in capsys.readouterr().out

    def test_zero_total(self, capsys):
        progress_bar(0, 0)
        assert capsys.readouterr().out == ""
