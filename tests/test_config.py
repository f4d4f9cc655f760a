"""
Tests for Connection Configuration
==================================
"""

import logging

import pytest

from ev3_sdk.comms.serial import SerialTransport
from ev3_sdk.comms.usb import UsbTransport
from ev3_sdk.comms.wifi import WifiTransport
from ev3_sdk.config import ConnectionConfig, IoType


class TestIoType:
    """Tests for io type parsing."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("usb", IoType.USB),
            ("BT", IoType.BLUETOOTH),
            ("serial", IoType.BLUETOOTH),
            (" wifi ", IoType.WIFI),
        ],
    )
    def test_parse(self, text, expected):
        assert IoType.parse(text) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Valid types"):
            IoType.parse("zigbee")


class TestFromEnv:
    """Tests for ConnectionConfig.from_env."""

    def test_defaults(self):
        config = ConnectionConfig.from_env({})
        assert config.io_type is IoType.USB
        assert config.serial_port == "/dev/rfcomm0"
        assert config.baud_rate == 115200
        assert config.wifi_address == "192.168.1.104"
        assert config.wifi_port == 5555
        assert config.serial_number == "0016533dbaf5"
        assert config.timeout == 5.0

    def test_all_variables(self):
        config = ConnectionConfig.from_env({
            "EV3_IO_TYPE": "wifi",
            "EV3_SERIAL_PORT": "COM7",
            "EV3_BAUD": "9600",
            "EV3_WIFI_ADDRESS": "10.0.0.5",
            "EV3_WIFI_PORT": "6000",
            "EV3_SERIAL_NUMBER": "001653abcdef",
            "EV3_TIMEOUT": "2.5",
        })
        assert config == ConnectionConfig(
            io_type=IoType.WIFI,
            serial_port="COM7",
            baud_rate=9600,
            wifi_address="10.0.0.5",
            wifi_port=6000,
            serial_number="001653abcdef",
            timeout=2.5,
        )

    def test_discover_address(self):
        config = ConnectionConfig.from_env({"EV3_WIFI_ADDRESS": "discover"})
        assert config.wifi_address is None

    def test_invalid_number_keeps_default(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = ConnectionConfig.from_env({"EV3_TIMEOUT": "soon"})
        assert config.timeout == 5.0
        assert "EV3_TIMEOUT" in caplog.text

    def test_invalid_io_type(self):
        with pytest.raises(ValueError):
            ConnectionConfig.from_env({"EV3_IO_TYPE": "carrier-pigeon"})


class TestOverridesAndTransports:
    """Tests for with_overrides and create_transport."""

    def test_none_values_skipped(self):
        config = ConnectionConfig().with_overrides(serial_port=None, timeout=1.0)
        assert config.serial_port == "/dev/rfcomm0"
        assert config.timeout == 1.0

    def test_overrides_copy(self):
        original = ConnectionConfig()
        original.with_overrides(baud_rate=9600)
        assert original.baud_rate == 115200

    def test_usb_transport(self):
        transport = ConnectionConfig(timeout=3.0).create_transport()
        assert isinstance(transport, UsbTransport)
        assert transport.timeout == 3.0

    def test_bluetooth_transport(self):
        config = ConnectionConfig(io_type=IoType.BLUETOOTH, serial_port="/dev/rfcomm1")
        transport = config.create_transport()
        assert isinstance(transport, SerialTransport)
        assert transport.device == "/dev/rfcomm1"
        assert not transport.is_open

    def test_wifi_transport(self):
        config = ConnectionConfig(io_type=IoType.WIFI, wifi_address=None)
        transport = config.create_transport()
        assert isinstance(transport, WifiTransport)
        assert transport.address is None

    def test_describe(self):
        assert ConnectionConfig().describe() == "USB"
        assert "5555" in ConnectionConfig(io_type=IoType.WIFI).describe()
