"""
USB Transport
=============

Over USB the brick is a HID device (vendor 0x0694, product 0x0005) that
exchanges fixed 1024-byte reports. A request is zero-padded to a whole
number of reports; a reply arrives padded the same way and is cut back
to the length its prefix announces.

Requires the optional ``hidapi`` package::

    pip install ev3-sdk[usb]

On Linux the HID node is root-only by default. A udev rule grants
access::

    SUBSYSTEM=="hidraw", ATTRS{idVendor}=="0694", ATTRS{idProduct}=="0005", MODE="0666"
"""

import logging
import struct
from typing import Final

from ev3_sdk.errors import ConnectionError, TimeoutError, TransportError
from ev3_sdk.protocol.opcodes import LENGTH_FIELD_SIZE

logger = logging.getLogger(__name__)

VENDOR_ID: Final[int] = 0x0694
PRODUCT_ID: Final[int] = 0x0005

REPORT_SIZE: Final[int] = 1024

# hidapi expects the report id in front of every output report
REPORT_ID: Final[int] = 0x00

DEFAULT_TIMEOUT: Final[float] = 5.0


class UsbTransport:
    """
    Transport over the brick's USB HID interface.

    Args:
        vendor_id: USB vendor id.
        product_id: USB product id.
        timeout: Read timeout in seconds.
        device: Already-open hidapi device to use instead of opening one.
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        timeout: float = DEFAULT_TIMEOUT,
        device=None,
    ):
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.timeout = timeout
        self._device = device

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def open(self) -> None:
        if self._device is not None:
            return

        try:
            import hid
        except ImportError as e:
            raise ConnectionError(
                "USB support needs the hidapi package: pip install ev3-sdk[usb]"
            ) from e

        device = hid.device()
        try:
            device.open(self.vendor_id, self.product_id)
        except OSError as e:
            raise ConnectionError(
                f"Cannot open EV3 USB device "
                f"({self.vendor_id:#06x}:{self.product_id:#06x}). "
                f"Ensure the brick is connected and you have permissions: {e}"
            ) from e

        device.set_nonblocking(False)
        self._device = device
        logger.info("Opened EV3 USB device %04X:%04X", self.vendor_id, self.product_id)

    def write(self, data: bytes) -> None:
        device = self._require_open()
        for start in range(0, max(len(data), 1), REPORT_SIZE):
            report = data[start:start + REPORT_SIZE].ljust(REPORT_SIZE, b"\x00")
            try:
                written = device.write(bytes([REPORT_ID]) + report)
            except (OSError, ValueError) as e:
                raise TransportError(f"USB write failed: {e}") from e
            if written < 0:
                raise TransportError("USB write failed")

    def read(self) -> bytes:
        buffer = bytearray(self._read_report())
        if len(buffer) < LENGTH_FIELD_SIZE:
            raise TransportError(f"Short USB report: {len(buffer)} bytes")

        (length,) = struct.unpack_from("<H", buffer)
        frame_size = LENGTH_FIELD_SIZE + length
        while len(buffer) < frame_size:
            buffer.extend(self._read_report())

        return bytes(buffer[:frame_size])

    def _read_report(self) -> bytes:
        device = self._require_open()
        try:
            report = device.read(REPORT_SIZE, int(self.timeout * 1000))
        except (OSError, ValueError) as e:
            raise TransportError(f"USB read failed: {e}") from e
        if not report:
            raise TimeoutError(f"No USB report within {self.timeout}s")
        return bytes(report)

    def close(self) -> None:
        if self._device is None:
            return
        try:
            self._device.close()
            logger.debug("USB device closed")
        except (OSError, ValueError) as e:
            logger.warning("Error closing USB device: %s", e)
        self._device = None

    def _require_open(self):
        if self._device is None:
            raise TransportError("USB transport is not open")
        return self._device

    def __repr__(self) -> str:
        return f"UsbTransport({self.vendor_id:#06x}:{self.product_id:#06x})"
