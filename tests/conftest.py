"""
Shared fixtures for the EV3 SDK tests.

``FakeTransport`` stands in for a brick: it records every frame written
and answers reads from a queue. Queued replies are built when they are
read, so they echo the sequence id (and system command) of the request
just written.
"""

import struct
from collections import deque

import pytest

from ev3_sdk.brick import Brick
from ev3_sdk.comms.link import Link
from ev3_sdk.errors import TimeoutError
from ev3_sdk.protocol.opcodes import ReplyType, SystemStatus
from ev3_sdk.protocol.reply import Reply


def request_sequence(frame: bytes) -> int:
    return struct.unpack_from("<H", frame, 2)[0]


class FakeTransport:
    """In-memory transport with scripted replies."""

    def __init__(self):
        self.written = []
        self.replies = deque()
        self.open_calls = 0
        self.close_calls = 0

    # Transport capability

    def open(self):
        self.open_calls += 1

    def write(self, data):
        self.written.append(bytes(data))

    def read(self):
        if not self.replies:
            raise TimeoutError("No reply queued")
        reply = self.replies.popleft()
        if callable(reply):
            return reply(self.written[-1])
        return reply

    def close(self):
        self.close_calls += 1

    # Scripting helpers

    def queue_raw(self, frame: bytes):
        self.replies.append(frame)

    def queue_direct(self, payload: bytes = b"", error: bool = False):
        reply_type = ReplyType.DIRECT_REPLY_ERROR if error else ReplyType.DIRECT_REPLY

        def build(request):
            return Reply(request_sequence(request), reply_type, payload).to_bytes()

        self.replies.append(build)

    def queue_system(
        self,
        data: bytes = b"",
        status: int = SystemStatus.SUCCESS,
        error: bool = False,
    ):
        reply_type = ReplyType.SYSTEM_REPLY_ERROR if error else ReplyType.SYSTEM_REPLY

        def build(request):
            command = request[5]
            payload = bytes([command, status]) + data
            return Reply(request_sequence(request), reply_type, payload).to_bytes()

        self.replies.append(build)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def link(transport):
    return Link(transport)


@pytest.fixture
def brick(transport):
    """A session that does not wait after BEGIN_DOWNLOAD."""
    return Brick(transport, handle_delay=0)
