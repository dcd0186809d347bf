"""
Test Configuration
==================

Fakes for the decode session, clock, ROS publisher and node so the pipeline
can be exercised without a ROS2 installation or a live robot.
"""

import itertools
from fractions import Fraction
from types import SimpleNamespace

import av
import numpy as np
import pytest

from go2_video_bridge.config import BridgeSettings, ConnectionParameters
from go2_video_bridge.errors import StreamDecodeError


class FakeImage:
    """Stand-in for sensor_msgs.msg.Image"""

    def __init__(self):
        self.header = SimpleNamespace(frame_id="", stamp=None)
        self.height = 0
        self.width = 0
        self.encoding = ""
        self.is_bigendian = 0
        self.step = 0
        self.data = []


class FakeSession:
    """Decode session yielding solid-colour frames, counts every pull"""

    def __init__(self, frames=5, size=(64, 48), fail_at=None, bad_shape_at=None):
        self.frames = frames
        self.size_out = size
        self.fail_at = fail_at
        self.bad_shape_at = bad_shape_at
        self.pulls = 0
        self.closed = False

    def decode_iter(self):
        return self._frames()

    def _frames(self):
        width, height = self.size_out
        for i in range(self.frames):
            self.pulls += 1
            if i == self.fail_at:
                raise StreamDecodeError("corrupt packet")
            shape = (height, width, 3)
            if i == self.bad_shape_at:
                shape = (height + 1, width, 3)
            yield i / 30.0, np.full(shape, i, dtype=np.uint8)
        # the pull that reports end of stream
        self.pulls += 1

    def close(self):
        self.closed = True


class RecordingPublisher:
    """Records a copy of every published message, optionally failing"""

    msg_type = FakeImage

    def __init__(self, fail_every=None):
        self.fail_every = fail_every
        self.calls = 0
        self.messages = []

    def publish(self, msg):
        self.calls += 1
        if self.fail_every and self.calls % self.fail_every == 0:
            raise RuntimeError("no route to subscriber")
        self.messages.append({
            "frame_id": msg.header.frame_id,
            "stamp": msg.header.stamp,
            "width": msg.width,
            "height": msg.height,
            "step": msg.step,
            "encoding": msg.encoding,
            "is_bigendian": msg.is_bigendian,
            "data": bytes(msg.data),
        })


class CountingClock:
    """Monotonic clock returning 1, 2, 3, ..."""

    def __init__(self, fail_at=None):
        self._counter = itertools.count(1)
        self.fail_at = fail_at
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls == self.fail_at:
            raise RuntimeError("clock unavailable")
        return next(self._counter)


class FakeNode:
    """The parts of VideoBridgeNode used by stream_video"""

    def __init__(self, publisher=None, clock=None, frame_id="front_camera", connection=None):
        self.publisher = publisher or RecordingPublisher()
        self.now = clock or CountingClock()
        self.frame_id = frame_id
        self.connection = connection or ConnectionParameters(
            robot_ip="192.168.12.1", robot_token="secret")
        self.snapshots = 0

    def connection_snapshot(self):
        self.snapshots += 1
        return self.connection


def make_clip(path, frames=5, width=64, height=48):
    """Encode an mpeg4 clip whose frames get brighter one by one"""
    container = av.open(path, mode="w")
    stream = container.add_stream("mpeg4", rate=30)
    stream.width = width
    stream.height = height
    stream.pix_fmt = "yuv420p"

    for i in range(frames):
        image = np.full((height, width, 3), 40 * i, dtype=np.uint8)
        frame = av.VideoFrame.from_ndarray(image, format="rgb24")
        frame.pts = i
        frame.time_base = Fraction(1, 30)
        for packet in stream.encode(frame):
            container.mux(packet)
    for packet in stream.encode():
        container.mux(packet)
    container.close()
    return path


@pytest.fixture
def clip_path(tmp_path):
    """Five 64x48 mpeg4 frames with increasing brightness"""
    return make_clip(str(tmp_path / "clip.mp4"))


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def clock():
    return CountingClock()


@pytest.fixture
def fake_node():
    return FakeNode()


@pytest.fixture
def file_settings():
    return BridgeSettings(source="file", locator="/tmp/clip.mp4", grace_period=0.0)
