"""
Robot signaling tests with a fake peer connection and HTTP session
"""

import asyncio
import logging
from types import SimpleNamespace

import aiohttp
import pytest

from go2_video_bridge.config import ConnectionParameters
from go2_video_bridge.errors import SignalingError
from go2_video_bridge.webrtc_connection import (
    configure_debug_logging,
    connect_robot,
    exchange_offer,
    signaling_url,
)

PARAMS = ConnectionParameters(robot_ip="192.168.12.1", robot_token="tok")


class FakePeerConnection:

    def __init__(self):
        self.localDescription = None
        self.remoteDescription = None

    async def createOffer(self):
        return SimpleNamespace(sdp="v=0 offer", type="offer")

    async def setLocalDescription(self, description):
        self.localDescription = description

    async def setRemoteDescription(self, description):
        self.remoteDescription = description


class FakeResponse:

    def __init__(self, payload=None, status_error=None):
        self.payload = payload
        self.status_error = status_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    async def json(self, content_type="application/json"):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeHttpSession:

    def __init__(self, response):
        self.response = response
        self.requests = []

    def post(self, url, json=None, timeout=None):
        self.requests.append((url, json))
        return self.response


def run(coro):
    return asyncio.run(coro)


class TestExchangeOffer:

    def test_posts_offer_and_applies_answer(self):
        pc = FakePeerConnection()
        http = FakeHttpSession(FakeResponse({"sdp": "v=0 answer", "type": "answer"}))

        run(exchange_offer(pc, PARAMS, http))

        url, body = http.requests[0]
        assert url == "http://192.168.12.1:8081/offer"
        assert body == {"id": "STA_localNetwork", "sdp": "v=0 offer", "type": "offer", "token": "tok"}
        assert pc.remoteDescription.sdp == "v=0 answer"
        assert pc.remoteDescription.type == "answer"

    @pytest.mark.parametrize("response", [
        FakeResponse({"type": "answer"}),
        FakeResponse(["not", "a", "dict"]),
        FakeResponse(ValueError("bad json")),
        FakeResponse(status_error=aiohttp.ClientError("403")),
    ])
    def test_bad_answer(self, response):
        pc = FakePeerConnection()

        with pytest.raises(SignalingError):
            run(exchange_offer(pc, PARAMS, FakeHttpSession(response)))
        assert pc.remoteDescription is None


class TestConnectRobot:

    def test_requires_robot_ip(self):
        with pytest.raises(SignalingError):
            run(connect_robot(ConnectionParameters()))


def test_signaling_url():
    assert signaling_url(PARAMS) == "http://192.168.12.1:8081/offer"


@pytest.mark.parametrize("debug,level", [(True, logging.DEBUG), (False, logging.WARNING)])
def test_debug_logging(debug, level):
    configure_debug_logging(debug)
    assert logging.getLogger("aiortc").level == level
    assert logging.getLogger("aioice").level == level
