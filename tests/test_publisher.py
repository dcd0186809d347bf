"""
Publisher sink tests
"""

import logging

import pytest

from go2_video_bridge.publisher import PublisherSink, PublishPolicy


def failing_publish(msg):
    raise RuntimeError("transport congested")


class TestPublisherSink:

    def test_success(self):
        sent = []
        sink = PublisherSink(sent.append)

        assert sink("a") is True
        assert sink("b") is True
        assert sent == ["a", "b"]
        assert (sink.published, sink.failed) == (2, 0)

    def test_ignore_swallows_failures_silently(self, caplog):
        sink = PublisherSink(failing_publish)

        with caplog.at_level(logging.DEBUG):
            assert sink("msg") is False

        assert sink.failed == 1
        assert caplog.records == []

    def test_log_policy_warns(self, caplog):
        sink = PublisherSink(failing_publish, "log")

        with caplog.at_level(logging.WARNING):
            assert sink("msg") is False

        assert "transport congested" in caplog.text

    def test_raise_policy_propagates(self):
        sink = PublisherSink(failing_publish, PublishPolicy.RAISE)

        with pytest.raises(RuntimeError):
            sink("msg")
        assert sink.failed == 1

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            PublisherSink(print, "retry")
