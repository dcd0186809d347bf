"""
Connection bootstrapper - background task that brings up the robot session
"""

import asyncio
import logging
import threading

from .webrtc_connection import connect_robot

logger = logging.getLogger(__name__)


class Bootstrapper:
    """
    One-shot background job started before decoding

    The job runs in a daemon thread. Nobody waits for it: the main flow only
    sleeps a grace period, and failures are logged here.
    """

    name = "bootstrapper"

    def __init__(self):
        self._thread = None

    @property
    def started(self):
        return self._thread is not None

    def start(self, snapshot):
        """
        Start the job in a daemon thread

        Args:
            snapshot (callable): Returns a ConnectionParameters copy, called
                once from the new thread
        """
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self._thread = threading.Thread(
            target=self._main, args=(snapshot,), name=self.name, daemon=True
        )
        self._thread.start()
        return self._thread

    def _main(self, snapshot):
        try:
            params = snapshot()
            self.run(params)
        except Exception as e:
            logger.error(f"{self.name} failed: {e}")
        else:
            logger.info(f"{self.name} finished")

    def run(self, params):
        raise NotImplementedError


class NullBootstrapper(Bootstrapper):
    """Used for static sources, nothing to set up"""

    name = "null-bootstrapper"

    def start(self, snapshot):
        logger.debug("Static source, no connection bootstrap")
        return None


class WebRTCBootstrapper(Bootstrapper):
    """Connects to the robot over WebRTC and relays media to local RTP ports"""

    name = "webrtc-bootstrapper"

    def run(self, params):
        asyncio.run(connect_robot(params))
