"""
Stream Manager - Orchestrates the robot video pipeline
"""

import logging
import os
import time

from .bootstrap import NullBootstrapper, WebRTCBootstrapper
from .config import DEFAULT_LOCATOR, DEFAULT_VIDEO_PORT
from .errors import ClockError, MediaSourceError
from .image_utils import ImageMessageAssembler
from .media_source import open_decode_session, render_sdp
from .pipeline import FramePipeline
from .publisher import PublisherSink

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def make_bootstrapper(settings):
    """
    Pick the bootstrapper for the configured source

    Args:
        settings (BridgeSettings): Bridge configuration

    Returns:
        Bootstrapper: WebRTC bootstrapper for live sources, a no-op otherwise
    """
    if settings.source == "webrtc":
        return WebRTCBootstrapper()
    return NullBootstrapper()


def stream_video(settings, node, bootstrapper=None, open_session=open_decode_session,
                 sleep=time.sleep):
    """
    Main pipeline - bootstrap, open the stream and republish its frames

    The packaged SDP describes the default video port. When it is used with
    another video_port, a copy for that port is opened instead, and the
    bootstrapper relays to the same port.

    Args:
        settings (BridgeSettings): Bridge configuration
        node: VideoBridgeNode (publisher, frame_id, now, connection_snapshot)
        bootstrapper (Bootstrapper): Background connection job
        open_session (callable): Locator -> DecodeSession
        sleep (callable): Used for the grace period

    Returns:
        int: Process exit code
    """
    if bootstrapper is None:
        bootstrapper = make_bootstrapper(settings)

    locator = settings.locator
    snapshot = node.connection_snapshot
    rendered = None
    if settings.locator == DEFAULT_LOCATOR:
        params = node.connection_snapshot()

        def snapshot():
            return params

        if params.video_port != DEFAULT_VIDEO_PORT:
            try:
                rendered = render_sdp(settings.locator, params.video_port)
            except MediaSourceError as e:
                logger.error(f"Failed to create decoder: {e}")
                return EXIT_FATAL
            locator = rendered

    try:
        return _run_stream(settings, node, bootstrapper, snapshot, locator, open_session, sleep)
    finally:
        if rendered is not None:
            os.remove(rendered)


def _run_stream(settings, node, bootstrapper, snapshot, locator, open_session, sleep):
    logger.info("Connecting to the robot's video stream")
    bootstrapper.start(snapshot)

    # No readiness signal from the bootstrapper, only a fixed delay
    if bootstrapper.started and settings.grace_period > 0:
        logger.info(f"Waiting {settings.grace_period:.1f}s for the robot session...")
        sleep(settings.grace_period)

    try:
        session = open_session(locator)
    except MediaSourceError as e:
        logger.error(f"Failed to create decoder: {e}")
        return EXIT_FATAL

    try:
        width, height = session.size_out
        assembler = ImageMessageAssembler(node.publisher.msg_type, node.frame_id, width, height)
        sink = PublisherSink(node.publisher.publish, settings.publish_errors)
        pipeline = FramePipeline(session, assembler, sink, node.now)
        pipeline.run()
    except ClockError as e:
        logger.error(f"Aborting: {e}")
        return EXIT_FATAL
    finally:
        session.close()

    return EXIT_OK
