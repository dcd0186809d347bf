"""
Media source resolver - opens a stream locator as a PyAV decode session
"""

import logging
import os
import re
import tempfile
from urllib.parse import urlparse

import av
from av.error import FFmpegError

from .errors import MediaSourceError, StreamDecodeError

logger = logging.getLogger(__name__)

PROTOCOL_WHITELIST = "file,rtp,udp,https,tls,tcp"
ALLOWED_PROTOCOLS = frozenset(PROTOCOL_WHITELIST.split(","))
SDP_VIDEO_LINE = re.compile(r"^m=video \d+ ", re.MULTILINE)


def get_decoder_options():
    """
    Fixed FFmpeg options for a low latency RTP/SDP source

    analyzeduration and probesize cap how much of the stream FFmpeg inspects
    before the first frame is produced.

    Returns:
        dict: FFmpeg option map
    """
    return {
        "protocol_whitelist": PROTOCOL_WHITELIST,
        "flags": "low_delay",
        "analyzeduration": "4M",
        "probesize": "4M",
    }


def locator_scheme(locator):
    """Transport scheme of a locator, bare paths count as 'file'"""
    scheme = urlparse(locator).scheme.lower()
    # single letters are windows drive letters, not schemes
    if len(scheme) <= 1:
        return "file"
    return scheme


def check_locator(locator, allowed=ALLOWED_PROTOCOLS):
    """
    Reject locators whose transport is not in the allowlist

    Args:
        locator (str): Path or URL of the stream description
        allowed (frozenset): Accepted schemes

    Raises:
        MediaSourceError: If the scheme is not allowed
    """
    scheme = locator_scheme(locator)
    if scheme not in allowed:
        raise MediaSourceError(
            f"Transport {scheme!r} not allowed for {locator!r} "
            f"(allowed: {','.join(sorted(allowed))})"
        )


def render_sdp(template, video_port):
    """
    Write a copy of an SDP file with its video media line moved to another port

    Args:
        template (str): Path of the SDP file to copy
        video_port (int): Local RTP port the video is relayed to

    Returns:
        str: Path of the new temporary file, removed by the caller

    Raises:
        MediaSourceError: If the template cannot be read or has no video line
    """
    try:
        with open(template) as f:
            text = f.read()
    except OSError as e:
        raise MediaSourceError(f"Failed to read {template}: {e}") from e

    text, count = SDP_VIDEO_LINE.subn(f"m=video {video_port} ", text)
    if count == 0:
        raise MediaSourceError(f"No video media line in {template}")

    fd, path = tempfile.mkstemp(prefix="go2_video_", suffix=".sdp")
    with os.fdopen(fd, "w") as f:
        f.write(text)
    logger.debug(f"Rendered {template} for video port {video_port} at {path}")
    return path


class DecodeSession:
    """
    Open PyAV container producing RGB frames from its first video stream

    The frame sequence is lazy, finite and can only be iterated once.
    Not safe to share across threads.
    """

    def __init__(self, container, stream, output_size=None):
        self._container = container
        self._stream = stream
        self._started = False
        self._closed = False

        codec = stream.codec_context
        self.size = (codec.width, codec.height)
        self.size_out = tuple(output_size) if output_size else self.size

        if min(self.size_out) <= 0:
            raise MediaSourceError(f"Unknown stream geometry: {self.size_out}")

    def decode_iter(self):
        """
        Iterate decoded frames

        Yields:
            tuple: (timestamp, frame) where timestamp is seconds since the first
            frame and frame is an (height, width, 3) uint8 RGB ndarray

        Raises:
            StreamDecodeError: If decoding fails mid-stream
            RuntimeError: If the session was already iterated
        """
        if self._started:
            raise RuntimeError("Decode session cannot be restarted")
        self._started = True
        return self._frames()

    def _frames(self):
        width, height = self.size_out
        origin = None
        try:
            for frame in self._container.decode(self._stream):
                t = frame.time
                if origin is None and t is not None:
                    origin = t
                timestamp = t - origin if t is not None else 0.0
                yield timestamp, frame.to_ndarray(width=width, height=height, format="rgb24")
        except FFmpegError as e:
            raise StreamDecodeError(f"Decode failed: {e}") from e

    def close(self):
        if not self._closed:
            self._closed = True
            self._container.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_decode_session(locator, options=None, output_size=None):
    """
    Open a stream locator for decoding

    Args:
        locator (str): Path or URL of the media (e.g. an SDP file)
        options (dict): FFmpeg options, get_decoder_options() when omitted
        output_size (tuple): Output (width, height), input size when omitted

    Returns:
        DecodeSession: Opened session

    Raises:
        MediaSourceError: If the locator cannot be opened or has no video
    """
    if options is None:
        options = get_decoder_options()
    check_locator(locator)

    logger.debug(f"Opening stream {locator}")
    try:
        container = av.open(locator, mode="r", options=options)
    except (FFmpegError, OSError) as e:
        raise MediaSourceError(f"Failed to open {locator}: {e}") from e

    try:
        if not container.streams.video:
            raise MediaSourceError(f"No video stream in {locator}")
        session = DecodeSession(container, container.streams.video[0], output_size)
    except MediaSourceError:
        container.close()
        raise

    logger.info(f"Input stream size: {session.size}")
    logger.info(f"Output stream size: {session.size_out}")
    return session
