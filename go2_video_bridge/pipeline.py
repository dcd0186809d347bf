"""
Frame decode loop - decode, stamp and publish frames in order
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ClockError, FrameGeometryError, StreamDecodeError

logger = logging.getLogger(__name__)

END_OF_STREAM = "end_of_stream"
DECODE_ERROR = "decode_error"


@dataclass
class PipelineStats:
    """Counters for one pipeline run"""
    pulled: int = 0
    published: int = 0
    failed_publishes: int = 0
    end_reason: Optional[str] = None


class FramePipeline:
    """
    Synchronous decode -> stamp -> assemble -> publish loop

    Frames are pulled one at a time and republished in decode order. The loop
    ends when the stream is exhausted or a frame cannot be decoded. A clock
    failure raises ClockError and nothing is published for that frame.
    """

    def __init__(self, session, assembler, sink, clock, log_every=300):
        """
        Args:
            session: DecodeSession providing decode_iter()
            assembler (ImageMessageAssembler): Message builder
            sink (callable): Publisher sink, returns True on success
            clock (callable): Returns the stamp for the current frame
            log_every (int): Debug log interval in frames
        """
        self.session = session
        self.assembler = assembler
        self.sink = sink
        self.clock = clock
        self.log_every = log_every
        self.stats = PipelineStats()

    def run(self):
        """
        Process frames until the stream ends

        Returns:
            PipelineStats: Counters and the reason the loop stopped

        Raises:
            ClockError: If the clock cannot be queried
        """
        stats = self.stats
        frames = self.session.decode_iter()

        logger.debug("Start processing frames")
        while True:
            try:
                _, frame = next(frames)
            except StopIteration:
                stats.end_reason = END_OF_STREAM
                break
            except StreamDecodeError as e:
                logger.warning(f"Stopping on decode error: {e}")
                stats.end_reason = DECODE_ERROR
                break

            stats.pulled += 1
            if stats.pulled == 1:
                logger.info(f"First frame: {frame.shape[1]}x{frame.shape[0]}")

            try:
                stamp = self.clock()
            except Exception as e:
                raise ClockError(f"Clock query failed on frame {stats.pulled}: {e}") from e

            try:
                msg = self.assembler.fill(stamp, frame)
            except FrameGeometryError as e:
                logger.warning(f"Stopping on bad frame: {e}")
                stats.end_reason = DECODE_ERROR
                break

            if self.sink(msg):
                stats.published += 1
            else:
                stats.failed_publishes += 1

            if self.log_every and stats.pulled % self.log_every == 0:
                logger.debug(f"Frames={stats.pulled}, failed publishes={stats.failed_publishes}")

        logger.info(
            f"Stream ended ({stats.end_reason}): {stats.pulled} frames, "
            f"{stats.published} published"
        )
        return stats
