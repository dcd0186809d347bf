"""
Image message assembly for decoded RGB frames
"""

import sys
from array import array

import numpy as np

from .errors import FrameGeometryError

RGB8 = "rgb8"
BYTES_PER_PIXEL = 3


def host_is_bigendian(byteorder=sys.byteorder):
    """
    Endianness flag for sensor_msgs/Image

    Args:
        byteorder (str): 'little' or 'big'

    Returns:
        int: 1 on big-endian hosts, 0 otherwise
    """
    return 1 if byteorder == "big" else 0


class ImageMessageAssembler:
    """
    Builds one Image message and refreshes its stamp and payload per frame

    The header shape (frame_id, geometry, step, encoding, endianness) is set
    once; fill() replaces stamp and data wholesale.
    """

    def __init__(self, message_type, frame_id, width, height):
        """
        Args:
            message_type: Message class, e.g. sensor_msgs.msg.Image
            frame_id (str): Frame of reference tag
            width (int): Negotiated output width
            height (int): Negotiated output height
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid image geometry: {width}x{height}")

        self.width = width
        self.height = height

        msg = message_type()
        msg.header.frame_id = frame_id
        msg.width = width
        msg.height = height
        msg.step = width * BYTES_PER_PIXEL
        msg.encoding = RGB8
        msg.is_bigendian = host_is_bigendian()
        self.msg = msg

    def fill(self, stamp, frame):
        """
        Put a new frame into the message

        Args:
            stamp: builtin_interfaces/Time for this frame
            frame (numpy.ndarray): (height, width, 3) uint8 RGB frame

        Returns:
            The updated message

        Raises:
            FrameGeometryError: If the frame does not match the geometry
        """
        expected = (self.height, self.width, BYTES_PER_PIXEL)
        if frame.shape != expected:
            raise FrameGeometryError(f"Frame shape {frame.shape} != {expected}")
        if frame.dtype != np.uint8:
            raise FrameGeometryError(f"Frame dtype {frame.dtype} is not uint8")

        data = array("B", frame.tobytes())

        self.msg.header.stamp = stamp
        self.msg.data = data
        return self.msg
