"""
Exceptions raised by the video bridge
"""


class BridgeError(Exception):
    """Base class for bridge errors"""


class ConfigError(BridgeError):
    """Invalid configuration value"""


class MediaSourceError(BridgeError):
    """Decode session could not be created (fatal)"""


class StreamDecodeError(BridgeError):
    """Decoding failed in the middle of the stream"""


class FrameGeometryError(BridgeError):
    """Frame does not match the negotiated output geometry"""


class ClockError(BridgeError):
    """Clock query failed (fatal)"""


class SignalingError(BridgeError):
    """Offer/answer exchange with the robot failed"""
