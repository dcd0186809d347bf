"""
Bridge configuration
"""

import argparse
import os
from dataclasses import dataclass, field

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

DEFAULT_VIDEO_PORT = 4002
DEFAULT_AUDIO_PORT = 4000
DEFAULT_TOPIC = "/go2_camera/color/image"
DEFAULT_FRAME_ID = "front_camera"
DEFAULT_NODE_NAME = "go2_video"
DEFAULT_GRACE_PERIOD = 3.0
DEFAULT_LOCATOR = os.path.join(os.path.dirname(__file__), "connection.sdp")

SOURCES = ("webrtc", "file")
PUBLISH_POLICIES = ("ignore", "log", "raise")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def load_env_file(path=None):
    """
    Load a .env file into os.environ

    Variables already set in the environment win over the file.

    Args:
        path (str): .env path, searched from the working directory when omitted

    Returns:
        bool: True if a file was found and loaded
    """
    if path is None:
        path = find_dotenv(usecwd=True)
    if not path:
        return False
    return load_dotenv(dotenv_path=path, override=False)


def parse_bool(value):
    """
    Parse a boolean flag from a string

    Args:
        value (str): Flag value such as "true", "0" or "off"

    Returns:
        bool: Parsed value

    Raises:
        ConfigError: If the value is not a recognised flag
    """
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


def parse_port(value, name):
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    check_port(port, name)
    return port


def check_port(port, name):
    if not 1 <= port <= 65535:
        raise ConfigError(f"{name} out of range: {port}")


@dataclass(frozen=True)
class ConnectionParameters:
    """Robot endpoint and media ports used by the bootstrapper"""
    robot_ip: str = ""
    robot_token: str = ""
    video_port: int = DEFAULT_VIDEO_PORT
    audio_port: int = DEFAULT_AUDIO_PORT
    debug_webrtc: bool = True

    @classmethod
    def from_env(cls, environ=None):
        """
        Build connection parameters from environment variables

        Reads ROBOT_IP, ROBOT_TOKEN, VIDEO_PORT, AUDIO_PORT and DEBUG_WEBRTC.
        Missing variables fall back to the defaults.

        Args:
            environ (dict): Environment mapping, os.environ when omitted

        Returns:
            ConnectionParameters: Parsed parameters
        """
        if environ is None:
            environ = os.environ
        return cls(
            robot_ip=environ.get("ROBOT_IP", ""),
            robot_token=environ.get("ROBOT_TOKEN", ""),
            video_port=parse_port(environ.get("VIDEO_PORT", DEFAULT_VIDEO_PORT), "VIDEO_PORT"),
            audio_port=parse_port(environ.get("AUDIO_PORT", DEFAULT_AUDIO_PORT), "AUDIO_PORT"),
            debug_webrtc=parse_bool(environ.get("DEBUG_WEBRTC", "true")),
        )

    def validate(self):
        check_port(self.video_port, "video_port")
        check_port(self.audio_port, "audio_port")


@dataclass
class BridgeSettings:
    """Video bridge configuration"""
    connection: ConnectionParameters = field(default_factory=ConnectionParameters)
    source: str = "webrtc"
    locator: str = DEFAULT_LOCATOR
    topic: str = DEFAULT_TOPIC
    frame_id: str = DEFAULT_FRAME_ID
    node_name: str = DEFAULT_NODE_NAME
    grace_period: float = DEFAULT_GRACE_PERIOD
    qos_depth: int = 10
    publish_errors: str = "ignore"

    def validate(self):
        """
        Check settings for consistency

        Raises:
            ConfigError: On the first invalid value
        """
        if self.source not in SOURCES:
            raise ConfigError(f"Unknown source {self.source!r}, expected one of {SOURCES}")
        if self.grace_period < 0:
            raise ConfigError(f"grace_period must be >= 0, got {self.grace_period}")
        if not self.topic:
            raise ConfigError("topic must not be empty")
        if not self.locator:
            raise ConfigError("locator must not be empty")
        if self.qos_depth < 1:
            raise ConfigError(f"qos_depth must be >= 1, got {self.qos_depth}")
        if self.publish_errors not in PUBLISH_POLICIES:
            raise ConfigError(
                f"Unknown publish policy {self.publish_errors!r}, expected one of {PUBLISH_POLICIES}"
            )
        self.connection.validate()
        return self


def build_arg_parser():
    parser = argparse.ArgumentParser(
        description="Republish Go2 robot video as ROS2 Image messages",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--source", choices=SOURCES, default="webrtc",
                        help="webrtc: connect to the robot first, file: decode the locator as is")
    parser.add_argument("--locator", default=DEFAULT_LOCATOR,
                        help="SDP file, URL or media file to decode")
    parser.add_argument("--topic", default=DEFAULT_TOPIC, help="Image topic to publish")
    parser.add_argument("--frame-id", default=DEFAULT_FRAME_ID, help="Header frame_id")
    parser.add_argument("--node-name", default=DEFAULT_NODE_NAME, help="ROS2 node name")
    parser.add_argument("--grace-period", type=float, default=DEFAULT_GRACE_PERIOD,
                        help="Seconds to wait for the robot session before decoding")
    parser.add_argument("--qos-depth", type=int, default=10, help="Publisher queue depth")
    parser.add_argument("--publish-errors", choices=PUBLISH_POLICIES, default="ignore",
                        help="How failed publishes are handled")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def settings_from_args(args, environ=None):
    """
    Build validated settings from parsed arguments and the environment

    Args:
        args (argparse.Namespace): Parsed command line
        environ (dict): Environment mapping, os.environ when omitted

    Returns:
        BridgeSettings: Validated settings

    Raises:
        ConfigError: If a value is invalid
    """
    return BridgeSettings(
        connection=ConnectionParameters.from_env(environ),
        source=args.source,
        locator=args.locator,
        topic=args.topic,
        frame_id=args.frame_id,
        node_name=args.node_name,
        grace_period=args.grace_period,
        qos_depth=args.qos_depth,
        publish_errors=args.publish_errors,
    ).validate()
