#!/usr/bin/env python3
"""
go2_video - republishes the Go2 robot camera as sensor_msgs/Image

Usage: go2-video-bridge [--source webrtc|file] [--locator connection.sdp] [--ros-args ...]
Connection values come from ROBOT_IP, ROBOT_TOKEN, VIDEO_PORT, AUDIO_PORT and
DEBUG_WEBRTC, and can be overridden as ROS parameters.
"""

import logging
import sys
import threading

import rclpy
from rclpy.executors import ExternalShutdownException
from rclpy.utilities import remove_ros_args

from .config import build_arg_parser, load_env_file, settings_from_args
from .errors import ConfigError
from .ros_camera import VideoBridgeNode
from .stream_manager import EXIT_FATAL, EXIT_OK, make_bootstrapper, stream_video

logger = logging.getLogger(__name__)


def run_ros_node(node):
    """Run ROS2 node in separate thread (parameter services)"""
    try:
        rclpy.spin(node)
    except ExternalShutdownException:
        pass


def main(argv=None):
    if argv is None:
        argv = sys.argv
    args = build_arg_parser().parse_args(remove_ros_args(args=argv)[1:])

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if load_env_file():
        logger.info("Loaded environment from .env")

    try:
        settings = settings_from_args(args)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(EXIT_FATAL)

    rclpy.init(args=argv)
    try:
        node = VideoBridgeNode(settings)
    except Exception as e:
        logger.error(f"Failed to create node: {e}")
        rclpy.shutdown()
        sys.exit(EXIT_FATAL)

    node.get_logger().info(f"Starting {node.get_name()} (source={settings.source})")

    ros_thread = threading.Thread(target=run_ros_node, args=(node,), daemon=True)
    ros_thread.start()

    code = EXIT_OK
    try:
        code = stream_video(settings, node, make_bootstrapper(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()
        logger.info("Cleanup complete")

    sys.exit(code)


if __name__ == "__main__":
    main()
