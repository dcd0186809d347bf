"""
ROS2 node that owns the image publisher and the connection parameters
"""

import threading
from dataclasses import replace

from rcl_interfaces.msg import ParameterDescriptor, SetParametersResult
from rclpy.node import Node
from rclpy.qos import DurabilityPolicy, HistoryPolicy, QoSProfile, ReliabilityPolicy
from sensor_msgs.msg import Image

from .config import ConnectionParameters
from .errors import ConfigError

CONNECTION_FIELDS = ("robot_ip", "robot_token", "video_port", "audio_port", "debug_webrtc")


def best_effort_qos(depth=10):
    """Sensor-data style QoS: no retransmission, no history for late joiners"""
    return QoSProfile(
        reliability=ReliabilityPolicy.BEST_EFFORT,
        history=HistoryPolicy.KEEP_LAST,
        durability=DurabilityPolicy.VOLATILE,
        depth=depth,
    )


class VideoBridgeNode(Node):
    """
    ROS2 Node that publishes decoded robot video

    Connection parameters are ROS parameters seeded from the environment.
    They are kept as an immutable copy guarded by a lock; the bootstrapper
    reads them once through connection_snapshot().
    """

    def __init__(self, settings):
        """
        Initialize video bridge node

        Args:
            settings (BridgeSettings): Bridge configuration
        """
        super().__init__(settings.node_name)

        for name in CONNECTION_FIELDS:
            self.declare_parameter(name, getattr(settings.connection, name))
        # publisher and message header are built once, at construction
        fixed = ParameterDescriptor(read_only=True)
        self.declare_parameter('topic', settings.topic, fixed)
        self.declare_parameter('frame_id', settings.frame_id, fixed)

        self.topic = self.get_parameter('topic').value
        self.frame_id = self.get_parameter('frame_id').value

        self._params_lock = threading.Lock()
        self._connection = ConnectionParameters(
            **{name: self.get_parameter(name).value for name in CONNECTION_FIELDS}
        )
        self.add_on_set_parameters_callback(self._on_set_parameters)

        self.publisher = self.create_publisher(
            Image,
            self.topic,
            best_effort_qos(settings.qos_depth)
        )

        self.get_logger().info(f'Publishing to: {self.topic} (frame_id={self.frame_id})')

    def _on_set_parameters(self, params):
        updates = {p.name: p.value for p in params if p.name in CONNECTION_FIELDS}
        if not updates:
            return SetParametersResult(successful=True)

        with self._params_lock:
            candidate = replace(self._connection, **updates)
            try:
                candidate.validate()
            except ConfigError as e:
                return SetParametersResult(successful=False, reason=str(e))
            self._connection = candidate

        self.get_logger().info(f'Connection parameters updated: {sorted(updates)}')
        return SetParametersResult(successful=True)

    def connection_snapshot(self):
        """
        Return the current connection parameters (thread-safe)

        Returns:
            ConnectionParameters: Immutable copy
        """
        with self._params_lock:
            return self._connection

    def now(self):
        """Current node time as builtin_interfaces/Time"""
        return self.get_clock().now().to_msg()
