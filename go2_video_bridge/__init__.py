"""
Go2 robot video to ROS2 Image bridge
"""

__version__ = "0.1.0"
