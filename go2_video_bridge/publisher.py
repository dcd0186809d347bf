"""
Best-effort publisher sink
"""

import enum
import logging

logger = logging.getLogger(__name__)


class PublishPolicy(enum.Enum):
    """What to do when a publish call fails"""
    IGNORE = "ignore"
    LOG = "log"
    RAISE = "raise"


class PublisherSink:
    """
    Hands finished messages to a publish callable without waiting for delivery

    Failed publishes are counted and, unless the policy is RAISE, dropped so
    the decode loop moves on to the next frame.
    """

    def __init__(self, publish, policy=PublishPolicy.IGNORE):
        """
        Args:
            publish (callable): Publish function, e.g. Publisher.publish
            policy (PublishPolicy or str): Failure handling policy
        """
        self._publish = publish
        self.policy = PublishPolicy(policy)
        self.published = 0
        self.failed = 0

    def __call__(self, msg):
        """
        Publish one message

        Returns:
            bool: True if the publish call succeeded
        """
        try:
            self._publish(msg)
        except Exception as e:
            self.failed += 1
            if self.policy is PublishPolicy.RAISE:
                raise
            if self.policy is PublishPolicy.LOG:
                logger.warning(f"Publish failed: {e}")
            return False
        self.published += 1
        return True
