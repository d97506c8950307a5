"""
Channel Arbitration

Single-assignment result slot deciding which of two racing channels
becomes authoritative.
"""

from typing import Optional

from jobwatch.domain.job_status.value_objects import DeliveryChannel


class ChannelRace:
    """
    First writer wins.

    Both contenders report into the same slot; only the first claim
    succeeds and every later claim is rejected. The loser is still
    responsible for releasing its own resources.
    """

    def __init__(self, *contenders: DeliveryChannel):
        self._contenders = frozenset(contenders)
        self._winner: Optional[DeliveryChannel] = None

    @property
    def winner(self) -> Optional[DeliveryChannel]:
        return self._winner

    @property
    def decided(self) -> bool:
        return self._winner is not None

    def claim(self, channel: DeliveryChannel) -> bool:
        """
        Try to claim the slot.

        Args:
            channel: Contender reporting its first result

        Returns:
            True if this claim won the race
        """
        if channel not in self._contenders:
            raise ValueError(f"{channel.value} is not racing")
        if self._winner is not None:
            return False
        self._winner = channel
        return True
