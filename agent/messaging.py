"""
Outbound messaging boundary.

The agent pushes out-of-band messages through this interface only; the
WhatsApp transport provides the real implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

MAX_MESSAGE_LENGTH = 1500


class Messenger(ABC):
    """Stateless outbound message sender."""

    max_length: int = MAX_MESSAGE_LENGTH

    @abstractmethod
    async def send_message(self, to: str, body: str, media_url: Optional[str] = None) -> bool:
        """
        Deliver `body` to `to`, splitting bodies longer than max_length.

        Returns:
            True if every part was accepted by the provider. Never raises.
        """
        raise NotImplementedError


@dataclass
class SentMessage:
    to: str
    body: str
    media_url: Optional[str] = None


class StubMessenger(Messenger):
    """Records messages instead of sending them."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: List[SentMessage] = []

    async def send_message(self, to: str, body: str, media_url: Optional[str] = None) -> bool:
        self.sent.append(SentMessage(to=to, body=body, media_url=media_url))
        return self.succeed
