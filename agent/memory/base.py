"""
Abstract store interfaces.

The agent depends only on these interfaces, not on specific implementations.
SQLite and in-memory stores are interchangeable behind them.

Failures surface as StoreError; callers decide what the user sees.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from agent.memory.types import (
    ConversationMessage,
    HealthRecord,
    Medication,
    Role,
    User,
)


class UserStore(ABC):
    """Users keyed by normalized phone number."""

    @abstractmethod
    def get_or_create(self, phone_number: str) -> User:
        """
        Return the user for a phone number, creating it on first contact.

        A new user is created together with its empty conversation,
        in a single transaction.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def update_name(self, user_id: str, name: str) -> bool:
        raise NotImplementedError


class ConversationStore(ABC):
    """Append-only per-user message log."""

    @abstractmethod
    def append(self, user_id: str, role: Role, content: str) -> None:
        """Append one message. Atomic per call, no cross-call transaction."""
        raise NotImplementedError

    @abstractmethod
    def recent(self, user_id: str, limit: int = 10) -> List[ConversationMessage]:
        """Last `limit` messages, oldest first."""
        raise NotImplementedError


class HealthRecordStore(ABC):
    """Per-user health records."""

    @abstractmethod
    def add(self, record: HealthRecord) -> HealthRecord:
        raise NotImplementedError

    @abstractmethod
    def recent(self, user_id: str, limit: int = 10) -> List[HealthRecord]:
        """Most recently created first. Position + 1 is the record number."""
        raise NotImplementedError

    @abstractmethod
    def count(self, user_id: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def since(self, user_id: str, cutoff: datetime) -> List[HealthRecord]:
        """Records with date >= cutoff, newest occurrence date first."""
        raise NotImplementedError


class MedicationStore(ABC):

    @abstractmethod
    def add(self, medication: Medication) -> Medication:
        raise NotImplementedError

    @abstractmethod
    def active(self, user_id: str) -> List[Medication]:
        raise NotImplementedError
