"""
In-memory stores for testing and CI.

Deterministic, no external dependencies, same interfaces as the SQLite
stores. Insertion order breaks created_at ties, as in SQLite.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from agent.memory.base import (
    ConversationStore,
    HealthRecordStore,
    MedicationStore,
    UserStore,
)
from agent.memory.types import (
    ConversationMessage,
    HealthRecord,
    Medication,
    Role,
    User,
    UserPreferences,
    new_id,
)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class StubConversationStore(ConversationStore):

    def __init__(self):
        self.messages: Dict[str, List[ConversationMessage]] = {}

    def ensure(self, user_id: str) -> None:
        self.messages.setdefault(user_id, [])

    def append(self, user_id: str, role: Role, content: str) -> None:
        self.messages.setdefault(user_id, []).append(
            ConversationMessage(role=role, content=content)
        )

    def recent(self, user_id: str, limit: int = 10) -> List[ConversationMessage]:
        if limit <= 0:
            return []
        return list(self.messages.get(user_id, [])[-limit:])


class StubUserStore(UserStore):

    def __init__(
        self,
        conversations: Optional[StubConversationStore] = None,
        default_preferences: Optional[UserPreferences] = None,
    ):
        self.users: Dict[str, User] = {}     # {user_id: User}
        self.conversations = conversations
        self.default_preferences = default_preferences or UserPreferences()

    def get_or_create(self, phone_number: str) -> User:
        for user in self.users.values():
            if user.phone_number == phone_number:
                return user
        user = User(
            id=new_id(),
            phone_number=phone_number,
            preferences=UserPreferences(
                reminder_time=self.default_preferences.reminder_time,
                timezone=self.default_preferences.timezone,
            ),
        )
        self.users[user.id] = user
        if self.conversations is not None:
            self.conversations.ensure(user.id)
        return user

    def get(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def update_name(self, user_id: str, name: str) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        user.name = name
        return True


class StubHealthRecordStore(HealthRecordStore):

    def __init__(self):
        self.records: List[HealthRecord] = []

    def add(self, record: HealthRecord) -> HealthRecord:
        self.records.append(record)
        return record

    def _for_user(self, user_id: str) -> List[tuple]:
        return [(seq, r) for seq, r in enumerate(self.records) if r.user_id == user_id]

    def recent(self, user_id: str, limit: int = 10) -> List[HealthRecord]:
        ordered = sorted(
            self._for_user(user_id),
            key=lambda item: (_aware(item[1].created_at), item[0]),
            reverse=True,
        )
        return [record for _, record in ordered[:limit]]

    def count(self, user_id: str) -> int:
        return len(self._for_user(user_id))

    def since(self, user_id: str, cutoff: datetime) -> List[HealthRecord]:
        cutoff = _aware(cutoff)
        ordered = sorted(
            (item for item in self._for_user(user_id) if _aware(item[1].date) >= cutoff),
            key=lambda item: (_aware(item[1].date), item[0]),
            reverse=True,
        )
        return [record for _, record in ordered]


class StubMedicationStore(MedicationStore):

    def __init__(self):
        self.medications: List[Medication] = []

    def add(self, medication: Medication) -> Medication:
        self.medications.append(medication)
        return medication

    def active(self, user_id: str) -> List[Medication]:
        return [m for m in self.medications if m.user_id == user_id and m.active]
