"""
Store module exports.

Clean interface for the agent to import store components.
"""

from agent.memory.base import (
    ConversationStore,
    HealthRecordStore,
    MedicationStore,
    UserStore,
)
from agent.memory.sqlite import (
    SQLiteConversationStore,
    SQLiteDatabase,
    SQLiteHealthRecordStore,
    SQLiteMedicationStore,
    SQLiteUserStore,
)
from agent.memory.stub import (
    StubConversationStore,
    StubHealthRecordStore,
    StubMedicationStore,
    StubUserStore,
)
from agent.memory.types import (
    ConversationMessage,
    HealthRecord,
    Medication,
    RecordType,
    Role,
    SourceType,
    User,
    UserPreferences,
)

__all__ = [
    # Interfaces
    "UserStore",
    "ConversationStore",
    "HealthRecordStore",
    "MedicationStore",
    # SQLite
    "SQLiteDatabase",
    "SQLiteUserStore",
    "SQLiteConversationStore",
    "SQLiteHealthRecordStore",
    "SQLiteMedicationStore",
    # In-memory
    "StubUserStore",
    "StubConversationStore",
    "StubHealthRecordStore",
    "StubMedicationStore",
    # Types
    "User",
    "UserPreferences",
    "ConversationMessage",
    "HealthRecord",
    "Medication",
    "Role",
    "RecordType",
    "SourceType",
]
