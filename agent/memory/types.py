"""
Store layer types.

Plain records passed between the stores and the rest of the agent.
Record numbers are NOT part of the model: they are recomputed per query.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Literal
from uuid import uuid4

Role = Literal["user", "assistant"]
RecordType = Literal["blood_work", "vitals", "imaging", "medication"]
SourceType = Literal["pdf", "image", "text"]

RECORD_TYPES = ("blood_work", "vitals", "imaging", "medication")
SOURCE_TYPES = ("pdf", "image", "text")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


@dataclass
class UserPreferences:
    reminder_time: str = "09:00"
    timezone: str = "Asia/Kolkata"


@dataclass
class User:
    """A WhatsApp user, identified by normalized phone number."""

    id: str
    phone_number: str
    name: str = ""                       # Empty => new user (onboarding)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    family_id: Optional[str] = None      # Stored, unused
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_new(self) -> bool:
        return not self.name


@dataclass(frozen=True)
class ConversationMessage:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class HealthRecord:
    """A single ingested health record. Immutable once stored."""

    user_id: str
    record_type: RecordType
    date: datetime                       # When the measurement/report happened
    source_type: SourceType
    raw_data: Dict[str, Any]
    structured_data: Optional[Dict[str, Any]] = None
    analysis: Optional[str] = None
    file_url: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Medication:
    user_id: str
    medication_name: str
    dosage: str
    frequency: str
    times: List[str] = field(default_factory=list)
    start_date: datetime = field(default_factory=utcnow)
    end_date: Optional[datetime] = None
    active: bool = True
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)
