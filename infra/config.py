"""
Infrastructure configuration system.

Environment-based backend selection with sensible defaults.
The stub backends keep everything in memory and never touch the network.
"""

import logging
import os
from dataclasses import dataclass
from typing import Literal

from agent.memory import (
    ConversationStore,
    HealthRecordStore,
    MedicationStore,
    SQLiteConversationStore,
    SQLiteDatabase,
    SQLiteHealthRecordStore,
    SQLiteMedicationStore,
    SQLiteUserStore,
    StubConversationStore,
    StubHealthRecordStore,
    StubMedicationStore,
    StubUserStore,
    UserPreferences,
    UserStore,
)
from agent.messaging import Messenger, StubMessenger
from inference import AnthropicModelBackend, ModelBackend, OllamaModelBackend, StubModelBackend

logger = logging.getLogger(__name__)


LLMBackendType = Literal["stub", "ollama", "anthropic"]
MessagingBackendType = Literal["stub", "twilio"]
StoreBackendType = Literal["stub", "sqlite"]


@dataclass
class Stores:
    users: UserStore
    conversations: ConversationStore
    records: HealthRecordStore
    medications: MedicationStore


@dataclass
class InfraConfig:
    """Infrastructure configuration from environment."""

    environment: str

    # LLM
    llm_backend: LLMBackendType
    anthropic_api_key: str
    anthropic_model: str
    ollama_model: str
    ollama_base_url: str

    # Messaging
    messaging_backend: MessagingBackendType
    twilio_account_sid: str
    twilio_auth_token: str
    twilio_whatsapp_number: str
    media_download_timeout_s: float

    # Stores
    store_backend: StoreBackendType
    sqlite_db_path: str
    default_timezone: str
    default_reminder_time: str

    # Ingress
    rate_limit_window_s: float
    rate_limit_max_requests: int
    rate_limit_sweep_interval_s: float

    @classmethod
    def from_env(cls) -> "InfraConfig":
        """
        Load configuration from environment variables.

        Defaults target the hosted stack:
        - LLM: anthropic (claude-3-haiku)
        - Messaging: twilio
        - Stores: sqlite file
        """
        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),

            # LLM Configuration
            llm_backend=os.getenv("LLM_BACKEND", "anthropic"),  # type: ignore
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307"),
            ollama_model=os.getenv("OLLAMA_MODEL", "llava"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),

            # Messaging Configuration
            messaging_backend=os.getenv("MESSAGING_BACKEND", "twilio"),  # type: ignore
            twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID", ""),
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN", ""),
            twilio_whatsapp_number=os.getenv("TWILIO_WHATSAPP_NUMBER", "whatsapp:+14155238886"),
            media_download_timeout_s=float(os.getenv("MEDIA_DOWNLOAD_TIMEOUT_S", "30")),

            # Store Configuration
            store_backend=os.getenv("STORE_BACKEND", "sqlite"),  # type: ignore
            sqlite_db_path=os.getenv("SQLITE_DB_PATH", "./health.db"),
            default_timezone=os.getenv("DEFAULT_TIMEZONE", "Asia/Kolkata"),
            default_reminder_time=os.getenv("DEFAULT_REMINDER_TIME", "09:00"),

            # Ingress Configuration
            rate_limit_window_s=float(os.getenv("RATE_LIMIT_WINDOW_S", "60")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "20")),
            rate_limit_sweep_interval_s=float(os.getenv("RATE_LIMIT_SWEEP_INTERVAL_S", "300")),
        )

    @property
    def media_download_auth(self):
        """Twilio media URLs accept the account credentials as basic auth."""
        if self.twilio_account_sid and self.twilio_auth_token:
            return (self.twilio_account_sid, self.twilio_auth_token)
        return None

    def create_llm_backend(self) -> ModelBackend:
        """Create LLM backend instance based on configuration."""
        if self.llm_backend == "anthropic":
            return AnthropicModelBackend(
                api_key=self.anthropic_api_key,
                model_name=self.anthropic_model,
            )
        elif self.llm_backend == "ollama":
            return OllamaModelBackend(
                model_name=self.ollama_model,
                base_url=self.ollama_base_url
            )
        elif self.llm_backend == "stub":
            return StubModelBackend()
        else:
            raise ValueError(f"Unknown LLM_BACKEND: {self.llm_backend}")

    def create_messenger(self) -> Messenger:
        """Create the outbound messenger based on configuration."""
        if self.messaging_backend == "stub":
            return StubMessenger()

        if not (self.twilio_account_sid and self.twilio_auth_token):
            logger.warning("Twilio credentials missing; outbound messages will only be recorded")
            return StubMessenger(succeed=False)

        from transport.whatsapp.sender import TwilioMessenger

        return TwilioMessenger(
            account_sid=self.twilio_account_sid,
            auth_token=self.twilio_auth_token,
            from_number=self.twilio_whatsapp_number,
        )

    def create_stores(self) -> Stores:
        """Create the four stores based on configuration."""
        preferences = UserPreferences(
            reminder_time=self.default_reminder_time,
            timezone=self.default_timezone,
        )

        if self.store_backend == "stub":
            conversations = StubConversationStore()
            return Stores(
                users=StubUserStore(conversations=conversations, default_preferences=preferences),
                conversations=conversations,
                records=StubHealthRecordStore(),
                medications=StubMedicationStore(),
            )

        db = SQLiteDatabase(self.sqlite_db_path)
        return Stores(
            users=SQLiteUserStore(db, default_preferences=preferences),
            conversations=SQLiteConversationStore(db),
            records=SQLiteHealthRecordStore(db),
            medications=SQLiteMedicationStore(db),
        )


def get_config() -> InfraConfig:
    """Get global infrastructure configuration."""
    return InfraConfig.from_env()
