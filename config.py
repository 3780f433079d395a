"""
Configuration management for the Mummy health assistant.

Loads environment variables from .env file and provides typed access to configuration.
"""

import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)

logger = logging.getLogger(__name__)


class Config:
    """Configuration class for the Mummy health assistant."""

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Agent API Configuration
    AGENT_PORT = int(os.getenv("AGENT_PORT", "8000"))

    # Twilio WhatsApp
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_WHATSAPP_NUMBER = os.getenv("TWILIO_WHATSAPP_NUMBER", "whatsapp:+14155238886")

    # LLM Backend Configuration
    LLM_BACKEND = os.getenv("LLM_BACKEND", "anthropic")
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
    ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307")
    OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llava")

    # Database
    STORE_BACKEND = os.getenv("STORE_BACKEND", "sqlite")
    SQLITE_DB_PATH = os.getenv("SQLITE_DB_PATH", "./health.db")

    # User defaults
    DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Asia/Kolkata")
    DEFAULT_REMINDER_TIME = os.getenv("DEFAULT_REMINDER_TIME", "09:00")

    # Ingress
    RATE_LIMIT_WINDOW_S = int(os.getenv("RATE_LIMIT_WINDOW_S", "60"))
    RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "20"))
    RATE_LIMIT_SWEEP_INTERVAL_S = int(os.getenv("RATE_LIMIT_SWEEP_INTERVAL_S", "300"))

    @classmethod
    def problems(cls) -> List[str]:
        """Missing or malformed settings, as human-readable lines."""
        problems = []

        if not cls.TWILIO_ACCOUNT_SID:
            problems.append("TWILIO_ACCOUNT_SID is not set")
        elif not cls.TWILIO_ACCOUNT_SID.startswith("AC"):
            problems.append("TWILIO_ACCOUNT_SID should start with 'AC'")

        if not cls.TWILIO_AUTH_TOKEN:
            problems.append("TWILIO_AUTH_TOKEN is not set")

        if cls.LLM_BACKEND == "anthropic":
            if not cls.ANTHROPIC_API_KEY:
                problems.append("ANTHROPIC_API_KEY is not set")
            elif not cls.ANTHROPIC_API_KEY.startswith("sk-ant-"):
                problems.append("ANTHROPIC_API_KEY should start with 'sk-ant-'")

        return problems

    @classmethod
    def validate(cls) -> bool:
        """
        Validate that required configuration is set.

        Raises:
            ValueError: In production, when anything is missing or malformed
        """
        problems = cls.problems()
        if not problems:
            return True

        for problem in problems:
            logger.warning(f"Configuration: {problem}")

        if cls.ENVIRONMENT == "production":
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")
        return False
