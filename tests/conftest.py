"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from agent.intent_router import IntentRouter  # noqa: E402
from agent.media_pipeline import MediaPipeline  # noqa: E402
from agent.memory import (  # noqa: E402
    StubConversationStore,
    StubHealthRecordStore,
    StubMedicationStore,
    StubUserStore,
)
from agent.messaging import StubMessenger  # noqa: E402
from agent.oracle import AnalysisOracle  # noqa: E402
from inference import StubModelBackend  # noqa: E402

PHONE = "+919876543210"


@pytest.fixture
def conversations():
    return StubConversationStore()


@pytest.fixture
def users(conversations):
    return StubUserStore(conversations=conversations)


@pytest.fixture
def records():
    return StubHealthRecordStore()


@pytest.fixture
def medications():
    return StubMedicationStore()


@pytest.fixture
def backend():
    return StubModelBackend()


@pytest.fixture
def oracle(backend):
    return AnalysisOracle(backend)


@pytest.fixture
def messenger():
    return StubMessenger()


@pytest.fixture
def media_pipeline(oracle, records, conversations, messenger):
    return MediaPipeline(
        oracle=oracle,
        records=records,
        conversations=conversations,
        messenger=messenger,
    )


@pytest.fixture
def router(users, conversations, records, medications, oracle, messenger, media_pipeline):
    return IntentRouter(
        users=users,
        conversations=conversations,
        records=records,
        medications=medications,
        oracle=oracle,
        messenger=messenger,
        media_pipeline=media_pipeline,
    )


@pytest.fixture
def known_user(users):
    """A user who has completed onboarding."""
    user = users.get_or_create(PHONE)
    users.update_name(user.id, "Asha")
    return user
