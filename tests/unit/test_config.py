"""
Configuration, error taxonomy and phone handling tests.
"""

import logging
from unittest.mock import patch

import pytest

from agent.errors import AppError, StoreError, ValidationError, handle_error
from agent.messaging import StubMessenger
from agent.phone import is_valid_phone_number, normalize_phone_number
from config import Config
from infra.config import InfraConfig
from inference import AnthropicModelBackend, OllamaModelBackend, StubModelBackend


class TestPhoneNumbers:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("whatsapp:+919876543210", "+919876543210"),
            ("+1 (555) 123-4567", "+15551234567"),
            ("919876543210", "+919876543210"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_phone_number(raw) == expected

    def test_valid(self):
        assert is_valid_phone_number("whatsapp:+14155238886")
        assert is_valid_phone_number("919876543210")

    @pytest.mark.parametrize("raw", ["", "+0123456", "abc", "+1234567890123456", "whatsapp:"])
    def test_invalid(self, raw):
        assert not is_valid_phone_number(raw)


class TestErrors:

    def test_status_codes(self):
        assert ValidationError("bad").status_code == 400
        assert StoreError("locked").status_code == 503
        assert AppError("boom").status_code == 500

    def test_handle_error_logs_operational(self, caplog):
        with caplog.at_level(logging.ERROR, logger="agent.errors"):
            handle_error(ValidationError("Invalid NumMedia: 11"))
        assert "Operational error: no such record" in caplog.text

    def test_handle_error_logs_unexpected(self, caplog):
        with caplog.at_level(logging.ERROR, logger="agent.errors"):
            handle_error(RuntimeError("kaboom"))
        assert "Unexpected error: kaboom" in caplog.text


class TestConfigValidation:

    def test_valid_configuration(self):
        with patch.multiple(
            Config,
            TWILIO_ACCOUNT_SID="AC123",
            TWILIO_AUTH_TOKEN="token",
            LLM_BACKEND="anthropic",
            ANTHROPIC_API_KEY="sk-ant-abc",
        ):
            assert Config.problems() == []
            assert Config.validate() is True

    def test_malformed_values_reported(self):
        with patch.multiple(
            Config,
            TWILIO_ACCOUNT_SID="XX123",
            TWILIO_AUTH_TOKEN="",
            LLM_BACKEND="anthropic",
            ANTHROPIC_API_KEY="abc",
            ENVIRONMENT="development",
        ):
            problems = Config.problems()
            assert "TWILIO_ACCOUNT_SID should start with 'AC'" in problems
            assert "TWILIO_AUTH_TOKEN is not set" in problems
            assert "ANTHROPIC_API_KEY should start with 'sk-ant-'" in problems
            assert Config.validate() is False

    def test_production_fails_hard(self):
        with patch.multiple(Config, TWILIO_ACCOUNT_SID="", ENVIRONMENT="production"):
            with pytest.raises(ValueError):
                Config.validate()

    def test_anthropic_key_not_required_for_other_backends(self):
        with patch.multiple(
            Config,
            TWILIO_ACCOUNT_SID="AC123",
            TWILIO_AUTH_TOKEN="token",
            LLM_BACKEND="ollama",
            ANTHROPIC_API_KEY="",
        ):
            assert Config.problems() == []


class TestInfraConfig:

    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            config = InfraConfig.from_env()

        assert config.llm_backend == "anthropic"
        assert config.anthropic_model == "claude-3-haiku-20240307"
        assert config.ollama_model == "llava"
        assert config.messaging_backend == "twilio"
        assert config.store_backend == "sqlite"
        assert config.sqlite_db_path == "./health.db"
        assert config.twilio_whatsapp_number == "whatsapp:+14155238886"
        assert config.default_timezone == "Asia/Kolkata"
        assert config.rate_limit_window_s == 60
        assert config.rate_limit_max_requests == 20
        assert config.rate_limit_sweep_interval_s == 300
        assert config.media_download_timeout_s == 30
        assert config.media_download_auth is None

    def test_backend_selection(self):
        env = {"LLM_BACKEND": "ollama", "OLLAMA_MODEL": "llava:13b", "MESSAGING_BACKEND": "stub", "STORE_BACKEND": "stub"}
        with patch.dict("os.environ", env, clear=True):
            config = InfraConfig.from_env()

        backend = config.create_llm_backend()
        assert isinstance(backend, OllamaModelBackend)
        assert backend.model_name == "llava:13b"
        assert isinstance(config.create_messenger(), StubMessenger)

        stores = config.create_stores()
        user = stores.users.get_or_create("+15551234567")
        assert user.preferences.timezone == "Asia/Kolkata"

    def test_stub_llm_backend(self):
        with patch.dict("os.environ", {"LLM_BACKEND": "stub"}, clear=True):
            assert isinstance(InfraConfig.from_env().create_llm_backend(), StubModelBackend)

    def test_anthropic_backend(self):
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "sk-ant-test"}, clear=True):
            backend = InfraConfig.from_env().create_llm_backend()
        assert isinstance(backend, AnthropicModelBackend)

    def test_unknown_llm_backend(self):
        with patch.dict("os.environ", {"LLM_BACKEND": "groq"}, clear=True):
            with pytest.raises(ValueError):
                InfraConfig.from_env().create_llm_backend()

    def test_twilio_without_credentials_degrades_to_recording(self):
        with patch.dict("os.environ", {"MESSAGING_BACKEND": "twilio"}, clear=True):
            messenger = InfraConfig.from_env().create_messenger()
        assert isinstance(messenger, StubMessenger)
        assert messenger.succeed is False

    def test_twilio_messenger_with_credentials(self):
        env = {"TWILIO_ACCOUNT_SID": "AC123", "TWILIO_AUTH_TOKEN": "secret"}
        with patch.dict("os.environ", env, clear=True):
            config = InfraConfig.from_env()
            messenger = config.create_messenger()

        from transport.whatsapp.sender import TwilioMessenger

        assert isinstance(messenger, TwilioMessenger)
        assert messenger.from_number == "whatsapp:+14155238886"
        assert config.media_download_auth == ("AC123", "secret")
