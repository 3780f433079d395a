"""
WhatsApp Normalization Tests

Twilio form → InboundMessage. No network, no model calls.
"""

import pytest

from transport.whatsapp.normalize import (
    MAX_INPUT_LENGTH,
    NormalizationError,
    normalize_form,
    parse_num_media,
    sanitize_input,
)
from transport.whatsapp.schemas import InboundMessage


class TestSanitizeInput:

    def test_strips_script_blocks(self):
        assert sanitize_input("hi <script>alert('x')</script>there") == "hi there"

    def test_case_insensitive_script(self):
        assert sanitize_input("<SCRIPT src=x>bad()</SCRIPT>ok") == "ok"

    def test_caps_length(self):
        assert len(sanitize_input("a" * 6000)) == MAX_INPUT_LENGTH

    def test_trims(self):
        assert sanitize_input("  BP: 120/80 \n") == "BP: 120/80"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_non_text(self, value):
        assert sanitize_input(value) == ""


class TestParseNumMedia:

    @pytest.mark.parametrize("raw,expected", [(None, 0), ("", 0), ("0", 0), ("1", 1), ("10", 10)])
    def test_valid(self, raw, expected):
        assert parse_num_media(raw) == expected

    @pytest.mark.parametrize("raw", ["-1", "11", "two", "1.5"])
    def test_invalid(self, raw):
        with pytest.raises(NormalizationError):
            parse_num_media(raw)


class TestNormalizeForm:

    def test_text_message(self):
        message = normalize_form({
            "From": "whatsapp:+919876543210",
            "Body": "  What was my last BP?  ",
            "NumMedia": "0",
            "MessageSid": "SM123",
        })

        assert isinstance(message, InboundMessage)
        assert message.sender == "+919876543210"
        assert message.body == "What was my last BP?"
        assert message.num_media == 0
        assert message.media_url is None
        assert message.message_sid == "SM123"
        assert not message.has_media

    def test_media_message_keeps_first_attachment(self):
        message = normalize_form({
            "From": "whatsapp:+919876543210",
            "Body": "",
            "NumMedia": "2",
            "MediaUrl0": "https://api.twilio.com/media/0",
            "MediaContentType0": "application/pdf",
            "MediaUrl1": "https://api.twilio.com/media/1",
        })

        assert message.has_media
        assert message.media_url == "https://api.twilio.com/media/0"
        assert message.media_content_type == "application/pdf"

    def test_media_fields_ignored_without_num_media(self):
        message = normalize_form({
            "From": "whatsapp:+919876543210",
            "Body": "hi",
            "MediaUrl0": "https://api.twilio.com/media/0",
        })

        assert message.media_url is None

    def test_missing_body_is_empty(self):
        assert normalize_form({"From": "+919876543210"}).body == ""

    def test_missing_from(self):
        with pytest.raises(NormalizationError, match="Missing From field"):
            normalize_form({"Body": "hi"})

    @pytest.mark.parametrize("sender", ["whatsapp:abc", "+0123", "12345678901234567"])
    def test_invalid_from(self, sender):
        with pytest.raises(NormalizationError):
            normalize_form({"From": sender, "Body": "hi"})

    def test_non_text_body(self):
        with pytest.raises(NormalizationError):
            normalize_form({"From": "+919876543210", "Body": ["a", "b"]})

    def test_too_many_media(self):
        with pytest.raises(NormalizationError):
            normalize_form({"From": "+919876543210", "NumMedia": "11"})

    def test_normalization_error_is_bad_request(self):
        assert NormalizationError("x").status_code == 400
