"""
WhatsApp Input Normalization

PURE CONVERSION - NO MODEL CALLS

Converts the Twilio webhook form into a canonical InboundMessage.
- From: validated against the international phone format
- Body: script blocks stripped, capped at 5000 characters, trimmed
- NumMedia: integer in 0..10; first attachment preserved as URL + MIME only
"""

import re
from typing import Mapping

from agent.errors import ValidationError
from agent.phone import is_valid_phone_number, strip_channel_prefix

from .schemas import MAX_NUM_MEDIA, InboundMessage

MAX_INPUT_LENGTH = 5000

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)


class NormalizationError(ValidationError):
    """Input normalization failed."""
    pass


def sanitize_input(text: str) -> str:
    """Remove script blocks, cap length, trim whitespace."""
    if not text or not isinstance(text, str):
        return ""
    sanitized = _SCRIPT_RE.sub("", text)
    return sanitized[:MAX_INPUT_LENGTH].strip()


def parse_num_media(raw) -> int:
    try:
        num_media = int(str(raw if raw not in (None, "") else "0"))
    except ValueError:
        raise NormalizationError(f"Invalid NumMedia: {raw}")
    if num_media < 0 or num_media > MAX_NUM_MEDIA:
        raise NormalizationError(f"Invalid NumMedia: {raw}")
    return num_media


def normalize_form(form: Mapping[str, str]) -> InboundMessage:
    """
    Convert a Twilio WhatsApp webhook form into an InboundMessage.

    Args:
        form: Parsed application/x-www-form-urlencoded body

    Returns:
        InboundMessage ready for the Intent Router

    Raises:
        NormalizationError: Missing or malformed fields
    """
    sender = form.get("From")
    if not sender or not isinstance(sender, str):
        raise NormalizationError("Missing From field")
    if not is_valid_phone_number(sender):
        raise NormalizationError(f"Invalid phone number: {sender}")

    body = form.get("Body", "")
    if body is not None and not isinstance(body, str):
        raise NormalizationError("Invalid Body field")

    num_media = parse_num_media(form.get("NumMedia"))

    return InboundMessage(
        sender=strip_channel_prefix(sender),
        body=sanitize_input(body or ""),
        num_media=num_media,
        media_url=form.get("MediaUrl0") if num_media > 0 else None,
        media_content_type=form.get("MediaContentType0") if num_media > 0 else None,
        message_sid=form.get("MessageSid"),
    )
