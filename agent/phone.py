"""Phone number handling shared by the router and the WhatsApp transport."""

import re

WHATSAPP_PREFIX = "whatsapp:"

PHONE_NUMBER_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
_SEPARATORS_RE = re.compile(r"[\s\-()]")


def strip_channel_prefix(phone: str) -> str:
    return phone.replace(WHATSAPP_PREFIX, "", 1)


def normalize_phone_number(phone: str) -> str:
    """
    Canonical user identity: no channel prefix, no separators, leading '+'.

    >>> normalize_phone_number("whatsapp:+91 98765-43210")
    '+919876543210'
    """
    phone = _SEPARATORS_RE.sub("", strip_channel_prefix(phone or ""))
    if not phone.startswith("+"):
        phone = "+" + phone
    return phone


def is_valid_phone_number(phone: str) -> bool:
    if not phone:
        return False
    return bool(PHONE_NUMBER_RE.match(strip_channel_prefix(phone)))
