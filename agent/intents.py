"""
Intent Classification

Pure predicates over immutable snapshots: (message text, media flag,
bounded history window). Nothing here touches a store or the network.

classify() applies the checks in a fixed order and returns exactly one
Intent; the first match wins:

    1. onboarding        (user has no stored name)
    2. media             (attachment present)
    3. command           ("/xxx", closed command table)
    4. numeric 1-10      (record selector or menu selector, by lookback)
    5. explain record #N
    6. health data entry (vital-sign keyword present)
    7. free-text question
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Union

from agent.memory.types import ConversationMessage


class Command(Enum):
    """Closed set of user commands."""

    HELP = "help"
    STATUS = "status"
    TRENDS = "trends"
    RECORDS = "records"
    MEDICATIONS = "medications"


COMMAND_TABLE: Dict[str, Command] = {
    "/help": Command.HELP,
    "/menu": Command.HELP,
    "/status": Command.STATUS,
    "/trends": Command.TRENDS,
    "/records": Command.RECORDS,
    "/medications": Command.MEDICATIONS,
}

MENU_OPTIONS: Dict[int, Command] = {
    1: Command.STATUS,
    2: Command.TRENDS,
    3: Command.RECORDS,
    4: Command.MEDICATIONS,
}


@dataclass(frozen=True)
class UnrecognizedCommand:
    token: str


def parse_command(text: str) -> Union[Command, UnrecognizedCommand]:
    """Match the whole trimmed message, case-insensitively."""
    token = text.strip().lower()
    command = COMMAND_TABLE.get(token)
    if command is None:
        return UnrecognizedCommand(token=token)
    return command


# ── Onboarding ────────────────────────────────────────────────────────────────
MAX_NAME_MESSAGE_LENGTH = 99
MAX_NAME_TOKENS = 5

_NAME_PREFIX_RE = re.compile(
    r"^(?:my\s+name\s+is|my\s+name['’]s|i\s+am|i['’]m)\b",
    re.IGNORECASE,
)


def looks_like_name(text: str) -> bool:
    """
    Name-likely heuristic for a new user's reply.

    True when the trimmed message is 1..99 chars and either starts with a
    self-introduction ("my name is", "i'm", ...) or is a short plain phrase:
    not a command, no question mark, at most five words.
    """
    trimmed = text.strip()
    if not trimmed or len(trimmed) > MAX_NAME_MESSAGE_LENGTH:
        return False
    if _NAME_PREFIX_RE.match(trimmed):
        return True
    return (
        not trimmed.startswith("/")
        and "?" not in trimmed
        and len(trimmed.split()) <= MAX_NAME_TOKENS
    )


def extract_name(text: str) -> Optional[str]:
    """Return the name in a self-introduction, or None if it isn't one."""
    if not looks_like_name(text):
        return None
    trimmed = text.strip()
    name = _NAME_PREFIX_RE.sub("", trimmed, count=1).strip().rstrip(".!,")
    return name or None


# ── Health data entry ─────────────────────────────────────────────────────────
HEALTH_KEYWORDS = (
    "bp:",
    "blood pressure:",
    "weight:",
    "height:",
    "sugar:",
    "glucose:",
    "temperature:",
    "temp:",
    "pulse:",
    "heart rate:",
    "spo2:",
    "oxygen:",
)


def is_health_data_entry(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in HEALTH_KEYWORDS)


# ── Numeric selection ─────────────────────────────────────────────────────────
MAX_RECORD_NUMBER = 10
LOOKBACK_WINDOW = 3
RECORDS_MARKERS = ("Recent Health Records", "Type a number to see details")

_NUMBER_RE = re.compile(r"^\d+$")


def parse_number_token(text: str) -> Optional[int]:
    """A bare integer 1..10, else None."""
    trimmed = text.strip()
    if not _NUMBER_RE.match(trimmed):
        return None
    number = int(trimmed)
    if 1 <= number <= MAX_RECORD_NUMBER:
        return number
    return None


def viewed_records_recently(lookback: Sequence[ConversationMessage]) -> bool:
    """
    Did one of the last two assistant messages in the lookback window show
    the records list?
    """
    window = list(lookback)[-LOOKBACK_WINDOW:]
    assistant_messages = [msg for msg in window if msg.role == "assistant"][-2:]
    return any(
        marker in msg.content
        for msg in assistant_messages
        for marker in RECORDS_MARKERS
    )


# ── Explain record ────────────────────────────────────────────────────────────
_EXPLAIN_RE = re.compile(r"explain\s+record\s*#?(\d+)", re.IGNORECASE)


def parse_explain_request(text: str) -> Optional[int]:
    match = _EXPLAIN_RE.search(text)
    return int(match.group(1)) if match else None


# ── Classification ────────────────────────────────────────────────────────────
class Route(Enum):
    ONBOARDING = "onboarding"
    MEDIA = "media"
    COMMAND = "command"
    UNKNOWN_COMMAND = "unknown_command"
    RECORD_SELECTION = "record_selection"
    MENU_SELECTION = "menu_selection"
    EXPLAIN_RECORD = "explain_record"
    HEALTH_DATA = "health_data"
    QUESTION = "question"


@dataclass(frozen=True)
class Intent:
    route: Route
    command: Optional[Command] = None
    record_number: Optional[int] = None
    name: Optional[str] = None          # Onboarding only; None => send welcome
    token: Optional[str] = None         # Unknown command token


def classify(
    text: str,
    *,
    is_new_user: bool,
    has_media: bool,
    lookback: Sequence[ConversationMessage] = (),
) -> Intent:
    """
    Decide the single handling path for an inbound message.

    Args:
        text: Raw message body
        is_new_user: Stored display name is empty
        has_media: An attachment is present
        lookback: Recent conversation, oldest first, ending with this message

    Returns:
        Intent naming the route and its parsed payload
    """
    if is_new_user:
        return Intent(route=Route.ONBOARDING, name=extract_name(text))

    if has_media:
        return Intent(route=Route.MEDIA)

    trimmed = text.strip()

    if trimmed.startswith("/"):
        parsed = parse_command(trimmed)
        if isinstance(parsed, UnrecognizedCommand):
            return Intent(route=Route.UNKNOWN_COMMAND, token=parsed.token)
        return Intent(route=Route.COMMAND, command=parsed)

    number = parse_number_token(trimmed)
    if number is not None:
        if viewed_records_recently(lookback):
            return Intent(route=Route.RECORD_SELECTION, record_number=number)
        if number in MENU_OPTIONS:
            return Intent(route=Route.MENU_SELECTION, command=MENU_OPTIONS[number])

    record_number = parse_explain_request(trimmed)
    if record_number is not None:
        return Intent(route=Route.EXPLAIN_RECORD, record_number=record_number)

    if is_health_data_entry(trimmed):
        return Intent(route=Route.HEALTH_DATA)

    return Intent(route=Route.QUESTION)
