"""
Intent Router

Entry point for every inbound message. Given (sender, body, optional media)
it classifies the message into exactly one handling path (agent.intents),
executes it, and returns a ReplyOutcome:

- Send(text): the transport replies with `text`
- AlreadyDelivered: a message was already pushed out-of-band; do not send

Logging rules:
- The onboarding gate logs nothing.
- Every other path logs the inbound message before dispatch and the reply
  after dispatch (the media acknowledgment included).
- Replies longer than the messenger's chunk limit are pushed through the
  messenger, logged, and reported as AlreadyDelivered.

Any unhandled error becomes a generic apology; it is logged, never shown.
"""

import functools
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from agent import replies
from agent.context import HISTORY_LIMIT, ContextAssembler
from agent.errors import StoreError
from agent.intents import LOOKBACK_WINDOW, Command, Intent, Route, classify
from agent.media_pipeline import MediaAttachment, MediaPipeline
from agent.memory.base import (
    ConversationStore,
    HealthRecordStore,
    MedicationStore,
    UserStore,
)
from agent.memory.types import ConversationMessage, HealthRecord, User, utcnow
from agent.messaging import Messenger
from agent.oracle import AnalysisOracle
from agent.phone import normalize_phone_number
from agent.prompting import EXPLAIN_SYSTEM_PROMPT, build_explain_prompt

logger = logging.getLogger(__name__)

RECENT_RECORDS_LIMIT = 10


@dataclass(frozen=True)
class Send:
    text: str


@dataclass(frozen=True)
class AlreadyDelivered:
    pass


ALREADY_DELIVERED = AlreadyDelivered()

ReplyOutcome = Union[Send, AlreadyDelivered]


def truncate_text(text: str, max_length: int = 100) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def handling_path(apology: str):
    """Convert any failure inside a handling path into that path's apology."""

    def decorate(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            try:
                return await fn(self, *args, **kwargs)
            except Exception as e:
                logger.error(f"{fn.__name__} failed: {e}", exc_info=True)
                return apology

        return wrapper

    return decorate


class IntentRouter:

    def __init__(
        self,
        users: UserStore,
        conversations: ConversationStore,
        records: HealthRecordStore,
        medications: MedicationStore,
        oracle: AnalysisOracle,
        messenger: Messenger,
        media_pipeline: MediaPipeline,
        context_assembler: Optional[ContextAssembler] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.users = users
        self.conversations = conversations
        self.records = records
        self.medications = medications
        self.oracle = oracle
        self.messenger = messenger
        self.media_pipeline = media_pipeline
        self.context_assembler = context_assembler or ContextAssembler(
            conversations, records, medications
        )
        self.clock = clock

        self._commands = {
            Command.HELP: self._help,
            Command.STATUS: self._status,
            Command.TRENDS: self._trends,
            Command.RECORDS: self._records_list,
            Command.MEDICATIONS: self._medications,
        }

    async def route(
        self,
        sender: str,
        body: str,
        media: Optional[MediaAttachment] = None,
    ) -> ReplyOutcome:
        """
        Handle one inbound message.

        Args:
            sender: Sender phone number, with or without the whatsapp: prefix
            body: Message text (may be empty for media)
            media: Attachment descriptor, if any

        Returns:
            ReplyOutcome. Never raises.
        """
        try:
            logger.info(f"Received message from {sender}: {truncate_text(body)}")
            sender = normalize_phone_number(sender)

            try:
                user = self.users.get_or_create(sender)
            except StoreError as e:
                logger.error(f"User lookup failed for {sender}: {e}")
                return Send(replies.USER_LOOKUP_ERROR_TEXT)

            if user.is_new:
                return Send(self._onboard(user, body))

            prior_history = self.conversations.recent(user.id, HISTORY_LIMIT)
            inbound = body if body else f"[{media.mime_type} attachment]" if media else ""
            self.conversations.append(user.id, "user", inbound)

            lookback = (prior_history + [ConversationMessage(role="user", content=inbound)])[-LOOKBACK_WINDOW:]
            intent = classify(
                body,
                is_new_user=False,
                has_media=media is not None,
                lookback=lookback,
            )
            logger.info(
                f"Routing message from {sender}",
                extra={"user_id": user.id, "route": intent.route.value},
            )

            if intent.route is Route.MEDIA:
                text = self._start_media(user, sender, media, body)
            else:
                text = await self._dispatch(intent, user, body, prior_history)

            return await self._finish(user, sender, text)

        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)
            return Send(replies.GENERIC_ERROR_TEXT)

    # ── Onboarding ────────────────────────────────────────────────────────────
    def _onboard(self, user: User, body: str) -> str:
        intent = classify(body, is_new_user=True, has_media=False)
        if intent.name is None:
            return replies.WELCOME_TEXT

        self.users.update_name(user.id, intent.name)
        logger.info(f"Captured name for {user.phone_number}", extra={"user_id": user.id})
        return replies.name_confirmation(intent.name)

    # ── Dispatch ──────────────────────────────────────────────────────────────
    async def _dispatch(
        self,
        intent: Intent,
        user: User,
        body: str,
        prior_history: List[ConversationMessage],
    ) -> str:
        if intent.route in (Route.COMMAND, Route.MENU_SELECTION):
            return await self._commands[intent.command](user)
        if intent.route is Route.UNKNOWN_COMMAND:
            return replies.UNKNOWN_COMMAND_TEXT
        if intent.route is Route.RECORD_SELECTION:
            return await self._record_detail(user, intent.record_number)
        if intent.route is Route.EXPLAIN_RECORD:
            return await self._explain_record(user, intent.record_number)
        if intent.route is Route.HEALTH_DATA:
            return await self._health_data_entry(user, body)
        return await self._answer_question(user, body, prior_history)

    async def _finish(self, user: User, sender: str, text: str) -> ReplyOutcome:
        if not text:
            return ALREADY_DELIVERED

        if len(text) > self.messenger.max_length:
            delivered = await self.messenger.send_message(sender, text)
            if delivered:
                self.conversations.append(user.id, "assistant", text)
                return ALREADY_DELIVERED
            logger.warning(f"Out-of-band delivery failed for {sender}; replying inline")

        self.conversations.append(user.id, "assistant", text)
        return Send(text)

    def _start_media(self, user: User, sender: str, media: MediaAttachment, body: str) -> str:
        try:
            self.media_pipeline.spawn(user.id, sender, media, body)
        except Exception as e:
            logger.error(f"Error handling media message: {e}", exc_info=True)
            return replies.MEDIA_ERROR_TEXT
        return replies.media_acknowledgment(media.mime_type)

    # ── Helpers ───────────────────────────────────────────────────────────────
    @staticmethod
    def _user_tz(user: User) -> Optional[tzinfo]:
        try:
            return ZoneInfo(user.preferences.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return None

    def _numbered_record(self, user: User, record_number: int) -> Tuple[Optional[HealthRecord], int]:
        """Resolve a 1-based record number against the 10 most recent records."""
        records = self.records.recent(user.id, RECENT_RECORDS_LIMIT)
        if 1 <= record_number <= len(records):
            return records[record_number - 1], len(records)
        return None, len(records)

    # ── Commands ──────────────────────────────────────────────────────────────
    async def _help(self, user: User) -> str:
        return replies.HELP_TEXT

    @handling_path(replies.STATUS_ERROR_TEXT)
    async def _status(self, user: User) -> str:
        logger.info(f"Getting health status for user: {user.id}")
        return replies.format_status(
            self.records.count(user.id),
            self.records.recent(user.id, replies.STATUS_RECENT_RECORDS),
            self.medications.active(user.id),
            self._user_tz(user),
        )

    @handling_path(replies.TRENDS_ERROR_TEXT)
    async def _trends(self, user: User) -> str:
        cutoff = replies.trends_cutoff(self.clock())
        return replies.format_trends(self.records.since(user.id, cutoff), self._user_tz(user))

    @handling_path(replies.RECORDS_ERROR_TEXT)
    async def _records_list(self, user: User) -> str:
        return replies.format_records_list(
            self.records.recent(user.id, RECENT_RECORDS_LIMIT),
            self._user_tz(user),
        )

    @handling_path(replies.MEDICATIONS_ERROR_TEXT)
    async def _medications(self, user: User) -> str:
        return replies.format_medications(self.medications.active(user.id))

    # ── Record selection ──────────────────────────────────────────────────────
    @handling_path(replies.RECORD_DETAIL_ERROR_TEXT)
    async def _record_detail(self, user: User, record_number: int) -> str:
        logger.info(f"Getting record detail #{record_number} for user: {user.id}")
        record, count = self._numbered_record(user, record_number)
        if record is None:
            return replies.record_not_found(record_number, count)
        return replies.format_record_detail(record_number, record, self._user_tz(user))

    @handling_path(replies.EXPLAIN_ERROR_TEXT)
    async def _explain_record(self, user: User, record_number: int) -> str:
        logger.info(f"Explaining record #{record_number} for user: {user.id}")
        record, count = self._numbered_record(user, record_number)
        if record is None:
            return replies.record_not_found(record_number, count, with_hint=False)

        source = record.analysis or str(record.structured_data or record.raw_data)
        explanation = await self.oracle.analyze_text(
            build_explain_prompt(source),
            system_prompt=EXPLAIN_SYSTEM_PROMPT,
        )
        return replies.format_explanation(record_number, record, explanation, self._user_tz(user))

    # ── Health data and questions ─────────────────────────────────────────────
    @handling_path(replies.HEALTH_DATA_ERROR_TEXT)
    async def _health_data_entry(self, user: User, body: str) -> str:
        structured = await self.oracle.extract_structured_data(body, "vitals")
        self.records.add(
            HealthRecord(
                user_id=user.id,
                record_type="vitals",
                date=self.clock(),
                source_type="text",
                raw_data={"message": body},
                structured_data=structured,
            )
        )
        return replies.health_data_saved(body)

    @handling_path(replies.QUESTION_ERROR_TEXT)
    async def _answer_question(
        self,
        user: User,
        question: str,
        prior_history: List[ConversationMessage],
    ) -> str:
        context = self.context_assembler.build(user.id, prior_history, self._user_tz(user))
        return await self.oracle.chat_with_context(question, context.history, context.health_summary)
