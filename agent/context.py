"""
Conversation Context Assembler

Builds the payload the Oracle's contextual chat receives for a free-text
question: the last 10 prior messages plus a short health summary
(recent records and active medications).
"""

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional, Sequence, Tuple

from agent.memory.base import ConversationStore, HealthRecordStore, MedicationStore
from agent.memory.types import ConversationMessage, HealthRecord, Medication
from agent.replies import short_date, type_label

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
HEALTH_CONTEXT_RECORDS = 5
HEALTH_CONTEXT_ANALYSIS_CHARS = 300


@dataclass(frozen=True)
class ChatContext:
    history: Tuple[ConversationMessage, ...]
    health_summary: str


def render_health_summary(
    records: Sequence[HealthRecord],
    medications: Sequence[Medication],
    tz: Optional[tzinfo] = None,
) -> str:
    lines = []

    if records:
        lines.append("Recent Health Records:")
        for record in records:
            analysis = (record.analysis or "No analysis")[:HEALTH_CONTEXT_ANALYSIS_CHARS]
            lines.append(f"- {short_date(record.date, tz)}: {type_label(record.record_type)} - {analysis}")
            if record.structured_data:
                values = ", ".join(
                    f"{key}={value}" for key, value in record.structured_data.items() if key != "date"
                )
                if values:
                    lines.append(f"  values: {values}")

    if medications:
        if lines:
            lines.append("")
        lines.append("Current Medications:")
        for med in medications:
            lines.append(f"- {med.medication_name} ({med.dosage})")

    return "\n".join(lines) if lines else "No health data available yet."


class ContextAssembler:

    def __init__(
        self,
        conversations: ConversationStore,
        records: HealthRecordStore,
        medications: MedicationStore,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.conversations = conversations
        self.records = records
        self.medications = medications
        self.history_limit = history_limit

    def build(
        self,
        user_id: str,
        prior_history: Optional[Sequence[ConversationMessage]] = None,
        tz: Optional[tzinfo] = None,
    ) -> ChatContext:
        """
        Args:
            user_id: Whose context to assemble
            prior_history: Messages preceding the current question, oldest
                first. Read from the store when not supplied.
            tz: Timezone for rendered dates
        """
        if prior_history is None:
            prior_history = self.conversations.recent(user_id, self.history_limit)
        history = tuple(list(prior_history)[-self.history_limit:])

        summary = render_health_summary(
            self.records.recent(user_id, HEALTH_CONTEXT_RECORDS),
            self.medications.active(user_id),
            tz,
        )
        logger.debug(
            f"Chat context assembled for {user_id}",
            extra={"history_len": len(history), "summary_len": len(summary)},
        )
        return ChatContext(history=history, health_summary=summary)
