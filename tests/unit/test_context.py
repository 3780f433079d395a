"""
Context assembly tests for the free-text question path.
"""

from datetime import datetime, timedelta, timezone

from agent.context import ContextAssembler, render_health_summary
from agent.memory import (
    ConversationMessage,
    HealthRecord,
    Medication,
    StubConversationStore,
    StubHealthRecordStore,
    StubMedicationStore,
)

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)


def make_record(i):
    return HealthRecord(
        user_id="u1",
        record_type="vitals",
        date=T0 + timedelta(days=i),
        source_type="text",
        raw_data={},
        structured_data={"bp": f"12{i}/80", "date": "ignored"},
        analysis=f"reading {i}",
        created_at=T0 + timedelta(days=i),
    )


class TestRenderHealthSummary:

    def test_empty(self):
        assert render_health_summary([], []) == "No health data available yet."

    def test_records_and_medications(self):
        meds = [Medication(user_id="u1", medication_name="Metformin", dosage="500mg", frequency="daily")]
        summary = render_health_summary([make_record(1)], meds)

        assert "Recent Health Records:" in summary
        assert "- 2/3/2026: vitals - reading 1" in summary
        assert "values: bp=121/80" in summary
        assert "ignored" not in summary
        assert "Current Medications:\n- Metformin (500mg)" in summary


class TestContextAssembler:

    def test_uses_supplied_history_and_recent_records(self):
        conversations = StubConversationStore()
        records = StubHealthRecordStore()
        for i in range(7):
            records.add(make_record(i))
        assembler = ContextAssembler(conversations, records, StubMedicationStore())

        prior = [ConversationMessage(role="user", content=f"q{i}") for i in range(12)]
        context = assembler.build("u1", prior)

        assert len(context.history) == 10
        assert context.history[0].content == "q2"
        assert "reading 6" in context.health_summary
        assert "reading 2" in context.health_summary
        assert "reading 1" not in context.health_summary

    def test_reads_history_when_not_supplied(self):
        conversations = StubConversationStore()
        conversations.append("u1", "user", "hello")
        conversations.append("u1", "assistant", "hi there")
        assembler = ContextAssembler(conversations, StubHealthRecordStore(), StubMedicationStore())

        context = assembler.build("u1")

        assert [m.content for m in context.history] == ["hello", "hi there"]
        assert context.health_summary == "No health data available yet."
