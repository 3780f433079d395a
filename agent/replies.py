"""
Reply Formatter

Builds every user-facing text: fixed messages plus the status, trends,
records, record-detail and medication views.

Record numbers are positions in the list handed in (1 = most recent).
They are recomputed for every query and must never be cached.
"""

import calendar
from datetime import datetime, tzinfo
from typing import Any, Optional, Sequence

from agent.memory.types import HealthRecord, Medication

RECORD_PREVIEW_CHARS = 100
RECORD_DETAIL_CHARS = 500
STATUS_RECENT_RECORDS = 5
TRENDS_RECENT_RECORDS = 3
TRENDS_WINDOW_MONTHS = 6

# ── Fixed messages ────────────────────────────────────────────────────────────
WELCOME_TEXT = """👋 Welcome to Mummy - Your Personal Health Assistant!

I'm here to help you track your health records, analyze reports, and answer questions about your health data.

Here's what I can do:
📊 Analyze health reports (blood work, vitals, imaging)
💊 Track medications
📈 Show trends in your health metrics
❓ Answer questions about your health history

You can:
• Send me lab reports (PDF or images)
• Upload prescription images
• Type health data like "BP: 120/80, Weight: 70kg"
• Ask questions like "What was my cholesterol last month?"

Commands:
Type /menu to see all available commands!

Let's start! What's your name?"""

HELP_TEXT = """📋 *MUMMY MENU*

*Quick Commands:*
Reply with the number or command:

*1.* /status - 📊 View your health summary
*2.* /trends - 📈 See your health trends
*3.* /records - 📄 View recent health records
*4.* /medications - 💊 View your medications

*What I can do:*
• 📊 Analyze lab reports (PDF or images)
• 💊 Track medications
• 📈 Track vitals (BP, weight, etc.)
• ❓ Answer health questions

*How to use me:*
• Send photos/PDFs of health reports
• Type vitals: "BP: 120/80, Weight: 70kg"
• Ask questions: "What was my last BP reading?"

Type /menu anytime to see this menu!"""

UNKNOWN_COMMAND_TEXT = "Unknown command. Type /menu to see all available commands."
GENERIC_ERROR_TEXT = "Sorry, I encountered an error. Please try again."
USER_LOOKUP_ERROR_TEXT = "Sorry, I'm having trouble right now. Please try again later."

STATUS_ERROR_TEXT = "Sorry, I had trouble fetching your health status. Please try again."
TRENDS_ERROR_TEXT = "Sorry, I had trouble fetching your health trends. Please try again."
RECORDS_ERROR_TEXT = "Sorry, I had trouble fetching your records. Please try again."
MEDICATIONS_ERROR_TEXT = "Sorry, I had trouble fetching your medications. Please try again."
RECORD_DETAIL_ERROR_TEXT = "Sorry, I had trouble fetching that record. Please try again."
EXPLAIN_ERROR_TEXT = "Sorry, I had trouble generating an explanation. Please try again."
HEALTH_DATA_ERROR_TEXT = (
    "I understood that you're sharing health data, but I had trouble saving it. Please try again."
)
QUESTION_ERROR_TEXT = "I'm having trouble answering that right now. Please try again."
MEDIA_ERROR_TEXT = "Sorry, I had trouble processing that file. Please try again."

MEDIA_DOWNLOAD_FAILED_TEXT = "Sorry, I couldn't download that file. Please try again."
MEDIA_UNSUPPORTED_TEXT = "Sorry, I can only process images and PDF files right now."
IMAGE_ERROR_TEXT = "I had trouble reading that image. Please make sure it's clear and try again."
PDF_ERROR_TEXT = "I had trouble reading that PDF. Please try again."
PDF_NO_TEXT_TEXT = (
    "I couldn't extract text from that PDF. It might be an image-based PDF. "
    "Could you try sending it as an image instead?"
)

NO_RECORDS_TEXT = "📄 No health records found yet.\n\nSend me a health report (PDF or image) to get started!"
NO_TRENDS_TEXT = (
    "📈 *Health Trends*\n\nNo records found in the last 6 months.\n\n"
    "Send me health reports to start tracking trends!"
)
NO_MEDICATIONS_TEXT = "💊 No active medications found.\n\nSend me a prescription image to track your medications!"

MEDICAL_DISCLAIMER = "⚕️ Remember: Always consult your doctor for medical advice."


def name_confirmation(name: str) -> str:
    return (
        f"Nice to meet you, {name}! 👋\n\n"
        "I'm ready to help you track your health. You can start by:\n\n"
        "• Sending me a health report (photo or PDF)\n"
        '• Typing vitals like "BP: 120/80"\n'
        "• Asking me questions\n"
        "• Type /menu to see all commands\n\n"
        "What would you like to do?"
    )


def media_acknowledgment(mime_type: str) -> str:
    if mime_type.startswith("image/"):
        file_type = "📸 image"
    elif mime_type == "application/pdf":
        file_type = "📄 PDF"
    else:
        file_type = "📎 file"
    return f"✅ Got your {file_type}! Analyzing it now... ⏳"


def health_data_saved(message: str) -> str:
    return f"✅ Got it! I've recorded:\n{message}\n\n✅ Saved to your health records."


def image_saved(analysis: str) -> str:
    return f"📄 I've analyzed and saved your report:\n\n{analysis}\n\n✅ Saved to your health records."


def pdf_saved(analysis: str) -> str:
    return f"📄 I've analyzed and saved your PDF report:\n\n{analysis}\n\n✅ Saved to your health records."


def record_not_found(record_number: int, record_count: int, with_hint: bool = True) -> str:
    plural = "" if record_count == 1 else "s"
    text = f"Record #{record_number} not found. You have {record_count} record{plural}."
    if with_hint:
        text += "\n\nType /records to see all records."
    return text


# ── Date and type rendering ───────────────────────────────────────────────────
def _localize(value: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is not None and value.tzinfo is not None:
        return value.astimezone(tz)
    return value


def short_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """Day-first numeric date, e.g. 5/3/2026."""
    value = _localize(value, tz)
    return f"{value.day}/{value.month}/{value.year}"


def long_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """e.g. 5 March 2026."""
    value = _localize(value, tz)
    return f"{value.day} {value.strftime('%B')} {value.year}"


def type_label(record_type: str) -> str:
    return record_type.replace("_", " ")


def subtract_months(value: datetime, months: int) -> datetime:
    """Calendar-month subtraction, clamping the day to the target month's length."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def trends_cutoff(now: datetime) -> datetime:
    return subtract_months(now, TRENDS_WINDOW_MONTHS)


# ── Views ─────────────────────────────────────────────────────────────────────
def format_status(
    total_records: int,
    latest_records: Sequence[HealthRecord],
    medications: Sequence[Medication],
    tz: Optional[tzinfo] = None,
) -> str:
    lines = [
        "📊 *YOUR HEALTH STATUS*",
        "",
        f"📈 Total Records: {total_records}",
        f"💊 Active Medications: {len(medications)}",
        "",
    ]

    if latest_records:
        lines += ["*Recent Health Data:*", ""]
        for index, record in enumerate(latest_records[:STATUS_RECENT_RECORDS], start=1):
            lines.append(f"{index}. {short_date(record.date, tz)} - {type_label(record.record_type).title()}")
        lines.append("")
    else:
        lines += ["No health records yet.", "Send me a health report to get started!", ""]

    if medications:
        lines += ["*Current Medications:*", ""]
        for index, med in enumerate(medications, start=1):
            lines.append(f"{index}. {med.medication_name} - {med.dosage}")
        lines.append("")

    lines += [
        "Type /records to see detailed records",
        "Type /medications for medication details",
        "Type /menu for all options",
    ]
    return "\n".join(lines)


def format_trends(records_in_window: Sequence[HealthRecord], tz: Optional[tzinfo] = None) -> str:
    """Summarize records already filtered to the trends window, newest first."""
    if not records_in_window:
        return NO_TRENDS_TEXT

    counts = {}
    for record in records_in_window:
        counts[record.record_type] = counts.get(record.record_type, 0) + 1

    lines = ["📈 *HEALTH TRENDS* (Last 6 Months)", "", "*Records Summary:*"]
    for record_type, count in counts.items():
        plural = "s" if count > 1 else ""
        lines.append(f"• {type_label(record_type).upper()}: {count} record{plural}")

    lines += [
        "",
        f"*Total Records:* {len(records_in_window)}",
        "*Period:* Last 6 months",
        "",
        "*Most Recent:*",
    ]
    for index, record in enumerate(records_in_window[:TRENDS_RECENT_RECORDS], start=1):
        lines.append(f"{index}. {short_date(record.date, tz)} - {type_label(record.record_type)}")

    lines += [
        "",
        "💡 For detailed analysis, ask me:",
        '"Show my blood pressure trend"',
        '"Compare my recent reports"',
    ]
    return "\n".join(lines)


def format_records_list(records: Sequence[HealthRecord], tz: Optional[tzinfo] = None) -> str:
    if not records:
        return NO_RECORDS_TEXT

    text = "📄 *Recent Health Records:*\n\n"
    for index, record in enumerate(records, start=1):
        text += f"{index}. {short_date(record.date, tz)} - {type_label(record.record_type).upper()}\n"
        if record.analysis:
            text += f"   {record.analysis[:RECORD_PREVIEW_CHARS]}...\n\n"

    text += "\nType a number to see details, or send a new report!"
    return text


def _has_value(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def format_record_detail(record_number: int, record: HealthRecord, tz: Optional[tzinfo] = None) -> str:
    text = f"📄 *RECORD #{record_number}*\n\n"
    text += f"📅 Date: {long_date(record.date, tz)}\n"
    text += f"📋 Type: {type_label(record.record_type).upper()}\n"
    text += f"📎 Source: {record.source_type.upper()}\n\n"

    if record.analysis:
        analysis = record.analysis
        if len(analysis) > RECORD_DETAIL_CHARS:
            analysis = analysis[:RECORD_DETAIL_CHARS] + "..."
        text += f"*Analysis:*\n{analysis}\n\n"

    values = {
        key: value
        for key, value in (record.structured_data or {}).items()
        if key != "date" and _has_value(value)
    }
    if values:
        text += "*Key Values:*\n"
        for key, value in values.items():
            text += f"• {key.replace('_', ' ')}: {value}\n"
        text += "\n"

    text += f'💬 For full details, type: "Explain record #{record_number}"'
    return text


def format_medications(medications: Sequence[Medication]) -> str:
    if not medications:
        return NO_MEDICATIONS_TEXT

    text = "💊 *Your Active Medications:*\n\n"
    for index, med in enumerate(medications, start=1):
        text += f"{index}. *{med.medication_name}*\n"
        text += f"   Dosage: {med.dosage}\n"
        text += f"   Frequency: {med.frequency}\n"
        if med.times:
            text += f"   Times: {', '.join(med.times)}\n"
        if med.notes:
            text += f"   Notes: {med.notes}\n"
        text += "\n"
    return text


def format_explanation(
    record_number: int,
    record: HealthRecord,
    explanation: str,
    tz: Optional[tzinfo] = None,
) -> str:
    return (
        f"📄 *DETAILED EXPLANATION - Record #{record_number}*\n\n"
        f"📅 {long_date(record.date, tz)}\n\n"
        f"{explanation}"
        f"\n\n{MEDICAL_DISCLAIMER}"
    )
