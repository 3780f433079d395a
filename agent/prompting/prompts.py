"""
Prompt Templates
================

Authoritative system prompts and task prompts for the Analysis Oracle.

Every prompt the agent sends to a model backend is defined here so the
behavioral contract lives in a single place.
"""

# ── System prompts ────────────────────────────────────────────────────────────
ASSISTANT_SYSTEM_PROMPT = """You are Mummy, a caring and helpful health assistant.
You help users track their health records, answer questions about their health data,
and provide insights on trends. Always be supportive and informative, but remind users
that you're not a doctor and they should consult healthcare professionals for medical advice."""

IMAGE_SYSTEM_PROMPT = """You are Mummy, a health assistant specialized in reading medical reports.
Extract all relevant health information from images of medical reports, lab results, or prescriptions.
Be thorough and accurate."""

CHAT_SYSTEM_PROMPT = """You are Mummy, a caring health assistant for families.
You help track health records, answer questions, and provide insights.
You have access to the user's health history and conversation context.
Always be supportive, accurate, and remind users to consult healthcare professionals for medical decisions."""

EXTRACTION_SYSTEM_PROMPT = (
    "You are a medical data extraction assistant. Extract information accurately "
    "and return it in valid JSON format. If a value is not found, omit it."
)

PDF_SYSTEM_PROMPT = (
    "You are analyzing a health report. Extract key information and provide a clear summary."
)

EXPLAIN_SYSTEM_PROMPT = (
    "You are a helpful health assistant. Explain health records in simple, clear language. "
    "Always remind users to consult their doctor for medical advice."
)

# ── Task prompts ──────────────────────────────────────────────────────────────
IMAGE_EXTRACTION_PROMPT = """This is a health-related document (lab report, prescription, medical imaging, etc.).
Please:
1. Identify what type of document this is
2. Extract all relevant health information
3. Provide a clear summary
4. If it's a prescription, extract medication names, dosages, and timings"""

EXTRACTION_PROMPTS = {
    "blood_work": """Extract blood work values from this text. Return a JSON object with:
{
  "date": "YYYY-MM-DD",
  "values": {
    "cholesterol_total": number,
    "cholesterol_ldl": number,
    "cholesterol_hdl": number,
    "triglycerides": number,
    "blood_sugar": number,
    "hemoglobin": number
  }
}
Only include values that are present.""",

    "vitals": """Extract vital signs from this text. Return a JSON object:
{
  "date": "YYYY-MM-DD",
  "blood_pressure_systolic": number,
  "blood_pressure_diastolic": number,
  "heart_rate": number,
  "weight": number,
  "height": number,
  "temperature": number,
  "blood_sugar": number,
  "spo2": number
}""",

    "medication": """Extract medication information. Return a JSON object:
{
  "medication_name": "",
  "dosage": "",
  "frequency": "daily/twice_daily/etc",
  "times": ["09:00", "21:00"],
  "duration": "",
  "notes": ""
}""",

    "imaging": """Extract imaging report information. Return a JSON object:
{
  "date": "YYYY-MM-DD",
  "type": "X-ray/MRI/CT/etc",
  "body_part": "",
  "findings": "",
  "impression": ""
}""",
}


def build_extraction_prompt(text: str, kind: str) -> str:
    """Extraction instructions for `kind` followed by the source text."""
    return f"{EXTRACTION_PROMPTS[kind]}\n\nText:\n{text}"


def build_pdf_prompt(text: str) -> str:
    return f"Analyze this health report and provide a summary:\n\n{text}"


def build_explain_prompt(analysis: str) -> str:
    return (
        "Please provide a detailed, easy-to-understand explanation of this health record:\n\n"
        f"{analysis}\n\n"
        "Break down what each value means, whether they are normal or concerning, "
        "and any recommendations."
    )
