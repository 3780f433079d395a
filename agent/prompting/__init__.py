"""Prompt layer: system prompts and prompt templates for the Analysis Oracle."""

from .prompts import (
    ASSISTANT_SYSTEM_PROMPT,
    CHAT_SYSTEM_PROMPT,
    EXPLAIN_SYSTEM_PROMPT,
    EXTRACTION_PROMPTS,
    EXTRACTION_SYSTEM_PROMPT,
    IMAGE_EXTRACTION_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    PDF_SYSTEM_PROMPT,
    build_explain_prompt,
    build_extraction_prompt,
    build_pdf_prompt,
)

__all__ = [
    "ASSISTANT_SYSTEM_PROMPT",
    "CHAT_SYSTEM_PROMPT",
    "EXPLAIN_SYSTEM_PROMPT",
    "EXTRACTION_PROMPTS",
    "EXTRACTION_SYSTEM_PROMPT",
    "IMAGE_EXTRACTION_PROMPT",
    "IMAGE_SYSTEM_PROMPT",
    "PDF_SYSTEM_PROMPT",
    "build_explain_prompt",
    "build_extraction_prompt",
    "build_pdf_prompt",
]
