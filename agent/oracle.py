"""
Analysis Oracle

Stateless text/image analysis on top of a ModelBackend.

Contract:
- Never raises to the caller. Backend failures become fixed apology strings.
- Structured extraction tolerates non-JSON model output: code fences are
  stripped before parsing and unparseable output is wrapped as
  {"raw_extraction": <original text>}.
- Backends are synchronous; calls run in the default executor so the event
  loop keeps serving webhooks.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from agent.memory.types import ConversationMessage
from agent.prompting import (
    ASSISTANT_SYSTEM_PROMPT,
    CHAT_SYSTEM_PROMPT,
    EXTRACTION_PROMPTS,
    EXTRACTION_SYSTEM_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    build_extraction_prompt,
)
from inference import ChatTurn, ModelBackend, ModelRequest, ModelResponse

logger = logging.getLogger(__name__)

TEXT_APOLOGY = "I'm having trouble processing that right now. Please try again later."
IMAGE_APOLOGY = "I'm having trouble reading that image. Please make sure it's clear and try again."
CHAT_APOLOGY = "I'm having trouble responding right now. Please try again later."

APOLOGIES = (TEXT_APOLOGY, IMAGE_APOLOGY, CHAT_APOLOGY)

CHAT_HISTORY_LIMIT = 10


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    if cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    if cleaned.endswith("```"):
        cleaned = cleaned[: -len("```")]
    return cleaned.strip()


def parse_structured_output(output: str) -> Dict[str, Any]:
    """
    Parse model output into a key/value map.

    Pure function: identical input always yields an identical map.
    """
    try:
        parsed = json.loads(strip_code_fences(output))
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Could not parse JSON from model output: {output[:200]}")
        return {"raw_extraction": output}

    if not isinstance(parsed, dict):
        return {"raw_extraction": output}
    return parsed


class AnalysisOracle:
    """Text, image, extraction and contextual chat capabilities."""

    def __init__(self, backend: ModelBackend):
        self.backend = backend

    async def _generate(self, request: ModelRequest) -> ModelResponse:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.backend.generate, request)
        except Exception as e:
            logger.error(f"Model backend raised: {e}", exc_info=True)
            return ModelResponse(
                status="fatal_error",
                error_type="backend_unavailable",
                metadata={"error": str(e)},
            )

    @staticmethod
    def _output_or(response: ModelResponse, apology: str, task: str) -> str:
        if response.status != "success" or response.output is None:
            logger.error(
                f"Oracle {task} failed: {response.error_type}",
                extra={"task": task, "error_type": response.error_type},
            )
            return apology
        return response.output

    async def analyze_text(
        self,
        text: str,
        context: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        response = await self._generate(
            ModelRequest(
                task="analyze_text",
                prompt=text,
                context=context,
                system_prompt=system_prompt or ASSISTANT_SYSTEM_PROMPT,
            )
        )
        return self._output_or(response, TEXT_APOLOGY, "analyze_text")

    async def analyze_image(
        self,
        image_data: bytes,
        mime_type: str,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> str:
        response = await self._generate(
            ModelRequest(
                task="analyze_image",
                prompt=prompt,
                system_prompt=system_prompt or IMAGE_SYSTEM_PROMPT,
                image_data=image_data,
                image_mime_type=mime_type,
            )
        )
        return self._output_or(response, IMAGE_APOLOGY, "analyze_image")

    async def extract_structured_data(self, text: str, kind: str) -> Dict[str, Any]:
        """
        Extract a key/value map of `kind` (blood_work, vitals, medication, imaging).

        Raises:
            ValueError: Unknown kind (a programming error, not a runtime failure)
        """
        if kind not in EXTRACTION_PROMPTS:
            raise ValueError(f"Unknown extraction kind: {kind}")

        response = await self._generate(
            ModelRequest(
                task="extract",
                prompt=build_extraction_prompt(text, kind),
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
            )
        )
        output = self._output_or(response, TEXT_APOLOGY, "extract")
        return parse_structured_output(output)

    async def chat_with_context(
        self,
        message: str,
        history: Sequence[ConversationMessage],
        health_summary: Optional[str] = None,
    ) -> str:
        """
        Answer a free-text message given prior turns and a health summary.

        Only the last CHAT_HISTORY_LIMIT turns of `history` are sent.
        """
        system_prompt = CHAT_SYSTEM_PROMPT
        if health_summary:
            system_prompt += f"\n\nUser's Health Data Summary:\n{health_summary}"

        turns: List[ChatTurn] = [
            ChatTurn(role=msg.role, content=msg.content)
            for msg in list(history)[-CHAT_HISTORY_LIMIT:]
        ]
        response = await self._generate(
            ModelRequest(
                task="chat",
                prompt=message,
                system_prompt=system_prompt,
                history=turns,
            )
        )
        return self._output_or(response, CHAT_APOLOGY, "chat")
