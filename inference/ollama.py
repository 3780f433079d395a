import base64

import requests

from .base import ModelBackend
from .types import ModelRequest, ModelResponse


class OllamaModelBackend(ModelBackend):
    """
    Ollama backend for local model inference.

    Uses /api/chat so a system prompt and prior turns can be included.
    Images are sent base64-encoded on the final user message, which
    requires a vision-capable model (e.g. "llava").
    """

    name = "ollama"

    def __init__(self, model_name: str, base_url: str = "http://localhost:11434"):
        """
        Initialize Ollama backend.

        Args:
            model_name: Name of the model (e.g. "llava", "llama3")
            base_url:   Base URL of the Ollama service
        """
        self.model_name = model_name
        self.base_url = base_url

    def _build_messages(self, request: ModelRequest) -> list:
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})

        for turn in request.history:
            messages.append({"role": turn.role, "content": turn.content})

        if request.context:
            messages.append({"role": "user", "content": f"Context: {request.context}"})

        user_message = {"role": "user", "content": request.prompt}
        if request.image_data:
            user_message["images"] = [base64.b64encode(request.image_data).decode("ascii")]
        messages.append(user_message)
        return messages

    def generate(self, request: ModelRequest) -> ModelResponse:
        """
        Generate a response using Ollama /api/chat.

        Flow:
          1. Build a messages list: [system, history..., (optional context), user]
          2. POST to /api/chat
          3. Return the assistant message content

        Args:
            request: ModelRequest with prompt, optional context, and timeout

        Returns:
            ModelResponse with output, or an error status
        """
        base_metadata = self.response_metadata(request)

        try:
            payload = {
                "model": self.model_name,
                "messages": self._build_messages(request),
                "stream": False,
                "options": {"num_predict": request.max_tokens},
            }

            resp = requests.post(
                f"{self.base_url}/api/chat",
                json=payload,
                timeout=request.timeout_s,
            )

            resp.raise_for_status()
            data = resp.json()
            output: str = data.get("message", {}).get("content", "")

            return ModelResponse(
                status="success",
                output=output,
                metadata=base_metadata,
            )

        except requests.Timeout:
            return ModelResponse(
                status="recoverable_error",
                error_type="timeout",
                metadata=base_metadata,
            )

        except Exception as e:
            return ModelResponse(
                status="fatal_error",
                error_type="backend_unavailable",
                metadata={**base_metadata, "error": str(e)},
            )
