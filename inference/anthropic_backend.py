import base64

import anthropic

from .base import ModelBackend
from .types import ModelRequest, ModelResponse


class AnthropicModelBackend(ModelBackend):
    """
    Anthropic Messages API backend.

    Text and image analysis go through the same call; images are attached
    as a base64 content block ahead of the prompt text.
    """

    name = "anthropic"

    def __init__(self, api_key: str, model_name: str = "claude-3-haiku-20240307", client=None):
        self.model_name = model_name
        self.client = client or anthropic.Anthropic(api_key=api_key)

    def _build_messages(self, request: ModelRequest) -> list:
        messages = [{"role": turn.role, "content": turn.content} for turn in request.history]
        # The API requires the conversation to open with a user turn
        while messages and messages[0]["role"] == "assistant":
            messages.pop(0)

        if request.context:
            messages.append({"role": "user", "content": f"Context: {request.context}"})

        if request.image_data:
            content = [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": request.image_mime_type or "image/jpeg",
                        "data": base64.b64encode(request.image_data).decode("ascii"),
                    },
                },
                {"type": "text", "text": request.prompt},
            ]
        else:
            content = request.prompt

        messages.append({"role": "user", "content": content})
        return messages

    def generate(self, request: ModelRequest) -> ModelResponse:
        base_metadata = self.response_metadata(request)

        kwargs = {
            "model": self.model_name,
            "max_tokens": request.max_tokens,
            "messages": self._build_messages(request),
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt
        if request.timeout_s:
            kwargs["timeout"] = request.timeout_s

        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError:
            return ModelResponse(
                status="recoverable_error",
                error_type="timeout",
                metadata=base_metadata,
            )
        except anthropic.APIError as e:
            return ModelResponse(
                status="fatal_error",
                error_type="backend_unavailable",
                metadata={**base_metadata, "error": str(e)},
            )

        block = response.content[0] if response.content else None
        if block is None or block.type != "text":
            return ModelResponse(
                status="recoverable_error",
                error_type="invalid_output",
                metadata=base_metadata,
            )

        return ModelResponse(status="success", output=block.text, metadata=base_metadata)
