from typing import Dict, Optional

from .base import ModelBackend
from .types import ModelRequest, ModelResponse


class StubModelBackend(ModelBackend):
    """
    Deterministic fake model for testing and CI.

    This backend is fast, deterministic, and never fails silently.
    Canned outputs can be supplied per task; every request is recorded
    in `requests` so tests can inspect what the agent asked for.
    """

    name = "stub"

    def __init__(self, outputs: Optional[Dict[str, str]] = None):
        self.outputs = dict(outputs or {})
        self.requests = []

    def generate(self, request: ModelRequest) -> ModelResponse:
        """
        Generate a deterministic response based on task type.

        Args:
            request: ModelRequest with task, prompt, and optional parameters

        Returns:
            ModelResponse with deterministic output based on task
        """
        self.requests.append(request)
        metadata = self.response_metadata(request)

        if request.task in self.outputs:
            return ModelResponse(
                status="success",
                output=self.outputs[request.task],
                metadata=metadata,
            )

        if request.task == "fail":
            return ModelResponse(
                status="recoverable_error",
                error_type="invalid_output",
                metadata=metadata,
            )

        if request.task == "extract":
            return ModelResponse(status="success", output="{}", metadata=metadata)

        # Default stub output for any other task
        return ModelResponse(
            status="success",
            output=f"Stub output for task: {request.task}",
            metadata=metadata,
        )
