from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .types import ModelRequest, ModelResponse


class ModelBackend(ABC):
    """
    Abstract model boundary for the Analysis Oracle.

    One call covers text, image and chat requests. Implementations report
    provider failures through ModelResponse.status instead of raising.
    """

    name: str = "model"
    model_name: Optional[str] = None

    @abstractmethod
    def generate(self, request: ModelRequest) -> ModelResponse:
        """Generate a response from the model."""
        raise NotImplementedError

    def response_metadata(self, request: ModelRequest) -> Dict[str, Any]:
        metadata = {"backend": self.name, "trace_id": request.trace_id}
        if self.model_name:
            metadata["model"] = self.model_name
        return metadata
