"""
Model boundary layer for LLM inference.

This package provides a clean abstraction for model invocation,
allowing the agent to remain agnostic of the underlying backend.

Supported backends:
- StubModelBackend: Deterministic fake model (default for CI/tests)
- OllamaModelBackend: Local Ollama inference
- AnthropicModelBackend: Anthropic Messages API

Example usage:
    from inference import StubModelBackend, ModelRequest

    backend = StubModelBackend()
    request = ModelRequest(task="analyze_text", prompt="BP: 120/80")
    response = backend.generate(request)
"""

from .types import ChatTurn, ModelRequest, ModelResponse, ModelStatus
from .base import ModelBackend
from .stub import StubModelBackend
from .ollama import OllamaModelBackend
from .anthropic_backend import AnthropicModelBackend

__all__ = [
    "ChatTurn",
    "ModelRequest",
    "ModelResponse",
    "ModelStatus",
    "ModelBackend",
    "StubModelBackend",
    "OllamaModelBackend",
    "AnthropicModelBackend",
]
