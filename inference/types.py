from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Literal

ModelStatus = Literal["success", "recoverable_error", "fatal_error"]


@dataclass
class ChatTurn:
    role: Literal["user", "assistant"]
    content: str


@dataclass
class ModelRequest:
    task: str                  # e.g. "analyze_text", "analyze_image", "extract", "chat"
    prompt: str
    context: Optional[str] = None
    system_prompt: Optional[str] = None
    history: List[ChatTurn] = field(default_factory=list)   # prior turns, oldest first
    image_data: Optional[bytes] = None
    image_mime_type: Optional[str] = None
    max_tokens: int = 4096
    timeout_s: Optional[int] = 60
    trace_id: Optional[str] = None


@dataclass
class ModelResponse:
    status: ModelStatus
    output: Optional[str] = None
    error_type: Optional[str] = None   # timeout | invalid_output | backend_unavailable
    metadata: Optional[Dict[str, Any]] = None
