"""WhatsApp Transport Layer - Module Exports"""

from .normalize import (
    NormalizationError,
    normalize_form,
    sanitize_input,
)
from .rate_limit import RateLimiter, run_sweeper
from .schemas import InboundMessage, ManualSendRequest, ManualSendResponse
from .security import verify_twilio_signature
from .sender import TwilioMessenger, split_message
from .webhook import router, twiml_response

__all__ = [
    # Schemas
    "InboundMessage",
    "ManualSendRequest",
    "ManualSendResponse",
    # Normalization
    "normalize_form",
    "sanitize_input",
    "NormalizationError",
    # Security
    "verify_twilio_signature",
    # Rate limiting
    "RateLimiter",
    "run_sweeper",
    # Sender
    "TwilioMessenger",
    "split_message",
    # Router
    "router",
    "twiml_response",
]
