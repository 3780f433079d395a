"""
WhatsApp Transport Layer - Pydantic Schemas

PURE DATA MODELS - NO LOGIC
Defines the contract between the Twilio webhook form and the router.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


MAX_NUM_MEDIA = 10


class InboundMessage(BaseModel):
    """
    One inbound WhatsApp message, validated and sanitized.

    Only the first attachment is carried; Twilio numbers them
    MediaUrl0..MediaUrl9.
    """

    model_config = ConfigDict(frozen=True)

    sender: str = Field(..., description="Sender phone number, whatsapp: prefix stripped")
    body: str = Field("", description="Sanitized message text. Empty for media-only")
    num_media: int = Field(0, ge=0, le=MAX_NUM_MEDIA)
    media_url: Optional[str] = Field(None, description="MediaUrl0 when num_media > 0")
    media_content_type: Optional[str] = Field(None, description="MediaContentType0 when num_media > 0")
    message_sid: Optional[str] = None

    @property
    def has_media(self) -> bool:
        return self.num_media > 0 and bool(self.media_url)


class ManualSendRequest(BaseModel):
    """Body of POST /test/send. Both fields are checked by the handler."""

    to: Optional[str] = None
    message: Optional[str] = None


class ManualSendResponse(BaseModel):
    success: bool
    to: str
    message: str
