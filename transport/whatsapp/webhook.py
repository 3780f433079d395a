"""
WhatsApp Webhook Receiver

FastAPI router that receives Twilio WhatsApp messages, hands them to the
Intent Router and answers with a TwiML envelope.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from twilio.twiml.messaging_response import MessagingResponse

from agent.intent_router import Send
from agent.media_pipeline import MediaAttachment
from agent.replies import GENERIC_ERROR_TEXT

from .normalize import NormalizationError, normalize_form
from .schemas import ManualSendRequest, ManualSendResponse
from .security import verify_twilio_signature

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WhatsApp Transport"])

TWIML_MEDIA_TYPE = "text/xml"


def get_runtime():
    """The process-wide wiring of stores, router and messenger."""
    from infra.bootstrap import InfraBootstrap

    return InfraBootstrap.get_instance()


def twiml_response(text: str = "") -> Response:
    """TwiML envelope with one message, or an empty <Response/> when text is empty."""
    twiml = MessagingResponse()
    if text:
        twiml.message(text)
    return Response(content=str(twiml), media_type=TWIML_MEDIA_TYPE)


# ============================================================================
# WEBHOOK STATUS
# ============================================================================

@router.get("/webhook/whatsapp")
async def whatsapp_webhook_status() -> dict[str, str]:
    return {"status": "ok", "message": "Webhook endpoint is active"}


# ============================================================================
# WEBHOOK RECEIVER (Message processing)
# ============================================================================

@router.post("/webhook/whatsapp")
async def whatsapp_webhook_receiver(request: Request, runtime=Depends(get_runtime)) -> Response:
    """
    Receive WhatsApp messages from Twilio.

    Flow:
    1. Parse the form body
    2. Verify signature (403 if invalid; skipped in development)
    3. Validate and sanitize (400 if malformed)
    4. Rate limit per sender (429 if over quota)
    5. Route and reply with TwiML

    Raises:
        HTTPException(400): Malformed payload
        HTTPException(403): Missing or invalid signature
        HTTPException(429): Sender over quota
    """

    form = {key: value for key, value in (await request.form()).items() if isinstance(value, str)}

    verify_twilio_signature(
        request,
        form,
        auth_token=runtime.config.twilio_auth_token,
        environment=runtime.config.environment,
    )

    try:
        inbound = normalize_form(form)
    except NormalizationError as e:
        logger.warning(f"Invalid webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid request: {e}",
        )

    if not runtime.rate_limiter.check(inbound.sender):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please slow down.",
        )

    logger.info(
        f"Received webhook from {inbound.sender}",
        extra={"message_sid": inbound.message_sid, "num_media": inbound.num_media},
    )

    try:
        media = None
        if inbound.has_media:
            media = MediaAttachment(url=inbound.media_url, mime_type=inbound.media_content_type or "")

        outcome = await runtime.intent_router.route(inbound.sender, inbound.body, media)
    except Exception as e:
        logger.error(f"Error processing webhook: {e}", exc_info=True)
        return twiml_response(GENERIC_ERROR_TEXT)

    if isinstance(outcome, Send):
        return twiml_response(outcome.text)
    return twiml_response()


# ============================================================================
# MANUAL SEND
# ============================================================================

@router.post("/test/send", response_model=ManualSendResponse)
async def send_test_message(payload: ManualSendRequest, runtime=Depends(get_runtime)) -> ManualSendResponse:
    """Push a message through the configured messenger."""
    if not payload.to or not payload.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Missing "to" or "message" field',
        )

    success = await runtime.messenger.send_message(payload.to, payload.message)
    return ManualSendResponse(success=success, to=payload.to, message=payload.message)
