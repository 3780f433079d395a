"""
WhatsApp Signature Verification

SECURITY BOUNDARY - Verify the Twilio X-Twilio-Signature header.
No retries. No logic.
"""

import logging
from typing import Mapping

from fastapi import HTTPException, Request, status
from twilio.request_validator import RequestValidator

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"


def verify_twilio_signature(
    request: Request,
    form: Mapping[str, str],
    auth_token: str,
    environment: str = "development",
) -> None:
    """
    Verify the Twilio HMAC-SHA1 signature on a webhook request.

    Twilio signs the full request URL followed by every POST parameter
    (sorted by name) with the account auth token.

    Verification is skipped when environment == "development".

    Raises:
        HTTPException(403): Missing or invalid signature
    """
    if environment == "development":
        return

    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        logger.warning("Missing Twilio signature header")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    if not auth_token:
        logger.error("TWILIO_AUTH_TOKEN not configured; rejecting signed webhook")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    validator = RequestValidator(auth_token)
    if not validator.validate(str(request.url), dict(form), signature):
        logger.warning("Invalid Twilio signature", extra={"url": str(request.url)})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
