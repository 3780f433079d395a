"""
WhatsApp Response Sender

Pushes messages out-of-band through the Twilio REST API.
Bodies longer than the chunk limit are split and sent in order.
No retries.
"""

import asyncio
import functools
import logging
import re
from typing import Iterator, List, Optional

from twilio.rest import Client

from agent.messaging import MAX_MESSAGE_LENGTH, Messenger
from agent.phone import WHATSAPP_PREFIX

logger = logging.getLogger(__name__)

CHUNK_DELAY_S = 0.5

_PARAGRAPH_RE = re.compile(r"(?<=\n\n)")
_SENTENCE_RE = re.compile(r"(?<=\. )")


def _pieces(text: str, max_length: int) -> Iterator[str]:
    """Paragraphs, then sentences, then hard slices; separators stay attached."""
    for paragraph in _PARAGRAPH_RE.split(text):
        if len(paragraph) <= max_length:
            yield paragraph
            continue
        for sentence in _SENTENCE_RE.split(paragraph):
            for start in range(0, len(sentence), max_length):
                yield sentence[start:start + max_length]


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """
    Split `text` into ordered chunks of at most `max_length` characters.

    Paragraph boundaries are preferred, then sentence boundaries, then a hard
    cut. "".join(split_message(text)) == text.
    """
    if len(text) <= max_length:
        return [text]

    chunks: List[str] = []
    current = ""
    for piece in _pieces(text, max_length):
        if not piece:
            continue
        if current and len(current) + len(piece) > max_length:
            chunks.append(current)
            current = ""
        current += piece
    if current:
        chunks.append(current)
    return chunks


def whatsapp_address(phone: str) -> str:
    return phone if phone.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{phone}"


class TwilioMessenger(Messenger):
    """Messenger backed by the Twilio WhatsApp API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[Client] = None,
        chunk_delay_s: float = CHUNK_DELAY_S,
        max_length: int = MAX_MESSAGE_LENGTH,
    ):
        self.client = client or Client(account_sid, auth_token)
        self.from_number = whatsapp_address(from_number)
        self.chunk_delay_s = chunk_delay_s
        self.max_length = max_length

    async def send_message(self, to: str, body: str, media_url: Optional[str] = None) -> bool:
        to = whatsapp_address(to)
        chunks = [chunk for chunk in split_message(body, self.max_length) if chunk] or [body]

        try:
            for index, chunk in enumerate(chunks):
                prefix = "" if index == 0 else f"({index + 1}/{len(chunks)}) "
                params = {"from_": self.from_number, "to": to, "body": prefix + chunk}
                if media_url and index == 0:
                    params["media_url"] = [media_url]

                message = await self._create(**params)
                logger.info(
                    f"Message sent successfully. SID: {message.sid}",
                    extra={"to": to, "part": index + 1, "parts": len(chunks)},
                )

                if index < len(chunks) - 1 and self.chunk_delay_s:
                    await asyncio.sleep(self.chunk_delay_s)
        except Exception as e:
            logger.error(f"Error sending WhatsApp message: {e}", exc_info=True, extra={"to": to})
            return False

        if len(chunks) > 1:
            logger.info(f"Split message sent in {len(chunks)} parts", extra={"to": to})
        return True

    async def _create(self, **params):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.client.messages.create, **params)
        )
