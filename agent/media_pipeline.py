"""
Async Media Pipeline

The webhook acknowledges a media message immediately; the real work runs
as a spawned task outside the request/response cycle:

    download → classify by MIME → analyze (image / PDF) → persist → deliver

Concurrency model:
- spawn() returns the asyncio.Task; the webhook never awaits it
- no backpressure: any number of jobs may be in flight
- no per-user serialization: two uploads from one user may finish and
  reply in either order
- no cancellation: a job runs to completion or failure

The eventual reply is delivered through the Messenger AND appended to the
conversation log, the same as synchronous replies.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set, Tuple

import httpx
from PyPDF2 import PdfReader

from agent import replies
from agent.errors import StoreError
from agent.memory.base import ConversationStore, HealthRecordStore
from agent.memory.types import HealthRecord, RecordType, utcnow
from agent.messaging import Messenger
from agent.oracle import APOLOGIES, AnalysisOracle
from agent.prompting import IMAGE_EXTRACTION_PROMPT, PDF_SYSTEM_PROMPT, build_pdf_prompt

logger = logging.getLogger(__name__)

# Image/PDF records are not classified by content yet.
DEFAULT_MEDIA_RECORD_TYPE: RecordType = "blood_work"


@dataclass(frozen=True)
class MediaAttachment:
    url: str
    mime_type: str


class MediaKind(Enum):
    IMAGE = "image"
    PDF = "pdf"
    UNSUPPORTED = "unsupported"


def classify_media(mime_type: str) -> MediaKind:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return MediaKind.IMAGE
    if mime_type == "application/pdf":
        return MediaKind.PDF
    return MediaKind.UNSUPPORTED


def extract_pdf_text(data: bytes) -> str:
    """Concatenated text of every page; empty for image-only PDFs."""
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


@dataclass(frozen=True)
class MediaResult:
    reply: str
    record: Optional[HealthRecord] = None
    delivered: bool = False


class MediaPipeline:

    def __init__(
        self,
        oracle: AnalysisOracle,
        records: HealthRecordStore,
        conversations: ConversationStore,
        messenger: Messenger,
        download_auth: Optional[Tuple[str, str]] = None,
        download_timeout_s: float = 30.0,
    ):
        """
        Args:
            oracle: Analysis Oracle for image/text analysis
            records: Where analyzed reports are persisted
            conversations: Where the eventual reply is logged
            messenger: Out-of-band delivery
            download_auth: (username, password) basic-auth for media URLs
            download_timeout_s: Bounded timeout for the media GET
        """
        self.oracle = oracle
        self.records = records
        self.conversations = conversations
        self.messenger = messenger
        self.download_auth = download_auth
        self.download_timeout_s = download_timeout_s
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        user_id: str,
        recipient: str,
        attachment: MediaAttachment,
        message: str = "",
    ) -> asyncio.Task:
        """Start processing in the background and return the task handle."""
        task = asyncio.create_task(self.process(user_id, recipient, attachment, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(
            f"Media job started for {user_id}",
            extra={"mime_type": attachment.mime_type, "in_flight": self.in_flight},
        )
        return task

    async def drain(self) -> None:
        """Wait for every in-flight job (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def download(self, url: str) -> Optional[bytes]:
        try:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(
                    url,
                    auth=self.download_auth,
                    timeout=self.download_timeout_s,
                )
                response.raise_for_status()
                return response.content
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Error downloading media: {e}", extra={"url": url})
            return None

    async def process(
        self,
        user_id: str,
        recipient: str,
        attachment: MediaAttachment,
        message: str = "",
    ) -> MediaResult:
        """Run one media job end to end. Never raises."""
        try:
            kind = classify_media(attachment.mime_type)
            data = await self.download(attachment.url)
            if data is None:
                reply, record = replies.MEDIA_DOWNLOAD_FAILED_TEXT, None
            elif kind is MediaKind.IMAGE:
                reply, record = await self._process_image(user_id, attachment, data)
            elif kind is MediaKind.PDF:
                reply, record = await self._process_pdf(user_id, attachment, data)
            else:
                reply, record = replies.MEDIA_UNSUPPORTED_TEXT, None
        except Exception as e:
            logger.error(f"Error processing media async: {e}", exc_info=True)
            reply, record = replies.MEDIA_ERROR_TEXT, None

        delivered = await self._deliver(user_id, recipient, reply)
        return MediaResult(reply=reply, record=record, delivered=delivered)

    async def _process_image(
        self, user_id: str, attachment: MediaAttachment, data: bytes
    ) -> Tuple[str, Optional[HealthRecord]]:
        try:
            analysis = await self.oracle.analyze_image(data, attachment.mime_type, IMAGE_EXTRACTION_PROMPT)
            if analysis in APOLOGIES:
                return replies.IMAGE_ERROR_TEXT, None
            record = self.records.add(
                HealthRecord(
                    user_id=user_id,
                    record_type=DEFAULT_MEDIA_RECORD_TYPE,
                    date=utcnow(),
                    source_type="image",
                    raw_data={"analysis": analysis},
                    analysis=analysis,
                    file_url=attachment.url,
                )
            )
            return replies.image_saved(analysis), record
        except StoreError as e:
            logger.error(f"Error processing image: {e}")
            return replies.IMAGE_ERROR_TEXT, None

    async def _process_pdf(
        self, user_id: str, attachment: MediaAttachment, data: bytes
    ) -> Tuple[str, Optional[HealthRecord]]:
        try:
            loop = asyncio.get_running_loop()
            text = await loop.run_in_executor(None, extract_pdf_text, data)
        except Exception as e:
            logger.error(f"Error parsing PDF: {e}", exc_info=True)
            return replies.PDF_ERROR_TEXT, None

        if not text.strip():
            return replies.PDF_NO_TEXT_TEXT, None

        try:
            analysis = await self.oracle.analyze_text(build_pdf_prompt(text), system_prompt=PDF_SYSTEM_PROMPT)
            if analysis in APOLOGIES:
                return replies.PDF_ERROR_TEXT, None
            record = self.records.add(
                HealthRecord(
                    user_id=user_id,
                    record_type=DEFAULT_MEDIA_RECORD_TYPE,
                    date=utcnow(),
                    source_type="pdf",
                    raw_data={"text": text},
                    analysis=analysis,
                    file_url=attachment.url,
                )
            )
            return replies.pdf_saved(analysis), record
        except StoreError as e:
            logger.error(f"Error processing PDF: {e}")
            return replies.PDF_ERROR_TEXT, None

    async def _deliver(self, user_id: str, recipient: str, text: str) -> bool:
        delivered = await self.messenger.send_message(recipient, text)
        if not delivered:
            logger.error(f"Media reply delivery failed for {user_id}")
        try:
            self.conversations.append(user_id, "assistant", text)
        except StoreError as e:
            logger.error(f"Could not log media reply for {user_id}: {e}")
        return delivered
