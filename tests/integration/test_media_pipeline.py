"""
Async media pipeline tests. Downloads are patched; analysis runs against
the stub model backend.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from agent import replies
from agent.errors import StoreError
from agent.media_pipeline import (
    DEFAULT_MEDIA_RECORD_TYPE,
    MediaAttachment,
    MediaKind,
    MediaPipeline,
    classify_media,
)
from agent.oracle import IMAGE_APOLOGY
from inference import ModelResponse

IMAGE = MediaAttachment(url="https://api.twilio.com/media/img", mime_type="image/jpeg")
PDF = MediaAttachment(url="https://api.twilio.com/media/pdf", mime_type="application/pdf")


class TestClassifyMedia:

    @pytest.mark.parametrize(
        "mime,kind",
        [
            ("image/jpeg", MediaKind.IMAGE),
            ("IMAGE/PNG", MediaKind.IMAGE),
            ("application/pdf", MediaKind.PDF),
            ("audio/ogg", MediaKind.UNSUPPORTED),
            ("", MediaKind.UNSUPPORTED),
        ],
    )
    def test_kinds(self, mime, kind):
        assert classify_media(mime) is kind


@pytest.mark.asyncio
class TestProcess:

    async def test_image_is_analyzed_saved_and_delivered(self, media_pipeline, backend, records, conversations, messenger):
        backend.outputs["analyze_image"] = "Hemoglobin: 13.5 g/dL"
        media_pipeline.download = AsyncMock(return_value=b"jpeg-bytes")

        result = await media_pipeline.process("u1", "+919876543210", IMAGE)

        assert result.reply == replies.image_saved("Hemoglobin: 13.5 g/dL")
        assert result.delivered
        saved = records.recent("u1")[0]
        assert saved is result.record
        assert saved.source_type == "image"
        assert saved.record_type == DEFAULT_MEDIA_RECORD_TYPE
        assert saved.file_url == IMAGE.url
        assert backend.requests[0].image_data == b"jpeg-bytes"
        assert backend.requests[0].image_mime_type == "image/jpeg"
        assert messenger.sent[0].to == "+919876543210"
        assert conversations.recent("u1")[-1].content == result.reply

    async def test_pdf_text_is_analyzed(self, media_pipeline, backend, records):
        backend.outputs["analyze_text"] = "Cholesterol is slightly high."
        media_pipeline.download = AsyncMock(return_value=b"%PDF-")

        with patch("agent.media_pipeline.extract_pdf_text", return_value="LDL 160 mg/dL"):
            result = await media_pipeline.process("u1", "+919876543210", PDF)

        assert result.reply == replies.pdf_saved("Cholesterol is slightly high.")
        saved = records.recent("u1")[0]
        assert saved.source_type == "pdf"
        assert saved.raw_data == {"text": "LDL 160 mg/dL"}
        assert "LDL 160 mg/dL" in backend.requests[0].prompt

    async def test_pdf_without_text(self, media_pipeline, records):
        media_pipeline.download = AsyncMock(return_value=b"%PDF-")

        with patch("agent.media_pipeline.extract_pdf_text", return_value="  \n "):
            result = await media_pipeline.process("u1", "+919876543210", PDF)

        assert result.reply == replies.PDF_NO_TEXT_TEXT
        assert records.count("u1") == 0

    async def test_unreadable_pdf(self, media_pipeline):
        media_pipeline.download = AsyncMock(return_value=b"not a pdf")

        with patch("agent.media_pipeline.extract_pdf_text", side_effect=ValueError("EOF marker not found")):
            result = await media_pipeline.process("u1", "+919876543210", PDF)

        assert result.reply == replies.PDF_ERROR_TEXT

    async def test_unsupported_type(self, media_pipeline, messenger):
        media_pipeline.download = AsyncMock(return_value=b"ogg")
        audio = MediaAttachment(url="https://api.twilio.com/media/a", mime_type="audio/ogg")

        result = await media_pipeline.process("u1", "+919876543210", audio)

        assert result.reply == replies.MEDIA_UNSUPPORTED_TEXT
        assert messenger.sent[0].body == replies.MEDIA_UNSUPPORTED_TEXT

    async def test_download_failure(self, media_pipeline, backend):
        media_pipeline.download = AsyncMock(return_value=None)

        result = await media_pipeline.process("u1", "+919876543210", IMAGE)

        assert result.reply == replies.MEDIA_DOWNLOAD_FAILED_TEXT
        assert backend.requests == []

    async def test_oracle_apology_is_not_persisted(self, media_pipeline, backend, records):
        backend.generate = MagicMock(return_value=ModelResponse(status="fatal_error"))
        media_pipeline.download = AsyncMock(return_value=b"jpeg-bytes")

        result = await media_pipeline.process("u1", "+919876543210", IMAGE)

        assert result.reply == replies.IMAGE_ERROR_TEXT
        assert IMAGE_APOLOGY not in result.reply
        assert records.count("u1") == 0

    async def test_store_failure(self, media_pipeline, records):
        records.add = MagicMock(side_effect=StoreError("disk full"))
        media_pipeline.download = AsyncMock(return_value=b"jpeg-bytes")

        result = await media_pipeline.process("u1", "+919876543210", IMAGE)

        assert result.reply == replies.IMAGE_ERROR_TEXT
        assert result.record is None

    async def test_unexpected_failure_still_replies(self, media_pipeline, messenger):
        media_pipeline.download = AsyncMock(side_effect=RuntimeError("boom"))

        result = await media_pipeline.process("u1", "+919876543210", IMAGE)

        assert result.reply == replies.MEDIA_ERROR_TEXT
        assert messenger.sent[0].body == replies.MEDIA_ERROR_TEXT

    async def test_delivery_failure_is_reported(self, media_pipeline, messenger, conversations):
        messenger.succeed = False
        media_pipeline.download = AsyncMock(return_value=None)

        result = await media_pipeline.process("u1", "+919876543210", IMAGE)

        assert result.delivered is False
        assert conversations.recent("u1")[-1].content == replies.MEDIA_DOWNLOAD_FAILED_TEXT


@pytest.mark.asyncio
class TestSpawn:

    async def test_spawn_returns_task_and_drain_waits(self, media_pipeline, messenger):
        media_pipeline.download = AsyncMock(return_value=None)

        task = media_pipeline.spawn("u1", "+919876543210", IMAGE)

        assert media_pipeline.in_flight == 1
        await media_pipeline.drain()
        assert task.done()
        assert task.result().reply == replies.MEDIA_DOWNLOAD_FAILED_TEXT
        assert media_pipeline.in_flight == 0
        assert len(messenger.sent) == 1

    async def test_drain_with_nothing_in_flight(self, media_pipeline):
        await media_pipeline.drain()


@pytest.mark.asyncio
class TestDownload:

    async def test_http_error_returns_none(self, oracle, records, conversations, messenger):
        def handler(request):
            return httpx.Response(404)

        pipeline = MediaPipeline(oracle, records, conversations, messenger, download_auth=("AC1", "tok"))
        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        with patch("agent.media_pipeline.httpx.AsyncClient", lambda **kw: real_client(transport=transport, **kw)):
            assert await pipeline.download("https://api.twilio.com/media/x") is None

    async def test_success_sends_basic_auth(self, oracle, records, conversations, messenger):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, content=b"bytes")

        pipeline = MediaPipeline(oracle, records, conversations, messenger, download_auth=("AC1", "tok"))
        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        with patch("agent.media_pipeline.httpx.AsyncClient", lambda **kw: real_client(transport=transport, **kw)):
            assert await pipeline.download("https://api.twilio.com/media/x") == b"bytes"

        assert seen["auth"].startswith("Basic ")

    async def test_malformed_url_is_download_failure(self, oracle, records, conversations, messenger):
        def handler(request):
            raise httpx.InvalidURL("Invalid IPv6 URL")

        pipeline = MediaPipeline(oracle, records, conversations, messenger)
        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        with patch("agent.media_pipeline.httpx.AsyncClient", lambda **kw: real_client(transport=transport, **kw)):
            result = await pipeline.process("u1", "+919876543210", IMAGE)

        assert result.reply == replies.MEDIA_DOWNLOAD_FAILED_TEXT
        assert messenger.sent[0].body == replies.MEDIA_DOWNLOAD_FAILED_TEXT
