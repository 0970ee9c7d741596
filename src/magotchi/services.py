"""Service layer for the Magotchi API endpoints.

Each function takes its provider explicitly; nothing here holds state
between requests.
"""

import json
import logging
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from magotchi.env import credential_status
from magotchi.errors import ConfigurationError, MagotchiError, ValidationError
from magotchi.llm import ConversationProvider
from magotchi.persona import SYSTEM_PROMPT
from magotchi.stt_provider import Transcriber
from magotchi.tts_provider import SpeechSynthesizer

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"
DEFAULT_AUDIO_SUFFIX = ".webm"


def temp_audio_path(temp_dir: Path, filename: Optional[str] = None) -> Path:
    """Build a collision-free scratch path for an uploaded recording."""
    suffix = Path(filename).suffix if filename else ""
    if not suffix or len(suffix) > 8:
        suffix = DEFAULT_AUDIO_SUFFIX
    stamp = int(time.time() * 1000)
    return temp_dir / f"temp_{stamp}_{uuid.uuid4().hex[:8]}{suffix.lower()}"


async def transcribe_audio(
    transcriber: Transcriber,
    audio_bytes: Optional[bytes],
    *,
    temp_dir: Path,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> Dict[str, str]:
    """Transcribe an uploaded recording.

    Args:
        transcriber: Speech-to-text provider
        audio_bytes: Raw upload, or None when the field was missing
        temp_dir: Directory for the scratch copy handed to the provider
        filename: Original upload name, used for the file extension
        content_type: Declared MIME type of the upload

    Returns:
        Dictionary with a 'text' key
    """
    if audio_bytes is None:
        raise ValidationError("音声ファイルがありません")
    if not transcriber.configured:
        raise ConfigurationError("OPENAI_API_KEY")

    temp_path = temp_audio_path(temp_dir, filename)
    try:
        temp_path.write_bytes(audio_bytes)
        text = await transcriber.transcribe(
            temp_path, content_type or "application/octet-stream"
        )
    finally:
        temp_path.unlink(missing_ok=True)

    logger.info("Transcribed %d bytes of audio", len(audio_bytes))
    return {"text": text}


async def synthesize_speech(synthesizer: SpeechSynthesizer, text: Optional[str]) -> bytes:
    """Synthesize speech for ``text``; the provider's audio is returned verbatim."""
    if not text:
        raise ValidationError("テキストが指定されていません")
    if not synthesizer.configured:
        raise ConfigurationError("ELEVENLABS_API_KEY")

    logger.info("TTS request received for text: %s...", text[:50])
    return await synthesizer.synthesize(text)


def _check_chat_request(provider: ConversationProvider, message: Optional[str]) -> str:
    if not message:
        raise ValidationError("メッセージが指定されていません")
    if not provider.configured:
        raise ConfigurationError("ANTHROPIC_API_KEY")
    return message


async def generate_reply(
    provider: ConversationProvider, message: Optional[str]
) -> Dict[str, str]:
    """Single request/response conversation turn."""
    message = _check_chat_request(provider, message)
    text = await provider.complete(system=SYSTEM_PROMPT, message=message)
    return {"text": text}


def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


class ReplyStream:
    """SSE frames for one streamed turn.

    ``aclose`` also closes the provider's delta iterator, so the upstream
    connection is released even if no frame was ever read.
    """

    def __init__(self, deltas: AsyncIterator[str], first: Optional[str]) -> None:
        self._deltas = deltas
        self._first = first
        self._frames = self._generate()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames

    async def aclose(self) -> None:
        await self._frames.aclose()
        await self._close_deltas()

    async def _close_deltas(self) -> None:
        aclose = getattr(self._deltas, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _generate(self) -> AsyncIterator[str]:
        try:
            if self._first is not None:
                yield sse_frame({"text": self._first})
            async for delta in self._deltas:
                yield sse_frame({"text": delta})
        except MagotchiError as exc:
            logger.error("Chat stream error: %s", exc.message)
            yield sse_frame({"error": exc.message})
        except Exception as exc:
            logger.exception("Chat stream failed")
            yield sse_frame({"error": str(exc) or "会話処理に失敗しました"})
        finally:
            await self._close_deltas()
        yield DONE_FRAME


async def stream_reply(
    provider: ConversationProvider, message: Optional[str]
) -> ReplyStream:
    """Open a streamed conversation turn and return its SSE frames.

    The first delta is awaited before returning, so a failure to open the
    upstream stream surfaces as an ordinary error response. Failures after
    that are reported in-band as ``data: {"error": ...}`` followed by the
    usual ``[DONE]`` frame.
    """
    message = _check_chat_request(provider, message)
    deltas = provider.stream(system=SYSTEM_PROMPT, message=message)
    try:
        first: Optional[str] = await anext(deltas)
    except StopAsyncIteration:
        first = None
    return ReplyStream(deltas, first)


def health_report() -> Dict[str, Any]:
    """Return credential presence for the health endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "env": credential_status(),
    }
