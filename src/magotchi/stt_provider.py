"""Speech-to-text provider for the `/api/transcribe` endpoint."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import httpx

from magotchi.config import OpenAIConfig
from magotchi.errors import UpstreamError, upstream_error_detail

logger = logging.getLogger(__name__)


@runtime_checkable
class Transcriber(Protocol):
    """Protocol for speech-to-text providers."""

    @property
    def configured(self) -> bool: ...

    async def transcribe(self, audio_path: Path, content_type: str) -> str: ...


class OpenAITranscriber:
    """OpenAI audio transcriptions (Whisper) provider.

    The API wants a real file part, so callers hand over a path on disk
    rather than raw bytes.
    """

    name = "openai"

    def __init__(
        self,
        config: OpenAIConfig,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    async def transcribe(self, audio_path: Path, content_type: str) -> str:
        url = f"{self.base_url}/audio/transcriptions"
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        data = {"model": self.config.model, "language": self.config.language}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                with audio_path.open("rb") as audio_file:
                    files = {"file": (audio_path.name, audio_file, content_type)}
                    response = await client.post(
                        url, data=data, files=files, headers=headers
                    )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = upstream_error_detail(exc.response, "OpenAI")
            logger.error("OpenAI transcription error: %s", detail)
            raise UpstreamError(
                detail, provider=self.name, status=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("OpenAI transcription request failed: %s", str(exc))
            raise UpstreamError(
                f"OpenAI request failed: {str(exc)}", provider=self.name
            ) from exc

        payload = response.json()
        return payload.get("text") or ""

