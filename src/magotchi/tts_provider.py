"""Text-to-speech provider for the `/api/synthesize` endpoint."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

import httpx

from magotchi.config import ElevenLabsConfig
from magotchi.errors import UpstreamError

logger = logging.getLogger(__name__)

AUDIO_MEDIA_TYPE = "audio/mpeg"


@runtime_checkable
class SpeechSynthesizer(Protocol):
    """Protocol for text-to-speech providers."""

    @property
    def configured(self) -> bool: ...

    async def synthesize(self, text: str) -> bytes: ...


class ElevenLabsSynthesizer:
    """ElevenLabs text-to-speech provider with a fixed voice."""

    name = "elevenlabs"

    def __init__(
        self,
        config: ElevenLabsConfig,
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

    def build_payload(self, text: str) -> dict:
        return {
            "text": text,
            "model_id": self.config.model_id,
            "voice_settings": {
                "stability": self.config.stability,
                "similarity_boost": self.config.similarity_boost,
            },
        }

    async def synthesize(self, text: str) -> bytes:
        url = f"{self.base_url}/v1/text-to-speech/{self.config.voice_id}"
        headers = {
            "Content-Type": "application/json",
            "xi-api-key": self.config.api_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url, json=self.build_payload(text), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = f"ElevenLabs API error: {status} - {exc.response.text}"
            logger.error("%s", message)
            raise UpstreamError(message, provider=self.name, status=status) from exc
        except httpx.HTTPError as exc:
            logger.error("ElevenLabs request failed: %s", str(exc))
            raise UpstreamError(
                f"ElevenLabs request failed: {str(exc)}", provider=self.name
            ) from exc

        return response.content
