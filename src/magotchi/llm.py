"""Conversation provider abstraction for the `/api/chat` endpoint."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from magotchi.config import AnthropicConfig
from magotchi.errors import UpstreamError, upstream_error_detail

logger = logging.getLogger(__name__)


@runtime_checkable
class ConversationProvider(Protocol):
    """Protocol for single-turn conversational providers."""

    @property
    def configured(self) -> bool: ...

    async def complete(self, *, system: str, message: str) -> str: ...

    def stream(self, *, system: str, message: str) -> AsyncIterator[str]: ...


class AnthropicProvider:
    """Anthropic Messages API provider.

    Every call is a single user turn; no history is kept between calls.
    """

    name = "anthropic"

    def __init__(
        self,
        config: AnthropicConfig,
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

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": self.config.api_version,
            "content-type": "application/json",
        }

    def build_payload(self, *, system: str, message: str, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": message}],
        }
        if stream:
            payload["stream"] = True
        return payload

    async def complete(self, *, system: str, message: str) -> str:
        """Return the first text block of the reply, or ``""`` if there is none."""
        url = f"{self.base_url}/v1/messages"
        payload = self.build_payload(system=system, message=message, stream=False)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = upstream_error_detail(exc.response, "Anthropic")
            logger.error("Anthropic provider error: %s", detail)
            raise UpstreamError(
                detail, provider=self.name, status=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Anthropic request failed: %s", str(exc))
            raise UpstreamError(
                f"Anthropic request failed: {str(exc)}", provider=self.name
            ) from exc

        return first_text_block(response.json().get("content"))

    async def stream(self, *, system: str, message: str) -> AsyncIterator[str]:
        """Yield text deltas in the order the provider emits them."""
        url = f"{self.base_url}/v1/messages"
        payload = self.build_payload(system=system, message=message, stream=True)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST", url, json=payload, headers=self._headers()
                ) as response:
                    if response.is_error:
                        await response.aread()
                        detail = upstream_error_detail(response, "Anthropic")
                        logger.error("Anthropic provider error: %s", detail)
                        raise UpstreamError(
                            detail, provider=self.name, status=response.status_code
                        )
                    async for event in iter_sse_events(response.aiter_lines()):
                        event_type = event.get("type")
                        if event_type == "content_block_delta":
                            delta = event.get("delta") or {}
                            if delta.get("type") == "text_delta":
                                yield delta.get("text", "")
                        elif event_type == "error":
                            error = event.get("error") or {}
                            detail = error.get("message") or "Anthropic stream error"
                            logger.error("Anthropic stream error: %s", detail)
                            raise UpstreamError(detail, provider=self.name)
                        elif event_type == "message_stop":
                            break
        except httpx.HTTPError as exc:
            logger.error("Anthropic stream failed: %s", str(exc))
            raise UpstreamError(
                f"Anthropic request failed: {str(exc)}", provider=self.name
            ) from exc


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[Dict[str, Any]]:
    """Decode the JSON ``data:`` payloads of a server-sent event stream."""
    data_lines: List[str] = []
    async for line in lines:
        if line.startswith("data:"):
            data_lines.append(line[len("data:") :].lstrip())
            continue
        if line.strip() or not data_lines:
            # event:/id:/comment lines carry nothing we need
            continue
        event = _decode_event("\n".join(data_lines))
        data_lines = []
        if event is not None:
            yield event
    if data_lines:
        event = _decode_event("\n".join(data_lines))
        if event is not None:
            yield event


def _decode_event(data: str) -> Optional[Dict[str, Any]]:
    try:
        event = json.loads(data)
    except ValueError:
        logger.debug("Skipping non-JSON SSE payload: %s", data[:80])
        return None
    return event if isinstance(event, dict) else None


def first_text_block(content: Optional[List[Dict[str, Any]]]) -> str:
    for block in content or []:
        if block.get("type") == "text":
            return block.get("text") or ""
    return ""

