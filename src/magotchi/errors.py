"""Error taxonomy shared by the Magotchi handlers and providers."""

from __future__ import annotations

from typing import Optional

import httpx


class MagotchiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(MagotchiError):
    """Raised when client input is missing or malformed."""

    status_code = 400


class ConfigurationError(MagotchiError):
    """Raised when a credential required by the requested feature is absent."""

    def __init__(self, env_key: str) -> None:
        self.env_key = env_key
        super().__init__(f"{env_key} が設定されていません")


class UpstreamError(MagotchiError):
    """Raised when a provider call fails or returns a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.status = status
        super().__init__(message)


def upstream_error_detail(response: httpx.Response, vendor: str) -> str:
    """Prefer the provider's own ``error.message`` over the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"{vendor} API error: {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.text
