"""Application configuration loaded from environment variables."""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from magotchi.env import get_env_value, get_repo_root, load_env_file


class OpenAIConfig(BaseModel, frozen=True):
    """Speech-to-text (OpenAI transcriptions) configuration."""

    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "whisper-1"
    language: str = "ja"


class ElevenLabsConfig(BaseModel, frozen=True):
    """Text-to-speech (ElevenLabs) configuration."""

    api_key: str = ""
    base_url: str = "https://api.elevenlabs.io"
    voice_id: str = "EXAVITQu4vr4xnSDxMaL"  # Sarah, handles Japanese
    model_id: str = "eleven_multilingual_v2"
    stability: float = 0.5
    similarity_boost: float = 0.75


class AnthropicConfig(BaseModel, frozen=True):
    """Conversation (Anthropic Messages) configuration."""

    api_key: str = ""
    base_url: str = "https://api.anthropic.com"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024
    api_version: str = "2023-06-01"


class Settings(BaseModel, frozen=True):
    """Root application configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    public_dir: Path
    temp_dir: Path
    cors_origins: list[str] = ["*"]
    upstream_timeout: Optional[float] = None
    openai: OpenAIConfig = OpenAIConfig()
    elevenlabs: ElevenLabsConfig = ElevenLabsConfig()
    anthropic: AnthropicConfig = AnthropicConfig()


def _parse_origins(raw: str) -> list[str]:
    if raw.strip() == "*":
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Loads configuration from environment variables and the ``.env`` file."""
    if env is None:
        env = load_env_file()

    def value(key: str, default: str = "") -> str:
        return get_env_value(key, env, default) or default

    repo_root = get_repo_root(env)
    timeout = value("MAGOTCHI_UPSTREAM_TIMEOUT")

    return Settings(
        host=value("HOST", "0.0.0.0"),
        port=int(value("PORT", "3000")),
        public_dir=Path(value("MAGOTCHI_PUBLIC_DIR", str(repo_root / "public"))),
        temp_dir=Path(value("MAGOTCHI_TEMP_DIR", tempfile.gettempdir())),
        cors_origins=_parse_origins(value("MAGOTCHI_CORS_ORIGINS", "*")),
        upstream_timeout=float(timeout) if timeout else None,
        openai=OpenAIConfig(
            api_key=value("OPENAI_API_KEY"),
            base_url=value("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            model=value("MAGOTCHI_STT_MODEL", "whisper-1"),
            language=value("MAGOTCHI_STT_LANGUAGE", "ja"),
        ),
        elevenlabs=ElevenLabsConfig(
            api_key=value("ELEVENLABS_API_KEY"),
            base_url=value("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io"),
            voice_id=value("MAGOTCHI_TTS_VOICE_ID", "EXAVITQu4vr4xnSDxMaL"),
            model_id=value("MAGOTCHI_TTS_MODEL", "eleven_multilingual_v2"),
        ),
        anthropic=AnthropicConfig(
            api_key=value("ANTHROPIC_API_KEY"),
            base_url=value("ANTHROPIC_BASE_URL", "https://api.anthropic.com"),
            model=value("MAGOTCHI_LLM_MODEL", "claude-sonnet-4-20250514"),
            max_tokens=int(value("MAGOTCHI_LLM_MAX_TOKENS", "1024")),
        ),
    )
