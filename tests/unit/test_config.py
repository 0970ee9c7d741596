"""Unit tests for environment helpers and settings loading."""

from pathlib import Path

from magotchi.config import load_settings
from magotchi.env import credential_status, get_env_value, load_env_file


def test_get_env_value_prefers_os_environ(monkeypatch):
    monkeypatch.setenv("MAGOTCHI_TEST_KEY", "from-os")
    assert get_env_value("MAGOTCHI_TEST_KEY", {"MAGOTCHI_TEST_KEY": "from-file"}) == "from-os"


def test_get_env_value_falls_back_to_mapping_then_default(monkeypatch):
    monkeypatch.delenv("MAGOTCHI_TEST_KEY", raising=False)
    assert get_env_value("MAGOTCHI_TEST_KEY", {"MAGOTCHI_TEST_KEY": "from-file"}) == "from-file"
    assert get_env_value("MAGOTCHI_TEST_KEY", {}, "fallback") == "fallback"


def test_load_env_file_parses_quotes_and_comments(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\n"
        "OPENAI_API_KEY=sk-plain\n"
        'ANTHROPIC_API_KEY="sk-ant-quoted"\n'
        "export ELEVENLABS_API_KEY='xi-single'\n"
        "not a pair\n",
        encoding="utf-8",
    )

    env = load_env_file(str(env_file))

    assert env == {
        "OPENAI_API_KEY": "sk-plain",
        "ANTHROPIC_API_KEY": "sk-ant-quoted",
        "ELEVENLABS_API_KEY": "xi-single",
    }


def test_load_env_file_missing(tmp_path):
    assert load_env_file(str(tmp_path / "absent.env")) == {}


def test_credential_status_treats_empty_as_missing(monkeypatch):
    for key in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "ELEVENLABS_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "")

    status = credential_status({"ANTHROPIC_API_KEY": "sk-ant"})

    assert status == {"openai": False, "anthropic": True, "elevenlabs": False}


def test_load_settings_defaults(monkeypatch, tmp_path):
    for key in (
        "PORT",
        "HOST",
        "OPENAI_API_KEY",
        "MAGOTCHI_PUBLIC_DIR",
        "MAGOTCHI_UPSTREAM_TIMEOUT",
        "MAGOTCHI_CORS_ORIGINS",
        "MAGOTCHI_LLM_MODEL",
        "MAGOTCHI_TTS_VOICE_ID",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MAGOTCHI_REPO_ROOT", str(tmp_path))

    settings = load_settings({})

    assert settings.port == 3000
    assert settings.host == "0.0.0.0"
    assert settings.public_dir == Path(tmp_path) / "public"
    assert settings.upstream_timeout is None
    assert settings.cors_origins == ["*"]
    assert settings.openai.api_key == ""
    assert settings.openai.model == "whisper-1"
    assert settings.openai.language == "ja"
    assert settings.elevenlabs.voice_id == "EXAVITQu4vr4xnSDxMaL"
    assert settings.elevenlabs.stability == 0.5
    assert settings.elevenlabs.similarity_boost == 0.75
    assert settings.anthropic.model == "claude-sonnet-4-20250514"
    assert settings.anthropic.max_tokens == 1024


def test_load_settings_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.setenv("MAGOTCHI_CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("MAGOTCHI_UPSTREAM_TIMEOUT", "12.5")
    monkeypatch.setenv("MAGOTCHI_TEMP_DIR", str(tmp_path))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    settings = load_settings({"ANTHROPIC_API_KEY": "sk-ant-file"})

    assert settings.port == 8123
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.upstream_timeout == 12.5
    assert settings.temp_dir == tmp_path
    assert settings.anthropic.api_key == "sk-ant-file"
