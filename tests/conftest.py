"""Shared test fixtures for Magotchi tests.

Route tests run against ``create_app`` with in-process fake providers, so
no test touches the network.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from magotchi.config import Settings
from magotchi.main import create_app
from tests.fakes import FakeConversation, FakeSynthesizer, FakeTranscriber


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "public"
    directory.mkdir()
    (directory / "index.html").write_text("<html>index</html>", encoding="utf-8")
    (directory / "app.js").write_text("console.log('hi');", encoding="utf-8")
    return directory


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "scratch"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(public_dir: Path, scratch_dir: Path) -> Settings:
    return Settings(public_dir=public_dir, temp_dir=scratch_dir)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def conversation() -> FakeConversation:
    return FakeConversation()


@pytest.fixture
def test_client(settings, transcriber, synthesizer, conversation) -> TestClient:
    """Provide a FastAPI test client wired to fake providers."""
    app = create_app(
        settings,
        transcriber=transcriber,
        synthesizer=synthesizer,
        conversation=conversation,
    )
    return TestClient(app)
