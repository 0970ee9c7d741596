"""Main FastAPI application for the Magotchi PoC backend.

Proxies the browser front-end to three vendor APIs (speech-to-text,
text-to-speech, conversation) and serves the pre-built static files.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import (
    FileResponse,
    JSONResponse,
    PlainTextResponse,
    Response,
    StreamingResponse,
)
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from magotchi import __version__
from magotchi.config import Settings, load_settings
from magotchi.env import credential_status
from magotchi.errors import MagotchiError, UpstreamError
from magotchi.llm import AnthropicProvider, ConversationProvider
from magotchi.services import (
    generate_reply,
    health_report,
    stream_reply,
    synthesize_speech,
    transcribe_audio,
)
from magotchi.stt_provider import OpenAITranscriber, Transcriber
from magotchi.tts_provider import AUDIO_MEDIA_TYPE, ElevenLabsSynthesizer, SpeechSynthesizer

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

DEBUG_PAGE = "poc-1.html"
SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


# Request/Response Models
class SynthesizeRequest(BaseModel):
    text: Optional[str] = Field(default=None, description="Text to synthesize")


class ChatRequest(BaseModel):
    message: Optional[str] = Field(default=None, description="User utterance")
    stream: bool = Field(default=False, description="Stream deltas as SSE")


class TextResponse(BaseModel):
    text: str = Field(..., description="Recognized or generated text")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Always 'ok' while the process is up")
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")
    env: Dict[str, bool] = Field(..., description="Credential presence per provider")


class SSEResponse(StreamingResponse):
    """Event stream whose body is always closed, even if it was never sent."""

    media_type = "text/event-stream"

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()

def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.transcriber


def get_synthesizer(request: Request) -> SpeechSynthesizer:
    return request.app.state.synthesizer


def get_conversation(request: Request) -> ConversationProvider:
    return request.app.state.conversation


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def magotchi_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, MagotchiError)
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.error("%s %s rejected: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=400, content={"error": detail})


def _log_startup(settings: Settings) -> None:
    public_dir = settings.public_dir
    logger.info("Static files from: %s", public_dir)
    logger.info("Public dir exists: %s", public_dir.is_dir())
    if public_dir.is_dir():
        names = sorted(entry.name for entry in public_dir.iterdir())
        logger.info("Files in public: %s", ", ".join(names))
    for name, present in credential_status().items():
        logger.info("API key %-10s %s", name, "set" if present else "missing")


def create_app(
    settings: Optional[Settings] = None,
    *,
    transcriber: Optional[Transcriber] = None,
    synthesizer: Optional[SpeechSynthesizer] = None,
    conversation: Optional[ConversationProvider] = None,
) -> FastAPI:
    """Build the application; providers default to the real vendor clients."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore
        logger.info("Starting Magotchi API on port %d...", settings.port)
        _log_startup(settings)
        yield
        logger.info("Shutting down Magotchi API...")

    app = FastAPI(
        title="Magotchi API",
        version=__version__,
        description="Voice assistant PoC: STT, TTS and conversation proxy",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.transcriber = transcriber or OpenAITranscriber(
        settings.openai, timeout=settings.upstream_timeout
    )
    app.state.synthesizer = synthesizer or ElevenLabsSynthesizer(
        settings.elevenlabs, timeout=settings.upstream_timeout
    )
    app.state.conversation = conversation or AnthropicProvider(
        settings.anthropic, timeout=settings.upstream_timeout
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MagotchiError, magotchi_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(_build_router())
    _mount_static(app, settings)
    return app


def _build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/favicon.ico", include_in_schema=False)
    async def favicon() -> Response:
        return Response(status_code=204)

    @router.get(f"/{DEBUG_PAGE}", include_in_schema=False)
    async def debug_page(settings: Settings = Depends(get_settings)) -> Response:
        file_path = settings.public_dir / DEBUG_PAGE
        logger.info("Serving %s from: %s", DEBUG_PAGE, file_path)
        if file_path.is_file():
            return FileResponse(file_path)
        return PlainTextResponse(f"File not found: {file_path}", status_code=404)

    @router.get("/api/health", response_model=HealthResponse)
    async def health() -> Dict[str, Any]:
        """Report whether each provider credential is present (not whether it is valid)."""
        return health_report()

    @router.post("/api/transcribe", response_model=TextResponse)
    async def transcribe(
        audio: Optional[UploadFile] = File(default=None),
        transcriber: Transcriber = Depends(get_transcriber),
        settings: Settings = Depends(get_settings),
    ) -> Dict[str, str]:
        """Convert an uploaded recording to text.

        The upload is copied to a scratch file for the provider and removed
        again before the response is sent.
        """
        try:
            audio_bytes = await audio.read() if audio is not None else None
            return await transcribe_audio(
                transcriber,
                audio_bytes,
                temp_dir=settings.temp_dir,
                filename=audio.filename if audio is not None else None,
                content_type=audio.content_type if audio is not None else None,
            )
        except MagotchiError:
            raise
        except Exception as exc:
            logger.error("Transcription error: %s", str(exc))
            raise UpstreamError(str(exc) or "音声認識に失敗しました") from exc

    @router.post("/api/synthesize")
    async def synthesize(
        request: SynthesizeRequest,
        synthesizer: SpeechSynthesizer = Depends(get_synthesizer),
    ) -> Response:
        """Return synthesized speech as MP3 bytes."""
        try:
            audio_bytes = await synthesize_speech(synthesizer, request.text)
        except MagotchiError:
            raise
        except Exception as exc:
            logger.error("Synthesis error: %s", str(exc))
            raise UpstreamError(str(exc) or "音声合成に失敗しました") from exc
        return Response(content=audio_bytes, media_type=AUDIO_MEDIA_TYPE)

    @router.post("/api/chat", response_model=None)
    async def chat(
        request: ChatRequest,
        conversation: ConversationProvider = Depends(get_conversation),
    ) -> Any:
        """Talk to the persona, either as one JSON reply or as an SSE stream."""
        try:
            if request.stream:
                frames = await stream_reply(conversation, request.message)
                return SSEResponse(frames, headers=SSE_HEADERS)
            return await generate_reply(conversation, request.message)
        except MagotchiError:
            raise
        except Exception as exc:
            logger.error("Chat error: %s", str(exc))
            raise UpstreamError(str(exc) or "会話処理に失敗しました") from exc

    return router


def _mount_static(app: FastAPI, settings: Settings) -> None:
    if not settings.public_dir.is_dir():
        logger.warning("Public dir %s not found; static files disabled", settings.public_dir)
        return
    app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="static")


app = create_app()


def main() -> None:
    """Entry point for running the Magotchi server."""
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
