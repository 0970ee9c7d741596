"""Magotchi: voice assistant proof-of-concept backend.

This package provides:
- Speech-to-text (STT) proxying to OpenAI transcriptions
- Text-to-speech (TTS) proxying to ElevenLabs
- Conversational replies from Anthropic, plain or streamed as SSE
- Static hosting for the browser front-end

Every endpoint is stateless; nothing outlives the request that created it.
"""

__version__ = "0.1.0"
