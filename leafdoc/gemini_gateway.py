"""
Gemini completion gateway.

The only piece of the service that talks to the network. Handlers depend on
the CompletionGateway protocol; GeminiGateway is the production
implementation, built once at startup and handed to the app.
"""
import logging
import time
from typing import Optional, Protocol, Sequence

from google import genai
from google.genai import types

from .errors import GatewayError
from .history import HistoryTurn
from .settings import Settings

logger = logging.getLogger(__name__)


class CompletionGateway(Protocol):
    async def complete_chat(
        self,
        system_instruction: str,
        history: Sequence[HistoryTurn],
        message: str,
    ) -> str:
        ...

    async def complete_vision(self, prompt_text: str, image_bytes: bytes, mime_type: str) -> str:
        ...


def to_contents(history: Sequence[HistoryTurn]) -> list[types.Content]:
    """Convert normalized history into Gemini chat contents."""
    return [
        types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
        for turn in history
    ]


class GeminiGateway:
    """CompletionGateway backed by the google-genai async client.

    No retries: a failed call surfaces as GatewayError immediately.
    """

    def __init__(self, settings: Settings):
        self.client: Optional[genai.Client] = None
        self.model_name = settings.gemini_model
        self._api_key = settings.gemini_api_key
        self._timeout_seconds = settings.gemini_timeout_seconds

    def initialize(self):
        """Create the Gemini client with timeout configuration."""
        if not self._api_key:
            raise RuntimeError(
                "No Gemini API key found. Set GEMINI_API_KEY or GOOGLE_API_KEY "
                "environment variable."
            )
        timeout_ms = int(self._timeout_seconds * 1000)
        self.client = genai.Client(
            api_key=self._api_key,
            http_options=types.HttpOptions(timeout=timeout_ms),
        )
        logger.info(f"Gemini gateway initialized with model: {self.model_name} (timeout: {self._timeout_seconds}s)")
        return self

    def _require_client(self) -> genai.Client:
        if self.client is None:
            raise GatewayError("Gemini gateway not initialized")
        return self.client

    async def complete_chat(
        self,
        system_instruction: str,
        history: Sequence[HistoryTurn],
        message: str,
    ) -> str:
        client = self._require_client()
        start = time.time()
        try:
            chat = client.aio.chats.create(
                model=self.model_name,
                config=types.GenerateContentConfig(system_instruction=system_instruction),
                history=to_contents(history),
            )
            response = await chat.send_message(message)
        except Exception as e:
            logger.error(f"Gemini chat call failed: {type(e).__name__}: {e}")
            raise GatewayError(f"Chat completion failed: {e}") from e

        return self._response_text(response, "chat", start)

    async def complete_vision(self, prompt_text: str, image_bytes: bytes, mime_type: str) -> str:
        client = self._require_client()
        start = time.time()
        try:
            response = await client.aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part(text=prompt_text),
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                ],
            )
        except Exception as e:
            logger.error(f"Gemini vision call failed: {type(e).__name__}: {e}")
            raise GatewayError(f"Vision completion failed: {e}") from e

        return self._response_text(response, "vision", start)

    @staticmethod
    def _response_text(response, kind: str, start: float) -> str:
        text = response.text
        if text is None:
            # Blocked or empty candidates
            raise GatewayError(f"Gemini {kind} call returned no text")
        logger.info(f"Gemini {kind} response: {len(text)} chars in {(time.time() - start) * 1000:.0f}ms")
        return text
