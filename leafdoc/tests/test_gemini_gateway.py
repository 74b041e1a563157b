"""Tests for the Gemini completion gateway, with the SDK client mocked."""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from leafdoc.errors import GatewayError
from leafdoc.gemini_gateway import GeminiGateway, to_contents
from leafdoc.history import HistoryTurn
from leafdoc.settings import Settings


def _gateway_with_client() -> tuple[GeminiGateway, MagicMock]:
    gateway = GeminiGateway(Settings(gemini_api_key="test-key", gemini_model="gemini-test"))
    client = MagicMock()
    gateway.client = client
    return gateway, client


class TestInitialize:
    """Test GeminiGateway.initialize."""

    def test_missing_key(self):
        with pytest.raises(RuntimeError):
            GeminiGateway(Settings(gemini_api_key=None)).initialize()

    def test_builds_client_with_timeout(self):
        with patch("leafdoc.gemini_gateway.genai.Client") as client_cls:
            gateway = GeminiGateway(
                Settings(gemini_api_key="k", gemini_timeout_seconds=12.5)
            ).initialize()
        assert gateway.client is client_cls.return_value
        kwargs = client_cls.call_args.kwargs
        assert kwargs["api_key"] == "k"
        assert kwargs["http_options"].timeout == 12500

    def test_uninitialized_call_fails(self):
        gateway = GeminiGateway(Settings(gemini_api_key="k"))
        with pytest.raises(GatewayError):
            asyncio.run(gateway.complete_chat("sys", [], "hi"))


class TestToContents:
    """Test to_contents."""

    def test_roles_and_text(self):
        contents = to_contents([
            HistoryTurn(role="user", text="q"),
            HistoryTurn(role="model", text="a"),
        ])
        assert [c.role for c in contents] == ["user", "model"]
        assert [c.parts[0].text for c in contents] == ["q", "a"]


class TestCompleteChat:
    """Test GeminiGateway.complete_chat."""

    def test_sends_history_and_instruction(self):
        gateway, client = _gateway_with_client()
        chat = MagicMock()
        chat.send_message = AsyncMock(return_value=SimpleNamespace(text="Water twice a week."))
        client.aio.chats.create.return_value = chat

        history = [HistoryTurn(role="user", text="Hi"), HistoryTurn(role="model", text="Hello")]
        reply = asyncio.run(gateway.complete_chat("You are a plant doctor.", history, "How much water?"))

        assert reply == "Water twice a week."
        kwargs = client.aio.chats.create.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["config"].system_instruction == "You are a plant doctor."
        assert [c.role for c in kwargs["history"]] == ["user", "model"]
        chat.send_message.assert_awaited_once_with("How much water?")

    def test_sdk_error_becomes_gateway_error(self):
        gateway, client = _gateway_with_client()
        chat = MagicMock()
        chat.send_message = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        client.aio.chats.create.return_value = chat

        with pytest.raises(GatewayError) as exc_info:
            asyncio.run(gateway.complete_chat("sys", [], "hi"))
        assert "quota exceeded" in str(exc_info.value)

    def test_no_text_is_gateway_error(self):
        gateway, client = _gateway_with_client()
        chat = MagicMock()
        chat.send_message = AsyncMock(return_value=SimpleNamespace(text=None))
        client.aio.chats.create.return_value = chat

        with pytest.raises(GatewayError):
            asyncio.run(gateway.complete_chat("sys", [], "hi"))


class TestCompleteVision:
    """Test GeminiGateway.complete_vision."""

    def test_sends_prompt_and_image(self):
        gateway, client = _gateway_with_client()
        client.aio.models.generate_content = AsyncMock(
            return_value=SimpleNamespace(text='{"isPlantLeaf": false}')
        )

        text = asyncio.run(gateway.complete_vision("Analyze this leaf", b"\x89PNG", "image/png"))

        assert text == '{"isPlantLeaf": false}'
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        prompt_part, image_part = kwargs["contents"]
        assert prompt_part.text == "Analyze this leaf"
        assert image_part.inline_data.mime_type == "image/png"
        assert image_part.inline_data.data == b"\x89PNG"

    def test_timeout_becomes_gateway_error(self):
        gateway, client = _gateway_with_client()
        client.aio.models.generate_content = AsyncMock(side_effect=asyncio.TimeoutError())

        with pytest.raises(GatewayError):
            asyncio.run(gateway.complete_vision("p", b"x", "image/png"))
