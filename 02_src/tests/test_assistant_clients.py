"""Tests for assistant client strategies and connectivity probes."""

import json
import random
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from chat_session.assistant import (
    AnthropicAssistantClient,
    AssistantRequest,
    HttpAssistantClient,
    HttpConnectivityProbe,
    SimulatedAssistantClient,
    StaticConnectivityProbe,
)
from chat_session.assistant.http_client import FALLBACK_REPLY
from chat_session.assistant.simulated import SIMULATED_MODEL
from chat_session.errors import RequestFailed
from chat_session.models import Connectivity, SessionContext


def make_request(**kwargs):
    defaults = {"message": "Hello", "user_id": "user1"}
    defaults.update(kwargs)
    return AssistantRequest(**defaults)


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpAssistantClient:
    """Tests for HttpAssistantClient."""

    @pytest.mark.asyncio
    async def test_posts_payload_and_parses_reply(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "response": "Hi there",
                    "conversationId": "conv-9",
                    "model": "gpt-x",
                    "tokens": 17,
                    "processingTime": 250,
                },
            )

        client = HttpAssistantClient("https://api.example.com/", client=mock_client(handler))
        reply = await client.request(
            make_request(
                conversation_id="conv-9",
                attachments=[{"id": "a1", "name": "doc.pdf", "type": "application/pdf", "url": "u"}],
                metadata={"userPlan": "free"},
            )
        )

        assert seen["path"] == "/chat"
        assert seen["auth"] == "Bearer user1"
        assert seen["body"]["userId"] == "user1"
        assert seen["body"]["conversationId"] == "conv-9"
        assert seen["body"]["files"][0]["name"] == "doc.pdf"
        assert reply.text == "Hi there"
        assert reply.conversation_id == "conv-9"
        assert reply.model_name == "gpt-x"
        assert reply.token_count == 17
        assert reply.latency_ms == 250
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_reply_uses_fallback(self):
        client = HttpAssistantClient(
            "https://api.example.com", client=mock_client(lambda r: httpx.Response(200, json={}))
        )
        reply = await client.request(make_request())
        assert reply.text == FALLBACK_REPLY
        await client.close()

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        client = HttpAssistantClient(
            "https://api.example.com",
            client=mock_client(lambda r: httpx.Response(503, text="overloaded")),
        )
        with pytest.raises(RequestFailed) as exc_info:
            await client.request(make_request())
        assert "503" in exc_info.value.message
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = HttpAssistantClient("https://api.example.com", client=mock_client(handler))
        with pytest.raises(RequestFailed) as exc_info:
            await client.request(make_request())
        assert isinstance(exc_info.value.cause, httpx.ConnectTimeout)
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        client = HttpAssistantClient(
            "https://api.example.com",
            client=mock_client(lambda r: httpx.Response(200, text="<html>")),
        )
        with pytest.raises(RequestFailed):
            await client.request(make_request())
        await client.close()


class TestSimulatedAssistantClient:
    """Tests for SimulatedAssistantClient."""

    @pytest.mark.asyncio
    async def test_canned_reply(self):
        client = SimulatedAssistantClient(delay_s=(0, 0), rng=random.Random(1))
        reply = await client.request(make_request(conversation_id="conv-1"))

        assert reply.text
        assert reply.model_name == SIMULATED_MODEL
        assert reply.conversation_id == "conv-1"
        assert 50 <= reply.token_count <= 200

    @pytest.mark.asyncio
    async def test_mentions_files(self):
        client = SimulatedAssistantClient(delay_s=(0, 0))
        reply = await client.request(
            make_request(attachments=[{"name": "a.png"}, {"name": "b.pdf"}])
        )
        assert "2 file(s)" in reply.text
        assert "a.png, b.pdf" in reply.text


class TestAnthropicAssistantClient:
    """Tests for AnthropicAssistantClient."""

    def test_init_without_api_key(self, monkeypatch):
        """Test initialization without API key raises error."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with patch("chat_session.assistant.anthropic_client.anthropic.AsyncAnthropic"):
            with pytest.raises(ValueError):
                AnthropicAssistantClient()

    @pytest.mark.asyncio
    async def test_request_returns_reply_and_keeps_history(self, monkeypatch):
        """Test that follow-up turns carry the earlier exchange."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")

        client_mock = Mock()
        response = Mock()
        response.content = [Mock(text="Claude says hi")]
        response.model = "claude-test"
        response.usage = Mock(output_tokens=12)
        client_mock.messages.create = AsyncMock(return_value=response)

        with patch(
            "chat_session.assistant.anthropic_client.anthropic.AsyncAnthropic",
            return_value=client_mock,
        ):
            client = AnthropicAssistantClient()
            first = await client.request(make_request())
            await client.request(make_request(message="And again", conversation_id=first.conversation_id))

        assert first.text == "Claude says hi"
        assert first.model_name == "claude-test"
        assert first.token_count == 12
        assert first.conversation_id.startswith("conv-")

        second_call = client_mock.messages.create.await_args_list[1].kwargs
        assert [m["role"] for m in second_call["messages"]] == ["user", "assistant", "user"]
        assert second_call["messages"][-1]["content"] == "And again"

    @pytest.mark.asyncio
    async def test_attachments_listed_in_prompt(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")

        client_mock = Mock()
        response = Mock()
        response.content = [Mock(text="ok")]
        client_mock.messages.create = AsyncMock(return_value=response)

        with patch(
            "chat_session.assistant.anthropic_client.anthropic.AsyncAnthropic",
            return_value=client_mock,
        ):
            client = AnthropicAssistantClient()
            await client.request(
                make_request(attachments=[{"name": "chart.png", "type": "image/png"}])
            )

        sent = client_mock.messages.create.await_args.kwargs["messages"][-1]["content"]
        assert "chart.png (image/png)" in sent

    @pytest.mark.asyncio
    async def test_least_recent_conversation_forgotten(self, monkeypatch):
        """Test that only the most recently used conversations keep history."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")

        client_mock = Mock()
        response = Mock()
        response.content = [Mock(text="ok")]
        client_mock.messages.create = AsyncMock(return_value=response)

        with patch(
            "chat_session.assistant.anthropic_client.anthropic.AsyncAnthropic",
            return_value=client_mock,
        ):
            client = AnthropicAssistantClient(max_conversations=2)
            for conversation_id in ("conv-a", "conv-b", "conv-c"):
                await client.request(make_request(conversation_id=conversation_id))
            await client.request(make_request(message="still there?", conversation_id="conv-c"))
            await client.request(make_request(message="hello again", conversation_id="conv-a"))

        calls = client_mock.messages.create.await_args_list
        assert len(calls[3].kwargs["messages"]) == 3
        assert len(calls[4].kwargs["messages"]) == 1
        assert len(client._history) == 2

    @pytest.mark.asyncio
    async def test_api_error_becomes_request_failed(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")

        client_mock = Mock()
        client_mock.messages.create = AsyncMock(side_effect=RuntimeError("overloaded"))

        with patch(
            "chat_session.assistant.anthropic_client.anthropic.AsyncAnthropic",
            return_value=client_mock,
        ):
            client = AnthropicAssistantClient()
            with pytest.raises(RequestFailed):
                await client.request(make_request())


class TestConnectivityProbes:
    """Tests for connectivity probes."""

    @pytest.mark.asyncio
    async def test_http_probe_online(self):
        probe = HttpConnectivityProbe(
            "https://api.example.com",
            client=mock_client(lambda r: httpx.Response(200, json={"status": "ok"})),
        )
        context = SessionContext(session_id="s1")

        assert await probe.probe(context) is Connectivity.ONLINE
        assert context.connectivity is Connectivity.ONLINE
        await probe.close()

    @pytest.mark.asyncio
    async def test_http_probe_degraded_on_error_status(self):
        probe = HttpConnectivityProbe(
            "https://api.example.com",
            client=mock_client(lambda r: httpx.Response(500)),
        )
        context = SessionContext(session_id="s1")

        assert await probe.probe(context) is Connectivity.DEGRADED
        await probe.close()

    @pytest.mark.asyncio
    async def test_http_probe_degraded_on_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        probe = HttpConnectivityProbe("https://api.example.com", client=mock_client(handler))
        context = SessionContext(session_id="s1")

        assert await probe.probe(context) is Connectivity.DEGRADED
        await probe.close()

    @pytest.mark.asyncio
    async def test_static_probe(self):
        context = SessionContext(session_id="s1")
        await StaticConnectivityProbe(Connectivity.OFFLINE).probe(context)
        assert context.connectivity is Connectivity.OFFLINE
