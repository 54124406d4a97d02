"""Unit tests for LineClient."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import json
import httpx
import pytest
from models.conversation import Turn
from services.line_client import LineClient, MAX_REPLY_MESSAGES, MAX_TEXT_LENGTH

API_BASE = "https://api.line.me/v2/bot"


def line_client(handler):
    """LineClient whose HTTP traffic goes to ``handler``."""
    http = httpx.AsyncClient(
        base_url=API_BASE,
        transport=httpx.MockTransport(handler),
        headers={"Authorization": "Bearer test_token"}
    )
    return LineClient(access_token="test_token", http_client=http)


class TestLineClient:
    """Test suite for LineClient class."""

    def test_initialization_without_token_raises_error(self):
        with pytest.raises(ValueError, match="LINE_CHANNEL_ACCESS_TOKEN must be provided"):
            LineClient(access_token=None)

    def test_default_client_sends_bearer_token(self):
        client = LineClient(access_token="secret")

        assert client.http.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_reply_message_success(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={})

        client = line_client(handler)
        messages = [{"type": "text", "text": "hi"}]

        assert await client.reply_message("token-1", messages) is True

        assert requests[0].method == "POST"
        assert requests[0].url.path == "/v2/bot/message/reply"
        assert json.loads(requests[0].content) == {"replyToken": "token-1", "messages": messages}

    @pytest.mark.asyncio
    async def test_reply_message_rejected(self):
        client = line_client(lambda request: httpx.Response(400, json={"message": "Invalid reply token"}))

        assert await client.reply_message("expired", [{"type": "text", "text": "hi"}]) is False

    @pytest.mark.asyncio
    async def test_reply_message_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = line_client(handler)

        assert await client.reply_message("token-1", [{"type": "text", "text": "hi"}]) is False

    @pytest.mark.asyncio
    async def test_get_user_profile(self):
        def handler(request):
            assert request.url.path == "/v2/bot/profile/U123"
            return httpx.Response(200, json={"userId": "U123", "displayName": "Amy", "language": "en"})

        client = line_client(handler)

        profile = await client.get_user_profile("U123")

        assert profile.user_id == "U123"
        assert profile.display_name == "Amy"
        assert profile.language == "en"

    @pytest.mark.asyncio
    async def test_get_user_profile_not_found(self):
        client = line_client(lambda request: httpx.Response(404, json={"message": "Not found"}))

        assert await client.get_user_profile("U404") is None

    @pytest.mark.asyncio
    async def test_close(self):
        client = line_client(lambda request: httpx.Response(200, json={}))

        await client.close()

        assert client.http.is_closed


class TestRenderTurns:
    """Test suite for LineClient.render_turns."""

    def test_skips_blank_turns(self):
        messages = LineClient.render_turns([Turn.model_text("  "), Turn.model_text(" Water at dawn. ")])

        assert messages == [{"type": "text", "text": "Water at dawn."}]

    def test_truncates_long_text(self):
        messages = LineClient.render_turns([Turn.model_text("a" * (MAX_TEXT_LENGTH + 10))])

        assert len(messages[0]["text"]) == MAX_TEXT_LENGTH

    def test_keeps_latest_messages_within_limit(self):
        turns = [Turn.model_text(f"reply {i}") for i in range(MAX_REPLY_MESSAGES + 2)]

        messages = LineClient.render_turns(turns)

        assert len(messages) == MAX_REPLY_MESSAGES
        assert messages[-1]["text"] == f"reply {MAX_REPLY_MESSAGES + 1}"
