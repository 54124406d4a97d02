"""Unit tests for the Supabase-backed stores."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import json
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, MagicMock, AsyncMock, patch
from models.conversation import ConversationHistory, FunctionCall, FunctionResponse, Part, Turn, MODEL
from models.user import UserProfile
from services.history_store import HistoryStore, parse_timestamp
from services.user_store import UserProfileStore
from services.event_log import EventLogStore
from services.database import create_database_client


@pytest.fixture
def mock_client():
    """Supabase client whose query builders all resolve through AsyncMock execute()."""
    client = MagicMock()
    table = client.table.return_value
    table.select.return_value.eq.return_value.execute = AsyncMock(return_value=Mock(data=[]))
    table.upsert.return_value.execute = AsyncMock(return_value=Mock(data=[]))
    table.insert.return_value.execute = AsyncMock(return_value=Mock(data=[]))
    return client


def select_execute(client):
    return client.table.return_value.select.return_value.eq.return_value.execute


def upsert_execute(client):
    return client.table.return_value.upsert.return_value.execute


class TestParseTimestamp:
    """Test suite for parse_timestamp."""

    def test_none_and_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_zulu_suffix(self):
        parsed = parse_timestamp("2026-10-19T08:30:00Z")

        assert parsed == datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)

    def test_short_fraction_with_offset(self):
        """Test fractions with fewer than six digits are padded."""
        parsed = parse_timestamp("2026-10-19T08:30:00.12+00:00")

        assert parsed.microsecond == 120000
        assert parsed.utcoffset().total_seconds() == 0

    def test_long_fraction_truncated(self):
        parsed = parse_timestamp("2026-10-19T08:30:00.123456789")

        assert parsed.microsecond == 123456


class TestHistoryStore:
    """Test suite for HistoryStore."""

    @pytest.mark.asyncio
    async def test_get_missing_user(self, mock_client):
        """Test a user without a row has no history."""
        store = HistoryStore(mock_client)

        assert await store.get("U1") is None
        mock_client.table.assert_called_with("chat_histories")
        mock_client.table.return_value.select.return_value.eq.assert_called_with("line_user_id", "U1")

    @pytest.mark.asyncio
    async def test_put_then_get_round_trip(self, mock_client):
        """Test a stored history loads back with the same ordered turns."""
        call = FunctionCall(id="c1", name="get_current_time")
        turns = [
            Turn.user_text("what time is it?"),
            Turn(role=MODEL, parts=(Part(function_call=call),)),
            Turn.tool_results([FunctionResponse(id="c1", name="get_current_time", response={"result": "12:00Z"})]),
            Turn.model_text("It is noon UTC."),
        ]
        store = HistoryStore(mock_client)

        await store.put(ConversationHistory(user_id="U1", turns=turns))

        record, = mock_client.table.return_value.upsert.call_args.args
        assert mock_client.table.return_value.upsert.call_args.kwargs["on_conflict"] == "line_user_id"
        assert record["line_user_id"] == "U1"

        # Simulate the database storing and returning the jsonb column
        select_execute(mock_client).return_value = Mock(data=[json.loads(json.dumps(record))])
        history = await store.get("U1")

        assert history.user_id == "U1"
        assert history.turns == turns
        assert history.updated_at is not None

    @pytest.mark.asyncio
    async def test_get_accepts_serialized_history(self, mock_client):
        """Test rows whose history column holds JSON text are decoded."""
        turns = [Turn.user_text("hi"), Turn.model_text("hello")]
        select_execute(mock_client).return_value = Mock(data=[{
            "line_user_id": "U1",
            "history": json.dumps([t.to_dict() for t in turns]),
            "updated_time": "2026-10-19T08:30:00.5+00:00"
        }])
        store = HistoryStore(mock_client)

        history = await store.get("U1")

        assert history.turns == turns

    @pytest.mark.asyncio
    async def test_put_sets_updated_at(self, mock_client):
        store = HistoryStore(mock_client)
        history = ConversationHistory(user_id="U1", turns=[Turn.user_text("hi")])

        await store.put(history)

        assert history.updated_at is not None
        record = mock_client.table.return_value.upsert.call_args.args[0]
        assert record["updated_time"] == history.updated_at.isoformat()

    @pytest.mark.asyncio
    async def test_get_failure_raises_runtime_error(self, mock_client):
        select_execute(mock_client).side_effect = Exception("connection reset")
        store = HistoryStore(mock_client)

        with pytest.raises(RuntimeError, match="Failed to load history for U1"):
            await store.get("U1")

    @pytest.mark.asyncio
    async def test_put_failure_raises_runtime_error(self, mock_client):
        upsert_execute(mock_client).side_effect = Exception("connection reset")
        store = HistoryStore(mock_client)

        with pytest.raises(RuntimeError, match="Failed to store history for U1"):
            await store.put(ConversationHistory(user_id="U1", turns=[]))


class TestUserProfileStore:
    """Test suite for UserProfileStore."""

    @pytest.mark.asyncio
    async def test_upsert(self, mock_client):
        store = UserProfileStore(mock_client)

        await store.upsert(UserProfile(user_id="U1", display_name="Amy", language="en"))

        mock_client.table.assert_called_with("line_users")
        record = mock_client.table.return_value.upsert.call_args.args[0]
        assert record["user_id"] == "U1"
        assert record["display_name"] == "Amy"
        assert mock_client.table.return_value.upsert.call_args.kwargs["on_conflict"] == "user_id"

    @pytest.mark.asyncio
    async def test_get_existing(self, mock_client):
        select_execute(mock_client).return_value = Mock(data=[{
            "user_id": "U1",
            "display_name": "Amy",
            "picture_url": None,
            "status_message": "rice",
            "language": "zh-TW"
        }])
        store = UserProfileStore(mock_client)

        profile = await store.get("U1")

        assert profile == UserProfile(user_id="U1", display_name="Amy", status_message="rice", language="zh-TW")

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_client):
        store = UserProfileStore(mock_client)

        assert await store.get("U1") is None

    @pytest.mark.asyncio
    async def test_upsert_failure(self, mock_client):
        upsert_execute(mock_client).side_effect = Exception("denied")
        store = UserProfileStore(mock_client)

        with pytest.raises(RuntimeError, match="Failed to upsert profile"):
            await store.upsert(UserProfile(user_id="U1"))


class TestEventLogStore:
    """Test suite for EventLogStore."""

    @pytest.mark.asyncio
    async def test_insert(self, mock_client):
        event = {"type": "message", "source": {"userId": "U1"}, "message": {"type": "text", "text": "hi"}}
        store = EventLogStore(mock_client)

        assert await store.insert(event) is True

        record = mock_client.table.return_value.insert.call_args.args[0]
        assert record["event_type"] == "message"
        assert record["user_id"] == "U1"
        assert record["payload"] == event

    @pytest.mark.asyncio
    async def test_insert_failure_is_swallowed(self, mock_client):
        """Test event logging is best effort."""
        mock_client.table.return_value.insert.return_value.execute.side_effect = Exception("down")
        store = EventLogStore(mock_client)

        assert await store.insert({"type": "follow"}) is False


class TestCreateDatabaseClient:
    """Test suite for create_database_client."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            await create_database_client(None, None)

    @pytest.mark.asyncio
    async def test_creates_client(self):
        with patch('services.database.acreate_client', new_callable=AsyncMock) as mock_create:
            mock_create.return_value = Mock()

            client = await create_database_client("https://example.supabase.co", "key")

        mock_create.assert_awaited_once_with("https://example.supabase.co", "key")
        assert client is mock_create.return_value
