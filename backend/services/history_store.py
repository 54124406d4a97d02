"""Conversation history persistence in Supabase PostgreSQL."""
import json
import logging
from datetime import datetime, timezone
from typing import Optional
from supabase import AsyncClient

from models.conversation import ConversationHistory

logger = logging.getLogger(__name__)


def parse_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp string returned by Supabase.

    Supabase can return timestamps with varying fractional precision, which
    ``fromisoformat()`` rejects on older interpreters, so the fraction is
    normalized to six digits.
    """
    if not timestamp_str:
        return None

    timestamp_str = timestamp_str.replace("Z", "+00:00")
    if "." in timestamp_str:
        head, tail = timestamp_str.split(".", 1)
        fraction = tail
        tz = ""
        for sign in ("+", "-"):
            if sign in tail:
                fraction, offset = tail.split(sign, 1)
                tz = f"{sign}{offset}"
                break
        timestamp_str = f"{head}.{fraction[:6].ljust(6, '0')}{tz}"

    return datetime.fromisoformat(timestamp_str)


class HistoryStore:
    """One conversation history row per user, keyed by user id."""

    def __init__(self, client: AsyncClient, table_name: str = "chat_histories"):
        """
        Args:
            client: Async Supabase client
            table_name: Table with columns line_user_id (PK), history (jsonb), updated_time
        """
        self.client = client
        self.table_name = table_name
        logger.info(f"Initialized HistoryStore with table: {table_name}")

    async def get(self, user_id: str) -> Optional[ConversationHistory]:
        """
        Load the stored history of a user.

        Returns:
            ConversationHistory, or None if the user has no history yet

        Raises:
            RuntimeError: If the database operation fails
        """
        try:
            result = await (
                self.client.table(self.table_name)
                .select("*")
                .eq("line_user_id", user_id)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to load history for {user_id}: {str(e)}"
            logger.error(error_msg, extra={"user_id": user_id})
            raise RuntimeError(error_msg) from e

        if not result.data:
            logger.debug(f"No stored history for {user_id}")
            return None

        row = result.data[0]
        records = row.get("history") or []
        # Rows migrated from a TEXT history column hold the turn list as a JSON string
        if isinstance(records, str):
            records = json.loads(records)

        history = ConversationHistory.from_records(
            user_id=row["line_user_id"],
            records=records,
            updated_at=parse_timestamp(row.get("updated_time"))
        )
        logger.info(f"Loaded {len(history.turns)} turns for {user_id}", extra={"user_id": user_id})
        return history

    async def put(self, history: ConversationHistory) -> None:
        """
        Upsert the full history of a user; repeated puts of the same content are idempotent.

        Raises:
            RuntimeError: If the database operation fails
        """
        history.updated_at = datetime.now(timezone.utc)
        record = {
            "line_user_id": history.user_id,
            "history": history.to_records(),
            "updated_time": history.updated_at.isoformat()
        }

        try:
            await (
                self.client.table(self.table_name)
                .upsert(record, on_conflict="line_user_id")
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to store history for {history.user_id}: {str(e)}"
            logger.error(error_msg, extra={"user_id": history.user_id})
            raise RuntimeError(error_msg) from e

        logger.info(
            f"Stored {len(history.turns)} turns for {history.user_id}",
            extra={"user_id": history.user_id}
        )
