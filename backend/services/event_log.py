"""Audit log of raw webhook events, stored as jsonb documents."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from supabase import AsyncClient

logger = logging.getLogger(__name__)


class EventLogStore:
    """Append-only log of every inbound webhook event. Best effort: failures are logged only."""

    def __init__(self, client: AsyncClient, table_name: str = "line_message_event_logs"):
        self.client = client
        self.table_name = table_name

    async def insert(self, event: Dict[str, Any]) -> bool:
        """
        Store one raw event.

        Returns:
            True if the event was stored
        """
        record = {
            "event_type": event.get("type"),
            "user_id": (event.get("source") or {}).get("userId"),
            "payload": event,
            "created_time": datetime.now(timezone.utc).isoformat()
        }
        try:
            await self.client.table(self.table_name).insert(record).execute()
        except Exception as e:
            logger.error(
                f"Error inserting event log: {e}",
                extra={"event_type": record["event_type"], "user_id": record["user_id"]}
            )
            return False

        logger.debug(f"Inserted event log: type={record['event_type']}")
        return True
