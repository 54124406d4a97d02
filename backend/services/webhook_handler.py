"""Handling of individual LINE webhook events."""
import logging
from typing import Any, Dict, Optional

from models.user import UserProfile
from services.conversation_manager import ConversationManager
from services.event_log import EventLogStore
from services.line_client import LineClient, UNSUPPORTED_MESSAGE_REPLY
from services.user_store import UserProfileStore

logger = logging.getLogger(__name__)


class WebhookHandler:
    """Routes webhook events to the conversation manager and delivers replies."""

    def __init__(
        self,
        conversation_manager: ConversationManager,
        line_client: LineClient,
        user_store: UserProfileStore,
        event_log: Optional[EventLogStore] = None
    ):
        self.conversation_manager = conversation_manager
        self.line_client = line_client
        self.user_store = user_store
        self.event_log = event_log

    async def handle_event(self, event: Dict[str, Any]) -> None:
        """
        Handle one event. Never raises: failures are logged and the event gets no reply.
        """
        event_type = event.get("type")
        logger.info(f"Handling event: {event_type}", extra={"event_type": event_type})

        if self.event_log is not None:
            await self.event_log.insert(event)

        reply_token = event.get("replyToken")
        message = event.get("message") or {}
        if event_type != "message" or message.get("type") != "text":
            if reply_token:
                await self.line_client.reply_message(reply_token, UNSUPPORTED_MESSAGE_REPLY)
            return

        user_id = (event.get("source") or {}).get("userId")
        if not user_id:
            logger.warning("Ignoring text message without a user id", extra={"event_type": event_type})
            return

        try:
            profile = await self._resolve_profile(user_id)
            turns = await self.conversation_manager.handle_message(user_id, message.get("text", ""), profile)
        except Exception as e:
            logger.error(f"Failed to handle message: {e}", exc_info=True, extra={"user_id": user_id})
            return

        messages = LineClient.render_turns(turns)
        if not messages:
            logger.warning("No reply text produced", extra={"user_id": user_id})
            return
        if reply_token:
            await self.line_client.reply_message(reply_token, messages)

    async def _resolve_profile(self, user_id: str) -> UserProfile:
        """Fetch the platform profile and persist it; fall back to the stored one."""
        profile = await self.line_client.get_user_profile(user_id)
        if profile is not None:
            await self.user_store.upsert(profile)
            return profile

        logger.warning("Platform profile unavailable, using stored profile", extra={"user_id": user_id})
        stored = await self.user_store.get(user_id)
        if stored is not None:
            return stored

        # The history row references the user row, so the user must exist
        profile = UserProfile(user_id=user_id)
        await self.user_store.upsert(profile)
        return profile
