"""LINE Messaging API client: profile lookup and reply delivery."""
import logging
from typing import Any, Dict, List, Optional, Sequence
import httpx

from config import LINE_API_BASE, LINE_CHANNEL_ACCESS_TOKEN
from models.conversation import Turn
from models.user import UserProfile

logger = logging.getLogger(__name__)

# Limits imposed by the reply endpoint
MAX_REPLY_MESSAGES = 5
MAX_TEXT_LENGTH = 5000

UNSUPPORTED_MESSAGE_REPLY = [
    {"type": "sticker", "packageId": "11537", "stickerId": "52002770"},
    {"type": "text", "text": "Sorry, I can only understand text messages for now."}
]


class LineClient:
    """Thin async wrapper over the LINE Messaging API."""

    def __init__(
        self,
        access_token: Optional[str] = LINE_CHANNEL_ACCESS_TOKEN,
        api_base: str = LINE_API_BASE,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Args:
            access_token: Channel access token
            api_base: Messaging API base URL
            timeout: Request timeout in seconds
            http_client: Preconfigured client (mainly for tests)

        Raises:
            ValueError: If no access token is available
        """
        if not access_token:
            raise ValueError("LINE_CHANNEL_ACCESS_TOKEN must be provided or set in environment")

        self.http = http_client or httpx.AsyncClient(
            base_url=api_base,
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {access_token}"
            }
        )

    async def close(self) -> None:
        await self.http.aclose()

    async def reply_message(self, reply_token: str, messages: List[Dict[str, Any]]) -> bool:
        """
        Reply to an event. Failures are logged and not retried.

        Returns:
            True if the platform accepted the reply
        """
        try:
            response = await self.http.post(
                "/message/reply",
                json={"replyToken": reply_token, "messages": messages}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Error replying message: {e.response.status_code} {e.response.text}")
            return False
        except httpx.RequestError as e:
            logger.error(f"Error replying message: {e}")
            return False

        logger.info(f"Replied with {len(messages)} messages")
        return True

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        """Fetch a user's profile, or None if it cannot be retrieved."""
        try:
            response = await self.http.get(f"/profile/{user_id}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Error getting user profile: {e.response.status_code} {e.response.text}",
                extra={"user_id": user_id}
            )
            return None
        except httpx.RequestError as e:
            logger.error(f"Error getting user profile: {e}", extra={"user_id": user_id})
            return None

        return UserProfile.from_line_profile(response.json())

    @staticmethod
    def render_turns(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
        """Render reply turns as LINE text messages, within the reply endpoint's limits."""
        messages = []
        for turn in turns:
            text = turn.text.strip()
            if text:
                messages.append({"type": "text", "text": text[:MAX_TEXT_LENGTH]})

        if len(messages) > MAX_REPLY_MESSAGES:
            # Keep the latest ones; the final answer comes last
            logger.warning(f"Dropping {len(messages) - MAX_REPLY_MESSAGES} reply messages over the limit")
        return messages[-MAX_REPLY_MESSAGES:]
