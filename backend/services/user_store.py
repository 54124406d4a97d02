"""User profile persistence in Supabase PostgreSQL."""
import logging
from typing import Optional
from supabase import AsyncClient

from models.user import UserProfile

logger = logging.getLogger(__name__)


class UserProfileStore:
    """Stores the latest known profile of each platform user."""

    def __init__(self, client: AsyncClient, table_name: str = "line_users"):
        self.client = client
        self.table_name = table_name

    async def upsert(self, profile: UserProfile) -> None:
        """
        Insert or refresh a user's profile.

        Raises:
            RuntimeError: If the database operation fails
        """
        record = {
            "user_id": profile.user_id,
            "display_name": profile.display_name,
            "picture_url": profile.picture_url,
            "status_message": profile.status_message,
            "language": profile.language
        }
        try:
            await self.client.table(self.table_name).upsert(record, on_conflict="user_id").execute()
        except Exception as e:
            error_msg = f"Failed to upsert profile for {profile.user_id}: {str(e)}"
            logger.error(error_msg, extra={"user_id": profile.user_id})
            raise RuntimeError(error_msg) from e

        logger.debug(f"Upserted profile for {profile.user_id}")

    async def get(self, user_id: str) -> Optional[UserProfile]:
        try:
            result = await self.client.table(self.table_name).select("*").eq("user_id", user_id).execute()
        except Exception as e:
            error_msg = f"Failed to load profile for {user_id}: {str(e)}"
            logger.error(error_msg, extra={"user_id": user_id})
            raise RuntimeError(error_msg) from e

        if not result.data:
            return None
        row = result.data[0]
        return UserProfile(
            user_id=row["user_id"],
            display_name=row.get("display_name") or "",
            picture_url=row.get("picture_url"),
            status_message=row.get("status_message"),
            language=row.get("language")
        )
