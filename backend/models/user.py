"""User profile data models."""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class UserProfile:
    """Identity and personalization attributes of a chat platform user."""
    user_id: str
    display_name: str = ""
    picture_url: Optional[str] = None
    status_message: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def from_line_profile(cls, data: Dict[str, Any]) -> "UserProfile":
        """Build a profile from a LINE ``/profile/{userId}`` response body."""
        return cls(
            user_id=data["userId"],
            display_name=data.get("displayName") or "",
            picture_url=data.get("pictureUrl"),
            status_message=data.get("statusMessage"),
            language=data.get("language"),
        )

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Attributes exposed to the model in the system instruction."""
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "pictureUrl": self.picture_url,
            "statusMessage": self.status_message,
            "language": self.language,
        }
