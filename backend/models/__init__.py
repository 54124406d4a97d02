"""Data models for the Farm Steward chat bot."""
from .conversation import (
    USER,
    MODEL,
    TOOL,
    SUMMARY_MARKER,
    FunctionCall,
    FunctionResponse,
    Part,
    Turn,
    ConversationHistory,
    new_turns,
)
from .user import UserProfile
from .api import WebhookRequest, ChatRequest, ChatResponse

__all__ = [
    "USER",
    "MODEL",
    "TOOL",
    "SUMMARY_MARKER",
    "FunctionCall",
    "FunctionResponse",
    "Part",
    "Turn",
    "ConversationHistory",
    "new_turns",
    "UserProfile",
    "WebhookRequest",
    "ChatRequest",
    "ChatResponse",
]
