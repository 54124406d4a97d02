"""API request and response models."""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class WebhookRequest(BaseModel):
    """Body of a LINE Messaging API webhook call."""
    destination: Optional[str] = None
    events: Optional[List[Dict[str, Any]]] = None


class ChatRequest(BaseModel):
    """Direct chat request, bypassing the messaging platform."""
    user_id: str = Field(..., min_length=1)
    message: str
    display_name: str = ""
    language: Optional[str] = None


class ChatResponse(BaseModel):
    """Reply texts produced for a direct chat request."""
    user_id: str
    replies: List[str]
