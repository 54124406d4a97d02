"""Services for the Farm Steward chat bot."""
from .llm_client import LLMClient, ChatSession, LLMResponse, LLMError, LLMClientError
from .round_splitter import RoundSplit, split_by_rounds
from .summarizer import Summarizer
from .tool_registry import Tool, ToolRegistry
from .tools import WeatherTool, get_current_time, build_default_registry
from .database import create_database_client
from .history_store import HistoryStore
from .user_store import UserProfileStore
from .event_log import EventLogStore
from .line_client import LineClient
from .conversation_manager import ConversationManager, ToolLoopExceededError, UserLocks
from .webhook_handler import WebhookHandler

__all__ = ['LLMClient', 'ChatSession', 'LLMResponse', 'LLMError', 'LLMClientError', 'RoundSplit', 'split_by_rounds', 'Summarizer', 'Tool', 'ToolRegistry', 'WeatherTool', 'get_current_time', 'build_default_registry', 'create_database_client', 'HistoryStore', 'UserProfileStore', 'EventLogStore', 'LineClient', 'ConversationManager', 'ToolLoopExceededError', 'UserLocks', 'WebhookHandler']
