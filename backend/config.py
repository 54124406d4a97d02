"""Configuration management for the Farm Steward chat bot."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
LINE_CHANNEL_ACCESS_TOKEN = os.getenv("LINE_CHANNEL_ACCESS_TOKEN")
CWA_API_KEY = os.getenv("CWA_API_KEY", "")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# External endpoints
LINE_API_BASE = os.getenv("LINE_API_BASE", "https://api.line.me/v2/bot")
CWA_API_URL = os.getenv(
    "CWA_API_URL",
    "https://opendata.cwa.gov.tw/api/v1/rest/datastore/O-A0003-001"
)

# Model Configuration
LLM_MODEL = os.getenv("LLM_MODEL", "llama-3.3-70b-versatile")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "1024"))
SUMMARY_MAX_OUTPUT_TOKENS = int(os.getenv("SUMMARY_MAX_OUTPUT_TOKENS", "1024"))

# Conversation Configuration
MAX_TOKENS_BEFORE_SUMMARY = int(os.getenv("MAX_TOKENS_BEFORE_SUMMARY", "4000"))
SUMMARY_KEEP_ROUNDS = int(os.getenv("SUMMARY_KEEP_ROUNDS", "20"))
MAX_TOOL_ITERATIONS = int(os.getenv("MAX_TOOL_ITERATIONS", "5"))

# Prompt templates ({user_info} is replaced with the user's profile as JSON)
SYSTEM_INSTRUCTION_TEMPLATE = """You are a friendly assistant that answers questions about farming, crops and gardening.
Politely decline topics unrelated to agriculture.
Always reply in the same language the user writes in.
Replies are shown in a chat app: keep them short and do not use Markdown.

When the user asks for the time, get the current UTC time with the tool, infer the user's
time zone from the `language` field below or from the conversation, ask for their city if
you are still unsure, and answer in local time only.

Information about the user you are talking to (JSON):
{user_info}"""

SUMMARY_SYSTEM_INSTRUCTION = """You condense long conversation histories into a compact summary that replaces them as background for later turns.
Keep the user's goals, confirmed details and preferences, important names and places, and decisions made. Do not repeat information.
Use short bullet points or short paragraphs and stay within the output limit.
Start the summary with the tag [SUMMARY].
Write the summary in the user's language."""

SUMMARY_REQUEST = "Summarize the conversation above, including any earlier [SUMMARY], into one consolidated summary."

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
