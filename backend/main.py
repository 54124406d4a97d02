"""Main entry point for the Farm Steward chat bot API."""
import logging
from fastapi import FastAPI, HTTPException, BackgroundTasks

from config import PORT, LOG_LEVEL, LOG_FORMAT
from logger import setup_logging
from models.api import WebhookRequest, ChatRequest, ChatResponse
from models.user import UserProfile
from services.llm_client import LLMClient, LLMClientError
from services.summarizer import Summarizer
from services.tools import build_default_registry
from services.database import create_database_client
from services.history_store import HistoryStore
from services.user_store import UserProfileStore
from services.event_log import EventLogStore
from services.line_client import LineClient
from services.conversation_manager import ConversationManager, ToolLoopExceededError
from services.webhook_handler import WebhookHandler

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Farm Steward Chat Bot",
    description="LINE chat bot answering farming questions with a Groq-hosted LLM",
    version="1.0.0"
)

# Initialize services (will be done on startup)
conversation_manager: ConversationManager = None
webhook_handler: WebhookHandler = None
line_client: LineClient = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global conversation_manager, webhook_handler, line_client

    if LOG_FORMAT == "json":
        setup_logging(LOG_LEVEL)

    logger.info("Initializing Farm Steward services...")

    try:
        database = await create_database_client()
        history_store = HistoryStore(database)
        user_store = UserProfileStore(database)
        event_log = EventLogStore(database)
        logger.info("Initialized stores")

        llm_client = LLMClient()
        conversation_manager = ConversationManager(
            llm_client=llm_client,
            history_store=history_store,
            tool_registry=build_default_registry(),
            summarizer=Summarizer(llm_client)
        )

        line_client = LineClient()
        webhook_handler = WebhookHandler(
            conversation_manager=conversation_manager,
            line_client=line_client,
            user_store=user_store,
            event_log=event_log
        )

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Release HTTP connections."""
    if line_client is not None:
        await line_client.close()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Farm Steward Chat Bot API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "farm-steward-chat-bot",
        "version": "1.0.0"
    }


@app.post("/webhook")
async def webhook_endpoint(request: WebhookRequest, background_tasks: BackgroundTasks):
    """
    LINE webhook endpoint.

    Acknowledges immediately; each event is handled in the background.
    """
    if request.events is None:
        logger.warning("Invalid request body")
        raise HTTPException(status_code=400, detail="Bad Request")

    for event in request.events:
        background_tasks.add_task(webhook_handler.handle_event, event)

    return {"status": "ok"}


@app.post("/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest) -> ChatResponse:
    """
    Direct chat endpoint for manual testing without the messaging platform.

    Raises:
        HTTPException: For validation errors or provider failures
    """
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message field is required and cannot be empty")

    profile = UserProfile(
        user_id=request.user_id,
        display_name=request.display_name,
        language=request.language
    )

    try:
        turns = await conversation_manager.handle_message(request.user_id, request.message, profile)
    except LLMClientError as e:
        logger.error(f"LLM client error: {e.error.message}", extra={"user_id": request.user_id})
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": e.error.code,
                    "message": e.error.message,
                    "details": e.error.details
                }
            }
        )
    except ToolLoopExceededError as e:
        raise HTTPException(
            status_code=502,
            detail={"error": {"code": "TOOL_LOOP_EXCEEDED", "message": str(e)}}
        )
    except Exception as e:
        logger.error(f"Unexpected error processing chat: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )

    return ChatResponse(user_id=request.user_id, replies=[turn.text for turn in turns])


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Farm Steward Chat Bot API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
