"""LLM Client for Groq API integration (chat sessions with tool calls and single-shot generation)."""
import json
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union
from groq import AsyncGroq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError

from config import GROQ_API_KEY, LLM_MODEL, LLM_TEMPERATURE, LLM_MAX_OUTPUT_TOKENS
from models.conversation import (
    Turn, Part, FunctionCall, FunctionResponse, USER, MODEL, TOOL
)

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from one LLM call."""
    turn: Optional[Turn]
    tokens_input: int
    tokens_output: int
    total_tokens: int
    latency_ms: int
    model_used: str

    @property
    def text(self) -> str:
        return self.turn.text if self.turn else ""

    @property
    def function_calls(self) -> List[FunctionCall]:
        return self.turn.function_calls if self.turn else []


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


def turns_to_messages(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """Convert turns to Groq chat-completion messages."""
    messages: List[Dict[str, Any]] = []
    for turn in turns:
        if turn.role == USER:
            messages.append({"role": "user", "content": turn.text})
        elif turn.role == MODEL:
            calls = turn.function_calls
            # content may only be null when the message carries tool calls
            message: Dict[str, Any] = {"role": "assistant", "content": turn.text or (None if calls else "")}
            if calls:
                message["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.args, ensure_ascii=False)
                        }
                    }
                    for call in calls
                ]
            messages.append(message)
        elif turn.role == TOOL:
            # One tool message per function response
            for part in turn.parts:
                if part.function_response is None:
                    continue
                messages.append({
                    "role": "tool",
                    "tool_call_id": part.function_response.id,
                    "name": part.function_response.name,
                    "content": json.dumps(part.function_response.response, ensure_ascii=False)
                })
    return messages


def turn_from_message(message: Any) -> Turn:
    """Convert a Groq assistant message into a model turn."""
    parts: List[Part] = []
    if message.content:
        parts.append(Part(text=message.content))
    for tool_call in message.tool_calls or []:
        try:
            args = json.loads(tool_call.function.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Unparseable arguments for tool call {tool_call.function.name}")
            args = {}
        parts.append(Part(function_call=FunctionCall(
            id=tool_call.id,
            name=tool_call.function.name,
            args=args if isinstance(args, dict) else {}
        )))
    return Turn(role=MODEL, parts=tuple(parts))


class ChatSession:
    """
    Stateful chat over the stateless completion API.

    The session owns a copy of the turn list it was seeded with and appends
    the sent turn and the model's reply after every successful call.
    """

    def __init__(
        self,
        client: "LLMClient",
        history: Sequence[Turn],
        system_instruction: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_OUTPUT_TOKENS
    ):
        self.client = client
        self.system_instruction = system_instruction
        self.tools = tools or []
        self.model = model or client.model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._history: List[Turn] = list(history)

    def get_history(self) -> List[Turn]:
        """Return a copy of every turn exchanged so far, prior context included."""
        return list(self._history)

    async def send(self, content: Union[str, Sequence[FunctionResponse]]) -> LLMResponse:
        """
        Send a user message or a batch of tool results and await the model's reply.

        Args:
            content: User text, or function responses answering the previous tool calls

        Returns:
            LLMResponse whose turn is the model's reply

        Raises:
            LLMClientError: On provider failure or an empty completion
        """
        if isinstance(content, str):
            turn = Turn.user_text(content)
        else:
            turn = Turn.tool_results(content)

        response = await self.client.complete(
            turns=self._history + [turn],
            system_instruction=self.system_instruction,
            tools=self.tools,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )
        if response.turn is None or not response.turn.has_content():
            raise LLMClientError(LLMError(
                code="EMPTY_RESPONSE",
                message="The model returned no content.",
                details={"model": self.model, "latency_ms": response.latency_ms}
            ))

        self._history.extend([turn, response.turn])
        return response


class LLMClient:
    """Client for interfacing with Groq API for chat and single-shot generation."""

    def __init__(self, api_key: Optional[str] = None, model: str = LLM_MODEL):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model name for sessions and generation
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = AsyncGroq(api_key=self.api_key)
        logger.info(f"LLMClient initialized with model {model}")

    def create_session(
        self,
        history: Sequence[Turn],
        system_instruction: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any
    ) -> ChatSession:
        """Start a chat session seeded with prior turns."""
        return ChatSession(self, history, system_instruction, tools, **kwargs)

    async def generate(
        self,
        turns: Sequence[Turn],
        system_instruction: str,
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = LLM_MAX_OUTPUT_TOKENS
    ) -> LLMResponse:
        """
        Single-shot generation without tools.

        Returns:
            LLMResponse whose turn is the first candidate, or None if there is none
        """
        return await self.complete(
            turns=turns,
            system_instruction=system_instruction,
            model=model or self.model,
            temperature=temperature,
            max_tokens=max_tokens
        )

    async def complete(
        self,
        turns: Sequence[Turn],
        system_instruction: str,
        model: str,
        temperature: float,
        max_tokens: int,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> LLMResponse:
        """
        Run one chat completion over ``turns``.

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()
        messages = [{"role": "system", "content": system_instruction}] + turns_to_messages(turns)

        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        try:
            logger.debug(f"Requesting completion: model={model}, messages={len(messages)}, tools={len(tools or [])}")
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            raise self._client_error(e, model, start_time) from e

        latency_ms = int((time.time() - start_time) * 1000)
        usage = response.usage
        tokens_input = usage.prompt_tokens if usage else 0
        tokens_output = usage.completion_tokens if usage else 0
        total_tokens = usage.total_tokens if usage else 0

        turn = turn_from_message(response.choices[0].message) if response.choices else None

        logger.info(
            f"Completion finished: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"tool_calls={len(turn.function_calls) if turn else 0}, latency={latency_ms}ms"
        )

        return LLMResponse(
            turn=turn,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            total_tokens=total_tokens,
            latency_ms=latency_ms,
            model_used=model
        )

    @staticmethod
    def _client_error(exc: Exception, model: str, start_time: float) -> LLMClientError:
        """Map a provider exception to a structured LLMClientError and log it."""
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {
            "model": model,
            "latency_ms": latency_ms,
            "original_error": str(exc)
        }

        if isinstance(exc, RateLimitError):
            details["retry_after"] = 60  # Suggest retry after 60 seconds
            error = LLMError(
                code="RATE_LIMIT_ERROR",
                message="Rate limit exceeded. Please try again in a few moments.",
                details=details
            )
        elif isinstance(exc, AuthenticationError):
            error = LLMError(
                code="AUTHENTICATION_ERROR",
                message="Authentication failed. Please check your API key.",
                details=details
            )
        elif isinstance(exc, APITimeoutError):
            error = LLMError(
                code="TIMEOUT_ERROR",
                message="Request timed out. Please try again.",
                details=details
            )
        elif isinstance(exc, APIError):
            error = LLMError(
                code="API_ERROR",
                message=f"Groq API error: {str(exc)}",
                details=details
            )
        else:
            details["error_type"] = type(exc).__name__
            error = LLMError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during generation: {str(exc)}",
                details=details
            )

        logger.error(
            f"{error.code}: model={model}, latency={latency_ms}ms, error={exc}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
