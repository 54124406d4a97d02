"""Conversation manager: history lifecycle, tool-call loop and summarization."""
import json
import logging
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from config import (
    MAX_TOKENS_BEFORE_SUMMARY,
    SUMMARY_KEEP_ROUNDS,
    MAX_TOOL_ITERATIONS,
    SYSTEM_INSTRUCTION_TEMPLATE,
)
from models.conversation import ConversationHistory, Turn, MODEL, new_turns
from models.user import UserProfile
from services.llm_client import LLMClient
from services.history_store import HistoryStore
from services.round_splitter import split_by_rounds
from services.summarizer import Summarizer
from services.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolLoopExceededError(Exception):
    """The model kept requesting tools past the configured iteration ceiling."""

    def __init__(self, user_id: str, iterations: int):
        self.user_id = user_id
        self.iterations = iterations
        super().__init__(f"Tool loop exceeded {iterations} iterations for user {user_id}")


class UserLocks:
    """One asyncio.Lock per key, dropped once no task holds or awaits it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class ConversationManager:
    """
    Turns one inbound user message into reply turns.

    Per message: load the stored history, chat with the model (resolving any
    requested tools), diff the new turns against what was loaded, compress the
    history when the last response used too many tokens, and persist it.
    Messages of the same user are processed one at a time.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        history_store: HistoryStore,
        tool_registry: ToolRegistry,
        summarizer: Optional[Summarizer] = None,
        max_tokens_before_summary: int = MAX_TOKENS_BEFORE_SUMMARY,
        summary_keep_rounds: int = SUMMARY_KEEP_ROUNDS,
        max_tool_iterations: int = MAX_TOOL_ITERATIONS,
        system_instruction_template: str = SYSTEM_INSTRUCTION_TEMPLATE
    ):
        self.llm_client = llm_client
        self.history_store = history_store
        self.tool_registry = tool_registry
        self.summarizer = summarizer or Summarizer(llm_client)
        self.max_tokens_before_summary = max_tokens_before_summary
        self.summary_keep_rounds = summary_keep_rounds
        self.max_tool_iterations = max_tool_iterations
        self.system_instruction_template = system_instruction_template
        self._locks = UserLocks()
        logger.info("ConversationManager initialized")

    def build_system_instruction(self, profile: UserProfile) -> str:
        """Fill the instruction template with the user's profile; the template itself is untouched."""
        user_info = json.dumps(profile.to_prompt_dict(), ensure_ascii=False, indent=2)
        return self.system_instruction_template.replace("{user_info}", user_info)

    async def handle_message(self, user_id: str, message: str, profile: UserProfile) -> List[Turn]:
        """
        Process one user message.

        Args:
            user_id: Owner of the conversation
            message: Text the user sent
            profile: User profile used to personalize the system instruction

        Returns:
            New model turns carrying text, in conversation order

        Raises:
            LLMClientError: On provider failure
            RuntimeError: On history store failure
            ToolLoopExceededError: If the model requests tools too many times in a row
        """
        async with self._locks.hold(user_id):
            return await self._handle_message(user_id, message, profile)

    async def _handle_message(self, user_id: str, message: str, profile: UserProfile) -> List[Turn]:
        history = await self.history_store.get(user_id)
        if history is None:
            logger.info(f"Starting new conversation for {user_id}", extra={"user_id": user_id})
            history = ConversationHistory(user_id=user_id, turns=[])
        previous = list(history.turns)

        session = self.llm_client.create_session(
            previous,
            self.build_system_instruction(profile),
            self.tool_registry.declarations()
        )
        response = await session.send(message)

        iterations = 0
        while response.function_calls:
            if iterations >= self.max_tool_iterations:
                logger.error(
                    f"Tool loop exceeded {self.max_tool_iterations} iterations",
                    extra={"user_id": user_id}
                )
                raise ToolLoopExceededError(user_id, iterations)
            iterations += 1

            results = []
            for call in response.function_calls:
                results.append(await self.tool_registry.execute(call))
            response = await session.send(results)

        turns = session.get_history()
        replies = [
            turn for turn in new_turns(turns, previous)
            if turn.role == MODEL and turn.text.strip()
        ]

        if response.total_tokens > self.max_tokens_before_summary:
            logger.info(
                f"Token usage {response.total_tokens} over {self.max_tokens_before_summary}, compressing history",
                extra={"user_id": user_id}
            )
            turns = await self.compress(turns)

        history.turns = turns
        await self.history_store.put(history)
        return replies

    async def compress(self, turns: List[Turn]) -> List[Turn]:
        """
        Replace everything before the last kept rounds with one summary turn.

        Returns:
            ``[summary, *kept]``, or ``turns`` unchanged when there is nothing
            to summarize or no summary was produced
        """
        split = split_by_rounds(turns, self.summary_keep_rounds)
        if not split.summarize:
            logger.debug("Nothing to summarize")
            return turns

        summary = await self.summarizer.summarize(split.summarize)
        if summary is None:
            logger.warning("Summarization produced nothing, keeping full history")
            return turns

        logger.info(f"Compressed {len(split.summarize)} turns into a summary, kept {len(split.keep)}")
        return [summary] + split.keep
