"""History summarization for conversation compression."""
import logging
from typing import Optional, Sequence

from config import LLM_MODEL, SUMMARY_MAX_OUTPUT_TOKENS, SUMMARY_SYSTEM_INSTRUCTION, SUMMARY_REQUEST
from models.conversation import Turn, SUMMARY_MARKER
from services.llm_client import LLMClient

logger = logging.getLogger(__name__)


class Summarizer:
    """Condense a conversation prefix into one synthetic summary turn."""

    def __init__(
        self,
        llm_client: LLMClient,
        model: str = LLM_MODEL,
        system_instruction: str = SUMMARY_SYSTEM_INSTRUCTION,
        request_text: str = SUMMARY_REQUEST,
        max_tokens: int = SUMMARY_MAX_OUTPUT_TOKENS
    ):
        self.llm_client = llm_client
        self.model = model
        self.system_instruction = system_instruction
        self.request_text = request_text
        self.max_tokens = max_tokens

    async def summarize(self, turns: Sequence[Turn]) -> Optional[Turn]:
        """
        Summarize ``turns``, folding in any earlier summary they contain.

        Args:
            turns: Conversation prefix to replace; not modified

        Returns:
            Model turn whose text starts with SUMMARY_MARKER, or None when the
            provider returned no usable candidate
        """
        contents = list(turns) + [Turn.user_text(self.request_text)]
        response = await self.llm_client.generate(
            contents,
            system_instruction=self.system_instruction,
            model=self.model,
            temperature=0.0,
            max_tokens=self.max_tokens
        )

        text = response.text.strip()
        if not text:
            logger.warning(f"Summarization of {len(turns)} turns returned no candidate")
            return None

        if not text.startswith(SUMMARY_MARKER):
            text = f"{SUMMARY_MARKER}\n{text}"

        logger.info(f"Summarized {len(turns)} turns into {len(text)} characters")
        return Turn.model_text(text)
