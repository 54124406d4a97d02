"""
Round-aligned splitting of a conversation for history compression.

A round is one user-then-model exchange. The split keeps the trailing
``keep_rounds`` rounds verbatim and hands everything before them to the
summarizer. A kept suffix always starts on a user turn, so an exchange
(including any tool calls inside it) is never cut in half.
"""
import logging
from typing import List, NamedTuple, Sequence

from models.conversation import Turn, USER, MODEL

logger = logging.getLogger(__name__)


class RoundSplit(NamedTuple):
    """Result of splitting a conversation by rounds."""
    keep: List[Turn]
    summarize: List[Turn]


def split_by_rounds(turns: Sequence[Turn], keep_rounds: int) -> RoundSplit:
    """
    Partition ``turns`` into a summarize prefix and a keep suffix.

    Args:
        turns: Ordered conversation
        keep_rounds: Number of trailing rounds to preserve verbatim

    Returns:
        RoundSplit where ``summarize + keep`` equals the input

    Raises:
        ValueError: If keep_rounds is negative
    """
    if keep_rounds < 0:
        raise ValueError("keep_rounds must be non-negative")

    turns = list(turns)
    model_indices = [i for i, turn in enumerate(turns) if turn.role == MODEL]

    if not turns or not model_indices:
        return RoundSplit(keep=turns, summarize=[])

    total_rounds = len(model_indices)
    actual_keep = min(keep_rounds, total_rounds)

    if actual_keep == 0:
        boundary = len(turns)
    else:
        # Walk back from the first kept model turn to the user turn opening its round
        boundary = model_indices[total_rounds - actual_keep]
        while boundary > 0 and turns[boundary].role != USER:
            boundary -= 1

    logger.debug(
        f"Split {len(turns)} turns ({total_rounds} rounds) at index {boundary}, "
        f"keeping {actual_keep} rounds"
    )
    return RoundSplit(keep=turns[boundary:], summarize=turns[:boundary])
