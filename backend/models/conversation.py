"""Conversation data models."""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

USER = "user"
MODEL = "model"
TOOL = "tool"
ROLES = (USER, MODEL, TOOL)

# Prefix of the synthetic turn that replaces a summarized history prefix
SUMMARY_MARKER = "[SUMMARY]"


@dataclass(frozen=True)
class FunctionCall:
    """A tool invocation requested by the model."""
    id: str
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "args": self.args}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionCall":
        return cls(id=data.get("id", ""), name=data["name"], args=data.get("args") or {})


@dataclass(frozen=True)
class FunctionResponse:
    """Structured result of a tool invocation, sent back to the model."""
    id: str
    name: str
    response: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return "error" in self.response

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "response": self.response}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionResponse":
        return cls(id=data.get("id", ""), name=data["name"], response=data.get("response") or {})


@dataclass(frozen=True)
class Part:
    """One content fragment of a turn: text, a function call or a function response."""
    text: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    function_response: Optional[FunctionResponse] = None

    def is_empty(self) -> bool:
        return not self.text and self.function_call is None and self.function_response is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.text is not None:
            data["text"] = self.text
        if self.function_call is not None:
            data["function_call"] = self.function_call.to_dict()
        if self.function_response is not None:
            data["function_response"] = self.function_response.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Part":
        call = data.get("function_call")
        response = data.get("function_response")
        return cls(
            text=data.get("text"),
            function_call=FunctionCall.from_dict(call) if call else None,
            function_response=FunctionResponse.from_dict(response) if response else None,
        )


@dataclass(frozen=True)
class Turn:
    """
    One role-tagged message in a conversation.

    Turns compare structurally: two turns are equal when their role and
    ordered parts are value-equal. ``key()`` gives the same comparison as a
    hashable string for set membership.
    """
    role: str
    parts: Tuple[Part, ...] = ()

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown turn role: {self.role}")
        # Accept any sequence but always store a tuple
        object.__setattr__(self, "parts", tuple(self.parts))

    @classmethod
    def user_text(cls, text: str) -> "Turn":
        return cls(role=USER, parts=(Part(text=text),))

    @classmethod
    def model_text(cls, text: str) -> "Turn":
        return cls(role=MODEL, parts=(Part(text=text),))

    @classmethod
    def tool_results(cls, responses: Sequence[FunctionResponse]) -> "Turn":
        return cls(role=TOOL, parts=tuple(Part(function_response=r) for r in responses))

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.parts if part.text)

    @property
    def function_calls(self) -> List[FunctionCall]:
        return [part.function_call for part in self.parts if part.function_call is not None]

    @property
    def is_summary(self) -> bool:
        return self.role == MODEL and self.text.startswith(SUMMARY_MARKER)

    def has_content(self) -> bool:
        return any(not part.is_empty() for part in self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [part.to_dict() for part in self.parts]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        return cls(
            role=data["role"],
            parts=tuple(Part.from_dict(p) for p in data.get("parts") or []),
        )

    def key(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)


def new_turns(current: Sequence[Turn], previous: Sequence[Turn]) -> List[Turn]:
    """
    Return the turns of ``current`` that are not structurally present in ``previous``.

    Args:
        current: Full turn list after an exchange
        previous: Turn list as it was loaded before the exchange

    Returns:
        Turns from ``current`` in their original order
    """
    if not previous:
        return list(current)
    seen = {turn.key() for turn in previous}
    return [turn for turn in current if turn.key() not in seen]


@dataclass
class ConversationHistory:
    """Persisted conversation of one user."""
    user_id: str
    turns: List[Turn] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    def to_records(self) -> List[Dict[str, Any]]:
        return [turn.to_dict() for turn in self.turns]

    @classmethod
    def from_records(
        cls,
        user_id: str,
        records: List[Dict[str, Any]],
        updated_at: Optional[datetime] = None
    ) -> "ConversationHistory":
        return cls(
            user_id=user_id,
            turns=[Turn.from_dict(r) for r in records or []],
            updated_at=updated_at,
        )
