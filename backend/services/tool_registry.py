"""Registry of tools the model may call during a conversation."""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from models.conversation import FunctionCall, FunctionResponse

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass
class Tool:
    """
    A named async callable exposed to the model.

    Attributes:
        name: Name the model uses in its tool calls (matched exactly)
        description: What the tool does, shown to the model
        parameters: JSON schema of the arguments object
        handler: Coroutine function taking the arguments, returning a payload
                 with either a ``result`` or an ``error`` key
    """
    name: str
    description: str
    handler: ToolHandler
    parameters: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def declaration(self) -> Dict[str, Any]:
        """Function declaration in the chat-completions ``tools`` format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }


class ToolRegistry:
    """Fixed set of tools resolved by name."""

    def __init__(self, tools: Optional[List[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def declarations(self) -> List[Dict[str, Any]]:
        return [tool.declaration() for tool in self._tools.values()]

    async def execute(self, call: FunctionCall) -> FunctionResponse:
        """
        Resolve one tool call.

        Never raises: unknown tools and handler failures are reported to the
        model as an ``error`` payload so it can recover or apologize.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {call.name}", extra={"tool_name": call.name})
            return FunctionResponse(
                id=call.id,
                name=call.name,
                response={"error": f"Unknown tool: {call.name}"}
            )

        try:
            payload = await tool.handler(dict(call.args))
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {e}", exc_info=True, extra={"tool_name": call.name})
            payload = {"error": f"Tool {call.name} failed: {str(e)}"}
        else:
            logger.info(f"Resolved tool call {call.name}", extra={"tool_name": call.name})

        return FunctionResponse(id=call.id, name=call.name, response=payload)
