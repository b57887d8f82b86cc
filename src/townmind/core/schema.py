"""
Schema definitions for model <-> agent <-> tool messages.

These data models serve as the contract between the language model, the ReAct loop, and individual
tools.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

import json
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

TRUNCATED_PLACEHOLDER = "[Agent reached max iterations]"


class ToolCallFunction(BaseModel):
    """The function name + JSON-encoded arguments within a tool call."""

    name: str = Field(..., description="Registered tool name")
    arguments: str = Field("{}", description="JSON object with the call arguments")


class ToolCallRequest(BaseModel):
    """A tool call the model wants the agent to execute."""

    id: str = Field(..., description="Unique within the conversation")
    type: Literal["function"] = "function"
    function: ToolCallFunction

    @classmethod
    def create(cls, call_id: str, name: str, arguments: Dict[str, Any] | None = None) -> "ToolCallRequest":
        """Build a request from a structured argument payload."""
        return cls(
            id=call_id,
            function=ToolCallFunction(name=name, arguments=json.dumps(arguments or {})),
        )

    @property
    def tool_name(self) -> str:
        """Name of the requested tool."""
        return self.function.name

    def parse_arguments(self) -> Dict[str, Any]:
        """
        Decode the argument string into a dict.

        An empty string is treated as ``{}``.  Anything that is not a JSON object raises
        :class:`ValueError` (``json.JSONDecodeError`` is a subclass).
        """
        raw = self.function.arguments.strip()
        if not raw:
            return {}
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError(f"arguments must be a JSON object, got {type(parsed).__name__}")
        return parsed


class ChatTurn(BaseModel):
    """A single role-tagged message in the conversation."""

    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCallRequest]] = None  # assistant turns only
    tool_call_id: Optional[str] = None  # tool turns only

    # -- factory helpers -------------------------------------------------
    @classmethod
    def system(cls, content: str) -> "ChatTurn":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "ChatTurn":
        return cls(role="user", content=content)

    @classmethod
    def assistant(
        cls, content: str | None, tool_calls: List[ToolCallRequest] | None = None
    ) -> "ChatTurn":
        return cls(role="assistant", content=content, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "ChatTurn":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @property
    def is_final(self) -> bool:
        """True when the turn carries no tool calls."""
        return not self.tool_calls

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the model API, omitting absent fields."""
        return self.model_dump(exclude_none=True)


class AgentConfig(BaseModel):
    """Configuration for a single agent invocation."""

    mode: str = "NpcChat"
    context: Dict[str, str] = Field(default_factory=dict)
    max_iterations: int = Field(10, ge=1)
    allowed_tools: Optional[List[str]] = None  # None => every registered tool
    depth: int = Field(0, ge=0, description="Nesting level; 0 for top-level agents")


class AgentResult(BaseModel):
    """Outcome of an agent invocation."""

    final_answer: str = ""
    iterations_used: int = 0
    truncated: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
