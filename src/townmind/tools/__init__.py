"""
Tool registry for townmind.

A tool is a named capability the model may invoke: a description, an ordered list of parameters
and an executor.  Executors receive the decoded argument dict and an optional cancellation event,
and return the observation text.  They may be plain functions or coroutines:

    async def lookup(args, cancel_event):
        return f"Result for {args.get('query', '')}"

    registry = ToolRegistry(max_concurrency=2)
    registry.register(ToolDefinition(name="lookup", description="...", executor=lookup))

Registries are owned by an :class:`~townmind.agent.factory.AgentFactory`; there is no global
registry.  Each instance carries the counting semaphore that caps how many executors run at once.
"""

import asyncio
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from townmind.core.schema import ToolCallRequest

logger = logging.getLogger(__name__)

ToolExecutor = Callable[
    [Dict[str, Any], Optional[asyncio.Event]],
    Union[str, Awaitable[str]],
]
"""Signature of a tool implementation: ``(arguments, cancel_event) -> text``."""


class ToolParameter(BaseModel):
    """
    Information about a tool parameter.
    """

    name: str
    type: str = "string"
    description: str = ""
    required: bool = True


class ToolDefinition(BaseModel):
    """A registered tool and its execution delegate."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    parameters: List[ToolParameter] = Field(default_factory=list)
    executor: ToolExecutor = Field(exclude=True)
    # False for tools that only wait on other agents (new_task); they must not hold a slot
    limited: bool = True

    def to_api_schema(self) -> Dict[str, Any]:
        """Serialize into the OpenAI function-calling JSON schema."""
        properties = {
            p.name: {"type": p.type, "description": p.description} for p in self.parameters
        }
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }


class ToolRegistry:
    """
    Name -> :class:`ToolDefinition` map plus the concurrency limiter shared by every agent that
    dispatches through it.

    Parameters
    ----------
    max_concurrency:
        Maximum number of executors running at the same time across all batches.
    """

    def __init__(self, max_concurrency: int = 3) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._tools: Dict[str, ToolDefinition] = {}
        self.max_concurrency = max_concurrency
        self.semaphore = asyncio.Semaphore(max_concurrency)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(self, tool: ToolDefinition) -> None:
        """Register a tool.  Re-registering a name replaces the previous definition."""
        self._tools[tool.name] = tool
        logger.debug("Registered tool '%s'", tool.name)

    def register_many(self, tools: Iterable[ToolDefinition]) -> None:
        for tool in tools:
            self.register(tool)

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def all(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def api_schemas(self, allowed: Iterable[str] | None = None) -> List[Dict[str, Any]]:
        """
        Return the ``tools`` array for a model request.

        When *allowed* is given, only tools whose names appear in it are included.  The result may
        be empty, in which case the caller offers no tools at all.
        """
        tools = self.all()
        if allowed is not None:
            allowed_set = set(allowed)
            tools = [t for t in tools if t.name in allowed_set]
        return [t.to_api_schema() for t in tools]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    async def execute_batch(
        self,
        calls: List[ToolCallRequest],
        cancel_event: asyncio.Event | None = None,
    ) -> List[Tuple[str, str]]:
        """Run *calls* concurrently; see :func:`townmind.agent.tool_executor.execute_tool_calls`."""
        # pylint: disable=import-outside-toplevel
        from townmind.agent.tool_executor import execute_tool_calls

        return await execute_tool_calls(self, calls, cancel_event)
