"""Dispatches tool calls registered in a :class:`~townmind.tools.ToolRegistry` and wraps errors."""

import asyncio
import contextlib
import inspect
import logging
from typing import (
    Any,
    Dict,
    List,
    Tuple,
)

from townmind.core.schema import ToolCallRequest
from townmind.tools import (
    ToolDefinition,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


async def execute_tool(
    tool: ToolDefinition,
    args: Dict[str, Any] | None = None,
    cancel_event: asyncio.Event | None = None,
) -> str:
    """
    Invoke *tool* with *args*.

    Parameters
    ----------
    tool:
        The resolved tool definition.
    args:
        Decoded call arguments, passed verbatim to the executor.  If *None*, an empty dict is
        assumed.
    cancel_event:
        Forwarded to the executor so long-running tools can stop early.

    Returns
    -------
    str
        The executor's observation text.

    Raises
    ------
    ToolExecutionError
        If the executor raises an exception.
    """

    if args is None:
        args = {}

    try:
        logger.debug("Executing tool '%s' with args=%s", tool.name, args)
        result = tool.executor(args, cancel_event)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)
    except Exception as exc:  # noqa: BLE001
        logger.error("Tool '%s' failed: %s", tool.name, exc)
        raise ToolExecutionError(str(exc)) from exc


async def _run_one(
    registry: ToolRegistry,
    call: ToolCallRequest,
    cancel_event: asyncio.Event | None,
) -> Tuple[str, str]:
    tool = registry.get(call.tool_name)
    if tool is None:
        logger.warning("Unknown tool: %s", call.tool_name)
        return call.id, f"Error: Unknown tool '{call.tool_name}'"

    try:
        args = call.parse_arguments()
    except ValueError as exc:
        logger.error("Bad arguments for tool '%s': %s", call.tool_name, exc)
        return call.id, f"Error executing tool: invalid arguments ({exc})"

    # A parent's new_task holding a slot while its child waits for one would deadlock at low caps
    limiter = registry.semaphore if tool.limited else contextlib.nullcontext()
    async with limiter:
        try:
            return call.id, await execute_tool(tool, args, cancel_event)
        except ToolExecutionError as exc:
            return call.id, f"Error executing tool: {exc}"


async def execute_tool_calls(
    registry: ToolRegistry,
    calls: List[ToolCallRequest],
    cancel_event: asyncio.Event | None = None,
) -> List[Tuple[str, str]]:
    """
    Execute every call in *calls* concurrently, bounded by the registry's semaphore.

    Failures never escape: unknown tools and executor exceptions become error strings, so the
    result always holds exactly one ``(tool_call_id, result_text)`` pair per input call, in input
    order.  Task cancellation is not caught and cancels the whole batch.
    """
    if not calls:
        return []
    return list(await asyncio.gather(*(_run_one(registry, c, cancel_event) for c in calls)))
