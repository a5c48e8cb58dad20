"""Orchestration of one generation request.

`LLM.generate()` wraps the tool-calling loop in a rate-limit aware retry policy:

- outer: up to `max_attempts` attempts; `RateLimitError` waits for the backend's reset delay
  (500 ms when unknown) and retries, any other error propagates unchanged.
- inner: up to `max_tool_rounds` requests; while the model asks for tools, invoke them concurrently
  and append their results to the chatlog, then ask again.

Connectors implement `complete()`, the single request/response exchange with a vendor API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from .exceptions import GenerationError, RateLimitError
from .tool import Tool
from .tools import Toolset
from ..types.base import TOOL_CALLS_FINISH_REASON
from ..types.core import AssistantEntry, Chatlog, GenerationConfig, ModelTurn, ToolResultEntry
from ..utilities.async_helpers import synchronize

logger = logging.getLogger(__name__)

# wrapper keys some models nest the real arguments under
ARGUMENT_WRAPPERS = ("properties", "parameters")

SleepFunction = Callable[[float], Awaitable[Any]]


def unwrap_arguments(payload: Any, tool: Tool) -> Any:
    """Unwrap one level of `properties`/`parameters` nesting, unless the tool declares that parameter."""
    if not isinstance(payload, dict):
        return payload
    declared = {p.name for p in tool.describe().params}
    for key in ARGUMENT_WRAPPERS:
        if key not in declared and isinstance(payload.get(key), dict):
            logger.debug(f"Unwrapping '{key}' from arguments for {tool.name}")
            return payload[key]
    return payload


async def gather_or_cancel(coros: Sequence[Awaitable[str]]) -> list[str]:
    """Run all awaitables concurrently and return their results in order.

    On the first failure the remaining tasks are cancelled and the original exception is raised.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        # let cancelled tasks unwind before propagating
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class LLM(ABC):
    """Base class for backends that turn a chatlog into a reply.

    Attributes
    ----------
    max_attempts : int
        Total attempts made when the backend is rate limiting.
    max_tool_rounds : int
        Requests allowed per attempt before tool calling is considered not to converge.
    default_retry_delay_ms : float
        Wait before retrying when the backend gave no reset delay.
    """

    max_attempts: int = 4
    max_tool_rounds: int = 30
    default_retry_delay_ms: float = 500

    def __init__(self, sleep: SleepFunction | None = None):
        self.sleep = sleep or asyncio.sleep

    @abstractmethod
    async def complete(
        self,
        history: Chatlog,
        config: GenerationConfig,
        tools: Toolset,
    ) -> ModelTurn:
        """Send one request and parse the response.

        Raises
        ------
        RateLimitError
            If the backend signals throttling.
        BackendError
            For any other unsuccessful or malformed response.
        """
        ...

    def _retry_wait(self, retry_state: RetryCallState) -> float:
        """Seconds to wait before the next attempt."""
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay_ms = getattr(exc, "until_reset_ms", None)
        if delay_ms is None:
            delay_ms = self.default_retry_delay_ms
        return delay_ms / 1000

    async def generate(
        self,
        history: Chatlog,
        config: GenerationConfig | None = None,
        tools: Toolset | Sequence[Tool] | None = None,
    ) -> str:
        """Generate a reply to the chatlog, calling tools as requested.

        Tool calls and their results are appended to `history`.

        Raises
        ------
        GenerationError
            If the backend is still rate limiting after `max_attempts` attempts,
            or tool calling does not converge within `max_tool_rounds`.
        """
        config = config or GenerationConfig()
        toolset = tools if isinstance(tools, Toolset) else Toolset(tools or ())

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception_type(RateLimitError),
            wait=self._retry_wait,
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            return await retrying(self._generate_once, history, config, toolset)
        except RetryError as e:
            raise GenerationError(f"Request failed. Retried {self.max_attempts} times.") from e.last_attempt.exception()

    async def _generate_once(self, history: Chatlog, config: GenerationConfig, toolset: Toolset) -> str:
        for round_ in range(self.max_tool_rounds):
            turn = await self.complete(history, config, toolset)
            if turn.finish_reason != TOOL_CALLS_FINISH_REASON:
                return turn.content or ""

            logger.debug(f"Round {round_}: model requested {len(turn.tool_calls)} tool call(s)")
            await self._run_tool_calls(history, turn, toolset)

        raise GenerationError(f"Tool-calling did not converge within {self.max_tool_rounds} rounds")

    async def _run_tool_calls(self, history: Chatlog, turn: ModelTurn, toolset: Toolset) -> None:
        # resolve every call before invoking any
        toolset_calls = [(call, toolset.get(call.function.name)) for call in turn.tool_calls]

        results = await gather_or_cancel(
            [
                tool.invoke(unwrap_arguments(Tool.parse_arguments(call.function.arguments), tool), history)
                for call, tool in toolset_calls
            ]
        )
        # the round is recorded only once every call has succeeded
        entries = [AssistantEntry(content=turn.content or "", tool_calls=turn.tool_calls)]
        for (call, _), result in zip(toolset_calls, results, strict=True):
            entries.append(ToolResultEntry(tool_call_id=call.id, content=result))
        history.extend(entries)

    def generate_sync(
        self,
        history: Chatlog,
        config: GenerationConfig | None = None,
        tools: Toolset | Sequence[Tool] | None = None,
    ) -> str:
        """Blocking variant of `generate()`; also usable from a notebook."""
        return synchronize(self.generate, history, config, tools)
