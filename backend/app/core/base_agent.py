"""
Hinglish Meal Assistant - Base Agent Abstract Class

Defines the common interface for pipeline agents that may be slow or fail
(for example a nutrition source that calls out over HTTP). Agents inherit
from BaseAgent and implement the process() method.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

LOG_PREVIEW_CHARS = 200


class AgentResult(BaseModel):
    """Outcome of one agent run, successful or not."""
    success: bool
    output: Any = None
    error: str | None = None
    error_type: str | None = None
    retryable: bool = False
    attempts: int = 1
    latency_ms: int = 0
    agent_name: str = ""


def _preview(model: BaseModel) -> str:
    text = str(model.model_dump())
    if len(text) > LOG_PREVIEW_CHARS:
        return text[:LOG_PREVIEW_CHARS] + "..."
    return text


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """
    Abstract base class for meal assistant agents.

    Every agent receives a typed pydantic input, does its work (possibly
    over the network) and returns a typed pydantic output. Callers go
    through execute() so that failures come back as an unsuccessful
    AgentResult with a logged error instead of an exception.

    Failures whose type is listed in ``retryable_errors`` are retried by
    execute_with_retry with exponential backoff; any other failure is
    returned after the first attempt.

    Usage:
        class MyAgent(BaseAgent[MyInput, MyOutput]):
            retryable_errors = (ConnectionError,)

            @property
            def name(self) -> str:
                return "MyAgent"

            async def process(self, input: MyInput) -> MyOutput:
                return MyOutput(...)
    """

    retryable_errors: tuple[type[Exception], ...] = ()

    def __init__(self, max_retries: int = 3, retry_delay: float = 1.0):
        """
        Args:
            max_retries: Maximum number of attempts in execute_with_retry
            retry_delay: Delay before the second attempt, doubled after each failure
        """
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._logger = logging.getLogger(f"meal_assistant.agent.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name for logging and tracing."""

    @abstractmethod
    async def process(self, input: InputT) -> OutputT:
        """Process the input and return output. May raise."""

    async def execute(self, input: InputT) -> AgentResult:
        """Run process() once, capturing latency and any exception."""
        started = time.perf_counter()
        self._logger.debug(f"Input: {_preview(input)}")

        try:
            output = await self.process(input)
        except Exception as e:
            latency_ms = int((time.perf_counter() - started) * 1000)
            retryable = isinstance(e, self.retryable_errors)
            log = self._logger.warning if retryable else self._logger.error
            log(f"{self.name} failed after {latency_ms}ms: {type(e).__name__}: {e}")
            return AgentResult(
                success=False,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                retryable=retryable,
                latency_ms=latency_ms,
                agent_name=self.name,
            )

        latency_ms = int((time.perf_counter() - started) * 1000)
        self._logger.debug(f"{self.name} completed in {latency_ms}ms, output: {_preview(output)}")

        return AgentResult(
            success=True,
            output=output,
            latency_ms=latency_ms,
            agent_name=self.name,
        )

    async def execute_with_retry(self, input: InputT) -> AgentResult:
        """Execute, retrying retryable failures up to ``max_retries`` attempts."""
        attempt = 1
        while True:
            result = await self.execute(input)
            result.attempts = attempt
            if result.success or not result.retryable or attempt >= self.max_retries:
                return result

            delay = self.retry_delay * (2 ** (attempt - 1))
            self._logger.warning(
                f"{self.name} attempt {attempt} of {self.max_retries} failed, "
                f"retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
            attempt += 1
