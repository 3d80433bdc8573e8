"""Explicit state machines for the encrypt->submit and decrypt->verify flows.

Pipeline tracks one flow through idle -> in_flight -> done | failed.
SingleFlight runs at most one coroutine per key; callers arriving while
one is running await that same run instead of starting another.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class PipelineState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


_ALLOWED: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.IN_FLIGHT}),
    PipelineState.IN_FLIGHT: frozenset({PipelineState.DONE, PipelineState.FAILED}),
    PipelineState.DONE: frozenset({PipelineState.IN_FLIGHT}),
    PipelineState.FAILED: frozenset({PipelineState.IN_FLIGHT}),
}


class InvalidTransition(RuntimeError):
    """Raised when a pipeline is driven through an illegal transition."""


class Pipeline:
    """One linear async flow. A finished pipeline may be started again."""

    def __init__(self, name: str):
        self.name = name
        self.state = PipelineState.IDLE
        self.error: str = ""

    @property
    def in_flight(self) -> bool:
        return self.state == PipelineState.IN_FLIGHT

    def _move(self, target: PipelineState) -> None:
        if target not in _ALLOWED[self.state]:
            raise InvalidTransition(f"{self.name}: {self.state.value} -> {target.value}")
        self.state = target

    def start(self) -> None:
        self._move(PipelineState.IN_FLIGHT)
        self.error = ""

    def finish(self) -> None:
        self._move(PipelineState.DONE)

    def fail(self, error: str) -> None:
        self._move(PipelineState.FAILED)
        self.error = error


class SingleFlight(Generic[K, T]):
    """At most one in-flight run per key."""

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Task[T]] = {}

    def in_flight(self, key: K) -> bool:
        return key in self._tasks

    async def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> T:
        """Run factory() for key, or join the run already in flight.

        A cancelled waiter does not cancel the shared run.
        """
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return await asyncio.shield(task)

    def _forget(self, key: K, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]


__all__ = ["InvalidTransition", "Pipeline", "PipelineState", "SingleFlight"]
