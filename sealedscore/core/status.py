"""Single-slot transaction status with timed auto-clear.

States: idle -> pending -> (success | error) -> idle.

Entering success or error schedules a return to idle on the running event
loop. Every transition cancels the previously scheduled timer, and a timer
only fires if no later transition happened (sequence number check).
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import bittensor as bt


class StatusKind(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TransactionStatus:
    """Snapshot of the status slot."""

    kind: StatusKind = StatusKind.IDLE
    message: str = ""
    seq: int = 0

    @property
    def visible(self) -> bool:
        return self.kind != StatusKind.IDLE


Listener = Callable[[TransactionStatus], None]


class TransactionStatusMachine:
    """Surfaces the outcome of the one user-triggered operation in flight.

    Not a queue: a new operation's status replaces whatever is shown.
    """

    def __init__(
        self,
        success_ttl: float = 2.0,
        error_ttl: float = 3.0,
        history_size: int = 50,
    ):
        self.success_ttl = success_ttl
        self.error_ttl = error_ttl
        self._status = TransactionStatus()
        self._seq = 0
        self._timer: asyncio.TimerHandle | None = None
        self._listeners: list[Listener] = []
        self.history: deque[TransactionStatus] = deque(maxlen=history_size)

    @property
    def status(self) -> TransactionStatus:
        return self._status

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a transition listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- Transitions --

    def pending(self, message: str) -> TransactionStatus:
        return self._transition(StatusKind.PENDING, message)

    def success(self, message: str) -> TransactionStatus:
        return self._transition(StatusKind.SUCCESS, message, ttl=self.success_ttl)

    def error(self, message: str) -> TransactionStatus:
        return self._transition(StatusKind.ERROR, message, ttl=self.error_ttl)

    def reset(self) -> TransactionStatus:
        return self._transition(StatusKind.IDLE, "")

    def _transition(
        self, kind: StatusKind, message: str, ttl: float | None = None,
    ) -> TransactionStatus:
        self._cancel_timer()
        self._seq += 1
        self._status = TransactionStatus(kind=kind, message=message, seq=self._seq)
        self.history.append(self._status)

        if ttl is not None:
            self._schedule_clear(ttl, self._seq)

        self._notify()
        return self._status

    # -- Timer --

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_clear(self, ttl: float, seq: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            bt.logging.debug({"transaction_status": "no_running_loop, auto-clear disabled"})
            return
        self._timer = loop.call_later(ttl, self._expire, seq)

    def _expire(self, seq: int) -> None:
        if seq != self._seq:
            return
        self._timer = None
        self._transition(StatusKind.IDLE, "")

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._status)
            except Exception as e:
                bt.logging.warning({"transaction_status": {"listener_error": str(e)}})


__all__ = ["StatusKind", "TransactionStatus", "TransactionStatusMachine"]
