"""
Timer scheduling for voice agent clients.

Clients never start threads of their own; every delayed or repeating callback goes
through a Scheduler so that all state changes happen on one event loop and every
timer can be cancelled through the handle it returned. Blocking I/O goes through
`call_blocking`, which runs it off the loop and delivers the outcome back onto it.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Optional

logger = logging.getLogger("timers")

TimerCallback = Callable[[], None]
ResultCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class TimerHandle:
    """Cancellable reference to a scheduled callback."""

    def __init__(self):
        self._cancelled = False
        self._on_cancel: Optional[Callable[[], None]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the timer. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None


class Scheduler(ABC):
    """Schedules one-shot and repeating callbacks."""

    @abstractmethod
    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        """Run `callback` once after `delay` seconds."""

    @abstractmethod
    def call_every(self, interval: float, callback: TimerCallback) -> TimerHandle:
        """Run `callback` every `interval` seconds until the handle is cancelled."""

    def call_blocking(self, func: Callable[[], Any], on_result: ResultCallback,
                      on_error: ErrorCallback) -> TimerHandle:
        """
        Run a blocking `func` and hand its result to `on_result` (or its exception to
        `on_error`) on the scheduler's own thread. Cancelling the handle drops the delivery.

        This version runs `func` inline.
        """
        handle = TimerHandle()
        try:
            result = func()
        except Exception as e:
            handle._cancelled = True
            on_error(e)
        else:
            handle._cancelled = True
            on_result(result)
        return handle

    def now(self) -> datetime:
        """Wall-clock time as seen by this scheduler."""
        return datetime.now()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle()

        def fire():
            if not handle.cancelled:
                handle._cancelled = True
                callback()

        timer = self.loop.call_later(delay, fire)
        handle._on_cancel = timer.cancel
        return handle

    def call_every(self, interval: float, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle()

        def fire():
            if handle.cancelled:
                return
            # Re-arm first so a callback that cancels the handle wins
            arm()
            callback()

        def arm():
            timer = self.loop.call_later(interval, fire)
            handle._on_cancel = timer.cancel

        arm()
        return handle

    def call_blocking(self, func: Callable[[], Any], on_result: ResultCallback,
                      on_error: ErrorCallback) -> TimerHandle:
        """Run `func` in the loop's default executor and deliver the outcome back on the loop."""
        handle = TimerHandle()
        future = self.loop.run_in_executor(None, func)

        def deliver(fut):
            if handle.cancelled or fut.cancelled():
                return
            handle._cancelled = True
            error = fut.exception()
            if error is not None:
                on_error(error)
            else:
                on_result(fut.result())

        future.add_done_callback(deliver)
        return handle
