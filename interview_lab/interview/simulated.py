"""
Simulated voice agent used when no live call exists.

Plays a scripted interview through the same event interface as the live client so a
session controller cannot tell the two apart. All activity is driven by timers on the
injected scheduler and every timer is cancelled by `stop()`.
"""
import random
import logging
from typing import List, Optional, Tuple

from ..infrastructure.timers import Scheduler, TimerHandle
from ..infrastructure.voice.client import VoiceAgentClient, VoiceEvent, EventCallback, transcript_message
from ..config import (
    SIMULATED_VOLUME_INTERVAL, SIMULATED_VOLUME_MAX,
    SIMULATED_CALL_START_DELAY, SIMULATED_SCRIPT_INTERVAL,
    ASSISTANT_FIRST_MESSAGE,
)

logger = logging.getLogger("simulated_agent")

ScriptLine = Tuple[str, str]

# Assistant opens, the two sides alternate, assistant closes
DEFAULT_INTERVIEW_SCRIPT: List[ScriptLine] = [
    ("assistant", ASSISTANT_FIRST_MESSAGE),
    ("assistant", "Could you tell me a bit about yourself and your experience with this topic?"),
    ("user", "Sure. I've been working in this area for a few years, mostly day to day with the tools."),
    ("assistant", "That's interesting. What specific challenges have you faced in this area?"),
    ("user", "Finding the right information quickly is the hardest part. Things are spread across places."),
    ("assistant", "How did you overcome those challenges? Were there any specific strategies that worked well?"),
    ("user", "I keep my own notes and checklists, and I ask colleagues who have done it before."),
    ("assistant", "Based on your experience, what improvements would you suggest for others facing similar situations?"),
    ("user", "One place to look things up, and clearer guidance when you get started."),
    ("assistant", "Thank you for sharing your insights. Is there anything else you'd like to add that we haven't covered?"),
]


class SimulatedVoiceAgent(VoiceAgentClient):
    """Scripted stand-in for the live voice agent client."""

    kind = "simulated"

    def __init__(self,
                 scheduler: Scheduler,
                 script: Optional[List[ScriptLine]] = None,
                 rng: Optional[random.Random] = None,
                 volume_interval: float = SIMULATED_VOLUME_INTERVAL,
                 call_start_delay: float = SIMULATED_CALL_START_DELAY,
                 script_interval: float = SIMULATED_SCRIPT_INTERVAL):
        super().__init__()
        self.scheduler = scheduler
        self.script = list(script if script is not None else DEFAULT_INTERVIEW_SCRIPT)
        self.rng = rng or random.Random()
        self.volume_interval = volume_interval
        self.call_start_delay = call_start_delay
        self.script_interval = script_interval

        self.script_index = 0
        self.started = False
        self.stopped = False
        self._timers: List[TimerHandle] = []
        self._volume_timer: Optional[TimerHandle] = None
        self._call_start_timer: Optional[TimerHandle] = None
        self._script_timer: Optional[TimerHandle] = None

    @property
    def active_timers(self) -> int:
        """Number of timers that can still fire."""
        return sum(1 for t in self._timers if not t.cancelled)

    def _track(self, handle: TimerHandle) -> TimerHandle:
        self._timers.append(handle)
        return handle

    def on(self, event: str, callback: EventCallback) -> None:
        super().on(event, callback)
        event = VoiceEvent(event)
        logger.debug(f"Simulated agent registered listener for {event.value}")

        if self.stopped:
            return

        if event == VoiceEvent.VOLUME_LEVEL:
            # One volume timer per client, started on registration
            if self._volume_timer is not None:
                self._volume_timer.cancel()
            self._volume_timer = self._track(
                self.scheduler.call_every(self.volume_interval, self._emit_volume)
            )
        elif event == VoiceEvent.CALL_START:
            if self._call_start_timer is not None:
                self._call_start_timer.cancel()
            self._call_start_timer = self._track(
                self.scheduler.call_later(self.call_start_delay, lambda: self.emit(VoiceEvent.CALL_START))
            )

    def start(self, session_id: Optional[str] = None) -> None:
        """Emit the opening line now and the rest of the script on the script interval."""
        if self.stopped:
            logger.warning("Simulated agent start() called after stop(); ignoring")
            return
        if self.started:
            return

        self.started = True
        logger.info(f"Simulated interview started for {session_id or 'unnamed session'}")

        if self.script:
            self._emit_next_line()
        if self.script_index < len(self.script):
            self._script_timer = self._track(
                self.scheduler.call_every(self.script_interval, self._on_script_tick)
            )

    def stop(self) -> None:
        """Cancel every timer this client created. Safe to call repeatedly."""
        if not self.stopped:
            logger.info("Simulated agent stopped")
        self.stopped = True
        for handle in self._timers:
            handle.cancel()

    def set_muted(self, muted: bool) -> None:
        super().set_muted(muted)
        logger.debug(f"Simulated agent muted={self.muted}")

    def trigger_call_end(self) -> None:
        """Simulate the remote side hanging up."""
        self.emit(VoiceEvent.CALL_END)

    def schedule_hang_up(self, delay: float) -> TimerHandle:
        """Have the remote side hang up after `delay` seconds unless stopped first."""
        return self._track(self.scheduler.call_later(delay, self.trigger_call_end))

    def _emit_volume(self) -> None:
        self.emit(VoiceEvent.VOLUME_LEVEL, self.rng.random() * SIMULATED_VOLUME_MAX)

    def _emit_next_line(self) -> None:
        role, text = self.script[self.script_index]
        self.script_index += 1
        self.emit(VoiceEvent.MESSAGE, transcript_message(role, text))

    def _on_script_tick(self) -> None:
        if self.script_index < len(self.script):
            self._emit_next_line()
        if self.script_index >= len(self.script) and self._script_timer is not None:
            self._script_timer.cancel()
