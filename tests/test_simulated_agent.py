import asyncio
import random

import pytest

from interview_lab.interview import SimulatedVoiceAgent, DEFAULT_INTERVIEW_SCRIPT
from interview_lab.interview.testing import ManualScheduler
from interview_lab.infrastructure.timers import AsyncioScheduler


def make_agent(**kwargs):
    scheduler = ManualScheduler()
    return SimulatedVoiceAgent(scheduler, rng=random.Random(0), **kwargs), scheduler


def test_default_script_alternates_after_opening():
    roles = [role for role, _ in DEFAULT_INTERVIEW_SCRIPT]
    assert roles[0] == "assistant"
    assert roles[-1] == "assistant"
    assert roles[1:] == ["assistant", "user"] * 4 + ["assistant"]


def test_volume_level_every_second_in_range():
    agent, scheduler = make_agent()
    levels = []
    agent.on("volume-level", levels.append)

    scheduler.advance(3)

    assert len(levels) == 3
    assert all(0 <= level < 0.5 for level in levels)


def test_reregistering_volume_keeps_one_timer():
    agent, scheduler = make_agent()
    first, second = [], []
    agent.on("volume-level", first.append)
    agent.on("volume-level", second.append)

    scheduler.advance(2)

    assert first == []
    assert len(second) == 2
    assert scheduler.pending == 1


def test_call_start_after_half_second():
    agent, scheduler = make_agent()
    started = []
    agent.on("call-start", lambda: started.append(scheduler.elapsed))

    scheduler.advance(0.25)
    assert started == []
    scheduler.advance(0.25)
    assert started == [0.5]
    scheduler.advance(10)
    assert started == [0.5]


def test_start_emits_opening_line_then_every_eight_seconds():
    agent, scheduler = make_agent()
    messages = []
    agent.on("message", messages.append)

    agent.start("mock-assistant-1")
    assert messages == [{"type": "transcript", "role": "assistant", "transcript": DEFAULT_INTERVIEW_SCRIPT[0][1]}]

    scheduler.advance(8)
    assert len(messages) == 2
    scheduler.advance(64)
    assert len(messages) == len(DEFAULT_INTERVIEW_SCRIPT)
    assert [(m["role"], m["transcript"]) for m in messages] == DEFAULT_INTERVIEW_SCRIPT

    # Script timer cancels itself once exhausted
    assert agent.active_timers == 0


def test_start_twice_does_not_restart_script():
    agent, scheduler = make_agent()
    messages = []
    agent.on("message", messages.append)

    agent.start()
    agent.start()

    assert len(messages) == 1
    assert scheduler.pending == 1


def test_empty_script_starts_no_timer():
    agent, scheduler = make_agent(script=[])
    messages = []
    agent.on("message", messages.append)

    agent.start()
    scheduler.advance(100)

    assert messages == []
    assert scheduler.pending == 0


def test_stop_cancels_every_timer():
    agent, scheduler = make_agent()
    received = []
    agent.on("volume-level", received.append)
    agent.on("call-start", lambda: received.append("call-start"))
    agent.on("message", received.append)
    agent.on("call-end", lambda: received.append("call-end"))
    agent.start()
    agent.schedule_hang_up(30)

    agent.stop()
    count = len(received)
    scheduler.advance(1000)

    assert len(received) == count
    assert scheduler.pending == 0
    assert agent.active_timers == 0


def test_stop_is_idempotent():
    agent, _ = make_agent()
    agent.on("volume-level", lambda level: None)
    agent.start()

    agent.stop()
    agent.stop()

    assert agent.stopped


def test_start_after_stop_is_ignored():
    agent, scheduler = make_agent()
    messages = []
    agent.on("message", messages.append)

    agent.stop()
    agent.start()
    scheduler.advance(20)

    assert messages == []


def test_registration_after_stop_starts_no_timer():
    agent, scheduler = make_agent()
    agent.stop()

    agent.on("volume-level", lambda level: None)
    agent.on("call-start", lambda: None)

    assert scheduler.pending == 0


def test_set_muted_only_records():
    agent, scheduler = make_agent()
    agent.set_muted(True)

    assert agent.muted is True
    assert scheduler.pending == 0


def test_trigger_call_end():
    agent, _ = make_agent()
    ended = []
    agent.on("call-end", lambda: ended.append(True))

    agent.trigger_call_end()

    assert ended == [True]


def test_unknown_event_name_rejected():
    agent, _ = make_agent()

    with pytest.raises(ValueError):
        agent.on("call-started", lambda: None)


def test_manual_scheduler_rejects_zero_interval():
    with pytest.raises(ValueError):
        ManualScheduler().call_every(0, lambda: None)


def test_asyncio_scheduler_repeats_until_cancelled():
    async def run():
        scheduler = AsyncioScheduler()
        ticks = []
        handle = scheduler.call_every(0.01, lambda: ticks.append(1))
        await asyncio.sleep(0.055)
        handle.cancel()
        count = len(ticks)
        await asyncio.sleep(0.03)
        return count, len(ticks)

    count, after = asyncio.run(run())
    assert count >= 2
    assert after == count


def test_asyncio_scheduler_cancelled_call_later_never_fires():
    async def run():
        scheduler = AsyncioScheduler()
        fired = []
        handle = scheduler.call_later(0.01, lambda: fired.append(1))
        handle.cancel()
        handle.cancel()
        await asyncio.sleep(0.03)
        return fired, handle.cancelled

    fired, cancelled = asyncio.run(run())
    assert fired == []
    assert cancelled
