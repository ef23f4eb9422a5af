"""Driver loops that keep a `TimerRegistry` ticking.

The registry never fires anything on its own; something outside has to call
`run_pending` and then wait until the next timer is due. Two flavours:

- `run_until`: deterministic. Jumps a `SimClock` straight to each due time,
  so a ten-second scenario finishes instantly and always the same way.
- `drive_forever`: real time on an asyncio loop, paired with `LoopClock`.

Both log callback failures and keep going; a broken timer never stops the
loop.
"""

import asyncio
import logging
from typing import Optional

from timerlabs.scheduler import CallbackError, Millis, SimClock, TimerRegistry

logger = logging.getLogger(__name__)


class LoopClock:
    """Tiny adapter exposing `now_ms` atop the asyncio loop's clock."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def now_ms(self) -> float:
        loop = self._loop or asyncio.get_running_loop()
        return loop.time() * 1000.0


def run_pass(registry: TimerRegistry, now: Optional[Millis] = None) -> int:
    """Run one pass, logging instead of raising when callbacks fail."""
    try:
        return registry.run_pending(now)
    except CallbackError as err:
        logger.warning(
            "pass @ %sms: %d of %d callback(s) failed",
            registry.now() if now is None else now,
            len(err.failures),
            err.fired,
        )
        return err.fired


def run_until(
    registry: TimerRegistry, clock: SimClock, until_ms: Millis, min_step_ms: Millis = 1
) -> int:
    """Drive `registry` on simulated time up to and including `until_ms`.

    Runs a pass at the current time, then advances `clock` to each next due
    time and runs another, leaving the clock at `until_ms`. A timer that is
    still due after its pass (a repeating timer with interval 0) moves time
    forward by `min_step_ms`.

    Returns the number of passes that fired at least one callback.
    """
    passes = 0
    while True:
        if run_pass(registry, clock.now_ms()):
            passes += 1
        nxt = registry.next_due()
        if nxt is None or nxt > until_ms:
            break
        if nxt <= clock.now_ms():
            nxt = clock.now_ms() + min_step_ms
            if nxt > until_ms:
                break
        clock.advance_to(nxt)
    clock.advance_to(until_ms)
    return passes


async def drive_forever(
    registry: TimerRegistry,
    stop: Optional[asyncio.Event] = None,
    max_sleep_ms: Millis = 50,
    stop_when_idle: bool = False,
    min_sleep_ms: Millis = 1,
) -> int:
    """Drive `registry` in real time until `stop` is set.

    Sleeps until the next due timer, but never longer than `max_sleep_ms`,
    so timers scheduled from outside a callback (an HTTP handler, another
    task) are noticed promptly. A timer that is still due right after its
    pass (a repeating timer with interval 0) waits at least `min_sleep_ms`.
    With `stop_when_idle`, returns as soon as no timers are pending.

    Returns the number of passes that fired at least one callback.
    """
    passes = 0
    while stop is None or not stop.is_set():
        if run_pass(registry, registry.now()):
            passes += 1
        nxt = registry.next_due()
        if nxt is None:
            if stop_when_idle:
                break
            delay_ms = max_sleep_ms
        else:
            delay_ms = min(max(min_sleep_ms, nxt - registry.now()), max_sleep_ms)
        if stop is None:
            await asyncio.sleep(delay_ms / 1000.0)
            continue
        try:
            await asyncio.wait_for(stop.wait(), timeout=delay_ms / 1000.0)
        except asyncio.TimeoutError:
            pass
    logger.debug("driver stopped after %d firing pass(es)", passes)
    return passes
