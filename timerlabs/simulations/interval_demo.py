"""The classic `setTimeout` vs `setInterval` event-queue demo.

Synchronous prints always come first: a timeout of 0 ms still waits for the
next pass of the timer loop. The interval then ticks every second and clears
itself after three runs. Expected output:

    Start setTimeout
    End setTimeout
    Start setInterval
    End setInterval
    Timeout executed
    Interval executed 0
    Interval executed 1
    Interval executed 2
    Interval cleared

The interval callback gets its counter and its own timer id through an
explicit `IntervalState` argument rather than closing over outer variables.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from timerlabs.protocols import TimerApi
from timerlabs.runtime.driver import run_until
from timerlabs.scheduler import SimClock, TimerRegistry

Emit = Callable[[str], None]


@dataclass
class IntervalState:
    limit: int = 3
    counter: int = 0
    timer_id: Optional[int] = None


def timeout_executed(emit: Emit) -> None:
    emit("Timeout executed")


def interval_executed(timers: TimerApi, state: IntervalState, emit: Emit) -> None:
    emit(f"Interval executed {state.counter}")
    state.counter += 1
    if state.counter == state.limit:
        timers.cancel(state.timer_id)
        emit("Interval cleared")


def install(
    timers: TimerApi, emit: Emit, interval_ms: int = 1000, limit: int = 3
) -> IntervalState:
    """Run the synchronous part of the demo and schedule its two timers."""
    emit("Start setTimeout")
    timers.schedule_once(0, timeout_executed, emit)
    emit("End setTimeout")

    emit("Start setInterval")
    state = IntervalState(limit=limit)
    state.timer_id = timers.schedule_repeating(
        interval_ms, interval_executed, timers, state, emit
    )
    emit("End setInterval")
    return state


class IntervalDemo:
    """Run the demo on simulated time and record every line it prints."""

    def __init__(self, interval_ms: int = 1000, limit: int = 3, horizon_ms: int = 10_000):
        self.params = {
            "interval_ms": interval_ms,
            "limit": limit,
            "horizon_ms": horizon_ms,
        }
        self.clock = SimClock()
        self.registry = TimerRegistry(self.clock)
        self.lines: List[str] = []
        self.stamped: List[tuple] = []
        self.state: Optional[IntervalState] = None

    def emit(self, line: str) -> None:
        self.lines.append(line)
        self.stamped.append((self.clock.now_ms(), line))

    def run_scenario(self) -> List[str]:
        self.state = install(
            self.registry,
            self.emit,
            interval_ms=self.params["interval_ms"],
            limit=self.params["limit"],
        )
        run_until(self.registry, self.clock, self.params["horizon_ms"])
        return self.lines


def main():
    demo = IntervalDemo()
    demo.run_scenario()
    for at, line in demo.stamped:
        print(f"[{at:>5}ms] {line}")
    print(demo.registry.dump_state())


if __name__ == "__main__":
    main()
