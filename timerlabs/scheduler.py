"""Clocks and the timer registry behind `setTimeout`/`setInterval`.

Use these helpers to control time explicitly during tests and demos.

- `SimClock`: monotonically increasing time in milliseconds; you call
  `advance(ms)` to move time forward.
- `MonotonicClock`: wall time in milliseconds for real-time runs.
- `TimerRegistry`: holds one-shot and repeating timers relative to a clock
  and fires them when `run_pending()` is called.

Typical loop:

    registry.run_pending()
    clock.advance(10)

Nothing runs on its own: a callback only ever fires inside `run_pending`,
so a timer scheduled with delay 0 still waits for the next pass.
"""

import heapq
import itertools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from timerlabs.protocols import Clock, Millis

logger = logging.getLogger(__name__)

# Compact the heap once it holds at least this many entries and more than
# half of them are cancelled.
MIN_COMPACT_SIZE = 100


class SimClock:
    """Monotonic simulated clock measured in milliseconds."""

    def __init__(self, start: Millis = 0) -> None:
        self.t = start

    def now_ms(self) -> Millis:
        """Return the current simulated time in milliseconds."""
        return self.t

    def advance(self, ms: Millis) -> None:
        """Advance simulated time by `ms` milliseconds (non-negative)."""
        if ms < 0:
            raise ValueError(f"cannot advance clock by negative step {ms}")
        self.t += ms

    def advance_to(self, t: Millis) -> None:
        """Move the clock forward to `t`; earlier targets leave it unchanged."""
        if t > self.t:
            self.t = t


class MonotonicClock:
    """Wall clock backed by `time.monotonic()`, in milliseconds."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class TimerKind(Enum):
    ONE_SHOT = "one_shot"
    REPEATING = "repeating"


@dataclass
class TimerEntry:
    """A scheduled callback and its bookkeeping."""

    id: int
    due_time: Millis
    callback: Callable[..., Any]
    kind: TimerKind
    seq: int
    interval: Optional[Millis] = None
    args: Tuple[Any, ...] = ()
    active: bool = True
    fired: int = 0

    def describe(self) -> str:
        cb_name = getattr(self.callback, "__name__", None)
        return cb_name if isinstance(cb_name, str) else repr(self.callback)


class CallbackError(Exception):
    """One or more callbacks raised during a `run_pending` pass.

    The registry is left consistent and every other due timer still fired.
    `failures` lists each failing entry with the exception it raised;
    `fired` counts every callback invoked in the pass, failed ones included.
    """

    def __init__(
        self, failures: List[Tuple[TimerEntry, Exception]], fired: int = 0
    ) -> None:
        self.failures = failures
        self.fired = fired
        parts = [
            f"timer {entry.id} ({entry.describe()}): {exc!r}" for entry, exc in failures
        ]
        super().__init__(
            f"{len(failures)} timer callback(s) failed: " + "; ".join(parts)
        )


class TimerRegistry:
    """Registry backed by a min-heap of pending timers.

    Schedule callbacks with `schedule_once(ms, cb)` or
    `schedule_repeating(ms, cb)`; each returns an integer id for `cancel`.
    Fire due callbacks by calling `run_pending()` after advancing the clock.
    A registration sequence number keeps FIFO order among timers due at the
    same time, including repeating timers after they are rescheduled.

    Cancelled entries are dropped from the id index right away and skipped
    lazily when they surface at the top of the heap. Once they make up more
    than half of a large heap it is rebuilt without them.
    """

    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self._cancelled = 0
        self.heap: List[Tuple[Millis, int, TimerEntry]] = []
        self._entries: Dict[int, TimerEntry] = {}
        self._ids = itertools.count(1)
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, timer_id: object) -> bool:
        return timer_id in self._entries

    def now(self) -> Millis:
        return self.clock.now_ms()

    def schedule_once(self, ms: Millis, cb: Callable[..., Any], *args: Any) -> int:
        """Run `cb(*args)` once, `ms` milliseconds from now.

        A delay of 0 does not run `cb` immediately; it becomes due on the next
        `run_pending` pass.
        """
        return self._add(TimerKind.ONE_SHOT, ms, cb, args)

    def schedule_repeating(
        self, ms: Millis, cb: Callable[..., Any], *args: Any
    ) -> int:
        """Run `cb(*args)` every `ms` milliseconds until cancelled.

        The first firing is due `ms` from now. Each later firing is due one
        interval after the previous nominal due time, not after the moment the
        callback actually ran.
        """
        return self._add(TimerKind.REPEATING, ms, cb, args)

    def _add(
        self,
        kind: TimerKind,
        ms: Millis,
        cb: Callable[..., Any],
        args: Tuple[Any, ...],
    ) -> int:
        if ms < 0:
            raise ValueError(f"timer delay must be non-negative, got {ms}")
        if not callable(cb):
            raise TypeError(f"timer callback must be callable, got {cb!r}")
        entry = TimerEntry(
            id=next(self._ids),
            due_time=self.now() + ms,
            callback=cb,
            kind=kind,
            seq=next(self._seq),
            interval=ms if kind is TimerKind.REPEATING else None,
            args=args,
        )
        self._entries[entry.id] = entry
        heapq.heappush(self.heap, (entry.due_time, entry.seq, entry))
        logger.debug(
            "scheduled %s timer %d due @ %sms", kind.value, entry.id, entry.due_time
        )
        return entry.id

    def cancel(self, timer_id: int) -> bool:
        """Stop timer `timer_id` from firing again.

        Unknown, fired or already-cancelled ids are ignored. Returns whether
        an active timer was cancelled. A callback already running is not
        interrupted.
        """
        entry = self._entries.pop(timer_id, None)
        if entry is None:
            return False
        entry.active = False
        self._cancelled += 1
        logger.debug("cancelled timer %d", timer_id)
        if (
            len(self.heap) >= MIN_COMPACT_SIZE
            and self._cancelled * 2 > len(self.heap)
        ):
            self._compact()
        return True

    def get(self, timer_id: int) -> Optional[TimerEntry]:
        return self._entries.get(timer_id)

    def next_due(self) -> Optional[Millis]:
        """Due time of the earliest active timer, or None when idle."""
        self._discard_cancelled()
        if not self.heap:
            return None
        return self.heap[0][0]

    def _discard_cancelled(self) -> None:
        while self.heap and not self.heap[0][2].active:
            heapq.heappop(self.heap)
            self._cancelled = max(0, self._cancelled - 1)

    def _compact(self) -> None:
        self.heap = [item for item in self.heap if item[2].active]
        heapq.heapify(self.heap)
        self._cancelled = 0

    def run_pending(self, now: Optional[Millis] = None) -> int:
        """Fire every active timer whose due time is <= `now`.

        `now` defaults to the clock's current time. Due timers are collected
        before any callback runs, so timers scheduled by a callback wait for
        a later pass and a repeating timer fires at most once per pass.

        Returns the number of callbacks invoked. If any callback raised, the
        remaining due timers still fire and `CallbackError` is raised once
        the pass is complete.
        """
        if now is None:
            now = self.now()

        due: List[TimerEntry] = []
        while self.heap and self.heap[0][0] <= now:
            _, _, entry = heapq.heappop(self.heap)
            if entry.active:
                due.append(entry)
            else:
                self._cancelled = max(0, self._cancelled - 1)

        fired = 0
        failures: List[Tuple[TimerEntry, Exception]] = []
        for i, entry in enumerate(due):
            # An earlier callback in this pass may have cancelled it.
            if not entry.active:
                continue
            if entry.kind is TimerKind.ONE_SHOT:
                entry.active = False
                self._entries.pop(entry.id, None)
            entry.fired += 1
            fired += 1
            try:
                entry.callback(*entry.args)
            except Exception as exc:
                logger.error(
                    "timer %d (%s) raised", entry.id, entry.describe(), exc_info=exc
                )
                failures.append((entry, exc))
            except BaseException:
                # KeyboardInterrupt and friends abort the pass; put the
                # timers that did not get their turn back in the queue.
                for rest in due[i + 1 :]:
                    if rest.active:
                        heapq.heappush(self.heap, (rest.due_time, rest.seq, rest))
                raise
            finally:
                if entry.kind is TimerKind.REPEATING and entry.active:
                    entry.due_time += entry.interval
                    heapq.heappush(self.heap, (entry.due_time, entry.seq, entry))

        if failures:
            raise CallbackError(failures, fired) from failures[0][1]
        return fired

    def pending(self) -> List[TimerEntry]:
        """Active timers in firing order."""
        return sorted(self._entries.values(), key=lambda e: (e.due_time, e.seq))

    def brief_state(self) -> Dict[str, Any]:
        """JSON-friendly snapshot for dashboards and the /state endpoint."""
        return {
            "now": self.now(),
            "pending": len(self._entries),
            "timers": [
                {
                    "id": e.id,
                    "kind": e.kind.value,
                    "due": e.due_time,
                    "interval": e.interval,
                    "fired": e.fired,
                    "callback": e.describe(),
                }
                for e in self.pending()
            ],
        }

    def dump_state(self, n: int = 5) -> str:
        """Return a human-readable snapshot of timer state and queued timers.

        Args:
            n: Maximum number of timers to include (default: 5).

        The snapshot includes the current time, the number of active timers,
        and details for the first `n` in firing order, without changing the
        underlying queue.
        """
        now = self.now()
        entries = self.pending()
        lines = [
            f"TimerRegistry @ t = {now}ms",
            f"pending = {len(entries)} (showing first {min(n, len(entries))})",
        ]
        for i, e in enumerate(entries[:n]):
            remaining = max(0, e.due_time - now)
            every = f" every {e.interval}ms" if e.interval is not None else ""
            lines.append(
                f"#{i:02d} id={e.id} {e.kind.value}{every} due @ {e.due_time}ms "
                f"(in {remaining}ms) fired={e.fired} cb={e.describe()}"
            )
        return "\n".join(lines)
