"""Interfaces (Protocols) that decouple timer users from clocks and drivers.

Why this matters for learning:
- Demo code depends only on these minimal abstractions, so the same program
  runs on the deterministic `SimClock` in tests and on a real clock at
  runtime without changes.
"""

from typing import Any, Callable, Protocol, Union

Millis = Union[int, float]


class Clock(Protocol):
    """Time source for a timer registry."""

    def now_ms(self) -> Millis:
        """Return current time in milliseconds for this clock domain."""
        ...


class TimerApi(Protocol):
    """The `setTimeout`/`setInterval`/`clearTimeout` surface.

    Callbacks are invoked with the positional `args` given at scheduling
    time; nothing fires until the owner runs a pass.
    """

    def schedule_once(self, ms: Millis, cb: Callable[..., Any], *args: Any) -> int:
        """Schedule `cb(*args)` to run once in `ms` milliseconds."""
        ...

    def schedule_repeating(
        self, ms: Millis, cb: Callable[..., Any], *args: Any
    ) -> int:
        """Schedule `cb(*args)` to run every `ms` milliseconds."""
        ...

    def cancel(self, timer_id: int) -> bool:
        """Cancel `timer_id`; unknown or finished ids are ignored."""
        ...
