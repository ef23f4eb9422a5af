from timerlabs.scheduler import (
    CallbackError,
    MonotonicClock,
    SimClock,
    TimerEntry,
    TimerKind,
    TimerRegistry,
)

__all__ = [
    "CallbackError",
    "MonotonicClock",
    "SimClock",
    "TimerEntry",
    "TimerKind",
    "TimerRegistry",
]
