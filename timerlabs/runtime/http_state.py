"""Minimal HTTP surface for watching a live timer registry.

This module exposes two endpoints via FastAPI:
- GET /state: the registry's `brief_state()` for dashboards/inspection.
- POST /timers/{timer_id}/cancel: cancel a timer from outside the process.

Handlers run on the same event loop as `drive_forever`, so they never race
with a pass in progress.
"""

from typing import Any, Dict

from fastapi import FastAPI

from timerlabs.scheduler import TimerRegistry


def build_app(registry: TimerRegistry, title: str = "timerlabs") -> FastAPI:
    """Return a FastAPI app bound to `registry`."""
    app = FastAPI(title=title)

    @app.get("/state")
    async def state() -> Dict[str, Any]:
        return registry.brief_state()

    @app.post("/timers/{timer_id}/cancel")
    async def cancel(timer_id: int) -> Dict[str, Any]:
        """Cancel a timer; unknown ids are accepted and reported inactive."""
        was_active = registry.cancel(timer_id)
        return {"ok": True, "was_active": was_active}

    return app
