"""Entry point for running the timer demo in real time (or in Docker).

This file wires a `TimerRegistry` to an asyncio-backed clock and driver,
installs the `setTimeout`/`setInterval` demo, and serves FastAPI endpoints
for inspecting the registry while it runs.

Environment variables:
- TIMERLABS_HOST / TIMERLABS_PORT: where to serve /state (default 0.0.0.0:8000)
- TIMERLABS_SERVE: set to 0 to skip the HTTP server and exit once idle
- TIMERLABS_INTERVAL_MS: interval of the repeating timer (default 1000)
- TIMERLABS_LIMIT: interval runs before it clears itself (default 3)
- TIMERLABS_MAX_SLEEP_MS: longest the driver sleeps between passes (default 50)
- TIMERLABS_LOG_LEVEL: logging level name (default INFO)
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

import uvicorn

from timerlabs.runtime.driver import LoopClock, drive_forever
from timerlabs.runtime.http_state import build_app
from timerlabs.scheduler import TimerRegistry
from timerlabs.simulations.interval_demo import install

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    serve: bool = True
    interval_ms: int = 1000
    limit: int = 3
    max_sleep_ms: int = 50
    log_level: str = "INFO"


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Parse `TIMERLABS_*` variables (see module docstring)."""
    env = os.environ if environ is None else environ
    return Settings(
        host=env.get("TIMERLABS_HOST", "0.0.0.0"),
        port=_int_env(env, "TIMERLABS_PORT", 8000),
        serve=env.get("TIMERLABS_SERVE", "1").lower() not in ("0", "false", "no"),
        interval_ms=_int_env(env, "TIMERLABS_INTERVAL_MS", 1000),
        limit=_int_env(env, "TIMERLABS_LIMIT", 3),
        max_sleep_ms=_int_env(env, "TIMERLABS_MAX_SLEEP_MS", 50),
        log_level=env.get("TIMERLABS_LOG_LEVEL", "INFO").upper(),
    )


async def run(settings: Settings) -> None:
    """Install the demo and drive it; serve /state alongside when enabled."""
    registry = TimerRegistry(LoopClock())
    stop = asyncio.Event()
    install(registry, print, interval_ms=settings.interval_ms, limit=settings.limit)

    driver = asyncio.create_task(
        drive_forever(
            registry,
            stop,
            max_sleep_ms=settings.max_sleep_ms,
            stop_when_idle=not settings.serve,
        )
    )
    if not settings.serve:
        await driver
        return

    logger.info("serving timer state on http://%s:%d/state", settings.host, settings.port)
    server = uvicorn.Server(
        uvicorn.Config(
            build_app(registry),
            host=settings.host,
            port=settings.port,
            log_level="warning",
        )
    )
    try:
        await server.serve()
    finally:
        stop.set()
        await driver


def main():
    """Boot the registry, attach the driver, and run until interrupted."""
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
