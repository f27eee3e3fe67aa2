"""
Single-flight engine loader.

ensure_loaded() may be called from any number of coroutines. The first call
while unloaded (or after a failure) starts one loading attempt; every caller
that arrives while it is in flight waits on that same attempt and sees the
same outcome. Once ready, calls return immediately.

State machine:

    unloaded --ensure_loaded--> loading --all steps ok--> ready
                                   |
                                   +--any step raises--> failed --ensure_loaded--> loading

A failed attempt is not sticky: the next call retries from the first step.
All transitions happen synchronously on the event loop thread between awaits,
so the loop itself is the only mutual-exclusion point needed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from xqbridge.engines.base import EngineError, LoadStep
from xqbridge.events import EngineStatusEvent, LoadState

logger = logging.getLogger(__name__)


class EngineLoader:
    def __init__(self, steps: Sequence[LoadStep]) -> None:
        self._steps = list(steps)
        self._state: LoadState = "unloaded"
        self._inflight: asyncio.Task[None] | None = None
        self._waiters = 0
        self._attempts = 0
        self._last_error: EngineError | None = None

    # ------------------------------------------------------------------ #
    # Introspection                                                        #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == "ready"

    @property
    def attempts(self) -> int:
        """Number of loading attempts started so far."""
        return self._attempts

    @property
    def waiters(self) -> int:
        """Callers currently waiting on the in-flight attempt."""
        return self._waiters

    @property
    def last_error(self) -> EngineError | None:
        return self._last_error

    def status(self) -> EngineStatusEvent:
        return EngineStatusEvent(
            state=self._state,
            attempts=self._attempts,
            last_error=str(self._last_error) if self._last_error else None,
        )

    # ------------------------------------------------------------------ #
    # Loading                                                              #
    # ------------------------------------------------------------------ #

    async def ensure_loaded(self) -> None:
        """
        Wait until the engine is loaded, starting a load if none is running.

        Raises:
            EngineError(kind="load_failure"): the shared attempt failed.
        """
        if self._state == "ready":
            return

        task = self._inflight
        if self._state != "loading" or task is None:
            self._state = "loading"
            self._attempts += 1
            logger.info("Loading engine (attempt %d, %d steps)", self._attempts, len(self._steps))
            task = self._inflight = asyncio.create_task(self._run_steps())

        self._waiters += 1
        try:
            # shield: one waiter being cancelled must not cancel the attempt for the rest
            await asyncio.shield(task)
        finally:
            self._waiters -= 1

    async def _run_steps(self) -> None:
        try:
            for step in self._steps:
                await step()
        except asyncio.CancelledError:
            self._state = "failed"
            self._last_error = EngineError("load_failure", "Engine loading was cancelled")
            raise
        except EngineError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            err = EngineError("load_failure", str(exc), cause=exc)
            self._fail(err)
            raise err from exc
        self._state = "ready"
        self._last_error = None
        logger.info("Engine ready after %d attempt(s)", self._attempts)

    def _fail(self, exc: EngineError) -> None:
        self._state = "failed"
        self._last_error = exc
        logger.error("Engine loading failed: %s", exc)
