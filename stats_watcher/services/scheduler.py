"""Fixed-delay pass loop with per-pass fault isolation."""
from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..interfaces.error_reporter import ErrorReporter

logger = logging.getLogger(__name__)


class PassState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class Scheduler:
    """Runs ``pass_fn`` repeatedly for one network.

    The delay is measured from the end of a pass, so passes never overlap.
    A failed pass is reported and logged and the loop carries on; only the
    stop event ends it.
    """

    def __init__(
        self,
        name: str,
        pass_fn: Callable[[], Awaitable[Any]],
        delay: float,
        error_reporter: ErrorReporter,
        pass_timeout: float | None = None,
    ) -> None:
        self.name = name
        self._pass_fn = pass_fn
        self._delay = delay
        self._error_reporter = error_reporter
        self._pass_timeout = pass_timeout
        self.state = PassState.IDLE
        self.passes_run = 0
        self.passes_failed = 0

    async def run_once(self) -> bool:
        """Run a single pass. Returns True on success."""
        self.state = PassState.RUNNING
        self.passes_run += 1
        try:
            if self._pass_timeout is None:
                await self._pass_fn()
            else:
                await asyncio.wait_for(self._pass_fn(), timeout=self._pass_timeout)
        except Exception as e:
            self.state = PassState.FAILED
            self.passes_failed += 1
            logger.exception("[%s] Error! Pass %d failed: %s", self.name, self.passes_run, e)
            self._error_reporter.capture_exception(e)
            return False

        self.state = PassState.SUCCESS
        return True

    async def _wait(self, stop: asyncio.Event) -> None:
        """Sleep for the loop delay, returning early if ``stop`` is set."""
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=self._delay)

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Run passes until ``stop`` is set. A running pass is allowed to finish."""
        logger.info("[%s] Starting stats loop (every %s seconds)", self.name, self._delay)

        while not stop.is_set():
            await self.run_once()
            self.state = PassState.IDLE
            if stop.is_set():
                break
            logger.info("[%s] Setting timeout for loop to %s seconds", self.name, self._delay)
            await self._wait(stop)

        logger.info("[%s] Stats loop stopped after %d passes", self.name, self.passes_run)
