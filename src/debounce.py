"""Debounced re-runs of the search pipeline."""
import asyncio
import sys
from typing import Any, Awaitable, Callable, Optional


class Debouncer:
    """Runs a coroutine function once input has been quiet for ``delay`` seconds.

    Each call to :meth:`trigger` cancels the pending run (if any) and
    schedules a fresh one, so only the last trigger within the window runs.
    A run that has already started is not interrupted.
    """

    def __init__(self, func: Callable[..., Awaitable[Any]], delay: float = 0.3):
        self.func = func
        self.delay = delay
        self._task: Optional[asyncio.Task] = None
        self._active: Optional[asyncio.Task] = None
        self.last_result: Any = None

    @property
    def pending(self) -> bool:
        """True if a run is scheduled but has not started yet."""
        return self._task is not None and not self._task.done() and self._task is not self._active

    def trigger(self, *args: Any, **kwargs: Any) -> asyncio.Task:
        """Schedule a run with the given arguments, superseding any pending one."""
        if self.pending:
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(args, kwargs))
        return self._task

    def cancel(self) -> None:
        """Cancel the pending run, if any."""
        if self.pending:
            self._task.cancel()

    async def flush(self) -> Any:
        """Wait for the latest scheduled run and return its result.

        A trigger that supersedes the awaited run while waiting is followed
        through, so the result always reflects the newest arguments.
        """
        while self._task is not None:
            task = self._task
            try:
                return await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
                if task is self._task:
                    return self.last_result
        return self.last_result

    async def _run(self, args: tuple, kwargs: dict) -> Any:
        await asyncio.sleep(self.delay)
        self._active = asyncio.current_task()
        try:
            self.last_result = await self.func(*args, **kwargs)
        except Exception as e:
            print(f"[Debouncer] Debounced call failed: {e}", file=sys.stderr)
            raise
        finally:
            if self._active is asyncio.current_task():
                self._active = None
        return self.last_result
