"""Per-key tracker of in-flight computations."""

import asyncio
import functools
from collections.abc import Callable, Coroutine
from typing import Any


class InFlightTracker:
    """Owned map from cache key to the task computing its bytes.

    At most one unfinished task exists per key. Lookup and insert happen
    without an intervening ``await``, so they are atomic with respect to
    other coroutines on the same event loop. Entries remove themselves
    when their task finishes, whether it succeeded, failed or was
    cancelled.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[bytes]] = {}

    def run(
        self,
        key: str,
        factory: Callable[[], Coroutine[Any, Any, bytes]],
    ) -> tuple[asyncio.Task[bytes], bool]:
        """Return the task computing key, starting one if needed.

        Args:
            key: The cache key.
            factory: Builds the coroutine for a new computation. Only
                called when no computation for key is running.

        Returns:
            A (task, started) pair. ``started`` is True when this call
            created the task and False when it attached to a running one.
        """
        task = self._tasks.get(key)
        # A task bound to another (possibly closed) loop is stale.
        if (
            task is not None
            and not task.done()
            and task.get_loop() is asyncio.get_running_loop()
        ):
            return task, False

        task = asyncio.create_task(factory(), name=f"cacheaside:{key}")
        self._tasks[key] = task
        task.add_done_callback(functools.partial(self._release, key))
        return task, True

    def _release(self, key: str, task: "asyncio.Task[bytes]") -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Waiters re-raise the outcome themselves.
        if not task.cancelled():
            task.exception()

    def __contains__(self, key: object) -> bool:
        task = self._tasks.get(key)  # type: ignore[arg-type]
        return task is not None and not task.done()

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())
