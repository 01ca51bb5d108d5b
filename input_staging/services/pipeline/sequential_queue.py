"""Strict FIFO, one-at-a-time execution of asynchronous work.

Used as a mutual-exclusion gate in front of a shared, rate-limited
downstream consumer: any number of callers may enqueue concurrently, but
tasks run one after another in submission order on a single worker.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from input_staging.core.exceptions import QueueClosedError, TaskTimeoutError
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

TaskFn = Callable[[], Awaitable[T]]


class SequentialTaskQueue:
    """In-process FIFO executor with at most one task in flight.

    A single worker task drains an ``asyncio.Queue``, so the next task is
    picked up by the loop rather than by a nested call from the previous
    one. A task's failure is delivered only to its own handle; the worker
    moves on to the next task.

    Example:
        >>> async with SequentialTaskQueue() as queue:
        ...     first = queue.enqueue(lambda: fetch("a"))
        ...     second = queue.enqueue(lambda: fetch("b"))
        ...     results = await asyncio.gather(first, second)
    """

    def __init__(self, task_timeout: Optional[float] = None, name: str = "sequential-queue"):
        """Initialize the queue.

        Args:
            task_timeout: Seconds a single task may run before it fails with
                TaskTimeoutError (None disables the timeout)
            name: Name used in logs and for the worker task
        """
        self.task_timeout = task_timeout
        self.name = name
        self._pending: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._running = False
        self._closed = False

    @property
    def is_running(self) -> bool:
        """True while a task is executing."""
        return self._running

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        """Number of tasks waiting to start."""
        return self._pending.qsize() if self._pending is not None else 0

    def enqueue(self, task: TaskFn[T]) -> "asyncio.Future[T]":
        """Submit a zero-argument coroutine function.

        Must be called from within the running event loop.

        Args:
            task: Callable returning an awaitable

        Returns:
            asyncio.Future: Settles with the task's result or exception.
            Cancelling it before the task starts removes the task from the
            queue; once started, a task runs to completion. A task that raises
            CancelledError leaves its handle cancelled.

        Raises:
            QueueClosedError: If the queue has been closed
        """
        if self._closed:
            raise QueueClosedError(f"Queue '{self.name}' is closed")

        handle = asyncio.get_running_loop().create_future()
        self._ensure_worker()
        self._pending.put_nowait((task, handle))
        LOGGER.debug(f"Enqueued task on '{self.name}' ({self.pending_count} pending)")
        return handle

    async def join(self) -> None:
        """Wait until every enqueued task has settled."""
        if self._pending is not None:
            await self._pending.join()

    async def close(self) -> None:
        """Stop accepting tasks, drain the ones already queued, stop the worker."""
        self._closed = True
        await self.join()

        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        LOGGER.debug(f"Closed queue '{self.name}'")

    async def __aenter__(self) -> "SequentialTaskQueue":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _ensure_worker(self) -> None:
        if self._pending is None:
            self._pending = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._drain(), name=f"{self.name}-worker"
            )

    async def _drain(self) -> None:
        while True:
            task, handle = await self._pending.get()
            try:
                if handle.cancelled():
                    LOGGER.debug(f"Skipping task cancelled before start on '{self.name}'")
                    continue
                await self._execute(task, handle)
            finally:
                self._pending.task_done()

    async def _execute(self, task: TaskFn, handle: asyncio.Future) -> None:
        self._running = True
        try:
            outcome = await self._run_task(task)
        finally:
            self._running = False

        error, result = outcome
        if handle.done():
            return
        if isinstance(error, asyncio.CancelledError):
            handle.cancel()
        elif error is not None:
            handle.set_exception(error)
        else:
            handle.set_result(result)

    async def _run_task(self, task: TaskFn) -> Tuple[Optional[BaseException], object]:
        try:
            if self.task_timeout is None:
                return None, await task()
            return None, await asyncio.wait_for(task(), timeout=self.task_timeout)
        except asyncio.TimeoutError as e:
            if self.task_timeout is None:
                LOGGER.warning(f"Task on '{self.name}' failed: {e!r}")
                return e, None
            LOGGER.warning(f"Task on '{self.name}' exceeded {self.task_timeout}s timeout")
            return TaskTimeoutError(
                f"Task exceeded {self.task_timeout}s timeout", original_error=e
            ), None
        except Exception as e:
            LOGGER.warning(f"Task on '{self.name}' failed: {e!r}")
            return e, None
        except asyncio.CancelledError as e:
            # Re-raise only when the worker itself is being cancelled
            if asyncio.current_task().cancelling():
                raise
            LOGGER.warning(f"Task on '{self.name}' was cancelled while running")
            return e, None
