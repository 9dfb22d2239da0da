"""
FIFO execution queue with a fixed number of worker slots
Serializes heavyweight export pipelines to bound peak memory
"""
import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Set, Tuple
import logging

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]


class ExecutionQueue:
    """
    Runs submitted coroutines in submission order, at most
    `max_concurrent` at a time. A failing task never stalls the queue.
    """

    def __init__(self, max_concurrent: int = 1):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._backlog: Deque[Tuple[TaskFactory, asyncio.Future]] = deque()
        self._active: Set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def depth(self) -> int:
        """Number of tasks waiting for a slot"""
        return len(self._backlog)

    def active_count(self) -> int:
        return len(self._active)

    def submit(self, task_factory: TaskFactory) -> asyncio.Future:
        """
        Enqueue a coroutine factory.
        Returns a future resolved with the task's result or exception.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._backlog.append((task_factory, future))
        self._idle.clear()
        self._process_next()
        return future

    def _process_next(self) -> None:
        while self._backlog and len(self._active) < self._max_concurrent:
            task_factory, future = self._backlog.popleft()
            logger.info(f"Processing job. Queue length: {len(self._backlog)}")
            task = asyncio.create_task(self._run(task_factory, future))
            self._active.add(task)
            task.add_done_callback(self._on_task_done)

        if not self._backlog and not self._active:
            self._idle.set()

    async def _run(self, task_factory: TaskFactory, future: asyncio.Future) -> None:
        try:
            result = await task_factory()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            logger.error(f"Queued task failed: {e}", exc_info=True)
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._active.discard(task)
        self._process_next()

    async def join(self) -> None:
        """Wait until the backlog is drained and no task is running"""
        await self._idle.wait()
