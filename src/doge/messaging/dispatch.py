"""Bounded worker pool for outbound message dispatch and scheduled tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Job = Callable[..., Awaitable[None]]


class DispatchPool:
    """An asyncio worker pool that grows from a core size up to a maximum.

    ``core_size`` workers are started up front and never retire. When a job
    is submitted while no worker is idle, one extra worker is started as long
    as fewer than ``max_size`` exist. Extra workers exit after ``keep_alive``
    idle seconds. At most ``max_size`` jobs run at once.
    """

    def __init__(
        self, core_size: int = 4, max_size: int = 10, keep_alive: float = 60.0
    ) -> None:
        if core_size < 1 or max_size < core_size:
            raise ValueError(
                f"Invalid pool bounds: core_size={core_size}, max_size={max_size}"
            )
        self.core_size = core_size
        self.max_size = max_size
        self.keep_alive = keep_alive
        self.active_count = 0
        self.peak_active = 0
        self._queue: asyncio.Queue[tuple[Job, tuple[object, ...]]] | None = None
        self._workers: set[asyncio.Task[None]] = set()

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def started(self) -> bool:
        return self._queue is not None

    async def start(self) -> None:
        """Start the core workers on the running event loop."""
        if self._queue is not None:
            return
        self._queue = asyncio.Queue()
        for _ in range(self.core_size):
            self._spawn()

    def submit(self, job: Job, *args: object) -> None:
        """Queue a coroutine function to run on a worker."""
        if self._queue is None:
            raise RuntimeError("DispatchPool has not been started")
        self._queue.put_nowait((job, args))
        idle = len(self._workers) - self.active_count
        if self._queue.qsize() > idle and len(self._workers) < self.max_size:
            self._spawn()

    async def join(self) -> None:
        """Wait until every submitted job has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def shutdown(self) -> None:
        """Cancel all workers and drop queued jobs."""
        workers = list(self._workers)
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        self._queue = None

    def _spawn(self) -> None:
        worker = asyncio.create_task(self._work())
        self._workers.add(worker)

    async def _work(self) -> None:
        queue = self._queue
        assert queue is not None
        try:
            while True:
                try:
                    job, args = await asyncio.wait_for(queue.get(), self.keep_alive)
                except TimeoutError:
                    if len(self._workers) > self.core_size:
                        return
                    continue
                self.active_count += 1
                self.peak_active = max(self.peak_active, self.active_count)
                try:
                    await job(*args)
                except Exception:
                    logger.exception("Dispatch job failed")
                finally:
                    self.active_count -= 1
                    queue.task_done()
        finally:
            self._workers.discard(asyncio.current_task())  # type: ignore[arg-type]


class TaskScheduler:
    """Runs periodic jobs on a dispatch pool."""

    def __init__(self, pool: DispatchPool) -> None:
        self.pool = pool
        self._timers: list[asyncio.Task[None]] = []

    def schedule_at_fixed_rate(self, job: Job, period: float) -> asyncio.Task[None]:
        """Submit ``job`` to the pool every ``period`` seconds."""
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

        async def timer() -> None:
            loop = asyncio.get_running_loop()
            next_run = loop.time() + period
            while True:
                await asyncio.sleep(max(0.0, next_run - loop.time()))
                next_run += period
                self.pool.submit(job)

        task = asyncio.create_task(timer())
        self._timers.append(task)
        return task

    async def shutdown(self) -> None:
        """Stop every scheduled timer."""
        for timer in self._timers:
            timer.cancel()
        await asyncio.gather(*self._timers, return_exceptions=True)
        self._timers.clear()
