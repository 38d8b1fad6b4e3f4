"""
Job Scheduler

Bounded-concurrency worker pool that drains a queue of job indices.
"""

import asyncio
import logging
from collections import deque
from threading import Lock
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence

from ..media_generation.media_models import Job

JobHandler = Callable[[Job], Awaitable[Optional[str]]]


class JobQueue:
    """
    Shared queue of job indices.

    ``pop`` is the only way to take work and is lock-guarded, so each index is
    handed to exactly one worker even if workers run on separate threads.
    """

    def __init__(self, indices: Iterable[int]):
        self._pending = deque(indices)
        self._lock = Lock()
        self.popped: List[int] = []

    def pop(self) -> Optional[int]:
        with self._lock:
            if not self._pending:
                return None
            idx = self._pending.popleft()
            self.popped.append(idx)
            return idx

    def close(self) -> None:
        """Drop every pending index; later pops return None"""
        with self._lock:
            self._pending.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


class JobScheduler:
    """
    Runs a batch of jobs through ``handler`` with at most ``concurrency`` in flight.

    Results are written into a pre-sized list at each job's own index, so the
    output order matches the input order whatever the completion order. A job
    whose handler returns ``None`` is recorded as a failure and the batch moves
    on. A job whose handler raises aborts the batch: the queue is closed, the
    other workers are cancelled and awaited, and the exception propagates.

    ``last_queue`` holds the queue of the most recently started batch only;
    with concurrent ``run_batch`` calls on one scheduler it belongs to
    whichever started last.
    """

    def __init__(self, handler: Optional[JobHandler] = None, default_concurrency: int = 3):
        self.handler = handler
        self.default_concurrency = default_concurrency
        self.logger = logging.getLogger('panelforge.scheduler')
        self.last_queue: Optional[JobQueue] = None

    async def run_batch(self,
                        jobs: Sequence[Job],
                        concurrency: Optional[int] = None,
                        handler: Optional[JobHandler] = None) -> List[Optional[str]]:
        handler = handler or self.handler
        if handler is None:
            raise ValueError("JobScheduler needs a job handler")
        concurrency = self.default_concurrency if concurrency is None else concurrency
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        total = len(jobs)
        for position, job in enumerate(jobs):
            if job.index != position:
                raise ValueError(f"Job at position {position} has index {job.index}")

        results: List[Optional[str]] = [None] * total
        queue = JobQueue(range(total))
        self.last_queue = queue

        async def worker(worker_id: int) -> None:
            while True:
                idx = queue.pop()
                if idx is None:
                    return
                job = jobs[idx]
                try:
                    results[idx] = await handler(job)
                except Exception:
                    queue.close()
                    raise
                if results[idx] is None:
                    self.logger.warning(f"Worker {worker_id}: {job.tag} produced nothing")

        workers = min(concurrency, total)
        self.logger.info(f"Running {total} jobs ({workers} parallel)")
        tasks = [asyncio.create_task(worker(i)) for i in range(workers)]
        if tasks:
            try:
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    self.logger.error(f"Batch aborted after {len(queue.popped)}/{total} jobs started")
                    raise task.exception()

        ok = sum(1 for r in results if r)
        self.logger.info(f"Batch done: {ok}/{total} succeeded")
        return results
