"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads that process client connections, so one slow client does not
stall everyone else.

    SocketServer ──submit()──► [ task queue (bounded) ] ──► Worker-0
                                                        ──► Worker-1
                                                        ──► ...

- ``min_workers`` threads start with the pool.
- When every worker is busy and tasks are waiting, one more worker is added,
  up to ``max_workers``.
- The queue is bounded. When it is full, submit() returns False and the
  server answers 503 instead of buffering without limit.
- shutdown() drains the queue (with a deadline), then sends each worker a
  ``None`` poison pill.

Handlers mostly wait on sockets and SQLite, both of which release the GIL,
so threads give real concurrency here.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call.

    ``timeout`` bounds how long the task may sit in the queue; a task that
    waited longer is dropped because its client has most likely given up.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    timeout: Optional[float] = None
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until it gets a poison pill."""

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._shutdown = threading.Event()

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            waited = start_time - task.submitted_at
            if task.timeout and waited > task.timeout:
                logger.warning(
                    f"Task dropped after waiting {waited:.2f}s in queue "
                    f"(timeout {task.timeout}s)"
                )
                self.tasks_failed += 1
                return

            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s")

        except Exception as e:
            # A failing task must not take the worker down with it.
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Bounded, self-scaling pool of Worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(process, args=(conn,)):
            ...  # queue full
        pool.shutdown(wait=True, timeout=30)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutting_down = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller holds ``self._lock``."""
        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue ``func(*args, **kwargs)`` without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        task = Task(func=func, args=args, kwargs=kwargs or {}, timeout=timeout)

        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            all_busy = all(w.state == WorkerState.BUSY for w in self._workers)
            if all_busy and len(self._workers) < self.max_workers and self._task_queue.qsize() > 0:
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        for worker in self._workers:
            worker.shutdown()
        for _ in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break  # workers also exit on their shutdown event
        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def stats(self) -> dict:
        """Worker and task counts."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
