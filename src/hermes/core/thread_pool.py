"""
=============================================================================
WORKER THREAD POOL
=============================================================================

    submit(func) ──► [ bounded queue ] ──► hermes-worker-0
                                      ├──► hermes-worker-1
                                      └──► ... up to max_workers

``min_workers`` threads start with the pool. Submitting while every worker
is busy adds one more, up to ``max_workers``. A full queue makes
``submit`` return False rather than block.

A task that sat in the queue longer than its ``timeout`` is not run; its
``on_expire`` callback runs instead. Tasks still queued when ``shutdown``
stops waiting are expired the same way, so every accepted task ends in
exactly one of ``func`` or ``on_expire``.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


@dataclass
class Task:
    func: Callable[..., Any]
    args: tuple = ()
    timeout: Optional[float] = None
    on_expire: Optional[Callable[[], Any]] = None
    queued_at: float = field(default_factory=time.monotonic)

    @property
    def expired(self) -> bool:
        return self.timeout is not None and time.monotonic() - self.queued_at > self.timeout

    def expire(self) -> None:
        if self.on_expire is not None:
            self.on_expire()


class Worker(threading.Thread):
    """Runs tasks from the shared queue until it takes a ``None``."""

    def __init__(self, tasks: "queue.Queue[Optional[Task]]", index: int):
        super().__init__(name=f"hermes-worker-{index}", daemon=True)
        self.tasks = tasks
        self.busy = False

    def run(self) -> None:
        while True:
            task = self.tasks.get()
            try:
                if task is None:
                    return
                self.busy = True
                self._run(task)
            finally:
                self.busy = False
                self.tasks.task_done()

    def _run(self, task: Task) -> None:
        try:
            if task.expired:
                logger.warning(f"{self.name}: task queued longer than {task.timeout}s, expiring it")
                task.expire()
            else:
                task.func(*task.args)
        except Exception:
            logger.exception(f"{self.name}: task raised")


class ThreadPool:
    """
    Growable pool of worker threads fed from a bounded queue.

        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()
        pool.submit(serve, args=(conn,), timeout=30.0, on_expire=reject)
        pool.shutdown(timeout=30.0)
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self._tasks: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._accepting = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._workers)

    def start(self) -> None:
        with self._lock:
            while len(self._workers) < self.min_workers:
                self._spawn()
            self._accepting = True
        logger.info(f"Thread pool running {self.min_workers}-{self.max_workers} workers")

    def _spawn(self) -> None:
        # Caller holds self._lock.
        worker = Worker(self._tasks, len(self._workers))
        self._workers.append(worker)
        worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        timeout: Optional[float] = None,
        on_expire: Optional[Callable[[], Any]] = None,
    ) -> bool:
        """
        Queue ``func(*args)``.

        Returns:
            False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._accepting:
            raise RuntimeError("thread pool is not running")

        try:
            self._tasks.put_nowait(Task(func, args, timeout, on_expire))
        except queue.Full:
            return False

        with self._lock:
            if len(self._workers) < self.max_workers and all(w.busy for w in self._workers):
                logger.debug(f"All {len(self._workers)} workers busy, adding one")
                self._spawn()
        return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting work, let queued tasks run for up to ``timeout``
        seconds, expire whatever is left, then stop the workers.
        """
        self._accepting = False
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._tasks.empty():
            if deadline is not None and time.monotonic() > deadline:
                break
            time.sleep(0.05)

        self._expire_queued()

        with self._lock:
            workers, self._workers = self._workers, []
        for _ in workers:
            try:
                self._tasks.put(None, timeout=2.0)
            except queue.Full:
                break
        for worker in workers:
            worker.join(timeout=2.0)
        logger.info(f"Thread pool stopped {len(workers)} workers")

    def _expire_queued(self) -> None:
        while True:
            try:
                task = self._tasks.get_nowait()
            except queue.Empty:
                return
            self._tasks.task_done()
            if task is None:
                continue
            logger.warning("Expiring task still queued at shutdown")
            try:
                task.expire()
            except Exception:
                logger.exception("on_expire callback raised")
