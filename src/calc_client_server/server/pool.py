"""Fixed-size worker thread pool fed by a FIFO task queue."""
import queue
import threading
from typing import Any, Callable, List, Optional, Tuple

from calc_client_server.common.logger import logger

# (function, positional arguments); None is the shutdown signal
Task = Optional[Tuple[Callable[..., Any], Tuple[Any, ...]]]


class WorkerPool:
    """
    Run submitted callables on a fixed set of worker threads.

    Tasks wait in an unbounded FIFO queue while every worker is busy, so ``submit`` never
    blocks. Each worker pulls one task at a time; an exception escaping a task is logged
    and the worker moves on to the next one.

    :param int size: Number of worker threads
    :param str name: Thread name prefix
    """

    def __init__(self, size: int, name: str = "calc-worker") -> None:
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        self.size = size
        self.name = name
        self._tasks: "queue.Queue[Task]" = queue.Queue()
        self._workers: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending(self) -> int:
        """Approximate number of tasks waiting for a worker."""
        return self._tasks.qsize()

    def start(self) -> None:
        """Spawn the worker threads. Calling it again is a no-op."""
        with self._lock:
            if self._workers:
                return
            for index in range(1, self.size + 1):
                worker = threading.Thread(target=self._work, name=f"{self.name}-{index}", daemon=True)
                worker.start()
                self._workers.append(worker)
        logger.info(f"👷 Worker pool started with {self.size} workers")

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """
        Queue ``fn(*args)`` for execution by the next free worker.

        :raises RuntimeError: If the pool has been shut down
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot submit to a pool that has been shut down")
            self._tasks.put((fn, args))

    def _work(self) -> None:
        while True:
            task = self._tasks.get()
            try:
                if task is None:
                    return
                fn, args = task
                fn(*args)
            except Exception as exc:
                logger.exception(f"👷❌ Task failed in {threading.current_thread().name}: {exc}")
            finally:
                self._tasks.task_done()

    def join(self) -> None:
        """Block until every queued task has been processed."""
        self._tasks.join()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop accepting tasks and stop the workers once the queue drains.

        :param bool wait: Wait for the worker threads to exit
        :param Optional[float] timeout: Per-thread join timeout when waiting
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            # One shutdown signal per worker, queued behind pending tasks
            for _ in self._workers:
                self._tasks.put(None)
            workers = list(self._workers)
        if wait:
            for worker in workers:
                worker.join(timeout)
        logger.info("👷 Worker pool stopped")
