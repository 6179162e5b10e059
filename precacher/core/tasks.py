# precacher/core/tasks.py

import asyncio
import logging
from typing import Callable, Coroutine, Any, List

from precacher.core.contracts import (
    Container,
    BackgroundTaskManager as BackgroundTaskManagerInterface,
    TaskFailure
)

logger = logging.getLogger(__name__)


class BackgroundTaskManager(BackgroundTaskManagerInterface):
    """
    受监督的后台任务池。
    任务以 (容器, *args, **kwargs) 调用；任务抛出的异常不会传播给提交者，
    而是被记录到日志并放入失败通道 `failures`。
    """
    def __init__(self, container: Container, max_workers: int = 2):
        self._container = container
        self._queue: asyncio.Queue = asyncio.Queue()
        self._workers: List[asyncio.Task] = []
        self._max_workers = max_workers
        self._failures: List[TaskFailure] = []
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def failures(self) -> List[TaskFailure]:
        return list(self._failures)

    def start(self):
        """启动工作者协程。必须在事件循环中调用。"""
        if self._is_running:
            logger.warning("BackgroundTaskManager is already running.")
            return

        logger.info(f"Starting {self._max_workers} background worker(s)...")
        for i in range(self._max_workers):
            worker_task = asyncio.create_task(self._worker(f"worker-{i}"))
            self._workers.append(worker_task)
        self._is_running = True

    async def join(self):
        """等待当前队列中的所有任务执行完毕。"""
        await self._queue.join()

    async def stop(self):
        """处理完队列中剩余的任务后停止所有工作者。"""
        if not self._is_running:
            return

        logger.info("Stopping background workers...")
        await self._queue.join()

        for worker in self._workers:
            worker.cancel()

        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        self._is_running = False
        logger.info("All background workers stopped.")

    def submit_task(self, coro_func: Callable[..., Coroutine], *args: Any, **kwargs: Any) -> bool:
        """
        向队列提交一个任务，立即返回。

        :param coro_func: 要在后台执行的协程函数，第一个参数会收到容器。
        :return: 任务是否被接受。
        """
        if not self._is_running:
            logger.error(f"Cannot submit task '{coro_func.__name__}': task manager is not running.")
            return False

        self._queue.put_nowait((coro_func, args, kwargs))
        logger.debug(f"Task '{coro_func.__name__}' submitted to background queue.")
        return True

    async def _worker(self, name: str):
        logger.debug(f"Background worker '{name}' started.")
        while True:
            try:
                coro_func, args, kwargs = await self._queue.get()

                logger.debug(f"Worker '{name}' picked up task: {coro_func.__name__}")
                try:
                    await coro_func(self._container, *args, **kwargs)
                except Exception as e:
                    logger.exception(f"Worker '{name}' failed while running task '{coro_func.__name__}'.")
                    self._failures.append(TaskFailure(task_name=coro_func.__name__, exception=e))
                finally:
                    self._queue.task_done()

            except asyncio.CancelledError:
                logger.debug(f"Background worker '{name}' shutting down.")
                break
