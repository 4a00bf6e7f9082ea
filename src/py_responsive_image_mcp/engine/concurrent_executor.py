"""并发执行器模块。

在有界线程池上执行相互独立的任务对，快速失败并支持取消。
"""

from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Generic, TypeVar

from ..utils.logging_helpers import get_logger


logger = get_logger()

TaskT = TypeVar("TaskT")
ResultT = TypeVar("ResultT")


class ConcurrentExecutor(Generic[TaskT, ResultT]):
    """有界线程池执行器

    worker 返回 None 表示该任务在开始前观察到了取消信号。
    """

    def __init__(self, max_workers: int = 4):
        """初始化并发执行器

        Args:
            max_workers: 最大并发数
        """
        self.max_workers = max_workers

    def execute(
        self,
        tasks: Sequence[TaskT],
        worker: Callable[[TaskT], ResultT | None],
    ) -> bool:
        """执行所有任务

        Args:
            tasks: 任务列表
            worker: 在工作线程中执行的函数

        Returns:
            bool: 全部完成为 True，被取消为 False

        Raises:
            Exception: 第一个失败任务的异常，其余未开始的任务会被取消
        """
        if not tasks:
            return True

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures: list[Future[ResultT | None]] = [
                executor.submit(worker, task) for task in tasks
            ]
            logger.debug(f"已提交 {len(tasks)} 个任务，线程数={self.max_workers}")

            for future in as_completed(futures):
                result = future.result()
                if result is None:
                    logger.debug("任务观察到取消信号，停止收集结果")
                    executor.shutdown(wait=True, cancel_futures=True)
                    return False
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise

        executor.shutdown(wait=True)
        return True
