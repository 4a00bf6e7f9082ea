"""衍生图集生成器模块。

把一张源图片按断点 × 格式（可选 @2x）展开为一组衍生图，
支持进度回调、协作式取消、快速失败和线程池并发。
"""

import asyncio
import threading
from collections.abc import Callable
from typing import NamedTuple, Protocol

from PIL import Image

from ..config import get_config
from ..core.encoder import DerivativeEncoder, EncodedImage
from ..core.resampler import resample_image
from ..core.source import SourceImage
from ..exceptions import DerivativeGenerationError, ErrorHandler
from ..models.constants import ImageFormat
from ..models.derivative_result import (
    DerivativeSet,
    GenerationStatus,
    ProcessedDerivative,
    ProcessingProgress,
)
from ..models.processing_options import Breakpoint, ProcessingOptions
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from ..utils.naming_helpers import FileNamingStrategy
from ..utils.workspace import PixelWorkspace
from .concurrent_executor import ConcurrentExecutor
from .config import ensure_runnable


logger = get_logger()

ProgressCallback = Callable[[ProcessingProgress], None]
CancellationCheck = Callable[[], bool]
Resampler = Callable[[Image.Image, int], Image.Image]


class Encoder(Protocol):
    def encode(
        self, image: Image.Image, image_format: ImageFormat, options: ProcessingOptions
    ) -> EncodedImage: ...


class CancellationToken:
    """线程安全的取消信号，可直接作为 is_cancelled 回调传入"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self._event.is_set()


class DerivativeTask(NamedTuple):
    """单个衍生图任务"""

    breakpoint_index: int
    format_index: int
    breakpoint: Breakpoint
    image_format: ImageFormat
    retina: bool

    @property
    def key(self) -> tuple[int, int, bool]:
        return self.breakpoint_index, self.format_index, self.retina

    @property
    def target_width(self) -> int:
        return self.breakpoint.retina_width if self.retina else self.breakpoint.width

    @property
    def name(self) -> str:
        return FileNamingStrategy.derivative_name(
            self.breakpoint.width, self.image_format, self.retina
        )

    @property
    def label(self) -> str:
        return MessageFormatter.progress_label(
            self.breakpoint.name, self.image_format.display_name, self.retina
        )


TaskPair = list[DerivativeTask]


def plan_pairs(options: ProcessingOptions) -> list[TaskPair]:
    """按断点外层、格式内层展开任务对

    无损模式下跳过 JPEG 家族格式；每个任务对包含 1x 任务，启用 retina 时再加 @2x 任务。
    """
    pairs: list[TaskPair] = []
    for bp_index, breakpoint in enumerate(options.breakpoints):
        for fmt_index, image_format in enumerate(options.formats):
            if not options.uses_format(image_format):
                continue

            pair = [DerivativeTask(bp_index, fmt_index, breakpoint, image_format, False)]
            if options.include_retina:
                pair.append(
                    DerivativeTask(bp_index, fmt_index, breakpoint, image_format, True)
                )
            pairs.append(pair)
    return pairs


class OrderedProgress:
    """按逻辑顺序发出进度事件

    并发时任务完成顺序不确定，完成的结果先缓存，游标之前的连续结果才会发出。
    使用线程池时回调在工作线程中调用，同一时刻只有一个回调在执行。
    """

    def __init__(self, tasks: list[DerivativeTask], sink: ProgressCallback | None):
        self._tasks = tasks
        self._sink = sink
        self._ready: dict[tuple[int, int, bool], ProcessedDerivative] = {}
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def total(self) -> int:
        return len(self._tasks)

    def complete(self, task: DerivativeTask, derivative: ProcessedDerivative) -> None:
        with self._lock:
            self._ready[task.key] = derivative
            self._flush()

    def _flush(self) -> None:
        while self._cursor < self.total and self._tasks[self._cursor].key in self._ready:
            current = self._tasks[self._cursor]
            self._cursor += 1
            if self._sink is not None:
                self._sink(
                    ProcessingProgress(
                        current=self._cursor, total=self.total, current_task=current.label
                    )
                )

    def results(self) -> list[ProcessedDerivative]:
        return [self._ready[task.key] for task in self._tasks]


class DerivativeSetGenerator:
    """衍生图集生成器

    任意一个衍生图失败时整批失败，不返回部分结果。
    取消时返回 status=canceled 且不含任何衍生图的结果。
    """

    def __init__(
        self,
        max_workers: int | None = None,
        resampler: Resampler = resample_image,
        encoder: Encoder | None = None,
    ):
        """初始化生成器

        Args:
            max_workers: 最大并发数，None 使用配置值（默认 1，即顺序执行）
            resampler: 缩放函数
            encoder: 编码器
        """
        self.max_workers = (
            get_config().derivatives.MAX_WORKERS if max_workers is None else max_workers
        )
        self.resampler = resampler
        self.encoder = encoder or DerivativeEncoder()

    def generate(
        self,
        source: SourceImage,
        options: ProcessingOptions,
        on_progress: ProgressCallback | None = None,
        is_cancelled: CancellationCheck | None = None,
    ) -> DerivativeSet:
        """生成衍生图集

        Args:
            source: 源图片
            options: 处理选项
            on_progress: 每完成一个衍生图调用一次，按逻辑顺序
            is_cancelled: 每个任务对开始前检查

        Returns:
            DerivativeSet: 衍生图集

        Raises:
            ConfigError: 格式或断点列表为空
            DerivativeGenerationError: 任意衍生图失败
        """
        ensure_runnable(options)

        pairs = plan_pairs(options)
        tasks = [task for pair in pairs for task in pair]
        progress = OrderedProgress(tasks, on_progress)
        use_pool = get_config().should_use_pool(self.max_workers, len(pairs))

        logger.info(
            f"开始生成衍生图: {source.name} {source.width}x{source.height}, "
            f"{len(pairs)} 个任务对, {len(tasks)} 个衍生图"
            + (f", 线程数={self.max_workers}" if use_pool else "")
        )

        def run_pair(pair: TaskPair) -> bool | None:
            if is_cancelled is not None and is_cancelled():
                return None
            for task in pair:
                progress.complete(task, self._render(source, options, task))
            return True

        try:
            if use_pool:
                executor: ConcurrentExecutor[TaskPair, bool] = ConcurrentExecutor(
                    self.max_workers
                )
                finished = executor.execute(pairs, run_pair)
            else:
                finished = all(run_pair(pair) for pair in pairs)
        except DerivativeGenerationError as e:
            ErrorHandler._log_error("衍生图生成", source.name, e)
            raise

        if not finished:
            logger.info(f"衍生图生成已取消: {source.name}")
            return DerivativeSet(
                source_name=source.name,
                status=GenerationStatus.CANCELED,
                derivatives=[],
                total_steps=progress.total,
            )

        result = DerivativeSet(
            source_name=source.name,
            status=GenerationStatus.COMPLETED,
            derivatives=progress.results(),
            total_steps=progress.total,
        )
        logger.info(result.get_summary())
        return result

    async def generate_async(
        self,
        source: SourceImage,
        options: ProcessingOptions,
        on_progress: ProgressCallback | None = None,
        is_cancelled: CancellationCheck | None = None,
    ) -> DerivativeSet:
        """在工作线程中生成，进度回调投递回事件循环线程"""
        loop = asyncio.get_running_loop()

        forward: ProgressCallback | None = None
        if on_progress is not None:

            def forward(event: ProcessingProgress) -> None:
                loop.call_soon_threadsafe(on_progress, event)

        return await asyncio.to_thread(
            self.generate, source, options, forward, is_cancelled
        )

    def _render(
        self, source: SourceImage, options: ProcessingOptions, task: DerivativeTask
    ) -> ProcessedDerivative:
        """缩放并编码一个衍生图，中间缓冲区在返回前释放

        缩放或编码抛出的任何异常都会带上断点、格式和 @2x 上下文重新抛出。
        """
        try:
            with PixelWorkspace() as workspace:
                resized = workspace.acquire(
                    self.resampler(source.image, task.target_width)
                )
                encoded = self.encoder.encode(resized, task.image_format, options)

                return ProcessedDerivative(
                    name=task.name,
                    encoded_bytes=encoded.data,
                    byte_size=encoded.size,
                    width=resized.width,
                    height=resized.height,
                    image_format=task.image_format,
                    breakpoint_name=task.breakpoint.name,
                    is_retina=task.retina,
                    lossless=encoded.lossless,
                    quality_used=encoded.quality_used,
                )
        except Exception as e:
            context = MessageFormatter.derivative_context(
                task.breakpoint.name, task.image_format.display_name, task.retina
            )
            raise DerivativeGenerationError(
                f"{context} 生成失败: {e}",
                breakpoint_name=task.breakpoint.name,
                breakpoint_width=task.breakpoint.width,
                format_name=task.image_format.display_name,
                retina=task.retina,
                source_name=source.name,
            ) from e


def generate_derivatives(
    source: SourceImage,
    options: ProcessingOptions,
    on_progress: ProgressCallback | None = None,
    is_cancelled: CancellationCheck | None = None,
) -> DerivativeSet:
    """便捷的生成函数"""
    return DerivativeSetGenerator().generate(source, options, on_progress, is_cancelled)
