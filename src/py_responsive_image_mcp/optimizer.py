"""响应式图片优化器接口。

基于衍生图生成引擎的简洁用户接口：读取源图片、构建选项、
生成衍生图集、分析清晰度并写入磁盘。
"""

from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from .config import get_config
from .core.quality_analyzer import QualityAnalyzer
from .core.source import SourceImage, describe_source, load_source, load_source_bytes
from .engine.config import OptionsBuilder
from .engine.generator import (
    CancellationCheck,
    DerivativeSetGenerator,
    ProgressCallback,
)
from .exceptions import ConfigError, DerivativeError, ErrorHandler
from .models import (
    DerivativeSet,
    OptimizationReport,
    ProcessingOptions,
    QualityMetrics,
    SourceInfo,
)
from .utils.logging_helpers import get_logger
from .utils.naming_helpers import PathResolver


logger = get_logger()

SourceInput = SourceImage | str | Path


class ImageOptimizer:
    """响应式图片优化器。

    把一张源图片转换为多断点、多格式的衍生图集，并给出清晰度分析。
    """

    def __init__(
        self,
        max_workers: int | None = None,
        options_builder: OptionsBuilder | None = None,
        generator: DerivativeSetGenerator | None = None,
        analyzer: QualityAnalyzer | None = None,
    ):
        """初始化优化器。

        Args:
            max_workers: 衍生图生成的最大并发数，None 使用配置值
            options_builder: 选项构建器实例
            generator: 衍生图集生成器实例
            analyzer: 清晰度分析器实例
        """
        if max_workers is not None and max_workers <= 0:
            raise ConfigError("max_workers 必须大于 0")

        self.options_builder = options_builder or OptionsBuilder()
        self.generator = generator or DerivativeSetGenerator(max_workers=max_workers)
        self.analyzer = analyzer or QualityAnalyzer()

        logger.debug(f"初始化图片优化器，线程数={self.generator.max_workers}")

    def load(self, source: SourceInput) -> SourceImage:
        """读取源图片，已经是 SourceImage 时原样返回"""
        match source:
            case SourceImage():
                return source
            case str() | Path():
                return load_source(source, get_config().max_file_size_bytes)
            case _:
                raise ConfigError(f"不支持的源图片类型: {type(source).__name__}")

    def load_bytes(self, data: bytes, name: str = "image") -> SourceImage:
        return load_source_bytes(data, name, get_config().max_file_size_bytes)

    def describe(self, source: SourceInput, include_retina: bool = True) -> SourceInfo:
        return describe_source(self.load(source), include_retina)

    def build_options(
        self,
        source: SourceImage | None = None,
        fit_to_source: bool = False,
        **kwargs: Any,
    ) -> ProcessingOptions:
        """构建处理选项

        Args:
            source: 源图片，fit_to_source 为 True 时必须提供
            fit_to_source: 剔除需要放大源图片的断点
            **kwargs: 传给 OptionsBuilder.build 的参数

        Examples:
            >>> optimizer = ImageOptimizer()
            >>> options = optimizer.build_options(formats="webp,jpg", quality=80)
        """
        if fit_to_source:
            if source is None:
                raise ConfigError("fit_to_source 需要提供源图片")
            kwargs["fit_to_width"] = source.width
        return self.options_builder.build(**kwargs)

    def generate(
        self,
        source: SourceInput,
        options: ProcessingOptions | None = None,
        on_progress: ProgressCallback | None = None,
        is_cancelled: CancellationCheck | None = None,
    ) -> DerivativeSet:
        """生成衍生图集，未提供选项时使用默认选项"""
        source = self.load(source)
        options = options or self.build_options()
        return self.generator.generate(source, options, on_progress, is_cancelled)

    async def generate_async(
        self,
        source: SourceInput,
        options: ProcessingOptions | None = None,
        on_progress: ProgressCallback | None = None,
        is_cancelled: CancellationCheck | None = None,
    ) -> DerivativeSet:
        source = self.load(source)
        options = options or self.build_options()
        return await self.generator.generate_async(
            source, options, on_progress, is_cancelled
        )

    def analyze(self, source: SourceInput) -> QualityMetrics:
        return self.analyzer.analyze_source(self.load(source))

    def optimize(
        self,
        source: SourceInput,
        output_dir: str | Path | None = None,
        options: ProcessingOptions | None = None,
        overwrite: bool = True,
        on_progress: ProgressCallback | None = None,
        is_cancelled: CancellationCheck | None = None,
        **option_kwargs: Any,
    ) -> OptimizationReport:
        """完整优化流程：生成衍生图的同时分析清晰度，然后写入磁盘

        清晰度分析失败只记录警告，不影响衍生图生成。
        源图片为路径且未指定 output_dir 时，写入源文件旁的 <stem>_derivatives 目录；
        源图片为 SourceImage 且未指定 output_dir 时不写入磁盘。

        Args:
            source: 源图片或其路径
            output_dir: 输出目录
            options: 处理选项，None 时按 option_kwargs 构建并剔除需要放大的断点
            overwrite: 是否覆盖已存在的文件
            on_progress: 进度回调
            is_cancelled: 取消检查
            **option_kwargs: 传给 build_options 的参数

        Returns:
            OptimizationReport: 优化报告

        Raises:
            DecodeError: 源图片无法读取
            ConfigError: 选项无效
            DerivativeGenerationError: 任意衍生图失败
        """
        image = self.load(source)
        if options is None:
            options = self.build_options(source=image, fit_to_source=True, **option_kwargs)

        with ThreadPoolExecutor(max_workers=1) as pool:
            analysis = pool.submit(self.analyzer.analyze_source, image)
            derivative_set = self.generator.generate(
                image, options, on_progress, is_cancelled
            )
            metrics, analysis_error = self._collect_analysis(analysis, image)

        target_dir = self._resolve_output_dir(source, output_dir)
        saved_paths: list[Path] = []
        if target_dir is not None and not derivative_set.is_cancelled:
            saved_paths = self.save(derivative_set, target_dir, overwrite)

        report = OptimizationReport(
            source_info=describe_source(image, options.include_retina),
            derivative_set=derivative_set,
            metrics=metrics,
            analysis_error=analysis_error,
            saved_paths=saved_paths,
        )
        logger.info(f"优化完成: {image.name}")
        return report

    def save(
        self,
        derivative_set: DerivativeSet,
        output_dir: str | Path,
        overwrite: bool = True,
    ) -> list[Path]:
        """把衍生图写入输出目录

        Args:
            derivative_set: 衍生图集
            output_dir: 输出目录，不存在时创建
            overwrite: False 时为已存在的文件追加数字后缀

        Returns:
            list[Path]: 写入的文件路径，顺序与衍生图一致
        """
        if derivative_set.is_cancelled:
            logger.warning(f"衍生图集已取消，跳过保存: {derivative_set.source_name}")
            return []

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        saved: list[Path] = []
        for derivative in derivative_set.derivatives:
            path = output_dir / derivative.name
            if not overwrite:
                path = PathResolver.next_available(path)
            path.write_bytes(derivative.encoded_bytes)
            saved.append(path)

        logger.info(f"已保存 {len(saved)} 个衍生图到 {output_dir}")
        return saved

    def _collect_analysis(
        self, analysis: Future[QualityMetrics], image: SourceImage
    ) -> tuple[QualityMetrics | None, str | None]:
        try:
            return analysis.result(), None
        except DerivativeError as e:
            ErrorHandler._log_error("清晰度分析", image.name, e, "warning")
            return None, ErrorHandler.describe(e)

    def _resolve_output_dir(
        self, source: SourceInput, output_dir: str | Path | None
    ) -> Path | None:
        if output_dir is not None:
            return Path(output_dir)
        if isinstance(source, str | Path):
            return PathResolver.resolve_output_dir(Path(source))
        return None


def optimize_image(
    input_path: str | Path,
    output_dir: str | Path | None = None,
    formats: Iterable[str] | str | None = None,
    **kwargs: Any,
) -> OptimizationReport:
    """便捷的优化函数

    Args:
        input_path: 源图片路径
        output_dir: 输出目录，默认为源文件旁的 <stem>_derivatives
        formats: 输出格式
        **kwargs: 其他选项参数，包括：
            - breakpoints: 断点（宽度、预设名称或 "名称:宽度"）
            - quality: 有损质量 10-100
            - lossless: 无损模式
            - include_retina: 是否生成 @2x 版本
            - max_workers: 最大并发数

    Examples:
        >>> report = optimize_image("hero.jpg", formats=["avif", "webp"])
        >>> print(report.get_summary())
    """
    optimizer = ImageOptimizer(max_workers=kwargs.pop("max_workers", None))
    return optimizer.optimize(input_path, output_dir, formats=formats, **kwargs)
