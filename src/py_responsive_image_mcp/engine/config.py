"""选项构建器模块。

统一的处理选项构建逻辑，集成参数验证功能。
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..config import get_config
from ..core.source import breakpoints_for_width
from ..exceptions import ConfigError
from ..models.constants import DEFAULT_FORMATS, ImageFormat
from ..models.processing_options import (
    DEFAULT_BREAKPOINTS,
    Breakpoint,
    ProcessingOptions,
)
from ..utils.logging_helpers import get_logger


logger = get_logger()

FormatInput = str | ImageFormat
BreakpointInput = Breakpoint | int | str | Mapping[str, Any]


class OptionsBuilder:
    """处理选项构建器

    接受宽松的输入（格式名称、宽度、"名称:宽度" 字符串、预设名称），
    构建经过验证的 ProcessingOptions。
    """

    def build(
        self,
        formats: Iterable[FormatInput] | str | None = None,
        breakpoints: Iterable[BreakpointInput] | str | None = None,
        quality: int | None = None,
        lossless: bool = False,
        include_retina: bool | None = None,
        fit_to_width: int | None = None,
    ) -> ProcessingOptions:
        """构建处理选项

        Args:
            formats: 输出格式，None 使用默认格式（AVIF/WebP/JPEG）
            breakpoints: 断点，None 使用前五个默认断点
            quality: 有损质量 10-100，None 使用配置默认值
            lossless: 无损模式
            include_retina: 是否生成 @2x 版本，None 使用配置默认值
            fit_to_width: 源图片宽度；给出时剔除需要放大的断点

        Returns:
            ProcessingOptions: 构建的选项对象

        Raises:
            ConfigError: 参数验证失败
        """
        defaults = get_config().derivatives

        try:
            format_list = self._normalize_formats(formats)
            breakpoint_list = self._normalize_breakpoints(breakpoints)

            options = ProcessingOptions(
                lossless=lossless,
                quality=defaults.DEFAULT_QUALITY if quality is None else quality,
                formats=format_list,
                breakpoints=breakpoint_list,
                include_retina=(
                    defaults.INCLUDE_RETINA if include_retina is None else include_retina
                ),
            )
        except PydanticValidationError as e:
            raise ConfigError(self._format_validation_error(e)) from e
        except ValueError as e:
            raise ConfigError(f"选项构建失败: {e}") from e

        if fit_to_width is not None:
            options = self.fit_to_source(
                options, fit_to_width, auto_retina=include_retina is None
            )

        return options

    def fit_to_source(
        self,
        options: ProcessingOptions,
        source_width: int,
        auto_retina: bool = False,
    ) -> ProcessingOptions:
        """剔除需要放大源图片的断点（@2x 时按两倍宽度判断）

        auto_retina 为 True 时，若没有任何断点能提供 @2x 版本，则关闭 @2x 后重新判断。

        Raises:
            ConfigError: 没有任何断点适用于该源图片
        """
        fitted = breakpoints_for_width(
            options.breakpoints, source_width, options.include_retina
        )
        if not fitted and auto_retina and options.include_retina:
            logger.info(f"源图片宽度 {source_width}px 不足以生成 @2x 版本，已关闭 @2x")
            options = options.model_copy(update={"include_retina": False})
            fitted = breakpoints_for_width(options.breakpoints, source_width, False)

        if not fitted:
            raise ConfigError(
                f"源图片宽度 {source_width}px 不足以生成任何所选断点"
                + ("（已包含 @2x）" if options.include_retina else "")
            )

        dropped = len(options.breakpoints) - len(fitted)
        if dropped:
            logger.info(f"源图片宽度 {source_width}px，跳过 {dropped} 个需要放大的断点")

        return options.model_copy(update={"breakpoints": fitted})

    def _normalize_formats(
        self, formats: Iterable[FormatInput] | str | None
    ) -> list[ImageFormat]:
        if formats is None:
            return list(DEFAULT_FORMATS)
        if isinstance(formats, str):
            formats = [part for part in formats.split(",") if part.strip()]
        return [ImageFormat.parse(fmt) for fmt in formats]

    def _normalize_breakpoints(
        self, breakpoints: Iterable[BreakpointInput] | str | None
    ) -> list[Breakpoint]:
        if breakpoints is None:
            return list(DEFAULT_BREAKPOINTS[:5])
        if isinstance(breakpoints, str):
            breakpoints = [part for part in breakpoints.split(",") if part.strip()]
        return [parse_breakpoint(bp) for bp in breakpoints]

    def _format_validation_error(self, error: PydanticValidationError) -> str:
        """格式化验证错误"""
        messages = []
        for err in error.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            msg = err["msg"]
            if field:
                messages.append(f"{field}: {msg}")
            else:
                messages.append(msg)
        return "; ".join(messages)


def parse_breakpoint(value: BreakpointInput) -> Breakpoint:
    """解析单个断点

    支持 Breakpoint 对象、宽度整数、"1920"、预设名称 "Tablet"、
    "名称:宽度" 字符串以及字典。
    """
    if isinstance(value, Breakpoint):
        return value
    if isinstance(value, Mapping):
        return Breakpoint(**value)
    if isinstance(value, int):
        return _breakpoint_for_width(value)

    text = str(value).strip()
    if ":" in text:
        name, _, width = text.rpartition(":")
        return Breakpoint(name=name.strip(), width=int(width))
    if text.isdigit():
        return _breakpoint_for_width(int(text))

    for preset in DEFAULT_BREAKPOINTS:
        if preset.name.lower() == text.lower():
            return preset

    available = ", ".join(bp.name for bp in DEFAULT_BREAKPOINTS)
    raise ValueError(f"未知的断点: {value}。可用预设: {available}")


def _breakpoint_for_width(width: int) -> Breakpoint:
    """宽度与预设一致时复用预设名称"""
    for preset in DEFAULT_BREAKPOINTS:
        if preset.width == width:
            return preset
    return Breakpoint(name=f"{width}px", width=width)


def ensure_runnable(options: ProcessingOptions) -> None:
    """开始任何工作之前检查选项

    Raises:
        ConfigError: 格式或断点列表为空
    """
    if not options.formats:
        raise ConfigError("输出格式列表不能为空")
    if not options.breakpoints:
        raise ConfigError("断点列表不能为空")


# 全局选项构建器实例
_default_builder = OptionsBuilder()


def build_options(**kwargs: Any) -> ProcessingOptions:
    """便捷的选项构建函数

    使用全局选项构建器实例构建选项。
    """
    return _default_builder.build(**kwargs)
