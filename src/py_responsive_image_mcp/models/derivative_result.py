"""衍生图生成结果模型。

定义单个衍生图、进度事件和整批生成结果的数据结构。
"""

from enum import Enum
from pathlib import Path

from humanize import naturalsize
from pydantic import BaseModel, Field, model_validator

from .constants import ImageFormat
from .quality_metrics import QualityMetrics
from .source_info import SourceInfo


class GenerationStatus(str, Enum):
    """批处理状态"""

    COMPLETED = "completed"
    CANCELED = "canceled"


class ProcessedDerivative(BaseModel):
    """单个衍生图：一次缩放加一次编码的产物"""

    name: str = Field(description="文件名，如 image-1920@2x.webp")
    encoded_bytes: bytes = Field(repr=False, description="编码后的字节")
    byte_size: int = Field(ge=0, description="字节数")
    width: int = Field(gt=0, description="宽度")
    height: int = Field(gt=0, description="高度")

    image_format: ImageFormat = Field(description="输出格式")
    breakpoint_name: str = Field(default="", description="所属断点")
    is_retina: bool = Field(False, description="是否为 @2x 版本")
    lossless: bool = Field(False, description="是否走无损编码路径")
    quality_used: int | None = Field(None, description="实际使用的质量值")

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    def get_size_human(self) -> str:
        """人类可读的文件大小"""
        return naturalsize(self.byte_size, binary=True)


class ProcessingProgress(BaseModel):
    """进度事件"""

    current: int = Field(ge=0, description="已完成步数")
    total: int = Field(ge=0, description="总步数")
    current_task: str = Field(default="", description="当前任务描述")

    @model_validator(mode="after")
    def validate_bounds(self) -> "ProcessingProgress":
        if self.current > self.total:
            raise ValueError(f"进度超出总数: {self.current}/{self.total}")
        return self

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return self.current / self.total * 100

    @property
    def is_complete(self) -> bool:
        return self.current == self.total


class DerivativeSet(BaseModel):
    """一次批处理的结果

    取消时 derivatives 始终为空，不返回部分结果。
    """

    source_name: str = Field(default="image", description="源图片名称")
    status: GenerationStatus = Field(description="批处理状态")
    derivatives: list[ProcessedDerivative] = Field(
        default_factory=list, description="按确定顺序排列的衍生图"
    )
    total_steps: int = Field(0, ge=0, description="应用跳过规则后的总步数")

    @property
    def is_cancelled(self) -> bool:
        return self.status == GenerationStatus.CANCELED

    def get_total_count(self) -> int:
        return len(self.derivatives)

    def get_total_size(self) -> int:
        """所有衍生图的总字节数"""
        return sum(d.byte_size for d in self.derivatives)

    def get_names(self) -> list[str]:
        return [d.name for d in self.derivatives]

    def group_by_format(self) -> dict[ImageFormat, list[ProcessedDerivative]]:
        """按输出格式分组，保持原有顺序"""
        groups: dict[ImageFormat, list[ProcessedDerivative]] = {}
        for derivative in self.derivatives:
            groups.setdefault(derivative.image_format, []).append(derivative)
        return groups

    def get_summary(self) -> str:
        """批处理摘要"""
        if self.is_cancelled:
            return f"{self.source_name}: 已取消"

        formats = ", ".join(fmt.display_name for fmt in self.group_by_format())
        return (
            f"{self.source_name}: 生成 {self.get_total_count()} 个衍生图 "
            f"({formats}), 共 {naturalsize(self.get_total_size(), binary=True)}"
        )


class OptimizationReport(BaseModel):
    """一次完整优化的结果：源图片描述、衍生图集和清晰度分析

    清晰度分析失败不影响衍生图生成，失败原因记录在 analysis_error。
    """

    source_info: SourceInfo = Field(description="源图片描述")
    derivative_set: DerivativeSet = Field(description="衍生图集")
    metrics: QualityMetrics | None = Field(None, description="清晰度分析结果")
    analysis_error: str | None = Field(None, description="清晰度分析失败原因")
    saved_paths: list[Path] = Field(default_factory=list, description="已写入的文件")

    def get_summary(self) -> str:
        lines = [self.derivative_set.get_summary()]
        if self.metrics is not None:
            lines.append(self.metrics.get_summary())
        elif self.analysis_error:
            lines.append(f"清晰度分析失败: {self.analysis_error}")
        if self.saved_paths:
            lines.append(f"已保存 {len(self.saved_paths)} 个文件")
        return "\n".join(lines)
