"""处理选项模型。

定义断点和衍生图生成的配置参数。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_FORMATS, ImageFormat, QualityDefaults


class Breakpoint(BaseModel):
    """设备断点：代表某类设备的目标像素宽度"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="断点名称")
    width: int = Field(gt=0, description="目标宽度（像素）")
    description: str = Field(default="", description="断点说明")

    @property
    def retina_width(self) -> int:
        """@2x 版本的目标宽度"""
        return self.width * 2


DEFAULT_BREAKPOINTS: tuple[Breakpoint, ...] = (
    Breakpoint(name="4K", width=3840, description="4K displays"),
    Breakpoint(name="2K", width=2560, description="2K displays"),
    Breakpoint(name="1080p", width=1920, description="Full HD displays"),
    Breakpoint(name="Tablet", width=1024, description="Tablet devices"),
    Breakpoint(name="Mobile", width=768, description="Mobile devices"),
    Breakpoint(name="Small Mobile", width=480, description="Small mobile devices"),
)


class ProcessingOptions(BaseModel):
    """衍生图生成选项

    不接受额外字段；格式按扩展名去重，断点按宽度降序排列。
    """

    model_config = ConfigDict(extra="forbid")

    lossless: bool = Field(False, description="无损模式，忽略质量值")
    quality: int = Field(
        QualityDefaults.DEFAULT,
        ge=QualityDefaults.MIN_QUALITY,
        le=QualityDefaults.MAX_QUALITY,
        description="有损压缩质量",
    )
    formats: list[ImageFormat] = Field(description="输出格式列表")
    breakpoints: list[Breakpoint] = Field(description="断点列表")
    include_retina: bool = Field(True, description="是否生成 @2x 版本")

    @field_validator("formats", mode="before")
    @classmethod
    def normalize_formats(cls, v: Any) -> Any:
        if isinstance(v, str | ImageFormat):
            v = [v]
        if not isinstance(v, list | tuple | set | frozenset):
            return v

        # 按扩展名去重，保留首次出现的顺序
        unique: list[ImageFormat] = []
        for item in v:
            fmt = ImageFormat.parse(item)
            if fmt not in unique:
                unique.append(fmt)
        return unique

    @field_validator("breakpoints")
    @classmethod
    def sort_breakpoints(cls, v: list[Breakpoint]) -> list[Breakpoint]:
        return sorted(v, key=lambda bp: bp.width, reverse=True)

    @property
    def effective_quality(self) -> int | None:
        """无损模式下返回 None"""
        return None if self.lossless else self.quality

    def uses_format(self, image_format: ImageFormat) -> bool:
        """该格式在当前选项下是否会产出衍生图"""
        return image_format in self.formats and not (
            self.lossless and image_format.is_jpeg_family
        )

    @classmethod
    def default(cls) -> "ProcessingOptions":
        """默认选项：AVIF/WebP/JPEG，前五个断点，包含 @2x"""
        return cls(
            formats=list(DEFAULT_FORMATS),
            breakpoints=list(DEFAULT_BREAKPOINTS[:5]),
        )
