"""源图片信息模型。"""

from enum import Enum

from humanize import naturalsize
from pydantic import BaseModel, Field, computed_field

from .processing_options import Breakpoint


class ResolutionLevel(str, Enum):
    """源图片分辨率评估等级"""

    EXCELLENT = "excellent"
    GOOD = "good"
    ADEQUATE = "adequate"
    LIMITED = "limited"


class SourceInfo(BaseModel):
    """源图片的基础信息与断点适配建议"""

    name: str = Field(description="源图片名称")
    width: int = Field(gt=0, description="宽度")
    height: int = Field(gt=0, description="高度")
    file_size: int | None = Field(None, description="文件大小（字节）")
    aspect_ratio: str = Field(description="宽高比，如 16:9")
    resolution_level: ResolutionLevel = Field(description="分辨率评估")
    resolution_note: str = Field(description="评估说明")
    retina_available: bool = Field(description="是否足以生成 @2x 版本")
    eligible_breakpoints: list[Breakpoint] = Field(
        default_factory=list, description="不需要放大的默认断点"
    )

    @computed_field
    def total_pixels(self) -> int:
        """总像素数"""
        return self.width * self.height

    @computed_field
    def megapixels(self) -> float:
        """百万像素"""
        return round(self.total_pixels / 1_000_000, 2)

    def get_file_size_human(self) -> str | None:
        if self.file_size is None:
            return None
        return naturalsize(self.file_size, binary=True)
