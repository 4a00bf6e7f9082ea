"""清晰度分析结果模型。"""

from enum import Enum

from pydantic import BaseModel, Field


class BlurClass(str, Enum):
    """模糊等级"""

    SHARP = "sharp"
    MODERATE = "moderate"
    BLURRY = "blurry"
    VERY_BLURRY = "very-blurry"


class QualityMetrics(BaseModel):
    """源图片的客观质量评估"""

    sharpness_score: float = Field(ge=0, description="拉普拉斯响应方差")
    blur_class: BlurClass = Field(description="模糊等级")
    confidence: float = Field(ge=0, le=1, description="评估置信度")

    # 诊断信息
    contrast: float = Field(0.0, ge=0, description="采样亮度的最大最小差")
    sample_width: int = Field(0, ge=0, description="分析采样宽度")
    sample_height: int = Field(0, ge=0, description="分析采样高度")
    source_pixels: int = Field(0, ge=0, description="源图片真实像素数")

    @property
    def is_sharp(self) -> bool:
        return self.blur_class == BlurClass.SHARP

    def get_summary(self) -> str:
        return (
            f"清晰度 {self.sharpness_score:.1f} ({self.blur_class.value}), "
            f"置信度 {self.confidence:.0%}"
        )
