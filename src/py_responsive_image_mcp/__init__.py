"""响应式图片衍生图库。

把一张源图片转换为多断点、多格式（AVIF/WebP/JPEG/PNG）的衍生图集，
并提供基于拉普拉斯方差的清晰度分析。
"""

__version__ = "0.1.0"
__description__ = "响应式图片衍生图生成库，基于 Pillow 11"

# 核心功能导出
from .engine.generator import CancellationToken, DerivativeSetGenerator
from .models import (
    Breakpoint,
    DerivativeSet,
    ImageFormat,
    OptimizationReport,
    ProcessedDerivative,
    ProcessingOptions,
    ProcessingProgress,
    QualityMetrics,
)
from .optimizer import ImageOptimizer, optimize_image


__all__ = [
    "Breakpoint",
    "CancellationToken",
    "DerivativeSet",
    "DerivativeSetGenerator",
    "ImageFormat",
    "ImageOptimizer",
    "OptimizationReport",
    "ProcessedDerivative",
    "ProcessingOptions",
    "ProcessingProgress",
    "QualityMetrics",
    "get_version",
    "optimize_image",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
