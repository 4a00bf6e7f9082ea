"""数据模型包。

定义衍生图生成和清晰度分析相关的数据结构和模型。
"""

from .constants import (
    DEFAULT_FORMATS,
    AnalysisLimits,
    FormatCapabilities,
    ImageFormat,
    QualityDefaults,
    SourceLimits,
)
from .derivative_result import (
    DerivativeSet,
    GenerationStatus,
    OptimizationReport,
    ProcessedDerivative,
    ProcessingProgress,
)
from .processing_options import DEFAULT_BREAKPOINTS, Breakpoint, ProcessingOptions
from .quality_metrics import BlurClass, QualityMetrics
from .source_info import ResolutionLevel, SourceInfo


__all__ = [
    "DEFAULT_BREAKPOINTS",
    "DEFAULT_FORMATS",
    "AnalysisLimits",
    "BlurClass",
    "Breakpoint",
    "DerivativeSet",
    "FormatCapabilities",
    "GenerationStatus",
    "ImageFormat",
    "OptimizationReport",
    "ProcessedDerivative",
    "ProcessingOptions",
    "ProcessingProgress",
    "QualityDefaults",
    "QualityMetrics",
    "ResolutionLevel",
    "SourceInfo",
    "SourceLimits",
]
