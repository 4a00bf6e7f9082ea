"""核心模块包。

源图片读取、缩放、编码和清晰度分析。
"""

from .encoder import DerivativeEncoder, EncodedImage, encode_image
from .formats import FormatProcessor, get_save_parameters
from .quality_analyzer import QualityAnalyzer, analyze_quality
from .resampler import compute_target_size, resample_image
from .source import (
    SourceImage,
    describe_source,
    load_source,
    load_source_bytes,
)


__all__ = [
    "DerivativeEncoder",
    "EncodedImage",
    "FormatProcessor",
    "QualityAnalyzer",
    "SourceImage",
    "analyze_quality",
    "compute_target_size",
    "describe_source",
    "encode_image",
    "get_save_parameters",
    "load_source",
    "load_source_bytes",
    "resample_image",
]
