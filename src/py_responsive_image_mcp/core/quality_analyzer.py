"""清晰度分析模块。

基于拉普拉斯响应方差评估源图片的清晰度，并结合像素数和对比度给出置信度。
"""

import numpy as np
from PIL import Image

from ..config import AnalysisDefaults, get_config
from ..exceptions import AnalysisError, handle_image_errors
from ..models.constants import AnalysisLimits
from ..models.quality_metrics import BlurClass, QualityMetrics
from ..utils.logging_helpers import get_logger
from .source import SourceImage


logger = get_logger()

# 亮度系数（千分制），0.299 R + 0.587 G + 0.114 B
LUMA_WEIGHTS = np.array([299, 587, 114], dtype=np.int64)
LUMA_SCALE = 1000


class QualityAnalyzer:
    """源图片质量分析器

    分析过程只读取源图片，不修改原始缓冲区。相同输入和采样上限下结果确定。
    """

    def __init__(self, defaults: AnalysisDefaults | None = None) -> None:
        defaults = defaults or get_config().analysis
        self.sample_max_width = defaults.SAMPLE_MAX_WIDTH
        self.sample_max_height = defaults.SAMPLE_MAX_HEIGHT
        self.contrast_stride = defaults.CONTRAST_STRIDE

    def analyze_source(self, source: SourceImage) -> QualityMetrics:
        """分析 SourceImage，使用其真实尺寸计算置信度"""
        return self.analyze(source.image, source.width, source.height)

    @handle_image_errors("清晰度分析", AnalysisError)
    def analyze(
        self,
        image: Image.Image,
        width: int | None = None,
        height: int | None = None,
    ) -> QualityMetrics:
        """分析图片清晰度

        Args:
            image: 解码后的图片
            width: 源图片真实宽度，默认使用 image 的宽度
            height: 源图片真实高度，默认使用 image 的高度

        Returns:
            QualityMetrics: 清晰度、模糊等级和置信度
        """
        width = image.width if width is None else width
        height = image.height if height is None else height
        if image.width == 0 or image.height == 0 or width <= 0 or height <= 0:
            raise AnalysisError(f"无法分析空图片: {width}x{height}")

        luma = self._sample_luma(image)
        sharpness = laplacian_variance(luma)
        contrast = sampled_contrast(luma, self.contrast_stride)
        confidence = calculate_confidence(width * height, contrast)

        metrics = QualityMetrics(
            sharpness_score=sharpness,
            blur_class=classify_blur(sharpness),
            confidence=confidence,
            contrast=contrast,
            sample_width=luma.shape[1],
            sample_height=luma.shape[0],
            source_pixels=width * height,
        )
        logger.debug(f"清晰度分析完成: {metrics.get_summary()}")
        return metrics

    def _sample_luma(self, image: Image.Image) -> np.ndarray:
        """按采样上限缩小后转换为千分制亮度矩阵"""
        sample_size = (
            min(image.width, self.sample_max_width),
            min(image.height, self.sample_max_height),
        )

        rgb = image if image.mode == "RGB" else image.convert("RGB")
        if sample_size != rgb.size:
            sample = rgb.resize(sample_size, Image.Resampling.BILINEAR)
        else:
            sample = rgb

        try:
            pixels = np.asarray(sample, dtype=np.int64)
        finally:
            if sample is not image and sample is not rgb:
                sample.close()
            if rgb is not image:
                rgb.close()

        return pixels @ LUMA_WEIGHTS


def laplacian_variance(luma: np.ndarray) -> float:
    """内部像素（去掉 1 像素边框）拉普拉斯响应的总体方差

    Args:
        luma: 千分制亮度矩阵（整数）

    Returns:
        float: 按 0-255 亮度刻度计算的方差；没有内部像素时为 0
    """
    if luma.shape[0] < 3 or luma.shape[1] < 3:
        return 0.0

    # 核 [[0,-1,0],[-1,4,-1],[0,-1,0]]
    center = luma[1:-1, 1:-1]
    response = (
        4 * center
        - luma[:-2, 1:-1]
        - luma[2:, 1:-1]
        - luma[1:-1, :-2]
        - luma[1:-1, 2:]
    )
    return float(np.var(response)) / (LUMA_SCALE * LUMA_SCALE)


def sampled_contrast(luma: np.ndarray, stride: int = AnalysisLimits.CONTRAST_STRIDE) -> float:
    """按行优先顺序每 stride 个像素采样，返回亮度最大值与最小值之差"""
    samples = luma.ravel()[::stride]
    if samples.size == 0:
        return 0.0
    return float(samples.max() - samples.min()) / LUMA_SCALE


def classify_blur(sharpness: float) -> BlurClass:
    """按阈值降序匹配模糊等级"""
    if sharpness > AnalysisLimits.SHARP_THRESHOLD:
        return BlurClass.SHARP
    if sharpness > AnalysisLimits.MODERATE_THRESHOLD:
        return BlurClass.MODERATE
    if sharpness > AnalysisLimits.BLURRY_THRESHOLD:
        return BlurClass.BLURRY
    return BlurClass.VERY_BLURRY


def calculate_confidence(pixel_count: int, contrast: float) -> float:
    """根据源图片真实像素数和采样对比度计算置信度，结果夹紧到 [0, 1]"""
    confidence = AnalysisLimits.BASE_CONFIDENCE

    # 像素越多，可分析的信息越多
    if pixel_count > 2_000_000:
        confidence += 0.3
    elif pixel_count > 500_000:
        confidence += 0.2
    elif pixel_count < 100_000:
        confidence -= 0.2

    if contrast > 50:
        confidence += 0.2
    elif contrast < 20:
        confidence -= 0.1

    return max(0.0, min(1.0, confidence))


_default_analyzer: QualityAnalyzer | None = None


def analyze_quality(source: SourceImage) -> QualityMetrics:
    """便捷的分析函数，使用共享的分析器实例"""
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = QualityAnalyzer()
    return _default_analyzer.analyze_source(source)
