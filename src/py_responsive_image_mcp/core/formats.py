"""格式处理器模块。

输出格式的后端支持检测、色彩模式准备和保存参数生成。
"""

from typing import Any

from PIL import Image, features

from ..config import DerivativeDefaults, get_config
from ..models.constants import ImageFormat, QualityDefaults
from ..models.processing_options import ProcessingOptions
from ..utils.logging_helpers import get_logger


logger = get_logger()


class FormatProcessor:
    """格式处理器 - 基于 Pillow 编码器的能力检测"""

    def __init__(self) -> None:
        """初始化格式处理器"""
        Image.init()
        self.supported_formats = {
            fmt for fmt in ImageFormat if self._check_format_support(fmt)
        }

        logger.debug(
            f"支持的输出格式: {sorted(fmt.display_name for fmt in self.supported_formats)}"
        )
        if ImageFormat.AVIF not in self.supported_formats:
            logger.debug("当前 Pillow 构建不支持 AVIF 编码")

    def _check_format_support(self, image_format: ImageFormat) -> bool:
        """检查 Pillow 是否能保存该格式"""
        if image_format.pil_format not in Image.SAVE:
            return False
        return bool(features.check(image_format.capabilities.pil_feature))

    def is_supported(self, image_format: ImageFormat) -> bool:
        return image_format in self.supported_formats

    def prepare_for_format(
        self, img: Image.Image, image_format: ImageFormat
    ) -> Image.Image:
        """为目标格式准备图片

        Args:
            img: PIL图片对象
            image_format: 目标格式

        Returns:
            Image.Image: 处理后的图片对象，不需要转换时返回原对象
        """
        match image_format:
            case ImageFormat.JPEG:
                return self._prepare_for_jpeg(img)
            case ImageFormat.PNG:
                return self._prepare_for_png(img)
            case ImageFormat.WEBP | ImageFormat.AVIF:
                return self._prepare_for_modern(img)
            case _:
                return img

    def _prepare_for_jpeg(self, img: Image.Image) -> Image.Image:
        """JPEG 不支持透明度，透明区域合成到白色背景"""
        if img.mode in ("RGBA", "LA", "PA") or (
            img.mode == "P" and "transparency" in img.info
        ):
            rgba = img.convert("RGBA") if img.mode != "RGBA" else img
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background

        if img.mode != "RGB":
            return img.convert("RGB")

        return img

    def _prepare_for_png(self, img: Image.Image) -> Image.Image:
        """PNG 支持大部分模式，只处理调色板和 CMYK"""
        if img.mode == "P":
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")

        if img.mode == "CMYK":
            return img.convert("RGB")

        return img

    def _prepare_for_modern(self, img: Image.Image) -> Image.Image:
        """WebP 和 AVIF 支持 RGB 和 RGBA"""
        if img.mode in ("RGB", "RGBA"):
            return img

        has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
        return img.convert("RGBA" if has_alpha else "RGB")


def normalize_quality(quality: int) -> int:
    """把 10-100 的质量映射为 0.1-1.0 的比例并夹紧，返回 Pillow 使用的整数百分比"""
    ratio = quality / 100
    ratio = max(QualityDefaults.MIN_RATIO, min(QualityDefaults.MAX_RATIO, ratio))
    return round(ratio * 100)


def get_save_parameters(
    image_format: ImageFormat,
    options: ProcessingOptions,
    defaults: DerivativeDefaults | None = None,
) -> tuple[dict[str, Any], int | None]:
    """获取保存参数

    PNG 或无损模式走无损路径，忽略质量值。

    Returns:
        tuple: (保存参数字典, 实际使用的质量值；无损路径为 None)
    """
    defaults = defaults or get_config().derivatives
    lossless = options.lossless or image_format == ImageFormat.PNG
    quality = None if lossless else normalize_quality(options.quality)

    match image_format:
        case ImageFormat.JPEG:
            params = get_jpeg_params(quality, defaults)
        case ImageFormat.PNG:
            params = get_png_params(defaults)
        case ImageFormat.WEBP:
            params = get_webp_params(quality, defaults)
        case ImageFormat.AVIF:
            params = get_avif_params(quality, defaults)

    return params, quality


def get_jpeg_params(quality: int | None, defaults: DerivativeDefaults) -> dict[str, Any]:
    """获取JPEG压缩参数

    - optimize: 额外处理以找到最优编码设置
    - progressive: 渐进式JPEG，适合网络传输
    - subsampling: 色度子采样，高质量时保留更多色彩信息
    """
    if quality is None:
        raise ValueError("JPEG 不支持无损编码")

    params: dict[str, Any] = {
        "quality": quality,
        "optimize": defaults.ENABLE_OPTIMIZATION,
        "progressive": defaults.JPEG_PROGRESSIVE,
    }

    if quality >= 85:
        params["subsampling"] = 1  # "4:2:2"
    else:
        params["subsampling"] = 2  # "4:2:0"

    return params


def get_png_params(defaults: DerivativeDefaults) -> dict[str, Any]:
    """获取PNG压缩参数

    PNG 始终无损。optimize=True 时 Pillow 会把 compress_level 提到 9。
    """
    return {
        "optimize": defaults.ENABLE_OPTIMIZATION,
        "compress_level": defaults.PNG_COMPRESS_LEVEL,
    }


def get_webp_params(quality: int | None, defaults: DerivativeDefaults) -> dict[str, Any]:
    """获取WebP压缩参数

    - 无损模式：lossless=True，quality 控制压缩努力程度
    - 有损模式：quality 控制图像质量
    - alpha_quality：透明通道质量，100 为无损
    """
    if quality is None:
        return {
            "lossless": True,
            "quality": 100,
            "method": defaults.WEBP_METHOD,
            "exact": True,  # 保留透明区域的 RGB 值
        }

    params: dict[str, Any] = {
        "quality": quality,
        "method": defaults.WEBP_METHOD,
    }

    if quality >= 85:
        params["alpha_quality"] = 100
    elif quality >= 70:
        params["alpha_quality"] = min(100, quality + 10)
    else:
        params["alpha_quality"] = quality

    return params


def get_avif_params(quality: int | None, defaults: DerivativeDefaults) -> dict[str, Any]:
    """获取AVIF压缩参数

    Pillow 的 AVIF 编码器没有独立的无损开关，无损路径使用最高质量和 4:4:4 子采样，
    结果是近似无损，解码后像素可能有少量偏差（见 ImageFormat.exact_lossless）。
    """
    if quality is None:
        return {
            "quality": 100,
            "subsampling": "4:4:4",
            "speed": defaults.AVIF_SPEED,
        }

    params: dict[str, Any] = {
        "quality": quality,
        "speed": defaults.AVIF_SPEED,
    }

    if quality >= 95:
        params["subsampling"] = "4:4:4"
    elif quality >= 80:
        params["subsampling"] = "4:2:2"
    else:
        params["subsampling"] = "4:2:0"

    return params
