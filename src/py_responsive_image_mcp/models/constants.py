"""图像格式与预设常量定义。

封闭的输出格式集合（AVIF/WEBP/JPEG/PNG），每个格式携带显式的能力标记，
避免在运行时对格式对象做动态探测。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final


@dataclass(frozen=True)
class FormatCapabilities:
    """单个输出格式的静态描述"""

    display_name: str
    media_type: str
    pil_format: str
    pil_feature: str
    supports_lossless: bool
    supports_quality: bool
    is_jpeg_family: bool = False
    # 无损路径能否逐像素还原；AVIF 只能以最高质量近似无损
    exact_lossless: bool = True


class ImageFormat(str, Enum):
    """输出格式枚举，枚举值即文件扩展名（格式的身份键）"""

    AVIF = "avif"
    WEBP = "webp"
    JPEG = "jpg"
    PNG = "png"

    @property
    def capabilities(self) -> FormatCapabilities:
        return _CAPABILITIES[self]

    @property
    def extension(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return self.capabilities.display_name

    @property
    def media_type(self) -> str:
        return self.capabilities.media_type

    @property
    def pil_format(self) -> str:
        return self.capabilities.pil_format

    @property
    def supports_lossless(self) -> bool:
        return self.capabilities.supports_lossless

    @property
    def exact_lossless(self) -> bool:
        return self.supports_lossless and self.capabilities.exact_lossless

    @property
    def supports_quality(self) -> bool:
        return self.capabilities.supports_quality

    @property
    def is_jpeg_family(self) -> bool:
        return self.capabilities.is_jpeg_family

    @classmethod
    def parse(cls, value: "str | ImageFormat") -> "ImageFormat":
        """解析格式名称、扩展名或 MIME 类型

        Args:
            value: 如 "WebP"、".jpg"、"jpeg"、"image/avif"

        Returns:
            ImageFormat: 对应的格式

        Raises:
            ValueError: 无法识别的格式
        """
        if isinstance(value, ImageFormat):
            return value

        key = str(value).strip().lower()
        if key.startswith("image/"):
            for fmt in cls:
                if fmt.media_type == key:
                    return fmt
        key = key.lstrip(".")
        key = FORMAT_ALIASES.get(key, key)

        try:
            return cls(key)
        except ValueError:
            available = ", ".join(fmt.display_name for fmt in cls)
            raise ValueError(f"不支持的格式: {value}。可用格式: {available}") from None


_CAPABILITIES: Final[dict[ImageFormat, FormatCapabilities]] = {
    ImageFormat.AVIF: FormatCapabilities(
        display_name="AVIF",
        media_type="image/avif",
        pil_format="AVIF",
        pil_feature="avif",
        supports_lossless=True,
        supports_quality=True,
        exact_lossless=False,
    ),
    ImageFormat.WEBP: FormatCapabilities(
        display_name="WebP",
        media_type="image/webp",
        pil_format="WEBP",
        pil_feature="webp",
        supports_lossless=True,
        supports_quality=True,
    ),
    ImageFormat.JPEG: FormatCapabilities(
        display_name="JPEG",
        media_type="image/jpeg",
        pil_format="JPEG",
        pil_feature="jpg",
        supports_lossless=False,
        supports_quality=True,
        is_jpeg_family=True,
    ),
    ImageFormat.PNG: FormatCapabilities(
        display_name="PNG",
        media_type="image/png",
        pil_format="PNG",
        pil_feature="zlib",
        supports_lossless=True,
        supports_quality=False,
    ),
}

# 用户友好的别名
FORMAT_ALIASES: Final[dict[str, str]] = {
    "jpeg": "jpg",
    "jpe": "jpg",
}

# 默认输出格式：AVIF、WebP、JPEG（PNG 需手动开启）
DEFAULT_FORMATS: Final[tuple[ImageFormat, ...]] = (
    ImageFormat.AVIF,
    ImageFormat.WEBP,
    ImageFormat.JPEG,
)


class QualityDefaults:
    """质量相关默认值"""

    DEFAULT: Final[int] = 85
    MIN_QUALITY: Final[int] = 10
    MAX_QUALITY: Final[int] = 100

    # 编码器接收的归一化质量范围
    MIN_RATIO: Final[float] = 0.1
    MAX_RATIO: Final[float] = 1.0


class SourceLimits:
    """源图片相关限制"""

    MAX_FILE_SIZE: Final[int] = 50 * 1024 * 1024  # 50MB
    ACCEPTED_FORMATS: Final[frozenset[str]] = frozenset(
        {"PNG", "JPEG", "WEBP", "TIFF"}
    )

    # 最小默认断点 480px 的两倍
    RETINA_MIN_WIDTH: Final[int] = 960

    # 分辨率评估阈值（宽度像素）
    EXCELLENT_WIDTH: Final[int] = 3840
    GOOD_WIDTH: Final[int] = 2560
    ADEQUATE_WIDTH: Final[int] = 1920


class AnalysisLimits:
    """清晰度分析相关常量"""

    SAMPLE_MAX_WIDTH: Final[int] = 800
    SAMPLE_MAX_HEIGHT: Final[int] = 600

    # 对比度采样步长（像素）
    CONTRAST_STRIDE: Final[int] = 10

    # 模糊分级阈值，按降序匹配
    SHARP_THRESHOLD: Final[float] = 1000.0
    MODERATE_THRESHOLD: Final[float] = 500.0
    BLURRY_THRESHOLD: Final[float] = 100.0

    BASE_CONFIDENCE: Final[float] = 0.5
