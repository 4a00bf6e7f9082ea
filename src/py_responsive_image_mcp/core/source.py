"""源图片获取与描述模块。

把字节流或文件解码为只读的源像素缓冲区，并给出断点适配建议。
"""

import io
from collections.abc import Iterable
from dataclasses import dataclass
from math import gcd
from pathlib import Path

from humanize import naturalsize
from PIL import Image, ImageOps

from ..config import get_config
from ..exceptions import DecodeError, handle_image_errors
from ..models.constants import SourceLimits
from ..models.processing_options import DEFAULT_BREAKPOINTS, Breakpoint
from ..models.source_info import ResolutionLevel, SourceInfo
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()


@dataclass(frozen=True)
class SourceImage:
    """解码后的源图片

    width/height 始终是源图片的真实尺寸。image 在整个批处理期间只读共享。
    """

    image: Image.Image
    width: int
    height: int
    name: str = "image"
    file_size: int | None = None

    @classmethod
    def from_image(
        cls, image: Image.Image, name: str = "image", file_size: int | None = None
    ) -> "SourceImage":
        return cls(
            image=image,
            width=image.width,
            height=image.height,
            name=name,
            file_size=file_size,
        )

    @property
    def total_pixels(self) -> int:
        return self.width * self.height


def load_source(path: str | Path, max_file_size: int | None = None) -> SourceImage:
    """从文件加载源图片

    Args:
        path: 图片文件路径
        max_file_size: 文件大小上限（字节），默认读取全局配置

    Returns:
        SourceImage: 解码后的源图片

    Raises:
        DecodeError: 文件不存在、超过大小限制、格式不受支持或已损坏
    """
    path = Path(path)
    if not path.exists():
        raise DecodeError(MessageFormatter.file_not_found(path), path.name)
    if not path.is_file():
        raise DecodeError(MessageFormatter.path_not_file(path), path.name)

    file_size = path.stat().st_size
    _check_file_size(file_size, path.name, max_file_size)

    image = _decode(path, path.name)
    logger.debug(f"已加载源图片 {path.name}: {image.width}x{image.height}")
    return SourceImage.from_image(image, name=path.name, file_size=file_size)


def load_source_bytes(
    data: bytes, name: str = "image", max_file_size: int | None = None
) -> SourceImage:
    """从内存字节加载源图片"""
    _check_file_size(len(data), name, max_file_size)
    image = _decode(io.BytesIO(data), name)
    return SourceImage.from_image(image, name=name, file_size=len(data))


def _check_file_size(size: int, name: str, max_file_size: int | None) -> None:
    limit = max_file_size or get_config().max_file_size_bytes
    if size > limit:
        raise DecodeError(
            f"文件大小 {naturalsize(size, binary=True)} 超过限制 "
            f"{naturalsize(limit, binary=True)}: {name}",
            name,
        )
    if size == 0:
        raise DecodeError(f"文件为空: {name}", name)


@handle_image_errors("源图片解码", DecodeError)
def _decode(fp: Path | io.BytesIO, name: str) -> Image.Image:
    """解码、校验容器格式并应用 EXIF 方向"""
    with Image.open(fp) as img:
        if img.format not in SourceLimits.ACCEPTED_FORMATS:
            accepted = ", ".join(sorted(SourceLimits.ACCEPTED_FORMATS))
            raise DecodeError(
                f"不支持的源图片格式 {img.format}，支持: {accepted}", name
            )

        # exif_transpose 返回新的图片对象，与文件句柄无关
        image = ImageOps.exif_transpose(img)
        image.load()

    return _normalize_mode(image)


def _normalize_mode(image: Image.Image) -> Image.Image:
    """统一为 RGB 或 RGBA"""
    if image.mode in ("RGB", "RGBA"):
        return image

    has_alpha = image.mode in ("LA", "PA") or "transparency" in image.info
    return image.convert("RGBA" if has_alpha else "RGB")


def fits_source(breakpoint: Breakpoint, source_width: int, retina: bool) -> bool:
    """断点在不放大的前提下是否可用"""
    required = breakpoint.retina_width if retina else breakpoint.width
    return required <= source_width


def breakpoints_for_width(
    breakpoints: Iterable[Breakpoint], source_width: int, retina: bool
) -> list[Breakpoint]:
    """过滤掉需要放大源图片的断点"""
    return [bp for bp in breakpoints if fits_source(bp, source_width, retina)]


def aspect_ratio_label(width: int, height: int) -> str:
    """约分后的宽高比，如 16:9"""
    divisor = gcd(width, height) or 1
    return f"{width // divisor}:{height // divisor}"


def assess_resolution(width: int) -> tuple[ResolutionLevel, str]:
    """按宽度评估源图片是否足以覆盖各断点"""
    if width >= SourceLimits.EXCELLENT_WIDTH:
        return ResolutionLevel.EXCELLENT, "适用于所有断点"
    if width >= SourceLimits.GOOD_WIDTH:
        return ResolutionLevel.GOOD, "适用于大部分断点"
    if width >= SourceLimits.ADEQUATE_WIDTH:
        return ResolutionLevel.ADEQUATE, "适用于较小的断点"
    return ResolutionLevel.LIMITED, "可用断点有限"


def describe_source(source: SourceImage, include_retina: bool = True) -> SourceInfo:
    """生成源图片信息和断点建议

    Args:
        source: 源图片
        include_retina: 计算可用断点时是否考虑 @2x 版本

    Returns:
        SourceInfo: 源图片信息
    """
    level, note = assess_resolution(source.width)
    retina_available = source.width >= SourceLimits.RETINA_MIN_WIDTH

    return SourceInfo(
        name=source.name,
        width=source.width,
        height=source.height,
        file_size=source.file_size,
        aspect_ratio=aspect_ratio_label(source.width, source.height),
        resolution_level=level,
        resolution_note=note,
        retina_available=retina_available,
        eligible_breakpoints=breakpoints_for_width(
            DEFAULT_BREAKPOINTS, source.width, include_retina and retina_available
        ),
    )
