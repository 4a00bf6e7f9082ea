"""测试配置文件。

提供测试所需的fixtures和配置。
"""

import time
from pathlib import Path

import numpy as np
import pytest
from PIL import Image, ImageDraw, features

from py_responsive_image_mcp.config import reset_config
from py_responsive_image_mcp.core.encoder import EncodedImage
from py_responsive_image_mcp.core.source import SourceImage
from py_responsive_image_mcp.exceptions import EncodeError
from py_responsive_image_mcp.models import ImageFormat, ProcessingOptions


requires_avif = pytest.mark.skipif(
    not features.check("avif"), reason="当前 Pillow 构建不支持 AVIF"
)


def make_gradient(width: int, height: int) -> Image.Image:
    """水平渐变加几个色块，模拟照片类图片"""
    gradient = Image.linear_gradient("L").resize((width, height))
    image = Image.merge("RGB", (gradient, gradient.transpose(Image.Transpose.FLIP_LEFT_RIGHT), gradient))
    draw = ImageDraw.Draw(image)
    for i in range(8):
        x, y = (i * width) // 8, (i * height) // 8
        draw.rectangle([x, y, x + width // 10, y + height // 10], fill=(i * 30, 200 - i * 20, 90))
    return image


def make_checkerboard(width: int, height: int) -> Image.Image:
    """单像素黑白棋盘格"""
    cells = (np.indices((height, width)).sum(axis=0) % 2) * 255
    return Image.fromarray(cells.astype(np.uint8)).convert("RGB")


def make_flat(width: int, height: int, color=(128, 128, 128)) -> Image.Image:
    return Image.new("RGB", (width, height), color)


def make_source(image: Image.Image, name: str = "image") -> SourceImage:
    return SourceImage.from_image(image, name=name)


def create_options(**kwargs) -> ProcessingOptions:
    """创建完整的ProcessingOptions，提供默认值"""
    defaults = {
        "lossless": False,
        "quality": 85,
        "formats": [ImageFormat.WEBP, ImageFormat.JPEG],
        "breakpoints": [{"name": "Mobile", "width": 768}],
        "include_retina": False,
    }
    defaults.update(kwargs)
    return ProcessingOptions(**defaults)


class FakeEncoder:
    """不做真实编码的编码器，记录调用顺序"""

    def __init__(self, delay_by_width: bool = False):
        self.calls: list[tuple[int, ImageFormat]] = []
        self.delay_by_width = delay_by_width

    def encode(self, image, image_format, options) -> EncodedImage:
        if self.delay_by_width:
            # 小图先完成，打乱完成顺序
            time.sleep(image.width / 200_000)
        self.calls.append((image.width, image_format))
        lossless = options.lossless or image_format == ImageFormat.PNG
        return EncodedImage(
            data=f"{image.width}x{image.height}.{image_format.extension}".encode(),
            lossless=lossless,
            quality_used=None if lossless else options.quality,
        )


class FailingEncoder(FakeEncoder):
    """对指定格式和宽度抛出 EncodeError"""

    def __init__(self, fail_format: ImageFormat, fail_width: int):
        super().__init__()
        self.fail_format = fail_format
        self.fail_width = fail_width

    def encode(self, image, image_format, options) -> EncodedImage:
        if image_format == self.fail_format and image.width == self.fail_width:
            raise EncodeError(f"模拟 {image_format.display_name} 编码失败")
        return super().encode(image, image_format, options)


@pytest.fixture(autouse=True)
def clean_config():
    """每个测试使用全新的全局配置"""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """临时目录fixture"""
    return tmp_path


@pytest.fixture
def sample_images(tmp_path: Path) -> dict[str, Path]:
    """在临时目录中生成各类测试图片"""
    images_dir = tmp_path / "images"
    images_dir.mkdir()

    images = {
        "photo": images_dir / "photo.jpg",
        "large": images_dir / "large.png",
        "transparent": images_dir / "transparent.png",
        "small": images_dir / "small.png",
    }

    make_gradient(1200, 800).save(images["photo"], "JPEG", quality=90)
    make_gradient(2000, 1000).save(images["large"], "PNG")

    transparent = Image.new("RGBA", (1000, 1000), (0, 0, 0, 0))
    draw = ImageDraw.Draw(transparent)
    for i in range(10):
        x, y = i * 90, i * 90
        draw.ellipse([x, y, x + 120, y + 120], fill=(255 - i * 20, 100 + i * 15, i * 25, 180))
    transparent.save(images["transparent"], "PNG")

    make_flat(200, 100, (200, 30, 30)).save(images["small"], "PNG")
    return images


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """输出目录fixture"""
    output = tmp_path / "output"
    output.mkdir()
    return output
