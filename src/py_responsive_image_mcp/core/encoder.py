"""编码器模块。

把缩放后的像素缓冲区编码为目标格式的字节。
"""

import io
from dataclasses import dataclass

from PIL import Image

from ..config import DerivativeDefaults, get_config
from ..exceptions import EncodeError, handle_image_errors
from ..models.constants import ImageFormat
from ..models.processing_options import ProcessingOptions
from ..utils.logging_helpers import get_logger
from .formats import FormatProcessor, get_save_parameters


logger = get_logger()


@dataclass(frozen=True)
class EncodedImage:
    """编码结果"""

    data: bytes
    lossless: bool
    quality_used: int | None

    @property
    def size(self) -> int:
        return len(self.data)


class DerivativeEncoder:
    """衍生图编码器

    PNG 或无损模式走无损路径，其余格式按选项质量有损编码。
    """

    def __init__(
        self,
        format_processor: FormatProcessor | None = None,
        defaults: DerivativeDefaults | None = None,
    ):
        self.format_processor = format_processor or FormatProcessor()
        self.defaults = defaults or get_config().derivatives

    def is_lossless_path(
        self, image_format: ImageFormat, options: ProcessingOptions
    ) -> bool:
        return image_format == ImageFormat.PNG or options.lossless

    @handle_image_errors("图片编码", EncodeError)
    def encode(
        self,
        image: Image.Image,
        image_format: ImageFormat,
        options: ProcessingOptions,
    ) -> EncodedImage:
        """编码图片

        Args:
            image: 待编码的图片
            image_format: 目标格式
            options: 处理选项

        Returns:
            EncodedImage: 编码后的字节和所走路径

        Raises:
            EncodeError: 缓冲区尺寸为 0、后端不支持该格式或格式不支持所需模式
        """
        if image.width == 0 or image.height == 0:
            raise EncodeError(f"无效的像素缓冲区尺寸: {image.width}x{image.height}")

        if not self.format_processor.is_supported(image_format):
            raise EncodeError(
                f"当前 Pillow 构建不支持 {image_format.display_name} 编码"
            )

        lossless = self.is_lossless_path(image_format, options)
        if lossless and not image_format.supports_lossless:
            raise EncodeError(f"{image_format.display_name} 不支持无损编码")

        save_params, quality_used = get_save_parameters(
            image_format, options, self.defaults
        )
        prepared = self.format_processor.prepare_for_format(image, image_format)

        buffer = io.BytesIO()
        try:
            prepared.save(buffer, format=image_format.pil_format, **save_params)
        finally:
            if prepared is not image:
                prepared.close()

        data = buffer.getvalue()
        if not data:
            raise EncodeError(f"{image_format.display_name} 编码结果为空")

        logger.debug(
            f"编码 {image_format.display_name} {image.width}x{image.height}: "
            f"{len(data)} bytes, {'无损' if lossless else f'质量 {quality_used}'}"
        )
        return EncodedImage(data=data, lossless=lossless, quality_used=quality_used)


_default_encoder: DerivativeEncoder | None = None


def encode_image(
    image: Image.Image, image_format: ImageFormat, options: ProcessingOptions
) -> EncodedImage:
    """便捷的编码函数，使用共享的编码器实例"""
    global _default_encoder
    if _default_encoder is None:
        _default_encoder = DerivativeEncoder()
    return _default_encoder.encode(image, image_format, options)
