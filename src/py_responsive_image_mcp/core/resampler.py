"""缩放模块。

按目标宽度等比缩放，永不放大。
"""

from PIL import Image

from ..exceptions import ResampleError, handle_image_errors


def compute_target_size(
    source_width: int, source_height: int, target_width: int
) -> tuple[int, int]:
    """计算衍生图尺寸

    宽度 = min(目标宽度, 源宽度)，高度 = 宽度 * 源高 / 源宽 四舍五入（0.5 进位），
    两者最小为 1。使用整数运算避免浮点误差。

    Raises:
        ResampleError: 源尺寸为 0 或目标宽度不是正数
    """
    if source_width <= 0 or source_height <= 0:
        raise ResampleError(f"源图片尺寸无效: {source_width}x{source_height}")
    if target_width <= 0:
        raise ResampleError(f"目标宽度必须大于 0，当前值: {target_width}")

    width = max(1, min(target_width, source_width))
    height = (2 * width * source_height + source_width) // (2 * source_width)
    return width, max(1, height)


@handle_image_errors("图片缩放", ResampleError)
def resample_image(image: Image.Image, target_width: int) -> Image.Image:
    """返回缩放后的新图片，不修改也不返回原图对象

    Args:
        image: 源图片
        target_width: 目标宽度

    Returns:
        Image.Image: 新的图片对象
    """
    size = compute_target_size(image.width, image.height, target_width)
    if size == image.size:
        return image.copy()
    return image.resize(size, Image.Resampling.LANCZOS)
