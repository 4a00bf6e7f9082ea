"""像素工作区模块。

为每次缩放加编码提供作用域内的中间缓冲区管理，避免状态在任务之间泄漏。
"""

from typing import Any

from PIL import Image

from .logging_helpers import get_logger


logger = get_logger()


class PixelWorkspace:
    """中间像素缓冲区管理器

    登记的缓冲区在退出上下文时统一关闭。源图片不应登记到工作区。
    """

    def __init__(self):
        self._buffers: dict[int, Image.Image] = {}

    def acquire(self, image: Image.Image) -> Image.Image:
        """登记一个中间缓冲区并原样返回"""
        self._buffers[id(image)] = image
        return image

    def release(self) -> int:
        """关闭所有登记的缓冲区"""
        released = 0
        for image in self._buffers.values():
            image.close()
            released += 1

        self._buffers.clear()
        if released:
            logger.debug(f"已释放 {released} 个像素缓冲区")
        return released

    @property
    def buffer_count(self) -> int:
        return len(self._buffers)

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """上下文管理器退出时释放缓冲区"""
        del exc_type, exc_val, exc_tb
        self.release()
