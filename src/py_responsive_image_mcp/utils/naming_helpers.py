"""文件命名工具模块。

提供统一的衍生图命名和输出路径生成功能。
"""

from pathlib import Path

from ..models.constants import ImageFormat


DERIVATIVE_PREFIX = "image"
RETINA_SUFFIX = "@2x"


class FileNamingStrategy:
    """衍生图命名策略"""

    @staticmethod
    def derivative_name(
        width: int, image_format: ImageFormat, retina: bool = False
    ) -> str:
        """生成衍生图文件名

        Args:
            width: 断点宽度（@2x 版本也使用断点宽度命名）
            image_format: 输出格式
            retina: 是否为 @2x 版本

        Returns:
            str: 如 image-1920.webp 或 image-1920@2x.webp
        """
        size_suffix = f"{width}{RETINA_SUFFIX}" if retina else f"{width}"
        return f"{DERIVATIVE_PREFIX}-{size_suffix}.{image_format.extension}"


class PathResolver:
    """输出路径解析器"""

    @staticmethod
    def resolve_output_dir(input_path: Path, output_dir: Path | None = None) -> Path:
        """未指定输出目录时，在源文件旁生成 <stem>_derivatives 目录"""
        if output_dir is not None:
            return output_dir
        return input_path.parent / f"{input_path.stem}_derivatives"

    @staticmethod
    def next_available(path: Path) -> Path:
        """若文件已存在，追加数字后缀直到不冲突"""
        if not path.exists():
            return path

        counter = 1
        while True:
            candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
            if not candidate.exists():
                return candidate
            counter += 1
