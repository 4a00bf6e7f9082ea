"""响应式图片 MCP 服务器。

把衍生图生成和清晰度分析以 MCP 工具的形式提供。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .core.formats import FormatProcessor
from .exceptions import DerivativeError, DerivativeGenerationError, ErrorHandler
from .models import DEFAULT_BREAKPOINTS, ImageFormat, OptimizationReport
from .optimizer import ImageOptimizer
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPDerivativeResponse = dict[str, Any]
MCPQualityResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def from_exception(
        error: Exception, target: str, operation: str
    ) -> dict[str, Any]:
        """记录异常并按分类构建错误结果

        衍生图失败时附带断点、格式和 @2x 上下文。
        """
        error_type, message = ErrorHandler.handle_with_context(error, target, operation)

        details: dict[str, Any] = {"operation": operation}
        if isinstance(error, DerivativeGenerationError):
            details.update(
                breakpoint=error.breakpoint_name,
                breakpoint_width=error.breakpoint_width,
                format=error.format_name,
                retina=error.retina,
            )
        return MCPResponseBuilder.error(message, error_type, details)


logger = get_logger()

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("响应式图片衍生图服务")

# 全局优化器实例
optimizer = ImageOptimizer()


# ============================================================================
# 衍生图生成
# ============================================================================


@mcp.tool()
def generate_derivatives(
    input_path: str,
    output_dir: str | None = None,
    formats: list[str] | str | None = None,
    breakpoints: list[str | int] | str | None = None,
    quality: int | None = None,
    lossless: bool = False,
    include_retina: bool | None = None,
    overwrite: bool = True,
) -> MCPDerivativeResponse:
    """为一张源图片生成响应式衍生图集并写入磁盘

    每个断点 × 格式生成一个衍生图，启用 retina 时额外生成两倍宽度的 @2x 版本。
    需要放大源图片的断点会被自动跳过。同时返回源图片的清晰度分析。

    Args:
        input_path: 源图片路径（PNG/JPEG/WebP/TIFF）
        output_dir: 输出目录（可选，默认 <stem>_derivatives）
        formats: 输出格式，如 ["avif", "webp", "jpg"] 或 "webp,png"
        breakpoints: 断点，支持宽度 1920、预设名称 "Tablet" 或 "hero:1600"
        quality: 有损质量 10-100（None 使用默认值 85）
        lossless: 无损模式，JPEG 会被跳过
        include_retina: 是否生成 @2x 版本（None 使用默认值）
        overwrite: 是否覆盖已存在的文件

    Returns:
        dict: 衍生图列表、源图片描述和清晰度分析

    使用场景:
        generate_derivatives("hero.jpg")
        generate_derivatives("hero.png", formats=["webp", "png"], lossless=True)
        generate_derivatives("banner.jpg", breakpoints=[1920, "Mobile"], quality=75)
    """
    input_path_obj = Path(input_path)
    if not input_path_obj.exists():
        return MCPResponseBuilder.file_error(
            MessageFormatter.file_not_found(input_path), input_path
        )

    try:
        report = optimizer.optimize(
            input_path_obj,
            output_dir=Path(output_dir) if output_dir else None,
            overwrite=overwrite,
            formats=formats,
            breakpoints=breakpoints,
            quality=quality,
            lossless=lossless,
            include_retina=include_retina,
        )
        return _format_report(report)

    except (DerivativeError, OSError) as e:
        return MCPResponseBuilder.from_exception(e, input_path, "衍生图生成")
    except Exception as e:
        logger.error(MessageFormatter.operation_failed("衍生图生成", input_path, e))
        return MCPResponseBuilder.error(
            MessageFormatter.operation_failed("衍生图生成", input_path, e),
            "processing",
        )


def _format_report(report: OptimizationReport) -> dict[str, Any]:
    """格式化优化报告为MCP响应格式"""
    derivative_set = report.derivative_set
    paths = [str(p) for p in report.saved_paths]

    return {
        "success": True,
        "status": derivative_set.status.value,
        "summary": report.get_summary(),
        "source": report.source_info.model_dump(mode="json"),
        "total_count": derivative_set.get_total_count(),
        "total_size": derivative_set.get_total_size(),
        "derivatives": [
            {
                "name": d.name,
                "path": paths[i] if i < len(paths) else None,
                "format": d.image_format.display_name,
                "media_type": d.image_format.media_type,
                "breakpoint": d.breakpoint_name,
                "width": d.width,
                "height": d.height,
                "retina": d.is_retina,
                "lossless": d.lossless,
                "quality_used": d.quality_used,
                "byte_size": d.byte_size,
                "size_human": d.get_size_human(),
            }
            for i, d in enumerate(derivative_set.derivatives)
        ],
        "quality": report.metrics.model_dump(mode="json") if report.metrics else None,
        "analysis_error": report.analysis_error,
    }


# ============================================================================
# 清晰度分析
# ============================================================================


@mcp.tool()
def analyze_image_quality(input_path: str) -> MCPQualityResponse:
    """分析源图片清晰度并给出断点适配建议

    清晰度基于拉普拉斯响应方差，置信度综合考虑像素数和对比度。

    Args:
        input_path: 源图片路径

    Returns:
        dict: 清晰度分数、模糊等级、置信度和源图片描述
    """
    input_path_obj = Path(input_path)
    if not input_path_obj.exists():
        return MCPResponseBuilder.file_error(
            MessageFormatter.file_not_found(input_path), input_path
        )

    try:
        source = optimizer.load(input_path_obj)
        metrics = optimizer.analyze(source)
        info = optimizer.describe(source)

        return {
            "success": True,
            "summary": metrics.get_summary(),
            "quality": metrics.model_dump(mode="json"),
            "source": info.model_dump(mode="json"),
        }

    except (DerivativeError, OSError) as e:
        return MCPResponseBuilder.from_exception(e, input_path, "清晰度分析")
    except Exception as e:
        logger.error(MessageFormatter.operation_failed("清晰度分析", input_path, e))
        return MCPResponseBuilder.error(str(e), "analysis")


@mcp.tool()
def list_presets() -> dict[str, Any]:
    """列出预设断点、输出格式及当前环境的编码支持情况"""
    processor = FormatProcessor()
    defaults = optimizer.build_options()

    return {
        "success": True,
        "breakpoints": [
            {
                "name": bp.name,
                "width": bp.width,
                "retina_width": bp.retina_width,
                "description": bp.description,
                "default": bp in defaults.breakpoints,
            }
            for bp in DEFAULT_BREAKPOINTS
        ],
        "formats": [
            {
                "name": fmt.display_name,
                "extension": fmt.extension,
                "media_type": fmt.media_type,
                "supports_lossless": fmt.supports_lossless,
                "exact_lossless": fmt.exact_lossless,
                "supported": processor.is_supported(fmt),
                "default": fmt in defaults.formats,
            }
            for fmt in ImageFormat
        ],
        "defaults": {
            "quality": defaults.quality,
            "lossless": defaults.lossless,
            "include_retina": defaults.include_retina,
        },
    }


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    configure_logging()
    logger.info("启动响应式图片 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
