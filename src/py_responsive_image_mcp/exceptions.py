"""衍生图处理异常模块。

定义统一的异常类和错误处理机制，包含异常转换装饰器。
"""

from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class DerivativeError(Exception):
    """衍生图处理错误基类"""

    def __init__(self, message: str, source_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.source_name = source_name

    @property
    def cause(self) -> BaseException | None:
        """原始异常，用于诊断"""
        return self.__cause__


class DecodeError(DerivativeError):
    """源图片无法读取或已损坏"""

    pass


class ResampleError(DerivativeError):
    """缩放失败，例如源图片尺寸为 0"""

    pass


class EncodeError(DerivativeError):
    """编码失败：格式不受支持、质量组合无效或缓冲区无效"""

    pass


class ConfigError(DerivativeError):
    """处理选项无效，例如格式或断点列表为空"""

    pass


class AnalysisError(DerivativeError):
    """清晰度分析失败"""

    pass


class DerivativeGenerationError(DerivativeError):
    """批处理中某个衍生图失败，携带断点、格式和 @2x 上下文"""

    def __init__(
        self,
        message: str,
        breakpoint_name: str,
        breakpoint_width: int,
        format_name: str,
        retina: bool = False,
        source_name: str | None = None,
    ):
        super().__init__(message, source_name)
        self.breakpoint_name = breakpoint_name
        self.breakpoint_width = breakpoint_width
        self.format_name = format_name
        self.retina = retina

    @property
    def retina_suffix(self) -> str:
        return "@2x" if self.retina else ""


# 异常转换装饰器
def handle_image_errors(
    operation_name: str = "图像处理",
    error_class: type[DerivativeError] = EncodeError,
):
    """把 Pillow 和系统异常统一转换为本包的异常类型

    本包自身的异常原样抛出，其余异常以 error_class 包装并保留原始原因。

    Args:
        operation_name: 操作名称，用于日志记录
        error_class: 包装使用的异常类型
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except DerivativeError:
                raise
            except UnidentifiedImageError as e:
                logger.error(f"{operation_name} - 无法识别图像格式: {e}")
                raise DecodeError(f"无法识别的图像格式: {e}") from e
            except DecompressionBombError as e:
                logger.error(f"{operation_name} - 图像过大: {e}")
                raise DecodeError(f"图像像素过多，可能存在安全风险: {e}") from e
            except (OSError, KeyError) as e:
                logger.error(f"{operation_name} - 后端处理失败: {e}")
                raise error_class(f"{operation_name}失败: {e}") from e
            except (ValueError, TypeError) as e:
                logger.error(f"{operation_name} - 参数错误: {e}")
                raise error_class(f"{operation_name}参数错误: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误日志记录和错误分类功能。
    """

    @staticmethod
    def _log_error(
        operation: str, target: str | Path, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"衍生图生成"、"清晰度分析"等）
            target: 相关文件路径或名称
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, target, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def classify(error: Exception) -> str:
        """把异常映射为对外的错误类型"""
        match error:
            case ConfigError():
                return "validation"
            case DecodeError() | FileNotFoundError() | PermissionError():
                return "file"
            case DerivativeGenerationError() | ResampleError() | EncodeError():
                return "processing"
            case AnalysisError():
                return "analysis"
            case _:
                return "general"

    @staticmethod
    def describe(error: Exception) -> str:
        """生成面向用户的单行错误描述，附带原始原因"""
        message = getattr(error, "message", None) or str(error)
        cause = error.__cause__
        if cause is not None and str(cause) not in message:
            message = f"{message} (原因: {cause})"
        return message

    @staticmethod
    def handle_with_context(
        error: Exception,
        target: str | Path,
        operation: str = "未知操作",
        log_level: str = "error",
    ) -> tuple[str, str]:
        """记录错误并返回 (错误类型, 错误描述)

        Args:
            error: 异常对象
            target: 相关文件路径或名称
            operation: 操作名称
            log_level: 日志级别

        Returns:
            tuple: 错误类型与面向用户的描述
        """
        ErrorHandler._log_error(operation, target, error, log_level)
        return ErrorHandler.classify(error), ErrorHandler.describe(error)
