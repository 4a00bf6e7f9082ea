"""消息格式化工具模块。

提供统一的错误消息、进度消息格式化功能。
"""

from pathlib import Path


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def path_not_file(path: str | Path) -> str:
        """路径不是文件错误消息"""
        return f"路径不是文件: {path}"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def format_error(operation: str, target: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{target}]: {error}"

    @staticmethod
    def progress_label(
        breakpoint_name: str, format_name: str, retina: bool = False
    ) -> str:
        """进度事件的任务描述"""
        label = f"处理 {breakpoint_name} {format_name}"
        return f"{label} @2x" if retina else label

    @staticmethod
    def derivative_context(
        breakpoint_name: str, format_name: str, retina: bool = False
    ) -> str:
        """衍生图错误的上下文描述"""
        suffix = " @2x" if retina else ""
        return f"断点 {breakpoint_name} / 格式 {format_name}{suffix}"

