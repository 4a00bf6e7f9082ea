"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class DerivativeDefaults:
    """衍生图生成相关的默认配置"""

    # 质量设置
    DEFAULT_QUALITY: int = 85
    INCLUDE_RETINA: bool = True

    # 编码器参数
    JPEG_PROGRESSIVE: bool = True
    WEBP_METHOD: int = 6  # 0=最快, 6=最慢但压缩最好
    AVIF_SPEED: int = 6  # 0=最慢最佳, 10=最快
    PNG_COMPRESS_LEVEL: int = 9
    ENABLE_OPTIMIZATION: bool = True

    # 并发设置，1 表示顺序执行
    MAX_WORKERS: int = 1

    # 源文件限制
    MAX_FILE_SIZE_MB: float = 50.0


@dataclass(frozen=True)
class AnalysisDefaults:
    """清晰度分析相关的默认配置"""

    SAMPLE_MAX_WIDTH: int = 800
    SAMPLE_MAX_HEIGHT: int = 600
    CONTRAST_STRIDE: int = 10


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_responsive_image.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.derivatives = DerivativeDefaults()
        self.analysis = AnalysisDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 衍生图配置
        if quality := os.getenv("PRI_DEFAULT_QUALITY"):
            object.__setattr__(self.derivatives, "DEFAULT_QUALITY", int(quality))

        if max_workers := os.getenv("PRI_MAX_WORKERS"):
            object.__setattr__(self.derivatives, "MAX_WORKERS", int(max_workers))

        if webp_method := os.getenv("PRI_WEBP_METHOD"):
            object.__setattr__(self.derivatives, "WEBP_METHOD", int(webp_method))

        if avif_speed := os.getenv("PRI_AVIF_SPEED"):
            object.__setattr__(self.derivatives, "AVIF_SPEED", int(avif_speed))

        if png_level := os.getenv("PRI_PNG_COMPRESS_LEVEL"):
            object.__setattr__(self.derivatives, "PNG_COMPRESS_LEVEL", int(png_level))

        if max_size := os.getenv("PRI_MAX_FILE_SIZE_MB"):
            object.__setattr__(self.derivatives, "MAX_FILE_SIZE_MB", float(max_size))

        # 日志配置
        if log_level := os.getenv("PRI_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("PRI_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging,
                "ENABLE_FILE_LOGGING",
                enable_file_log.lower() in ("true", "1", "yes"),
            )

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.derivatives.MAX_FILE_SIZE_MB * 1024 * 1024)

    @staticmethod
    def should_use_pool(max_workers: int, pair_count: int) -> bool:
        """只有多个工作线程且多于一个任务对时才使用线程池"""
        return max_workers > 1 and pair_count > 1


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
