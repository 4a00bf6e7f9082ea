"""衍生图生成引擎模块。

包含衍生图集生成、并发执行和选项构建等核心处理逻辑。
"""

from .concurrent_executor import ConcurrentExecutor
from .config import OptionsBuilder, build_options, ensure_runnable, parse_breakpoint
from .generator import (
    CancellationToken,
    DerivativeSetGenerator,
    DerivativeTask,
    generate_derivatives,
    plan_pairs,
)


__all__ = [
    "CancellationToken",
    "ConcurrentExecutor",
    "DerivativeSetGenerator",
    "DerivativeTask",
    "OptionsBuilder",
    "build_options",
    "ensure_runnable",
    "generate_derivatives",
    "parse_breakpoint",
    "plan_pairs",
]
