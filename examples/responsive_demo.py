#!/usr/bin/env python3
"""响应式衍生图演示脚本。

展示 py_responsive_image_mcp 库的核心功能，包括：
- 源图片描述与断点建议
- 带进度回调的衍生图生成
- 清晰度分析
- 完整优化流程并写入磁盘
"""

import sys
from pathlib import Path

from PIL import Image, ImageDraw

from py_responsive_image_mcp import ImageOptimizer, ProcessingProgress
from py_responsive_image_mcp.utils import configure_logging


def get_output_dir() -> Path:
    """获取输出目录 - 使用项目的 tmp 目录"""
    project_root = Path(__file__).parent.parent
    output_dir = project_root / "tmp" / "responsive_demo"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def create_demo_image(output_dir: Path) -> Path:
    """生成一张 2400x1350 的演示图片"""
    path = output_dir / "demo_source.png"
    image = Image.new("RGB", (2400, 1350), "white")
    draw = ImageDraw.Draw(image)
    for i in range(60):
        x, y = (i * 40) % 2400, (i * 22) % 1350
        draw.rectangle([x, y, x + 160, y + 90], fill=(i * 4 % 256, i * 9 % 256, 200))
    image.save(path, "PNG")
    return path


def print_progress(event: ProcessingProgress) -> None:
    print(f"  [{event.current}/{event.total}] {event.percent:5.1f}% {event.current_task}")


def main() -> None:
    configure_logging()
    output_dir = get_output_dir()
    input_path = Path(sys.argv[1]) if len(sys.argv) > 1 else create_demo_image(output_dir)

    optimizer = ImageOptimizer()
    source = optimizer.load(input_path)

    info = optimizer.describe(source)
    print(
        f"📸 {info.name}: {info.width}x{info.height} ({info.aspect_ratio}), "
        f"{info.megapixels} MP, {info.get_file_size_human() or '未知大小'}"
    )
    print(f"  分辨率评估: {info.resolution_level.value} - {info.resolution_note}")
    print(f"  可用断点: {', '.join(bp.name for bp in info.eligible_breakpoints)}")

    metrics = optimizer.analyze(source)
    print(f"\n🔍 {metrics.get_summary()}")

    print("\n🚀 生成衍生图:")
    options = optimizer.build_options(source=source, fit_to_source=True, formats="webp,jpg")
    report = optimizer.optimize(
        source, output_dir / "derivatives", options=options, on_progress=print_progress
    )

    print(f"\n✅ {report.get_summary()}")
    for derivative, path in zip(report.derivative_set.derivatives, report.saved_paths):
        print(f"  {path.name:<24} {derivative.width}x{derivative.height} {derivative.get_size_human()}")


if __name__ == "__main__":
    main()
