"""衍生图集生成器测试。"""

import asyncio
import io

import pytest
from PIL import Image

from py_responsive_image_mcp.engine.generator import (
    CancellationToken,
    DerivativeSetGenerator,
    plan_pairs,
)
from py_responsive_image_mcp.exceptions import (
    ConfigError,
    DerivativeGenerationError,
    EncodeError,
)
from py_responsive_image_mcp.models import GenerationStatus, ImageFormat
from tests.conftest import (
    FailingEncoder,
    FakeEncoder,
    create_options,
    make_flat,
    make_gradient,
    make_source,
)


@pytest.fixture
def source_4k():
    return make_source(make_flat(3840, 2160, (40, 90, 160)))


@pytest.fixture
def generator():
    return DerivativeSetGenerator(encoder=FakeEncoder())


class TestDerivativeOrdering:
    """输出顺序与命名"""

    def test_retina_naming_scenario(self, generator, source_4k):
        options = create_options(
            formats=[ImageFormat.WEBP, ImageFormat.JPEG],
            breakpoints=[{"name": "1080p", "width": 1920}, {"name": "Mobile", "width": 768}],
            include_retina=True,
        )

        result = generator.generate(source_4k, options)

        assert result.status == GenerationStatus.COMPLETED
        assert result.get_names() == [
            "image-1920.webp",
            "image-1920@2x.webp",
            "image-1920.jpg",
            "image-1920@2x.jpg",
            "image-768.webp",
            "image-768@2x.webp",
            "image-768.jpg",
            "image-768@2x.jpg",
        ]

    def test_derivative_dimensions(self, generator, source_4k):
        options = create_options(
            formats=[ImageFormat.WEBP],
            breakpoints=[{"name": "1080p", "width": 1920}],
            include_retina=True,
        )

        standard, retina = generator.generate(source_4k, options).derivatives

        assert standard.dimensions == (1920, 1080)
        assert retina.dimensions == (3840, 2160)
        assert retina.is_retina and not standard.is_retina
        assert standard.breakpoint_name == "1080p"

    def test_no_upscaling(self, generator):
        """源图片比断点窄时，衍生图保持源尺寸"""
        source = make_source(make_flat(800, 600))
        options = create_options(
            formats=[ImageFormat.PNG],
            breakpoints=[{"name": "1080p", "width": 1920}],
            include_retina=True,
        )

        result = generator.generate(source, options)

        assert result.get_names() == ["image-1920.png", "image-1920@2x.png"]
        assert all(d.dimensions == (800, 600) for d in result.derivatives)

    @pytest.mark.parametrize("lossless", [False, True])
    @pytest.mark.parametrize("retina", [False, True])
    def test_output_count(self, generator, lossless, retina):
        formats = [ImageFormat.WEBP, ImageFormat.JPEG, ImageFormat.PNG]
        breakpoints = [{"name": "a", "width": 300}, {"name": "b", "width": 200}]
        options = create_options(
            formats=formats,
            breakpoints=breakpoints,
            lossless=lossless,
            include_retina=retina,
        )

        result = generator.generate(make_source(make_flat(640, 480)), options)

        kept_formats = len(formats) - (1 if lossless else 0)
        expected = len(breakpoints) * kept_formats * (2 if retina else 1)
        assert result.get_total_count() == expected
        assert result.total_steps == expected

    def test_plan_pairs_skips_jpeg_when_lossless(self):
        options = create_options(
            formats=[ImageFormat.JPEG, ImageFormat.PNG], lossless=True, include_retina=True
        )

        pairs = plan_pairs(options)

        assert len(pairs) == 1
        assert [task.name for task in pairs[0]] == ["image-768.png", "image-768@2x.png"]


class TestLosslessGeneration:
    """无损模式（真实编码）"""

    def test_lossless_jpeg_png_scenario(self):
        generator = DerivativeSetGenerator()
        source = make_source(make_gradient(1000, 500))
        options = create_options(
            formats=[ImageFormat.JPEG, ImageFormat.PNG],
            lossless=True,
            include_retina=False,
        )
        events = []

        result = generator.generate(source, options, on_progress=events.append)

        assert result.get_names() == ["image-768.png"]
        derivative = result.derivatives[0]
        assert derivative.lossless
        assert derivative.quality_used is None
        assert derivative.byte_size == len(derivative.encoded_bytes)
        with Image.open(io.BytesIO(derivative.encoded_bytes)) as decoded:
            assert decoded.size == (768, 384)
        assert [(e.current, e.total) for e in events] == [(1, 1)]


class TestProgress:
    """进度事件"""

    def test_progress_strictly_increasing(self, generator, source_4k):
        options = create_options(
            formats=[ImageFormat.WEBP, ImageFormat.JPEG],
            breakpoints=[{"name": "Tablet", "width": 1024}, {"name": "Mobile", "width": 768}],
            include_retina=True,
        )
        events = []

        result = generator.generate(source_4k, options, on_progress=events.append)

        assert [e.current for e in events] == list(range(1, 9))
        assert {e.total for e in events} == {result.get_total_count()}
        assert events[-1].is_complete
        assert events[0].current_task == "处理 Tablet WebP"
        assert events[1].current_task == "处理 Tablet WebP @2x"

    def test_progress_total_after_skip(self, generator):
        """无损模式跳过的 JPEG 不计入总步数"""
        options = create_options(
            formats=[ImageFormat.JPEG, ImageFormat.WEBP], lossless=True, include_retina=True
        )
        events = []

        generator.generate(make_source(make_flat(2000, 1000)), options, events.append)

        assert [(e.current, e.total) for e in events] == [(1, 2), (2, 2)]
        assert events[-1].percent == 100.0


class TestCancellation:
    """取消"""

    def test_cancel_before_start(self, generator, source_4k):
        token = CancellationToken()
        token.cancel()
        events = []

        result = generator.generate(
            source_4k, create_options(), on_progress=events.append, is_cancelled=token
        )

        assert result.status == GenerationStatus.CANCELED
        assert result.derivatives == []
        assert events == []

    def test_cancel_mid_batch_discards_partial(self, generator, source_4k):
        token = CancellationToken()
        options = create_options(
            formats=[ImageFormat.WEBP, ImageFormat.JPEG, ImageFormat.PNG],
            include_retina=True,
        )

        def on_progress(event):
            if event.current == 2:
                token.cancel()

        result = generator.generate(source_4k, options, on_progress, token)

        assert result.is_cancelled
        assert result.get_total_count() == 0
        # 第一个任务对完成后取消，后续任务对不再开始
        assert len(generator.encoder.calls) == 2


class TestFailFast:
    """快速失败"""

    def test_failure_carries_context(self, source_4k):
        generator = DerivativeSetGenerator(
            encoder=FailingEncoder(ImageFormat.JPEG, fail_width=2048)
        )
        options = create_options(
            formats=[ImageFormat.WEBP, ImageFormat.JPEG],
            breakpoints=[{"name": "Tablet", "width": 1024}],
            include_retina=True,
        )
        events = []

        with pytest.raises(DerivativeGenerationError) as exc_info:
            generator.generate(source_4k, options, on_progress=events.append)

        error = exc_info.value
        assert error.breakpoint_name == "Tablet"
        assert error.breakpoint_width == 1024
        assert error.format_name == "JPEG"
        assert error.retina
        assert error.retina_suffix == "@2x"
        assert isinstance(error.cause, EncodeError)
        assert "@2x" in str(error)
        # 失败前的进度已经发出，但结果不会返回
        assert [e.current for e in events] == [1, 2, 3]

    def test_resample_failure_wrapped(self, source_4k):
        def broken_resampler(image, width):
            raise OSError("磁盘已满")

        generator = DerivativeSetGenerator(resampler=broken_resampler, encoder=FakeEncoder())

        with pytest.raises(DerivativeGenerationError) as exc_info:
            generator.generate(source_4k, create_options())

        error = exc_info.value
        assert isinstance(error.cause, OSError)
        assert error.breakpoint_name == "Mobile"
        assert error.format_name == "WebP"
        assert not error.retina
        assert "磁盘已满" in str(error)

    def test_custom_encoder_failure_wrapped(self, source_4k):
        """自定义编码器抛出的非衍生图异常同样带上下文"""

        class BrokenEncoder(FakeEncoder):
            def encode(self, image, image_format, options):
                if image_format == ImageFormat.JPEG:
                    raise ValueError("不支持的参数")
                return super().encode(image, image_format, options)

        generator = DerivativeSetGenerator(encoder=BrokenEncoder())

        with pytest.raises(DerivativeGenerationError) as exc_info:
            generator.generate(source_4k, create_options())

        assert isinstance(exc_info.value.cause, ValueError)
        assert exc_info.value.format_name == "JPEG"
        assert exc_info.value.breakpoint_width == 768

    @pytest.mark.parametrize("field", ["formats", "breakpoints"])
    def test_empty_options_rejected_before_work(self, source_4k, field):
        encoder = FakeEncoder()
        generator = DerivativeSetGenerator(encoder=encoder)

        with pytest.raises(ConfigError):
            generator.generate(source_4k, create_options(**{field: []}))

        assert encoder.calls == []


class TestConcurrency:
    """线程池执行"""

    @pytest.fixture
    def options(self):
        return create_options(
            formats=[ImageFormat.WEBP, ImageFormat.JPEG, ImageFormat.PNG],
            breakpoints=[
                {"name": "1080p", "width": 1920},
                {"name": "Tablet", "width": 1024},
                {"name": "Mobile", "width": 768},
                {"name": "Small Mobile", "width": 480},
            ],
            include_retina=True,
        )

    def test_pool_matches_sequential_order(self, source_4k, options):
        sequential = DerivativeSetGenerator(max_workers=1, encoder=FakeEncoder())
        pooled = DerivativeSetGenerator(
            max_workers=4, encoder=FakeEncoder(delay_by_width=True)
        )
        events = []

        expected = sequential.generate(source_4k, options)
        result = pooled.generate(source_4k, options, on_progress=events.append)

        assert result.get_names() == expected.get_names()
        assert [d.encoded_bytes for d in result.derivatives] == [
            d.encoded_bytes for d in expected.derivatives
        ]
        assert [e.current for e in events] == list(range(1, 25))
        assert [e.current_task for e in events][:2] == ["处理 1080p WebP", "处理 1080p WebP @2x"]

    def test_pool_fail_fast(self, source_4k, options):
        generator = DerivativeSetGenerator(
            max_workers=4, encoder=FailingEncoder(ImageFormat.PNG, fail_width=960)
        )

        with pytest.raises(DerivativeGenerationError) as exc_info:
            generator.generate(source_4k, options)

        assert exc_info.value.breakpoint_name == "Small Mobile"
        assert exc_info.value.format_name == "PNG"

    def test_pool_cancellation(self, source_4k, options):
        token = CancellationToken()
        token.cancel()
        generator = DerivativeSetGenerator(max_workers=4, encoder=FakeEncoder())

        result = generator.generate(source_4k, options, is_cancelled=token)

        assert result.is_cancelled
        assert result.derivatives == []

    def test_source_not_modified(self, options):
        image = make_gradient(2000, 1000)
        before = image.tobytes()
        generator = DerivativeSetGenerator(max_workers=4, encoder=FakeEncoder())

        generator.generate(make_source(image), options)

        assert image.tobytes() == before


class TestAsyncGeneration:
    """异步接口"""

    def test_generate_async(self, generator, source_4k):
        options = create_options(include_retina=True)
        events = []

        async def run():
            return await generator.generate_async(
                source_4k, options, on_progress=events.append
            )

        result = asyncio.run(run())

        assert result.get_names() == [
            "image-768.webp",
            "image-768@2x.webp",
            "image-768.jpg",
            "image-768@2x.jpg",
        ]
        assert [e.current for e in events] == [1, 2, 3, 4]
