"""选项构建与配置测试。"""

import pytest
from pydantic import ValidationError

from py_responsive_image_mcp.config import get_config, reset_config
from py_responsive_image_mcp.engine.config import OptionsBuilder, parse_breakpoint
from py_responsive_image_mcp.exceptions import ConfigError
from py_responsive_image_mcp.models import (
    DEFAULT_BREAKPOINTS,
    Breakpoint,
    ImageFormat,
    ProcessingOptions,
)
from tests.conftest import create_options


class TestImageFormat:
    """输出格式测试"""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("webp", ImageFormat.WEBP),
            ("WebP", ImageFormat.WEBP),
            (".JPEG", ImageFormat.JPEG),
            ("jpe", ImageFormat.JPEG),
            ("image/avif", ImageFormat.AVIF),
            ("png", ImageFormat.PNG),
        ],
    )
    def test_parse(self, value, expected):
        assert ImageFormat.parse(value) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            ImageFormat.parse("bmp")

    def test_capabilities(self):
        assert not ImageFormat.JPEG.supports_lossless
        assert ImageFormat.JPEG.is_jpeg_family
        assert not ImageFormat.PNG.supports_quality
        assert ImageFormat.AVIF.supports_lossless
        assert not ImageFormat.AVIF.exact_lossless
        assert ImageFormat.WEBP.exact_lossless
        assert not ImageFormat.JPEG.exact_lossless
        assert ImageFormat.JPEG.extension == "jpg"
        assert ImageFormat.WEBP.media_type == "image/webp"


class TestProcessingOptions:
    """处理选项模型测试"""

    def test_formats_unique_by_extension(self):
        options = create_options(formats=["jpg", "jpeg", ImageFormat.JPEG, "webp"])
        assert options.formats == [ImageFormat.JPEG, ImageFormat.WEBP]

    def test_breakpoints_sorted_descending(self):
        options = create_options(
            breakpoints=[{"name": "s", "width": 480}, {"name": "l", "width": 1920}]
        )
        assert [bp.width for bp in options.breakpoints] == [1920, 480]

    @pytest.mark.parametrize("quality", [9, 101])
    def test_quality_bounds(self, quality):
        with pytest.raises(ValidationError):
            create_options(quality=quality)

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            create_options(max_width=100)

    def test_effective_quality(self):
        assert create_options(quality=70).effective_quality == 70
        assert create_options(lossless=True).effective_quality is None

    def test_uses_format(self):
        options = create_options(formats=[ImageFormat.JPEG, ImageFormat.PNG], lossless=True)
        assert not options.uses_format(ImageFormat.JPEG)
        assert options.uses_format(ImageFormat.PNG)

    def test_default(self):
        options = ProcessingOptions.default()
        assert options.formats == [ImageFormat.AVIF, ImageFormat.WEBP, ImageFormat.JPEG]
        assert [bp.width for bp in options.breakpoints] == [3840, 2560, 1920, 1024, 768]
        assert options.quality == 85
        assert options.include_retina


class TestOptionsBuilder:
    """选项构建器测试"""

    @pytest.fixture
    def builder(self):
        return OptionsBuilder()

    def test_defaults(self, builder):
        options = builder.build()

        assert options == ProcessingOptions.default()

    def test_loose_inputs(self, builder):
        options = builder.build(
            formats="webp, png",
            breakpoints=[768, "Tablet", "hero:1600"],
            quality=70,
            include_retina=False,
        )

        assert options.formats == [ImageFormat.WEBP, ImageFormat.PNG]
        assert [(bp.name, bp.width) for bp in options.breakpoints] == [
            ("hero", 1600),
            ("Tablet", 1024),
            ("Mobile", 768),
        ]
        assert options.quality == 70
        assert not options.include_retina

    def test_breakpoint_string_list(self, builder):
        options = builder.build(breakpoints="1920,640")
        assert [(bp.name, bp.width) for bp in options.breakpoints] == [
            ("1080p", 1920),
            ("640px", 640),
        ]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"quality": 5},
            {"formats": ["bmp"]},
            {"breakpoints": ["Watch"]},
            {"breakpoints": [0]},
        ],
    )
    def test_invalid_inputs(self, builder, kwargs):
        with pytest.raises(ConfigError):
            builder.build(**kwargs)

    def test_validation_message_names_field(self, builder):
        with pytest.raises(ConfigError) as exc_info:
            builder.build(quality=101)

        assert "quality" in str(exc_info.value)

    def test_fit_with_retina(self, builder):
        options = builder.build(include_retina=True, fit_to_width=2000)
        assert [bp.width for bp in options.breakpoints] == [768]

    def test_fit_without_retina(self, builder):
        options = builder.build(include_retina=False, fit_to_width=2000)
        assert [bp.width for bp in options.breakpoints] == [1920, 1024, 768]

    def test_fit_turns_off_retina_when_unspecified(self, builder):
        options = builder.build(fit_to_width=1200)

        assert not options.include_retina
        assert [bp.width for bp in options.breakpoints] == [1024, 768]

    def test_fit_keeps_explicit_retina(self, builder):
        with pytest.raises(ConfigError):
            builder.build(include_retina=True, fit_to_width=1200)

    def test_fit_nothing_left(self, builder):
        with pytest.raises(ConfigError):
            builder.build(include_retina=False, fit_to_width=300)

    def test_parse_breakpoint(self):
        assert parse_breakpoint("small mobile") == DEFAULT_BREAKPOINTS[-1]
        assert parse_breakpoint({"name": "x", "width": 10}) == Breakpoint(name="x", width=10)


class TestAppConfig:
    """环境变量配置测试"""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PRI_DEFAULT_QUALITY", "70")
        monkeypatch.setenv("PRI_MAX_WORKERS", "3")
        monkeypatch.setenv("PRI_ENABLE_FILE_LOGGING", "yes")
        reset_config()

        config = get_config()
        assert config.derivatives.DEFAULT_QUALITY == 70
        assert config.derivatives.MAX_WORKERS == 3
        assert config.logging.ENABLE_FILE_LOGGING
        assert OptionsBuilder().build().quality == 70

    def test_max_file_size(self, monkeypatch):
        monkeypatch.setenv("PRI_MAX_FILE_SIZE_MB", "1.5")
        reset_config()

        assert get_config().max_file_size_bytes == int(1.5 * 1024 * 1024)

    @pytest.mark.parametrize(
        ("workers", "pairs", "expected"),
        [(1, 10, False), (4, 1, False), (4, 2, True)],
    )
    def test_should_use_pool(self, workers, pairs, expected):
        assert get_config().should_use_pool(workers, pairs) is expected
