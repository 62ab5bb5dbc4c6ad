import io
import math

import pytest
from PIL import Image

from imgconv.crop_math import Box, CropBox
from imgconv.pipeline import (
    TranscodeConfig,
    TranscodeRequest,
    load_config,
    plan_geometry,
    process_bytes,
    process_image,
)


def _split_image(size=(200, 100)) -> Image.Image:
    # left half red, right half blue
    image = Image.new("RGB", size, (255, 0, 0))
    image.paste((0, 0, 255), (size[0] // 2, 0, size[0], size[1]))
    return image


def _png_bytes(image: Image.Image) -> bytes:
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DEFAULT_RESIZE", "DEFAULT_FX", "DEFAULT_FY", "MIN_ZOOM", "MAX_ZOOM", "RESAMPLE", "MAX_CONCURRENT"):
        monkeypatch.delenv(name, raising=False)
    assert load_config() == TranscodeConfig()


def test_load_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_RESIZE", "crop")
    monkeypatch.setenv("DEFAULT_FX", "25")
    monkeypatch.setenv("MAX_ZOOM", "3")
    monkeypatch.setenv("RESAMPLE", "LANCZOS")
    monkeypatch.setenv("MAX_CONCURRENT", "0")
    config = load_config()
    assert config.default_resize == "crop"
    assert config.default_fx == 25.0
    assert config.max_zoom == 3.0
    assert config.resample == "lanczos"
    assert config.max_concurrent == 1


def test_load_config_rejects_unknown_resize(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_RESIZE", "stretch")
    with pytest.raises(RuntimeError):
        load_config()


def test_plan_geometry_fit_with_zoom() -> None:
    resized, rect = plan_geometry((1920, 1440), TranscodeRequest(w=1280, h=720, zoom=1.2), TranscodeConfig())
    assert resized == Box(1152, 864)
    assert rect == CropBox(top=0, left=72, bottom=1152, right=792)


def test_plan_geometry_uses_configured_default_resize() -> None:
    config = TranscodeConfig(default_resize="crop")
    resized, rect = plan_geometry((1920, 1440), TranscodeRequest(w=960, h=960), config)
    assert resized == Box(1280, 960)
    assert rect == CropBox(top=160, left=0, bottom=1120, right=960)


@pytest.mark.parametrize(
    "request_, message",
    [
        (TranscodeRequest(resize="stretch", w=10, h=10), "resize must be"),
        (TranscodeRequest(), "At least one of"),
        (TranscodeRequest(resize="crop", w=10), "both `w` and `h`"),
        (TranscodeRequest(w=0), "positive"),
        (TranscodeRequest(w=10, zoom=2.5), "zoom must be"),
        (TranscodeRequest(w=10, zoom=0.1), "zoom must be"),
        (TranscodeRequest(w=10, fx=101.0), "between 0 and 100"),
        (TranscodeRequest(w=10, fy=math.nan), "between 0 and 100"),
    ],
)
def test_plan_geometry_rejects_invalid_requests(request_: TranscodeRequest, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        plan_geometry((640, 480), request_, TranscodeConfig())


def test_process_image_fit_keeps_whole_image() -> None:
    result = process_image(Image.new("RGB", (1920, 1440)), TranscodeRequest(w=640, h=480), TranscodeConfig())
    assert result.size == (640, 480)


def test_process_image_fit_with_zoom_trims_height() -> None:
    request = TranscodeRequest(w=1280, h=720, zoom=1.2)
    result = process_image(Image.new("RGB", (1920, 1440)), request, TranscodeConfig())
    assert result.size == (1152, 720)


def test_process_image_crop_follows_focal_point() -> None:
    config = TranscodeConfig()
    left = process_image(_split_image(), TranscodeRequest(resize="crop", w=100, h=100, fx=0.0), config)
    right = process_image(_split_image(), TranscodeRequest(resize="crop", w=100, h=100, fx=100.0), config)
    assert left.size == right.size == (100, 100)
    assert left.getpixel((50, 50)) == (255, 0, 0)
    assert right.getpixel((50, 50)) == (0, 0, 255)


def test_process_image_converts_cmyk() -> None:
    result = process_image(Image.new("CMYK", (40, 20)), TranscodeRequest(w=20), TranscodeConfig())
    assert result.mode == "RGBA"
    assert result.size == (20, 10)


def test_process_image_rejects_empty_result() -> None:
    with pytest.raises(ValueError, match="Invalid resize dimensions"):
        process_image(Image.new("RGB", (1000, 1)), TranscodeRequest(w=10), TranscodeConfig())


def test_process_bytes_returns_png() -> None:
    content = process_bytes(_png_bytes(_split_image()), TranscodeRequest(w=50), TranscodeConfig())
    result = Image.open(io.BytesIO(content))
    assert result.format == "PNG"
    assert result.size == (50, 25)


def test_process_bytes_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="Invalid image"):
        process_bytes(b"not an image", TranscodeRequest(w=50), TranscodeConfig())


def test_plan_geometry_rejects_empty_source() -> None:
    with pytest.raises(ValueError, match="no pixels"):
        plan_geometry((0, 480), TranscodeRequest(w=10), TranscodeConfig())
