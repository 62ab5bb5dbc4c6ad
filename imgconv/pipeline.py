import io
import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from imgconv.crop_math import Box, CropBox, OptionBox, RelativePoint, crop, fit

logger = logging.getLogger(__name__)

RESIZE_MODES = ("fit", "crop")

PNG_MODES = ("L", "LA", "RGB", "RGBA")

RESAMPLE_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


@dataclass
class TranscodeConfig:
    default_resize: str = "fit"
    default_fx: float = 50.0
    default_fy: float = 50.0
    min_zoom: float = 0.5
    max_zoom: float = 2.0
    resample: str = "bicubic"
    max_concurrent: int = 20


def load_config() -> TranscodeConfig:
    config = TranscodeConfig(
        default_resize=os.getenv("DEFAULT_RESIZE", "fit"),
        default_fx=float(os.getenv("DEFAULT_FX", "50")),
        default_fy=float(os.getenv("DEFAULT_FY", "50")),
        min_zoom=float(os.getenv("MIN_ZOOM", "0.5")),
        max_zoom=float(os.getenv("MAX_ZOOM", "2.0")),
        resample=os.getenv("RESAMPLE", "bicubic").lower(),
        max_concurrent=int(os.getenv("MAX_CONCURRENT", "20")),
    )
    if config.default_resize not in RESIZE_MODES:
        raise RuntimeError(f"DEFAULT_RESIZE must be one of {', '.join(RESIZE_MODES)}")
    if config.resample not in RESAMPLE_FILTERS:
        raise RuntimeError(f"RESAMPLE must be one of {', '.join(RESAMPLE_FILTERS)}")
    if config.max_concurrent < 1:
        config.max_concurrent = 1
    return config


@dataclass
class TranscodeRequest:
    resize: Optional[str] = None
    w: Optional[int] = None
    h: Optional[int] = None
    zoom: Optional[float] = None
    fx: Optional[float] = None
    fy: Optional[float] = None

    def validate(self, config: TranscodeConfig) -> None:
        resize = self.resize or config.default_resize
        if resize not in RESIZE_MODES:
            raise ValueError("resize must be either `fit` or `crop`")
        if self.w is None and self.h is None:
            raise ValueError("At least one of `w`, `h` must be provided")
        if resize == "crop" and (self.w is None or self.h is None):
            raise ValueError("For resize `crop` both `w` and `h` must be provided")
        for name, value in (("w", self.w), ("h", self.h)):
            if value is not None and value < 1:
                raise ValueError(f"`{name}` must be a positive number of pixels")
        if self.zoom is not None and not config.min_zoom <= self.zoom <= config.max_zoom:
            raise ValueError(f"zoom must be between {config.min_zoom} and {config.max_zoom}")


def plan_geometry(
    image_size: Tuple[int, int],
    request: TranscodeRequest,
    config: TranscodeConfig,
) -> Tuple[Box, CropBox]:
    request.validate(config)
    if min(image_size) < 1:
        raise ValueError("Image has no pixels")
    image_box = Box(*image_size)
    focal_point = RelativePoint(
        request.fx if request.fx is not None else config.default_fx,
        request.fy if request.fy is not None else config.default_fy,
    )
    resize = request.resize or config.default_resize
    if resize == "fit":
        resized, crop_rect = fit(image_box, OptionBox(request.w, request.h), focal_point, request.zoom)
    else:
        resized, crop_rect = crop(image_box, Box(request.w, request.h), focal_point, request.zoom)
    logger.debug(
        "%s %dx%d -> %dx%d, crop %s",
        resize,
        image_box.w,
        image_box.h,
        resized.w,
        resized.h,
        crop_rect.as_pil_box(),
    )
    return resized, crop_rect


def process_image(
    image: Image.Image,
    request: TranscodeRequest,
    config: TranscodeConfig,
) -> Image.Image:
    if image.mode not in PNG_MODES:
        image = image.convert("RGBA")
    resized_box, crop_rect = plan_geometry(image.size, request, config)
    if resized_box.w == 0 or resized_box.h == 0:
        raise ValueError("Invalid resize dimensions")
    resized = image.resize((resized_box.w, resized_box.h), RESAMPLE_FILTERS[config.resample])
    cropped = resized.crop(crop_rect.as_pil_box())
    if cropped.width == 0 or cropped.height == 0:
        raise ValueError("Invalid crop region")
    return cropped


def process_bytes(
    image_bytes: bytes,
    request: TranscodeRequest,
    config: TranscodeConfig,
) -> bytes:
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except OSError as exc:
        raise ValueError("Invalid image") from exc
    result = process_image(image, request, config)
    output = io.BytesIO()
    result.save(output, format="PNG")
    return output.getvalue()
