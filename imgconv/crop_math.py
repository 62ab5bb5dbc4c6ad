"""Resize and crop geometry.

`fit` and `crop` behave alike apart from `fit` never deleting data at zoom 1,
while `crop` usually does. Both return the box to resize the source image to
and the rectangle to cut out of the resized image afterwards.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple


class ValidationError(ValueError):
    pass


@dataclass(frozen=True)
class Box:
    w: int
    h: int

    def floats(self) -> Tuple[float, float]:
        return float(self.w), float(self.h)


@dataclass(frozen=True)
class OptionBox:
    """A box with at most one missing side."""

    w: Optional[int] = None
    h: Optional[int] = None

    def __post_init__(self) -> None:
        if self.w is None and self.h is None:
            raise ValidationError("At least one of `w`, `h` must be provided")


@dataclass(frozen=True)
class RelativePoint:
    """A point expressed as percentages of an image's width and height."""

    x: float
    y: float

    def __post_init__(self) -> None:
        for name, value in (("x", self.x), ("y", self.y)):
            if not 0.0 <= value <= 100.0:
                raise ValidationError(f"Focal point `{name}` must be between 0 and 100, got {value}")


# NOTE: `top`/`bottom` hold the horizontal edges and `left`/`right` the vertical
# ones. Consumers crop with (top, left, bottom, right) as (x0, y0, x1, y1).
@dataclass(frozen=True)
class CropBox:
    top: int
    left: int
    bottom: int
    right: int

    def as_pil_box(self) -> Tuple[int, int, int, int]:
        return self.top, self.left, self.bottom, self.right


def get_space(image_length: int, crop_length: int) -> float:
    # space between the image edge and the crop edge, as a percentage
    return (image_length - crop_length) / (image_length / 100.0) / 2.0


def true_focal_point_rel(focal_point: float, space: float) -> float:
    offset = min(max(focal_point, 0.0), 100.0) - 50.0
    return min(max(offset, min(-space, 0.0)), max(space, 0.0)) + 50.0


def true_focal_point(image_length: int, crop_length: int, focal_point: float) -> int:
    """Project a focal point percentage onto a pixel position along one axis.

    The position is shifted towards the center just enough to keep a crop of
    `crop_length` inside the image. A crop larger than the image always yields
    the center of the axis.

    >>> true_focal_point(1536, 1280, 50.0)
    768
    """
    if image_length == 0:
        return 0
    space = get_space(image_length, crop_length)
    rel = true_focal_point_rel(focal_point, space)
    return int(image_length * (rel / 100.0))


def crop_box(image_box: Box, crop: Box, focal_point: RelativePoint) -> CropBox:
    fx = true_focal_point(image_box.w, crop.w, focal_point.x)
    fy = true_focal_point(image_box.h, crop.h, focal_point.y)
    half_w = int(crop.w / 2.0)
    half_h = int(crop.h / 2.0)
    return CropBox(
        top=max(fx - half_w, 0),
        left=max(fy - half_h, 0),
        bottom=min(fx + half_w, image_box.w),
        right=min(fy + half_h, image_box.h),
    )


def add_missing_edge(image_box: Box, resize_box: OptionBox) -> Box:
    iw, ih = image_box.floats()
    w = resize_box.w
    h = resize_box.h
    if w is None:
        w = int((iw / ih) * h) if ih else 0
    if h is None:
        h = int((ih / iw) * w) if iw else 0
    return Box(w, h)


def _ratio(length: float, target: float) -> float:
    # a zero target side scales the image down to nothing
    return length / target if target else math.inf


def _scale(image_box: Box, factor: float, zoom: Optional[float]) -> Box:
    zoom = 1.0 if zoom is None else zoom
    iw, ih = image_box.floats()
    if factor == 0:
        return Box(0, 0)
    return Box(int(iw / factor * zoom), int(ih / factor * zoom))


def resize_and_zoom(image_box: Box, resize_box: Box, zoom: Optional[float] = None) -> Box:
    iw, ih = image_box.floats()
    rw, rh = resize_box.floats()
    return _scale(image_box, max(_ratio(iw, rw), _ratio(ih, rh)), zoom)


def crop_and_zoom(image_box: Box, crop: Box, zoom: Optional[float] = None) -> Box:
    iw, ih = image_box.floats()
    cw, ch = crop.floats()
    return _scale(image_box, min(_ratio(iw, cw), _ratio(ih, ch)), zoom)


def fit(
    image_box: Box,
    resize_box: OptionBox,
    focal_point: RelativePoint,
    zoom: Optional[float] = None,
) -> Tuple[Box, CropBox]:
    target = add_missing_edge(image_box, resize_box)
    resized = resize_and_zoom(image_box, target, zoom)
    return resized, crop_box(resized, target, focal_point)


def crop(
    image_box: Box,
    resize_box: Box,
    focal_point: RelativePoint,
    zoom: Optional[float] = None,
) -> Tuple[Box, CropBox]:
    resized = crop_and_zoom(image_box, resize_box, zoom)
    return resized, crop_box(resized, resize_box, focal_point)
