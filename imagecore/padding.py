"""
Image padding (border extension).

Every ``pad_*`` function returns a new image of size (w + 2 * rx, h + 2 * ry)
with the source placed at (rx, ry). All modes start from a zero-padded copy
and then patch the margins using sub-image views, fills and blits only.
"""

import logging
from enum import Enum
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, model_validator

from imagecore.constants import ErrorMessages
from imagecore.exceptions import InvalidPaddingSize
from imagecore.image2d import Image2D, ImageBuffer2D
from imagecore.pixel_types import Pixel
from imagecore.rect import Rect

logger = logging.getLogger(__name__)

PadSize = Union[int, Tuple[int, int]]


class PaddingMode(str, Enum):
    """Supported border extension modes"""

    ZERO = "zero"
    CONSTANT = "constant"
    REPLICATE = "replicate"
    WRAP = "wrap"
    MIRROR = "mirror"


def _normalize_size(size: PadSize) -> Tuple[int, int]:
    if isinstance(size, int):
        rx, ry = size, size
    else:
        rx, ry = size
    if rx < 0 or ry < 0:
        raise InvalidPaddingSize(f"Padding size must be non-negative, got {size}")
    return int(rx), int(ry)


def _rect(x: int, y: int, w: int, h: int) -> Optional[Rect]:
    """Rect, or None for an empty margin."""
    if w == 0 or h == 0:
        return None
    return Rect.new(x, y, w, h)


def _ensure_fits(img: Image2D, mode: PaddingMode, rx: int, ry: int, strict: bool) -> None:
    w, h = img.dimensions
    too_wide = rx >= w if strict else rx > w
    too_tall = ry >= h if strict else ry > h
    if (rx and too_wide) or (ry and too_tall):
        raise InvalidPaddingSize(
            ErrorMessages.PADDING_TOO_LARGE.format(
                mode=mode.value.capitalize(), size=(rx, ry), bounds=(w, h)
            )
        )


def pad_constant(img: Image2D, size: PadSize, value: Pixel) -> ImageBuffer2D:
    """Pad an image with a constant pixel."""
    rx, ry = _normalize_size(size)
    w, h = img.dimensions
    logger.debug(f"Padding {w}x{h} image by ({rx}, {ry})")

    padded = ImageBuffer2D.from_elem(w + 2 * rx, h + 2 * ry, value)
    padded.blit_rect(img.rect, Rect.new(rx, ry, w, h), img)
    return padded


def pad_zeros(img: Image2D, size: PadSize) -> ImageBuffer2D:
    """Pad an image with zeros."""
    return pad_constant(img, size, img.pixel_type.zero())


def pad_replicate(img: Image2D, size: PadSize) -> ImageBuffer2D:
    """Pad an image by replicating its borders."""
    rx, ry = _normalize_size(size)
    w, h = img.dimensions
    padded = pad_zeros(img, (rx, ry))

    # Corners take the nearest source corner pixel
    if rx and ry:
        for x, y, src_x, src_y in (
            (0, 0, 0, 0),
            (0, h + ry, 0, h - 1),
            (w + rx, 0, w - 1, 0),
            (w + rx, h + ry, w - 1, h - 1),
        ):
            with padded.sub_image_mut(Rect.new(x, y, rx, ry)) as corner:
                corner.fill(img.get_pixel(src_x, src_y))

    # Top and bottom strips replicate the first and last rows
    if ry:
        for y, src_y in ((0, 0), (h + ry, h - 1)):
            with padded.sub_image_mut(Rect.new(rx, y, w, ry)) as strip:
                for col, value in zip(strip.cols_mut(), img.row(src_y)):
                    col.fill(value)

    # Left and right strips replicate the first and last columns
    if rx:
        for x, src_x in ((0, 0), (w + rx, w - 1)):
            with padded.sub_image_mut(Rect.new(x, ry, rx, h)) as strip:
                for row, value in zip(strip.rows_mut(), img.col(src_x)):
                    row.fill(value)

    return padded


def pad_wrap(img: Image2D, size: PadSize) -> ImageBuffer2D:
    """
    Pad an image by wrapping around its borders.

    Raises:
        InvalidPaddingSize: If the padding exceeds the image size
    """
    rx, ry = _normalize_size(size)
    _ensure_fits(img, PaddingMode.WRAP, rx, ry, strict=False)
    w, h = img.dimensions
    padded = pad_zeros(img, (rx, ry))

    copies = (
        # Corners come from the diagonally opposite corner
        (_rect(0, 0, rx, ry), _rect(w + rx, h + ry, rx, ry)),
        (_rect(w - rx, 0, rx, ry), _rect(0, h + ry, rx, ry)),
        (_rect(0, h - ry, rx, ry), _rect(w + rx, 0, rx, ry)),
        (_rect(w - rx, h - ry, rx, ry), _rect(0, 0, rx, ry)),
        # Edges come from the opposite edge
        (_rect(0, 0, w, ry), _rect(rx, h + ry, w, ry)),
        (_rect(0, 0, rx, h), _rect(w + rx, ry, rx, h)),
        (_rect(w - rx, 0, rx, h), _rect(0, ry, rx, h)),
        (_rect(0, h - ry, w, ry), _rect(rx, 0, w, ry)),
    )
    for src_rect, dst_rect in copies:
        if src_rect is not None:
            padded.blit_rect(src_rect, dst_rect, img)

    return padded


def _copy_mirrored(
    img: Image2D,
    padded: ImageBuffer2D,
    src_rect: Optional[Rect],
    dst_rect: Optional[Rect],
    flip_rows: bool,
    flip_cols: bool,
) -> None:
    """Copy src_rect onto dst_rect, reversing the destination row and/or column order."""
    if src_rect is None:
        return
    with img.sub_image(src_rect) as src, padded.sub_image_mut(dst_rect) as dst:
        dst_rows = reversed(dst.rows_mut()) if flip_rows else iter(dst.rows_mut())
        for src_row, dst_row in zip(src.rows(), dst_rows):
            pixels = list(src_row)
            if flip_cols:
                pixels.reverse()
            for slot, pixel in zip(dst_row.iter_mut(), pixels):
                slot.set(pixel)


def pad_mirror(img: Image2D, size: PadSize) -> ImageBuffer2D:
    """
    Pad an image by mirroring it around its borders.

    The reflection starts one pixel inside the border, so the border pixel
    itself is not repeated: ``[a, b, c, d, e]`` padded by 2 gives
    ``[c, b, a, b, c, d, e, d, c]``.

    Raises:
        InvalidPaddingSize: If the padding is not smaller than the image
    """
    rx, ry = _normalize_size(size)
    _ensure_fits(img, PaddingMode.MIRROR, rx, ry, strict=True)
    w, h = img.dimensions
    padded = pad_zeros(img, (rx, ry))

    # Corners: mirrored both ways
    for src_rect, dst_rect in (
        (_rect(1, 1, rx, ry), _rect(0, 0, rx, ry)),
        (_rect(w - 1 - rx, 1, rx, ry), _rect(w + rx, 0, rx, ry)),
        (_rect(1, h - 1 - ry, rx, ry), _rect(0, h + ry, rx, ry)),
        (_rect(w - 1 - rx, h - 1 - ry, rx, ry), _rect(w + rx, h + ry, rx, ry)),
    ):
        _copy_mirrored(img, padded, src_rect, dst_rect, flip_rows=True, flip_cols=True)

    # Left and right: mirrored horizontally
    for src_rect, dst_rect in (
        (_rect(1, 0, rx, h), _rect(0, ry, rx, h)),
        (_rect(w - 1 - rx, 0, rx, h), _rect(w + rx, ry, rx, h)),
    ):
        _copy_mirrored(img, padded, src_rect, dst_rect, flip_rows=False, flip_cols=True)

    # Top and bottom: mirrored vertically
    for src_rect, dst_rect in (
        (_rect(0, 1, w, ry), _rect(rx, 0, w, ry)),
        (_rect(0, h - 1 - ry, w, ry), _rect(rx, h + ry, w, ry)),
    ):
        _copy_mirrored(img, padded, src_rect, dst_rect, flip_rows=True, flip_cols=False)

    return padded


class Padding(BaseModel):
    """
    Border extension policy.

    Use the class constructors rather than building it directly::

        Padding.mirror().apply(img, 2)
        Padding.constant(Luma["u8"](255)).apply(img, (3, 1))
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    mode: PaddingMode
    value: Optional[Pixel] = None

    @model_validator(mode="after")
    def validate_value(self) -> "Padding":
        """Constant padding needs a value, the other modes take none."""
        if self.mode == PaddingMode.CONSTANT and self.value is None:
            raise ValueError("Constant padding requires a value")
        if self.mode != PaddingMode.CONSTANT and self.value is not None:
            raise ValueError(f"{self.mode.value} padding does not take a value")
        return self

    @classmethod
    def zero(cls) -> "Padding":
        return cls(mode=PaddingMode.ZERO)

    @classmethod
    def constant(cls, value: Pixel) -> "Padding":
        return cls(mode=PaddingMode.CONSTANT, value=value)

    @classmethod
    def replicate(cls) -> "Padding":
        return cls(mode=PaddingMode.REPLICATE)

    @classmethod
    def wrap(cls) -> "Padding":
        return cls(mode=PaddingMode.WRAP)

    @classmethod
    def mirror(cls) -> "Padding":
        return cls(mode=PaddingMode.MIRROR)

    @classmethod
    def from_mode(cls, mode: Any) -> "Padding":
        """Build a value-less padding from its mode name."""
        return cls(mode=PaddingMode(mode))

    def apply(self, img: Image2D, size: PadSize) -> ImageBuffer2D:
        """Pad img by size (an int radius or an (rx, ry) pair)."""
        if self.mode == PaddingMode.ZERO:
            return pad_zeros(img, size)
        if self.mode == PaddingMode.CONSTANT:
            return pad_constant(img, size, self.value)
        if self.mode == PaddingMode.REPLICATE:
            return pad_replicate(img, size)
        if self.mode == PaddingMode.WRAP:
            return pad_wrap(img, size)
        return pad_mirror(img, size)
