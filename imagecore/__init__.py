"""
Generic 2D image core.

This package provides:
- subpixel / pixel_types: Numeric channel types and fixed-arity pixels
- rect: Integer rectangles
- image2d: Owned images and borrowed (read-only or exclusive) views
- padding: Border extension (zero, constant, replicate, wrap, mirror)
- converters: NumPy, PIL, base64 and file conversions
"""

from imagecore.borrow import BorrowMode
from imagecore.converters import ImageConverters
from imagecore.exceptions import (
    BorrowError,
    ImageError,
    InvalidDimensions,
    InvalidKernelSize,
    InvalidPaddingSize,
    OutOfBounds,
    RectOutOfBounds,
    RectSizeMismatch,
    UnsupportedFormat,
)
from imagecore.image2d import (
    Image2D,
    Image2DMut,
    Image2DView,
    Image2DViewMut,
    ImageBuffer2D,
    PixelSlot,
    luma_alpha_to_luma,
    rgba_to_rgb,
)
from imagecore.padding import (
    Padding,
    PaddingMode,
    pad_constant,
    pad_mirror,
    pad_replicate,
    pad_wrap,
    pad_zeros,
)
from imagecore.pixel_types import Luma, LumaA, Pixel, Rgb, RgbA
from imagecore.rect import Rect
from imagecore.subpixel import SubpixelType, cast_array, cast_subpixel

__all__ = [
    # Numeric types
    "SubpixelType",
    "cast_array",
    "cast_subpixel",
    # Pixels
    "Pixel",
    "Luma",
    "LumaA",
    "Rgb",
    "RgbA",
    # Geometry
    "Rect",
    # Images
    "Image2D",
    "Image2DMut",
    "Image2DView",
    "Image2DViewMut",
    "ImageBuffer2D",
    "PixelSlot",
    "BorrowMode",
    "rgba_to_rgb",
    "luma_alpha_to_luma",
    # Padding
    "Padding",
    "PaddingMode",
    "pad_constant",
    "pad_zeros",
    "pad_replicate",
    "pad_wrap",
    "pad_mirror",
    # Conversions
    "ImageConverters",
    # Errors
    "ImageError",
    "InvalidDimensions",
    "InvalidKernelSize",
    "InvalidPaddingSize",
    "RectSizeMismatch",
    "RectOutOfBounds",
    "OutOfBounds",
    "BorrowError",
    "UnsupportedFormat",
]
