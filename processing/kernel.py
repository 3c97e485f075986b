"""
Image kernels and convolution.
"""

import logging
import math
from typing import Any, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from config import get_settings
from imagecore.constants import ErrorMessages, KernelConstants
from imagecore.exceptions import InvalidKernelSize
from imagecore.image2d import Image2D, ImageBuffer2D
from imagecore.padding import Padding
from imagecore.pixel_types import Pixel, resolve_pixel_type
from imagecore.subpixel import SubpixelType, cast_array, saturating_bounds

logger = logging.getLogger(__name__)

Tap = Tuple[Tuple[int, int], Any]


def gaussian_2d(x: float, y: float, sigma: float) -> float:
    """Isotropic 2D gaussian density at (x, y)."""
    s2 = sigma * sigma
    return math.exp(-(x * x + y * y) / (2.0 * s2)) / (2.0 * math.pi * s2)


class Kernel:
    """
    Square odd-sized kernel whose center is the kernel origin.

    Weights are stored row-major in the kernel's working subpixel type, which
    is also the precision convolution accumulates in.
    """

    def __init__(
        self,
        elems: Sequence[Any],
        radius: int,
        subpixel: Any = KernelConstants.DEFAULT_WORKING_TYPE,
    ):
        """
        Create a kernel.

        Args:
            elems: (2 * radius + 1) ** 2 weights in row-major order
            radius: Kernel radius
            subpixel: Working subpixel type of the weights

        Raises:
            InvalidKernelSize: If elems has the wrong number of weights
        """
        if radius < 0:
            raise InvalidKernelSize(f"Kernel radius must be non-negative, got {radius}")
        self._subpixel = SubpixelType.parse(subpixel)
        weights = np.asarray(elems, dtype=self._subpixel.dtype).reshape(-1)
        expected = (2 * radius + 1) ** 2
        if weights.size != expected:
            raise InvalidKernelSize(
                ErrorMessages.INVALID_KERNEL_SIZE.format(actual=weights.size, expected=expected)
            )
        weights.flags.writeable = False
        self._elems = weights
        self._radius = radius

    @property
    def elems(self) -> np.ndarray:
        """Read-only row-major weights"""
        return self._elems

    @property
    def radius(self) -> int:
        return self._radius

    @property
    def size(self) -> int:
        """Side length, 2 * radius + 1"""
        return 2 * self._radius + 1

    @property
    def subpixel(self) -> SubpixelType:
        return self._subpixel

    def __repr__(self) -> str:
        return f"Kernel<{self._subpixel.value}>(radius={self._radius})"

    # --- constructors ---

    @staticmethod
    def _require_float(subpixel: Any) -> SubpixelType:
        tag = SubpixelType.parse(subpixel)
        if not tag.is_float:
            raise TypeError(f"Kernel needs a floating point working type, got {tag.value}")
        return tag

    @classmethod
    def box(cls, radius: int, subpixel: Any = KernelConstants.DEFAULT_WORKING_TYPE) -> "Kernel":
        """Uniform averaging kernel."""
        tag = cls._require_float(subpixel)
        n = (2 * radius + 1) ** 2
        return cls([1.0 / n] * n, radius, tag)

    @classmethod
    def gaussian(
        cls, sigma: float, radius: int, subpixel: Any = KernelConstants.DEFAULT_WORKING_TYPE
    ) -> "Kernel":
        """Gaussian kernel sampled at integer offsets in [-radius, radius]."""
        tag = cls._require_float(subpixel)
        elems = [
            gaussian_2d(float(x), float(y), sigma)
            for y in range(-radius, radius + 1)
            for x in range(-radius, radius + 1)
        ]
        return cls(elems, radius, tag)

    @classmethod
    def sobel_x_3x3(cls, subpixel: Any = KernelConstants.DEFAULT_WORKING_TYPE) -> "Kernel":
        """Horizontal derivative kernel."""
        return cls(KernelConstants.SOBEL_X_3X3, KernelConstants.SOBEL_RADIUS, subpixel)

    @classmethod
    def sobel_y_3x3(cls, subpixel: Any = KernelConstants.DEFAULT_WORKING_TYPE) -> "Kernel":
        """Vertical derivative kernel."""
        return cls(KernelConstants.SOBEL_Y_3X3, KernelConstants.SOBEL_RADIUS, subpixel)

    # --- convolution ---

    def taps(self) -> Iterator[Tap]:
        """
        Pair every weight with its offset in the window.

        Offsets (dx, dy) run row-major from (0, 0) to (size - 1, size - 1),
        the same order ``rect_iter`` walks a window.
        """
        d = self.size
        for index, weight in enumerate(self._elems):
            yield (index % d, index // d), weight

    def weighted_sum(self, window: Iterable[Pixel]) -> np.ndarray:
        """
        Weighted per-channel sum of one window.

        Args:
            window: size * size pixels in row-major order, e.g. from rect_iter

        Returns:
            Per-channel sums in the working subpixel type
        """
        pixels = list(window)
        if len(pixels) != self._elems.size:
            raise ValueError(f"Window has {len(pixels)} pixels, expected {self._elems.size}")

        accu = np.zeros(pixels[0].N_CHANNELS, dtype=self._subpixel.dtype)
        with np.errstate(over="ignore", invalid="ignore"):
            for ((_, weight), pixel) in zip(self.taps(), pixels):
                accu += weight * cast_array(pixel.channels, self._subpixel)
        return accu

    def convolve(
        self,
        img: Image2D,
        padding: Optional[Padding] = None,
        out_type: Any = None,
    ) -> ImageBuffer2D:
        """
        Convolve an image with the kernel.

        Pixels are cast into the working type, weighted and summed, clamped to
        the range of the input subpixel type and cast into the output type.
        Sums the output type cannot represent become zero.

        Args:
            img: Input image
            padding: Border policy (defaults to the configured padding mode)
            out_type: Output pixel type or subpixel type (defaults to the input's)

        Returns:
            Image with the input's dimensions
        """
        if padding is None:
            padding = Padding.from_mode(get_settings().kernel.default_padding)
        source = img.pixel_type
        target = source if out_type is None else resolve_pixel_type(source, out_type)

        r = self._radius
        w, h = img.dimensions
        logger.debug(
            f"Convolving {w}x{h} {source.__name__} image with {self!r}, "
            f"{padding.mode.value} padding, output {target.__name__}"
        )

        padded = padding.apply(img, r)
        window = padded.as_slice().reshape(h + 2 * r, w + 2 * r, img.n_channels)
        working = cast_array(window, self._subpixel)

        accu = np.zeros((h, w, img.n_channels), dtype=self._subpixel.dtype)
        with np.errstate(over="ignore", invalid="ignore"):
            for (dx, dy), weight in self.taps():
                accu += weight * working[dy : dy + h, dx : dx + w]

        bounds = saturating_bounds(source.SUBPIXEL, self._subpixel)
        result = cast_array(accu, target.SUBPIXEL, bounds)
        return ImageBuffer2D._from_array(result, target)
