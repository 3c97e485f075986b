"""
Generic 2D image types.

Three ownership modes share one access contract:

- ``ImageBuffer2D`` owns its pixel storage.
- ``Image2DView`` is a read-only window borrowed from an image or a view.
- ``Image2DViewMut`` is an exclusive read-write window.

Views are zero-copy. They are context managers; leaving the ``with`` block
(or calling ``release()``, or dropping the last reference) ends the borrow.
While a mutable view is alive nothing else may read or write the pixels it
covers, and while any view is alive its owner may not write them. Violations
raise ``BorrowError``.
"""

import logging
import weakref
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple, Type

import numpy as np

from config import get_settings
from imagecore.borrow import Borrow, BorrowMode, PixelStorage
from imagecore.constants import ErrorMessages
from imagecore.exceptions import (
    BorrowError,
    InvalidDimensions,
    OutOfBounds,
    RectOutOfBounds,
    RectSizeMismatch,
)
from imagecore.pixel_types import Luma, LumaA, Pixel, Rgb, RgbA, resolve_pixel_type
from imagecore.rect import Rect
from imagecore.subpixel import cast_array

logger = logging.getLogger(__name__)


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise InvalidDimensions(ErrorMessages.INVALID_DIMENSIONS.format(width=width, height=height))
    max_pixels = get_settings().image.max_pixels
    if width * height > max_pixels:
        logger.warning(f"Refusing to allocate {width}x{height} image (limit {max_pixels} pixels)")
        raise InvalidDimensions(
            ErrorMessages.IMAGE_TOO_LARGE.format(width=width, height=height, max_pixels=max_pixels)
        )


def _check_pixel_type(pixel_type: Type[Pixel]) -> None:
    if not (isinstance(pixel_type, type) and issubclass(pixel_type, Pixel)):
        raise TypeError(f"Expected a pixel type, got {pixel_type!r}")
    if pixel_type.SUBPIXEL is None:
        raise TypeError(f"{pixel_type.__name__} must be parametrised with a subpixel type")


class PixelSlot:
    """
    Writable handle on one pixel, yielded by ``rect_iter_mut``.

    Every get/set goes through the image's borrow check.
    """

    __slots__ = ("_image", "x", "y")

    def __init__(self, image: "Image2DMut", x: int, y: int):
        self._image = image
        self.x = x
        self.y = y

    def get(self) -> Pixel:
        image = self._image
        image._check_pixel(self.x, self.y, write=False)
        return image.pixel_type._wrap(image._window()[self.y, self.x])

    def set(self, pixel: Pixel) -> None:
        image = self._image
        image._check_value(pixel)
        image._check_pixel(self.x, self.y, write=True)
        image._window()[self.y, self.x] = pixel.channels


class Image2D:
    """
    Read access to a rectangular grid of pixels.

    Not instantiated directly; see ImageBuffer2D, Image2DView and Image2DViewMut.
    """

    def __init__(
        self,
        storage: PixelStorage,
        pixel_type: Type[Pixel],
        origin: Tuple[int, int],
        size: Tuple[int, int],
        borrow: Optional[Borrow] = None,
    ):
        self._storage = storage
        self._pixel_type = pixel_type
        self._x0, self._y0 = origin
        self._width, self._height = size
        self._borrow = borrow

    # --- geometry ---

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def dimensions(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self._width, self._height)

    @property
    def rect(self) -> Rect:
        """Rect covering the whole image, in its own coordinates."""
        return Rect.new(0, 0, self._width, self._height)

    @property
    def pixel_type(self) -> Type[Pixel]:
        return self._pixel_type

    @property
    def n_channels(self) -> int:
        return self._pixel_type.N_CHANNELS

    def translate_rect(self, rect: Rect, dx: int, dy: int) -> Optional[Rect]:
        """Shift rect by (dx, dy) and clip it to this image; None if nothing remains."""
        return rect.translate(dx, dy, self)

    # --- internals ---

    def _region(self, rect: Optional[Rect] = None) -> Rect:
        """Translate a rect in image coordinates to storage coordinates."""
        rect = rect or self.rect
        return Rect.new(self._x0 + rect.left, self._y0 + rect.top, rect.width, rect.height)

    def _check(self, write: bool, rect: Optional[Rect] = None) -> None:
        storage = self._storage
        if self._borrow is None and not storage.guarded:
            return
        storage.check_access(self._region(rect), write, self._borrow)

    def _window(self) -> np.ndarray:
        return self._storage.array[
            self._y0 : self._y0 + self._height, self._x0 : self._x0 + self._width
        ]

    def _check_pixel(self, x: int, y: int, write: bool) -> None:
        if self._borrow is None and not self._storage.guarded:
            return
        self._check(write, Rect.new(x, y, 1, 1))

    def _check_bounds(self, x: int, y: int) -> None:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfBounds(
                ErrorMessages.PIXEL_OUT_OF_BOUNDS.format(x=x, y=y, bounds=self.dimensions)
            )

    def _check_rect_bounds(self, rect: Rect) -> None:
        if not rect.fits_image(self):
            raise OutOfBounds(
                ErrorMessages.RECT_OUT_OF_BOUNDS.format(
                    name="Iteration", rect=rect, bounds=self.dimensions
                )
            )

    def _check_fits(self, rect: Rect, name: str) -> None:
        if not rect.fits_image(self):
            raise RectOutOfBounds(
                ErrorMessages.RECT_OUT_OF_BOUNDS.format(
                    name=name, rect=rect, bounds=self.dimensions
                )
            )

    # --- pixel access ---

    def get_pixel(self, x: int, y: int) -> Pixel:
        """
        Return the pixel at (x, y).

        Raises:
            OutOfBounds: If (x, y) lies outside the image (a precondition violation)
        """
        self._check_bounds(x, y)
        self._check_pixel(x, y, write=False)
        return self._pixel_type._wrap(self._window()[y, x])

    def __getitem__(self, xy: Tuple[int, int]) -> Pixel:
        x, y = xy
        return self.get_pixel(x, y)

    # --- iteration ---

    def _iter_rows(self, rect: Rect) -> Iterator[Tuple[int, int, Pixel]]:
        """
        Yield (x, y, pixel) over rect, re-checking read access at every row.

        Iterators are lazy, so a view borrowed after one was created must
        still stop it before it reads the borrowed pixels.
        """
        wrap = self._pixel_type._wrap
        left, right = rect.left, rect.left + rect.width
        for y in range(rect.top, rect.top + rect.height):
            self._check(write=False, rect=Rect.new(left, y, rect.width, 1))
            line = self._window()[y, left:right]
            for x, channels in enumerate(line, start=left):
                yield x, y, wrap(channels)

    def _iter_rect(self, rect: Rect) -> Iterator[Pixel]:
        self._check(write=False, rect=rect)
        return (pixel for _, _, pixel in self._iter_rows(rect))

    def iter(self) -> Iterator[Pixel]:
        """Iterate all pixels in row-major order."""
        return self._iter_rect(self.rect)

    def __iter__(self) -> Iterator[Pixel]:
        return self.iter()

    def enumerate_pixels(self) -> Iterator[Tuple[Tuple[int, int], Pixel]]:
        """Iterate ((x, y), pixel) in row-major order."""
        self._check(write=False)
        return (((x, y), pixel) for x, y, pixel in self._iter_rows(self.rect))

    def row(self, y: int) -> Optional[Iterator[Pixel]]:
        """Left-to-right iterator over row y, or None if y is out of range."""
        if not 0 <= y < self._height:
            return None
        return self._iter_rect(Rect.new(0, y, self._width, 1))

    def col(self, x: int) -> Optional[Iterator[Pixel]]:
        """Top-to-bottom iterator over column x, or None if x is out of range."""
        if not 0 <= x < self._width:
            return None
        return self._iter_rect(Rect.new(x, 0, 1, self._height))

    def rows(self) -> Iterator[Iterator[Pixel]]:
        """Iterate the rows from top to bottom."""
        for y in range(self._height):
            yield self.row(y)

    def cols(self) -> Iterator[Iterator[Pixel]]:
        """Iterate the columns from left to right."""
        for x in range(self._width):
            yield self.col(x)

    def rect_iter(self, rect: Rect) -> Iterator[Pixel]:
        """
        Iterate the pixels of rect in row-major order.

        Raises:
            OutOfBounds: If rect does not fit the image (a precondition violation;
                clip it with ``crop_to_image`` first)
        """
        self._check_rect_bounds(rect)
        return self._iter_rect(rect)

    # --- views and copies ---

    def sub_image(self, rect: Rect) -> "Image2DView":
        """
        Borrow a read-only view on rect.

        Raises:
            RectOutOfBounds: If rect does not fit the image
            BorrowError: If the region is mutably borrowed elsewhere
        """
        self._check_fits(rect, "Sub-image")
        borrow = self._storage.acquire(self._region(rect), BorrowMode.SHARED, self._borrow)
        return Image2DView(
            self._storage, self._pixel_type, (self._x0 + rect.left, self._y0 + rect.top),
            rect.size, borrow,
        )

    def to_owned(self) -> "ImageBuffer2D":
        """Copy the pixels into a new owned image."""
        self._check(write=False)
        return ImageBuffer2D._from_array(self._window().copy(), self._pixel_type)

    def to_vec(self) -> List[Pixel]:
        """Flatten into a row-major list of pixels."""
        return list(self.iter())

    def to_raw_vec(self) -> np.ndarray:
        """Flatten into a row-major array of channel values."""
        self._check(write=False)
        return self._window().reshape(-1).copy()

    def is_contiguous(self) -> bool:
        """True if the pixels are laid out row-major without gaps in the storage."""
        return (self._x0 == 0 and self._width == self._storage.width) or self._height == 1

    def as_slice(self) -> Optional[np.ndarray]:
        """
        Read-only (width * height, channels) view of the backing storage.

        Returns:
            The view, or None when the image does not span whole storage rows
        """
        if not self.is_contiguous():
            return None
        self._check(write=False)
        flat = self._window().reshape(-1, self.n_channels).view()
        flat.flags.writeable = False
        return flat

    def cast(self, pixel_type: Any) -> "ImageBuffer2D":
        """
        Convert into a new image of the same kind and another subpixel type.

        Args:
            pixel_type: Parametrised pixel type of the same kind, or a subpixel type

        Returns:
            Owned image; unrepresentable channels become zero
        """
        target = resolve_pixel_type(self._pixel_type, pixel_type)
        self._check(write=False)
        return ImageBuffer2D._from_array(cast_array(self._window(), target.SUBPIXEL), target)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image2D):
            return NotImplemented
        if self._pixel_type is not other._pixel_type or self.dimensions != other.dimensions:
            return False
        self._check(write=False)
        other._check(write=False)
        return bool(np.array_equal(self._window(), other._window()))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self._pixel_type.__name__}>({self._width}x{self._height})"


class _LineViews:
    """One-line mutable views over an image, usable with reversed()."""

    def __init__(self, image: "Image2DMut", axis: str):
        self._image = image
        self._axis = axis

    def __len__(self) -> int:
        return self._image.height if self._axis == "row" else self._image.width

    def _line(self, index: int) -> Rect:
        if self._axis == "row":
            return Rect.new(0, index, self._image.width, 1)
        return Rect.new(index, 0, 1, self._image.height)

    def _views(self, indices: Iterable[int]) -> Iterator["Image2DViewMut"]:
        for index in indices:
            with self._image.sub_image_mut(self._line(index)) as line:
                yield line

    def __iter__(self) -> Iterator["Image2DViewMut"]:
        return self._views(range(len(self)))

    def __reversed__(self) -> Iterator["Image2DViewMut"]:
        return self._views(reversed(range(len(self))))


class Image2DMut(Image2D):
    """Write access on top of Image2D."""

    def put_pixel(self, x: int, y: int, pixel: Pixel) -> None:
        """
        Set the pixel at (x, y).

        Raises:
            OutOfBounds: If (x, y) lies outside the image (a precondition violation)
            TypeError: If pixel is not of the image's pixel type
        """
        self._check_bounds(x, y)
        self._check_value(pixel)
        self._check_pixel(x, y, write=True)
        self._window()[y, x] = pixel.channels

    def __setitem__(self, xy: Tuple[int, int], pixel: Pixel) -> None:
        x, y = xy
        self.put_pixel(x, y, pixel)

    def _check_value(self, pixel: Pixel) -> None:
        if type(pixel) is not self._pixel_type:
            raise TypeError(
                ErrorMessages.PIXEL_TYPE_MISMATCH.format(
                    expected=self._pixel_type.__name__, actual=type(pixel).__name__
                )
            )

    def iter_mut(self) -> Iterator[PixelSlot]:
        """Iterate writable slots over all pixels in row-major order."""
        return self.rect_iter_mut(self.rect)

    def rect_iter_mut(self, rect: Rect) -> Iterator[PixelSlot]:
        """
        Iterate writable slots over rect in row-major order.

        Raises:
            OutOfBounds: If rect does not fit the image
        """
        self._check_rect_bounds(rect)
        self._check(write=True, rect=rect)
        return self._iter_slots(rect)

    def _iter_slots(self, rect: Rect) -> Iterator[PixelSlot]:
        for y in range(rect.top, rect.top + rect.height):
            for x in range(rect.left, rect.left + rect.width):
                yield PixelSlot(self, x, y)

    def rows_mut(self) -> _LineViews:
        """One-row mutable views, top to bottom (reversible)."""
        return _LineViews(self, "row")

    def cols_mut(self) -> _LineViews:
        """One-column mutable views, left to right (reversible)."""
        return _LineViews(self, "col")

    def fill(self, value: Pixel) -> None:
        """Set every pixel to value."""
        self._check_value(value)
        self._check(write=True)
        self._window()[...] = value.channels

    def fill_rect(self, rect: Rect, value: Pixel) -> None:
        """
        Set every pixel of rect to value.

        Raises:
            RectOutOfBounds: If rect does not fit the image
        """
        self._check_fits(rect, "Fill")
        self._check_value(value)
        self._check(write=True, rect=rect)
        self._window()[rect.top : rect.bottom + 1, rect.left : rect.right + 1] = value.channels

    def blit_rect(self, src_rect: Rect, dst_rect: Rect, img: Image2D) -> None:
        """
        Copy src_rect of img onto dst_rect of this image.

        Raises:
            RectSizeMismatch: If the rects differ in size
            RectOutOfBounds: If a rect does not fit its image
            TypeError: If the images hold different pixel types
        """
        if src_rect.size != dst_rect.size:
            raise RectSizeMismatch(
                ErrorMessages.RECT_SIZE_MISMATCH.format(
                    src_size=src_rect.size, dst_size=dst_rect.size
                )
            )
        img._check_fits(src_rect, "Source")
        self._check_fits(dst_rect, "Destination")
        if img.pixel_type is not self._pixel_type:
            raise TypeError(
                ErrorMessages.PIXEL_TYPE_MISMATCH.format(
                    expected=self._pixel_type.__name__, actual=img.pixel_type.__name__
                )
            )
        img._check(write=False, rect=src_rect)
        self._check(write=True, rect=dst_rect)

        src = img._window()[
            src_rect.top : src_rect.bottom + 1, src_rect.left : src_rect.right + 1
        ]
        self._window()[dst_rect.top : dst_rect.bottom + 1, dst_rect.left : dst_rect.right + 1] = src

    def sub_image_mut(self, rect: Rect) -> "Image2DViewMut":
        """
        Borrow an exclusive read-write view on rect.

        Raises:
            RectOutOfBounds: If rect does not fit the image
            BorrowError: If any other live view overlaps the region
        """
        self._check_fits(rect, "Sub-image")
        borrow = self._storage.acquire(self._region(rect), BorrowMode.EXCLUSIVE, self._borrow)
        return Image2DViewMut(
            self._storage, self._pixel_type, (self._x0 + rect.left, self._y0 + rect.top),
            rect.size, borrow,
        )


class _BorrowedImage:
    """Release handling shared by both view types"""

    _storage: PixelStorage
    _borrow: Optional[Borrow]

    def _register_release(self) -> None:
        self._finalizer = weakref.finalize(self, self._storage.release, self._borrow)

    @property
    def released(self) -> bool:
        return self._borrow.released

    def release(self) -> None:
        """End the borrow; views derived from this one are released too."""
        self._finalizer()

    def __enter__(self):
        if self._borrow.released:
            raise BorrowError(ErrorMessages.VIEW_RELEASED)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class Image2DView(_BorrowedImage, Image2D):
    """Read-only view borrowed from an image."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._register_release()


class Image2DViewMut(_BorrowedImage, Image2DMut):
    """Exclusive read-write view borrowed from an image."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._register_release()


class ImageBuffer2D(Image2DMut):
    """Owned image."""

    def __init__(self, width: int, height: int, pixel_type: Type[Pixel]):
        """
        Create an image filled with pixel_type.zero().

        Args:
            width: Width in pixels
            height: Height in pixels
            pixel_type: Parametrised pixel type, e.g. Luma['u8']
        """
        _check_pixel_type(pixel_type)
        _check_dimensions(width, height)
        array = np.zeros((height, width, pixel_type.N_CHANNELS), dtype=pixel_type.SUBPIXEL.dtype)
        super().__init__(PixelStorage(array), pixel_type, (0, 0), (width, height))

    @classmethod
    def _from_array(cls, array: np.ndarray, pixel_type: Type[Pixel]) -> "ImageBuffer2D":
        """Adopt a (height, width, channels) array without copying."""
        image = cls.__new__(cls)
        Image2D.__init__(
            image, PixelStorage(np.ascontiguousarray(array)), pixel_type, (0, 0),
            (array.shape[1], array.shape[0]),
        )
        return image

    @classmethod
    def new(cls, width: int, height: int, pixel_type: Type[Pixel]) -> "ImageBuffer2D":
        return cls(width, height, pixel_type)

    @classmethod
    def from_elem(cls, width: int, height: int, value: Pixel) -> "ImageBuffer2D":
        """Create an image with every pixel set to value."""
        image = cls(width, height, type(value))
        image.fill(value)
        return image

    @classmethod
    def from_vec(
        cls,
        width: int,
        height: int,
        pixels: Iterable[Pixel],
        pixel_type: Optional[Type[Pixel]] = None,
    ) -> "ImageBuffer2D":
        """
        Create an image from a row-major sequence of pixels.

        Args:
            width: Width in pixels
            height: Height in pixels
            pixels: width * height pixels
            pixel_type: Pixel type (inferred from the first pixel when omitted)

        Raises:
            InvalidDimensions: If len(pixels) != width * height
        """
        pixels = list(pixels)
        if len(pixels) != width * height:
            raise InvalidDimensions(
                ErrorMessages.BUFFER_SIZE_MISMATCH.format(
                    actual=len(pixels), expected=width * height
                )
            )
        _check_dimensions(width, height)
        pixel_type = pixel_type or type(pixels[0])
        _check_pixel_type(pixel_type)
        for pixel in pixels:
            if type(pixel) is not pixel_type:
                raise TypeError(
                    ErrorMessages.PIXEL_TYPE_MISMATCH.format(
                        expected=pixel_type.__name__, actual=type(pixel).__name__
                    )
                )
        array = np.stack([p.channels for p in pixels]).reshape(
            height, width, pixel_type.N_CHANNELS
        )
        return cls._from_array(array, pixel_type)

    @classmethod
    def from_raw_vec(
        cls, width: int, height: int, values: Any, pixel_type: Type[Pixel]
    ) -> "ImageBuffer2D":
        """
        Create an image from row-major, channel-grouped subpixel values.

        Raises:
            InvalidDimensions: If values do not hold exactly width * height pixels
        """
        _check_pixel_type(pixel_type)
        flat = np.asarray(values, dtype=pixel_type.SUBPIXEL.dtype).reshape(-1)
        n_channels = pixel_type.N_CHANNELS
        if flat.size % n_channels != 0 or flat.size // n_channels != width * height:
            raise InvalidDimensions(
                ErrorMessages.RAW_BUFFER_SIZE_MISMATCH.format(
                    actual=flat.size, pixels=width * height, channels=n_channels
                )
            )
        _check_dimensions(width, height)
        return cls._from_array(flat.reshape(height, width, n_channels).copy(), pixel_type)

    def into_raw_vec(self) -> np.ndarray:
        """
        Hand over the backing storage as a flat array of channel values (no copy).

        The image is consumed: any later access to it raises BorrowError.

        Raises:
            BorrowError: If any view of the image is still alive
        """
        return self._storage.take().reshape(-1)

    @classmethod
    def generate(
        cls,
        width: int,
        height: int,
        f: Callable[[Tuple[int, int]], Pixel],
        pixel_type: Optional[Type[Pixel]] = None,
    ) -> "ImageBuffer2D":
        """
        Build an image where pixel (x, y) is f((x, y)).

        Args:
            width: Width in pixels
            height: Height in pixels
            f: Pixel generator, called once per pixel in row-major order
            pixel_type: Pixel type (inferred from the first generated pixel when omitted)
        """
        _check_dimensions(width, height)
        pixels = [f((x, y)) for y in range(height) for x in range(width)]
        return cls.from_vec(width, height, pixels, pixel_type)


def _drop_alpha(img: Image2D, kind: Type[Pixel], n_channels: int) -> ImageBuffer2D:
    img._check(write=False)
    target = kind[img.pixel_type.SUBPIXEL]
    return ImageBuffer2D._from_array(img._window()[..., :n_channels].copy(), target)


def rgba_to_rgb(img: Image2D) -> ImageBuffer2D:
    """Discard the alpha channel of an RgbA image."""
    if img.pixel_type.KIND is not RgbA:
        raise TypeError(f"Expected an RgbA image, got {img.pixel_type.__name__}")
    return _drop_alpha(img, Rgb, 3)


def luma_alpha_to_luma(img: Image2D) -> ImageBuffer2D:
    """Discard the alpha channel of a LumaA image."""
    if img.pixel_type.KIND is not LumaA:
        raise TypeError(f"Expected a LumaA image, got {img.pixel_type.__name__}")
    return _drop_alpha(img, Luma, 1)
