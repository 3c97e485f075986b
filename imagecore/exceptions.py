"""
Error taxonomy for the image core.

Construction, blit, fill and sub-image failures are raised for callers to
handle. ``OutOfBounds`` signals a violated precondition on direct pixel
access and is not meant to be recovered from.
"""


class ImageError(Exception):
    """Base class for all image core errors."""


class InvalidDimensions(ImageError, ValueError):
    """Buffer length does not match the requested width and height."""


class InvalidKernelSize(ImageError, ValueError):
    """Kernel element count is not (2 * radius + 1) ** 2."""


class RectSizeMismatch(ImageError, ValueError):
    """Source and destination rects differ in size."""


class RectOutOfBounds(ImageError, ValueError):
    """A rect does not fit the image it is applied to."""


class InvalidPaddingSize(ImageError, ValueError):
    """Padding radius is too large for the padding mode."""


class UnsupportedFormat(ImageError, ValueError):
    """Array or file layout that no pixel type can represent."""


class OutOfBounds(ImageError, IndexError):
    """Pixel coordinates beyond the image extent."""


class BorrowError(ImageError, RuntimeError):
    """Access would alias a region exclusively borrowed elsewhere."""
