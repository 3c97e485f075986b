"""
Constants and configuration values for pixgrid.
Centralizes all magic numbers and message templates.
"""


# Image Constants
class ImageConstants:
    """Constants related to image storage."""

    # Supported channel counts
    SUPPORTED_CHANNELS = (1, 2, 3, 4)


# Kernel Constants
class KernelConstants:
    """Constants for convolution kernels."""

    DEFAULT_WORKING_TYPE = "f64"
    SOBEL_RADIUS = 1

    # Row-major 3x3 derivative kernels
    SOBEL_X_3X3 = (
        -1.0, 0.0, 1.0,
        -2.0, 0.0, 2.0,
        -1.0, 0.0, 1.0,
    )  # fmt: skip
    SOBEL_Y_3X3 = (
        -1.0, -2.0, -1.0,
        0.0, 0.0, 0.0,
        1.0, 2.0, 1.0,
    )  # fmt: skip


# Error Messages
class ErrorMessages:
    """Standard error messages."""

    # Construction errors
    INVALID_DIMENSIONS = "Invalid image dimensions: {width}x{height}"
    IMAGE_TOO_LARGE = "Image {width}x{height} exceeds the maximum of {max_pixels} pixels"
    BUFFER_SIZE_MISMATCH = "Buffer has incorrect size {actual}, expected {expected}"
    RAW_BUFFER_SIZE_MISMATCH = (
        "Raw buffer of {actual} values does not hold {pixels} pixels of {channels} channels"
    )

    # Kernel errors
    INVALID_KERNEL_SIZE = "Vector has an incorrect size: {actual} (expected {expected})"

    # Rect errors
    RECT_SIZE_MISMATCH = (
        "Rects are not the same size. Source is {src_size}, destination is {dst_size}"
    )
    RECT_OUT_OF_BOUNDS = "{name} rect {rect} does not fit image of size {bounds}"
    INVALID_RECT = "Rect dimensions must be strictly positive, got {width}x{height}"

    # Access errors
    PIXEL_OUT_OF_BOUNDS = "Pixel ({x}, {y}) is out of image bounds {bounds}"
    PIXEL_TYPE_MISMATCH = "Expected a {expected} pixel, got {actual}"

    # Borrow errors
    BORROW_CONFLICT = "Cannot {access} region {rect}: it is borrowed {mode} by another view"
    VIEW_RELEASED = "View has been released"
    STORAGE_CONSUMED = "Image storage has been handed over by into_raw_vec"

    # Padding errors
    PADDING_TOO_LARGE = "{mode} padding of {size} does not fit image of size {bounds}"

    # Format errors
    UNSUPPORTED_FORMAT = "Unsupported image format: {format}"
