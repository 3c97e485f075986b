"""
Image format conversion utilities.

Handles conversions between ImageBuffer2D and:
- NumPy arrays ((h, w) or (h, w, c), RGB channel order)
- PIL Images (modes L, LA, RGB, RGBA and I;16)
- Base64 encoded strings
- Image files, read and written through OpenCV (BGR channel order on disk)
"""

import base64
import io
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union

import cv2
import numpy as np
from PIL import Image

from imagecore.constants import ErrorMessages, ImageConstants
from imagecore.exceptions import UnsupportedFormat
from imagecore.image2d import Image2D, ImageBuffer2D
from imagecore.pixel_types import Luma, LumaA, Pixel, Rgb, RgbA, kind_for_channels
from imagecore.subpixel import SubpixelType

logger = logging.getLogger(__name__)

# PIL mode -> (pixel kind, subpixel type)
PIL_MODES: Dict[str, Tuple[Type[Pixel], SubpixelType]] = {
    "L": (Luma, SubpixelType.U8),
    "LA": (LumaA, SubpixelType.U8),
    "RGB": (Rgb, SubpixelType.U8),
    "RGBA": (RgbA, SubpixelType.U8),
    "I;16": (Luma, SubpixelType.U16),
}


class ImageConverters:
    """Utilities for converting images to and from external formats."""

    @staticmethod
    def from_numpy(array: np.ndarray, kind: Optional[Type[Pixel]] = None) -> ImageBuffer2D:
        """
        Convert a NumPy array to an owned image (the array is copied).

        Args:
            array: (h, w) or (h, w, c) array with a supported dtype
            kind: Pixel kind (Luma, LumaA, Rgb or RgbA), inferred from c when omitted

        Returns:
            Owned image

        Raises:
            UnsupportedFormat: If the shape or dtype has no matching pixel type
        """
        array = np.asarray(array)
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.ndim != 3 or array.shape[2] not in ImageConstants.SUPPORTED_CHANNELS:
            raise UnsupportedFormat(
                ErrorMessages.UNSUPPORTED_FORMAT.format(format=f"array of shape {array.shape}")
            )
        try:
            subpixel = SubpixelType.parse(array.dtype)
        except TypeError:
            raise UnsupportedFormat(
                ErrorMessages.UNSUPPORTED_FORMAT.format(format=f"array of dtype {array.dtype}")
            ) from None

        height, width, n_channels = array.shape
        kind = kind.KIND if kind is not None else kind_for_channels(n_channels)
        if kind.N_CHANNELS != n_channels:
            raise UnsupportedFormat(
                ErrorMessages.UNSUPPORTED_FORMAT.format(
                    format=f"{n_channels}-channel array as {kind.__name__}"
                )
            )
        return ImageBuffer2D.from_raw_vec(width, height, array, kind[subpixel])

    @staticmethod
    def to_numpy(img: Image2D) -> np.ndarray:
        """
        Copy an image into a NumPy array.

        Returns:
            (h, w) array for single-channel images, (h, w, c) otherwise
        """
        array = img.to_raw_vec().reshape(img.height, img.width, img.n_channels)
        if img.n_channels == 1:
            return array[:, :, 0]
        return array

    @staticmethod
    def from_pil(image: Image.Image) -> ImageBuffer2D:
        """
        Convert a PIL Image to an owned image.

        Raises:
            UnsupportedFormat: If the PIL mode is not supported
        """
        if image.mode not in PIL_MODES:
            raise UnsupportedFormat(
                ErrorMessages.UNSUPPORTED_FORMAT.format(format=f"PIL mode {image.mode}")
            )
        kind, subpixel = PIL_MODES[image.mode]
        array = np.asarray(image).astype(subpixel.dtype, copy=False)
        return ImageConverters.from_numpy(array, kind)

    @staticmethod
    def pil_mode(pixel_type: Type[Pixel]) -> str:
        """PIL mode for a pixel type, raising UnsupportedFormat if there is none."""
        for mode, (kind, subpixel) in PIL_MODES.items():
            if pixel_type.KIND is kind and pixel_type.SUBPIXEL == subpixel:
                return mode
        raise UnsupportedFormat(
            ErrorMessages.UNSUPPORTED_FORMAT.format(format=f"{pixel_type.__name__} as PIL image")
        )

    @staticmethod
    def to_pil(img: Image2D) -> Image.Image:
        """
        Convert an image to a PIL Image.

        Contiguous images are encoded straight from their storage; other
        views are gathered pixel by pixel.
        """
        mode = ImageConverters.pil_mode(img.pixel_type)
        flat = img.as_slice()
        if flat is None:
            flat = np.stack([pixel.channels for pixel in img.iter()])

        array = np.ascontiguousarray(flat).reshape(img.height, img.width, img.n_channels)
        if img.n_channels == 1:
            array = array[:, :, 0]
        pil_image = Image.fromarray(array)
        if pil_image.mode != mode:
            pil_image = pil_image.convert(mode)
        return pil_image

    @staticmethod
    def to_base64(img: Image2D, format: str = "PNG") -> str:
        """
        Encode an image to a base64 string.

        Args:
            img: Input image
            format: PIL image format (PNG, TIFF, etc.)

        Returns:
            Base64 encoded string
        """
        try:
            buffer = io.BytesIO()
            ImageConverters.to_pil(img).save(buffer, format=format)
            return base64.b64encode(buffer.getvalue()).decode("utf-8")

        except Exception as e:
            logger.error(f"Failed to convert image to base64: {e}")
            raise

    @staticmethod
    def from_base64(base64_string: str) -> ImageBuffer2D:
        """
        Decode a base64 string to an owned image.

        Args:
            base64_string: Base64 encoded image file

        Returns:
            Owned image
        """
        try:
            image_bytes = base64.b64decode(base64_string)
            with Image.open(io.BytesIO(image_bytes)) as image:
                image.load()
                return ImageConverters.from_pil(image)

        except Exception as e:
            logger.error(f"Failed to decode base64 image: {e}")
            raise

    @staticmethod
    def load(path: Union[str, Path]) -> ImageBuffer2D:
        """
        Read an image file through OpenCV.

        Args:
            path: Image file path

        Returns:
            Owned image in RGB(A) channel order

        Raises:
            FileNotFoundError: If OpenCV cannot read the file
        """
        array = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if array is None:
            logger.error(f"Failed to read image: {path}")
            raise FileNotFoundError(f"Could not read image: {path}")

        if array.ndim == 3 and array.shape[2] == 3:
            array = cv2.cvtColor(array, cv2.COLOR_BGR2RGB)
        elif array.ndim == 3 and array.shape[2] == 4:
            array = cv2.cvtColor(array, cv2.COLOR_BGRA2RGBA)

        logger.debug(f"Loaded {path}: {array.shape} {array.dtype}")
        return ImageConverters.from_numpy(array)

    @staticmethod
    def save(path: Union[str, Path], img: Image2D, params: Optional[Any] = None) -> None:
        """
        Write an image file through OpenCV; the extension selects the format.

        Args:
            path: Destination path
            img: Luma, Rgb or RgbA image
            params: Optional cv2.imwrite parameters

        Raises:
            UnsupportedFormat: For LumaA images
            IOError: If OpenCV fails to write the file
        """
        if img.pixel_type.KIND is LumaA:
            raise UnsupportedFormat(
                ErrorMessages.UNSUPPORTED_FORMAT.format(format="LumaA image file")
            )

        array = ImageConverters.to_numpy(img)
        try:
            if img.pixel_type.KIND is Rgb:
                array = cv2.cvtColor(array, cv2.COLOR_RGB2BGR)
            elif img.pixel_type.KIND is RgbA:
                array = cv2.cvtColor(array, cv2.COLOR_RGBA2BGRA)
            written = cv2.imwrite(str(path), array, params or [])

        except cv2.error as e:
            logger.error(f"Failed to encode image for {path}: {e}")
            raise

        if not written:
            logger.error(f"Failed to write image: {path}")
            raise IOError(f"Could not write image: {path}")
