"""
Tests for owned images, views and iteration
"""

import numpy as np
import pytest

from config import reset_settings
from imagecore.exceptions import (
    BorrowError,
    InvalidDimensions,
    OutOfBounds,
    RectOutOfBounds,
    RectSizeMismatch,
)
from imagecore.image2d import (
    Image2DView,
    Image2DViewMut,
    ImageBuffer2D,
    luma_alpha_to_luma,
    rgba_to_rgb,
)
from imagecore.pixel_types import Luma, LumaA, Rgb, RgbA
from imagecore.rect import Rect

U8 = Luma["u8"]


def values(pixels):
    """Channel 0 of every pixel"""
    return [p[0] for p in pixels]


class TestConstruction:
    """Test building owned images"""

    @pytest.mark.parametrize("w, h", [(1, 1), (3, 2), (7, 5)])
    def test_new_is_zero(self, w, h):
        """Test new images hold w * h zero pixels"""
        img = ImageBuffer2D.new(w, h, Rgb["f32"])
        assert img.dimensions == (w, h)
        pixels = img.to_vec()
        assert len(pixels) == w * h
        assert all(p == Rgb["f32"].zero() for p in pixels)

    @pytest.mark.parametrize("w, h", [(0, 3), (3, 0), (-1, 2)])
    def test_invalid_dimensions(self, w, h):
        """Test empty images are rejected"""
        with pytest.raises(InvalidDimensions):
            ImageBuffer2D.new(w, h, U8)

    def test_max_pixels(self, monkeypatch):
        """Test the configured allocation limit"""
        monkeypatch.setenv("PIXGRID_MAX_PIXELS", "10")
        reset_settings()
        ImageBuffer2D.new(5, 2, U8)
        with pytest.raises(InvalidDimensions):
            ImageBuffer2D.new(4, 4, U8)

    def test_unparametrised_pixel_type(self):
        """Test a pixel kind alone is not a pixel type"""
        with pytest.raises(TypeError):
            ImageBuffer2D.new(2, 2, Luma)

    def test_from_elem(self):
        """Test constant images"""
        img = ImageBuffer2D.from_elem(3, 2, Rgb["u8"]([1, 2, 3]))
        assert img.pixel_type is Rgb["u8"]
        assert all(p == Rgb["u8"]([1, 2, 3]) for p in img)

    def test_from_vec(self):
        """Test row-major pixel order"""
        img = ImageBuffer2D.from_vec(3, 2, [U8(v) for v in range(6)])
        assert img.get_pixel(2, 0) == U8(2)
        assert img.get_pixel(0, 1) == U8(3)

    def test_from_vec_wrong_length(self):
        """Test the pixel count must match the dimensions"""
        with pytest.raises(InvalidDimensions):
            ImageBuffer2D.from_vec(3, 2, [U8(0)] * 5)

    def test_from_vec_mixed_types(self):
        """Test every pixel must share one type"""
        with pytest.raises(TypeError):
            ImageBuffer2D.from_vec(2, 1, [U8(0), Luma["u16"](0)])

    def test_from_raw_vec(self, rgb_image):
        """Test channel-grouped raw values"""
        assert rgb_image.get_pixel(0, 0) == Rgb["u8"]([0, 1, 2])
        assert rgb_image.get_pixel(1, 0) == Rgb["u8"]([3, 4, 5])
        assert rgb_image.get_pixel(0, 1) == Rgb["u8"]([18, 19, 20])

    def test_from_raw_vec_wrong_length(self):
        """Test the raw length must match width * height * channels"""
        with pytest.raises(InvalidDimensions):
            ImageBuffer2D.from_raw_vec(2, 2, [0] * 11, Rgb["u8"])

    def test_generate(self, gradient_u8):
        """Test generator images"""
        assert gradient_u8.get_pixel(2, 3) == U8(32)
        assert gradient_u8.pixel_type is U8


class TestPixelAccess:
    """Test direct pixel access"""

    def test_get_put(self, gradient_u8):
        """Test reading back a written pixel"""
        gradient_u8.put_pixel(1, 2, U8(200))
        assert gradient_u8.get_pixel(1, 2) == U8(200)
        gradient_u8[0, 0] = U8(9)
        assert gradient_u8[0, 0] == U8(9)

    @pytest.mark.parametrize("x, y", [(5, 0), (0, 4), (-1, 0)])
    def test_out_of_bounds(self, gradient_u8, x, y):
        """Test access beyond the image fails fast"""
        with pytest.raises(OutOfBounds):
            gradient_u8.get_pixel(x, y)
        with pytest.raises(IndexError):
            gradient_u8.put_pixel(x, y, U8(0))

    def test_put_wrong_type(self, gradient_u8):
        """Test writing another pixel type"""
        with pytest.raises(TypeError):
            gradient_u8.put_pixel(0, 0, Luma["u16"](1))


class TestIteration:
    """Test pixel, row, column and rect iteration"""

    def test_iter_row_major(self, gradient_u8):
        """Test whole-image iteration order"""
        assert values(gradient_u8)[:7] == [0, 1, 2, 3, 4, 10, 11]

    def test_enumerate_pixels(self, gradient_u8):
        """Test coordinates accompany pixels"""
        pixels = list(gradient_u8.enumerate_pixels())
        assert pixels[0] == ((0, 0), U8(0))
        assert pixels[6] == ((1, 1), U8(11))
        assert len(pixels) == 20

    def test_row_and_col(self, gradient_u8):
        """Test single row and column iteration"""
        assert values(gradient_u8.row(1)) == [10, 11, 12, 13, 14]
        assert values(gradient_u8.col(0)) == [0, 10, 20, 30]
        assert gradient_u8.row(4) is None
        assert gradient_u8.col(5) is None

    def test_rows_and_cols(self, gradient_u8):
        """Test iterating every row and column"""
        rows = [values(row) for row in gradient_u8.rows()]
        assert len(rows) == 4
        assert rows[3] == [30, 31, 32, 33, 34]
        cols = [values(col) for col in gradient_u8.cols()]
        assert len(cols) == 5
        assert cols[4] == [4, 14, 24, 34]

    def test_rect_iter(self, gradient_u8):
        """Test iterating a rect"""
        assert values(gradient_u8.rect_iter(Rect.new(1, 1, 2, 2))) == [11, 12, 21, 22]

    @pytest.mark.parametrize(
        "rect", [Rect.new(3, 2, 5, 5), Rect.new(4, 3, 2, 1), Rect.new(6, 6, 1, 1)]
    )
    def test_rect_iter_out_of_bounds(self, gradient_u8, rect):
        """Test rects reaching past the image fail instead of being clipped"""
        with pytest.raises(OutOfBounds):
            gradient_u8.rect_iter(rect)
        with pytest.raises(OutOfBounds):
            gradient_u8.rect_iter_mut(rect)

    def test_rect_iter_cropped(self, gradient_u8):
        """Test crop_to_image makes an overhanging rect iterable"""
        rect = Rect.new(3, 2, 5, 5).crop_to_image(gradient_u8)
        assert values(gradient_u8.rect_iter(rect)) == [23, 24, 33, 34]

    def test_iter_mut(self, gradient_u8):
        """Test writing through slots"""
        for slot in gradient_u8.iter_mut():
            slot.set(slot.get() + U8(1))
        assert values(gradient_u8.row(0)) == [1, 2, 3, 4, 5]

    def test_rect_iter_mut(self, gradient_u8):
        """Test writing a rect through slots"""
        for slot in gradient_u8.rect_iter_mut(Rect.new(3, 3, 2, 1)):
            slot.set(U8(0))
        assert values(gradient_u8.row(3)) == [30, 31, 32, 0, 0]

    def test_slot_type_check(self, gradient_u8):
        """Test slots reject other pixel types"""
        slot = next(gradient_u8.iter_mut())
        with pytest.raises(TypeError):
            slot.set(Rgb["u8"]([1, 2, 3]))

    def test_rows_mut(self, gradient_u8):
        """Test one-row mutable views"""
        for i, row in enumerate(gradient_u8.rows_mut()):
            assert isinstance(row, Image2DViewMut)
            assert row.dimensions == (5, 1)
            row.fill(U8(i))
        assert values(gradient_u8.col(0)) == [0, 1, 2, 3]
        assert gradient_u8._storage.live_borrows() == 0

    def test_cols_mut_reversed(self, gradient_u8):
        """Test reversed column views"""
        assert len(gradient_u8.cols_mut()) == 5
        for i, col in enumerate(reversed(gradient_u8.cols_mut())):
            col.fill(U8(i))
        assert values(gradient_u8.row(0)) == [4, 3, 2, 1, 0]


class TestViews:
    """Test sub-image views"""

    def test_sub_image(self, gradient_u8):
        """Test view coordinates are relative to the view"""
        with gradient_u8.sub_image(Rect.new(1, 1, 3, 2)) as view:
            assert isinstance(view, Image2DView)
            assert view.dimensions == (3, 2)
            assert view.get_pixel(0, 0) == U8(11)
            assert values(view.row(1)) == [21, 22, 23]
            assert not hasattr(view, "put_pixel")

    def test_nested_view(self, gradient_u8):
        """Test views of views"""
        with gradient_u8.sub_image(Rect.new(1, 1, 4, 3)) as outer:
            with outer.sub_image(Rect.new(1, 1, 2, 2)) as inner:
                assert values(inner) == [22, 23, 32, 33]

    def test_sub_image_out_of_bounds(self, gradient_u8):
        """Test views must fit the image"""
        with pytest.raises(RectOutOfBounds):
            gradient_u8.sub_image(Rect.new(3, 0, 3, 1))
        with pytest.raises(RectOutOfBounds):
            gradient_u8.sub_image_mut(Rect.new(0, 0, 1, 5))

    def test_sub_image_mut_writes_through(self, gradient_u8):
        """Test mutable views write into the owner"""
        with gradient_u8.sub_image_mut(Rect.new(1, 1, 2, 2)) as view:
            view.fill(U8(99))
            view.put_pixel(1, 1, U8(7))
        assert gradient_u8.get_pixel(1, 1) == U8(99)
        assert gradient_u8.get_pixel(2, 2) == U8(7)
        assert gradient_u8.get_pixel(0, 0) == U8(0)
        assert gradient_u8.get_pixel(3, 1) == U8(13)

    def test_to_owned(self, gradient_u8):
        """Test copies are independent"""
        with gradient_u8.sub_image(Rect.new(2, 1, 2, 2)) as view:
            copy = view.to_owned()
        copy.put_pixel(0, 0, U8(0))
        assert isinstance(copy, ImageBuffer2D)
        assert gradient_u8.get_pixel(2, 1) == U8(12)
        assert values(copy) == [0, 13, 22, 23]

    def test_contiguity(self, gradient_u8):
        """Test only full-width views expose a slice"""
        flat = gradient_u8.as_slice()
        assert flat.shape == (20, 1)
        assert not flat.flags.writeable

        with gradient_u8.sub_image(Rect.new(0, 1, 5, 2)) as rows:
            assert rows.is_contiguous()
            assert rows.as_slice()[:, 0].tolist() == list(range(10, 15)) + list(range(20, 25))
        with gradient_u8.sub_image(Rect.new(1, 1, 3, 2)) as window:
            assert not window.is_contiguous()
            assert window.as_slice() is None
        with gradient_u8.sub_image(Rect.new(1, 1, 3, 1)) as single_row:
            assert single_row.is_contiguous()

    def test_into_raw_vec(self, rgb_image):
        """Test handing over the storage"""
        raw = rgb_image.into_raw_vec()
        assert raw.shape == (90,)
        assert raw[:6].tolist() == [0, 1, 2, 3, 4, 5]

    def test_into_raw_vec_consumes(self, gradient_u8):
        """Test the image is unusable once its storage is handed over"""
        raw = gradient_u8.into_raw_vec()
        with pytest.raises(BorrowError):
            gradient_u8.get_pixel(0, 0)
        with pytest.raises(BorrowError):
            gradient_u8.sub_image_mut(gradient_u8.rect)
        with pytest.raises(BorrowError):
            gradient_u8.into_raw_vec()
        assert raw[7] == 12

    def test_into_raw_vec_while_borrowed(self, gradient_u8):
        """Test the storage cannot be handed over under a live view"""
        with gradient_u8.sub_image(Rect.new(0, 0, 1, 1)):
            with pytest.raises(BorrowError):
                gradient_u8.into_raw_vec()

    def test_to_raw_vec(self, rgb_image):
        """Test flattening to channel values"""
        raw = rgb_image.to_raw_vec()
        assert raw.dtype == np.uint8
        assert raw.tolist() == list(range(90))


class TestMutation:
    """Test fills, blits and conversions"""

    def test_fill_rect(self, gradient_u8):
        """Test filling a rect"""
        gradient_u8.fill_rect(Rect.new(3, 2, 2, 2), U8(1))
        assert values(gradient_u8.row(2)) == [20, 21, 22, 1, 1]

    def test_fill_rect_out_of_bounds(self, gradient_u8):
        """Test the rect must fit"""
        with pytest.raises(RectOutOfBounds):
            gradient_u8.fill_rect(Rect.new(4, 0, 2, 1), U8(1))

    def test_blit_rect(self, gradient_u8):
        """Test copying a rect between images"""
        dst = ImageBuffer2D.new(3, 3, U8)
        dst.blit_rect(Rect.new(3, 2, 2, 2), Rect.new(1, 0, 2, 2), gradient_u8)
        assert values(dst) == [0, 23, 24, 0, 33, 34, 0, 0, 0]

    def test_blit_size_mismatch(self, gradient_u8):
        """Test rects must be the same size"""
        dst = ImageBuffer2D.new(3, 3, U8)
        with pytest.raises(RectSizeMismatch):
            dst.blit_rect(Rect.new(0, 0, 2, 2), Rect.new(0, 0, 2, 3), gradient_u8)

    def test_blit_out_of_bounds(self, gradient_u8):
        """Test both rects must fit their images"""
        dst = ImageBuffer2D.new(3, 3, U8)
        with pytest.raises(RectOutOfBounds):
            dst.blit_rect(Rect.new(4, 3, 2, 2), Rect.new(0, 0, 2, 2), gradient_u8)
        with pytest.raises(RectOutOfBounds):
            dst.blit_rect(Rect.new(0, 0, 2, 2), Rect.new(2, 2, 2, 2), gradient_u8)

    def test_blit_type_mismatch(self, gradient_u8):
        """Test pixel types must match"""
        dst = ImageBuffer2D.new(3, 3, Luma["u16"])
        with pytest.raises(TypeError):
            dst.blit_rect(Rect.new(0, 0, 2, 2), Rect.new(0, 0, 2, 2), gradient_u8)

    def test_cast(self, gradient_u8):
        """Test subpixel conversion of a whole image"""
        as_float = gradient_u8.cast("f64")
        assert as_float.pixel_type is Luma["f64"]
        assert as_float.get_pixel(4, 3) == Luma["f64"](34.0)

        big = ImageBuffer2D.from_elem(2, 2, Luma["f64"](300.0))
        assert all(p == U8(0) for p in big.cast(U8))

    def test_cast_across_kinds(self, gradient_u8):
        """Test casting keeps the pixel kind"""
        with pytest.raises(TypeError):
            gradient_u8.cast(Rgb["u8"])

    def test_drop_alpha(self):
        """Test alpha removal on whole images"""
        rgba = ImageBuffer2D.from_elem(2, 2, RgbA["u8"]([1, 2, 3, 4]))
        rgb = rgba_to_rgb(rgba)
        assert rgb.pixel_type is Rgb["u8"]
        assert rgb.get_pixel(1, 1) == Rgb["u8"]([1, 2, 3])

        la = ImageBuffer2D.from_elem(2, 1, LumaA["u16"]([500, 9]))
        assert luma_alpha_to_luma(la).get_pixel(0, 0) == Luma["u16"](500)

        with pytest.raises(TypeError):
            rgba_to_rgb(la)

    def test_equality(self, gradient_u8):
        """Test images compare by type, size and content"""
        copy = gradient_u8.to_owned()
        assert copy == gradient_u8
        copy.put_pixel(0, 0, U8(1))
        assert copy != gradient_u8
        assert gradient_u8 != gradient_u8.cast("u16")
        with pytest.raises(TypeError):
            hash(gradient_u8)

    def test_repr(self, gradient_u8):
        """Test the representation"""
        assert repr(gradient_u8) == "ImageBuffer2D<Luma[u8]>(5x4)"
