"""
Tests for Rect
"""

import pytest
from pydantic import ValidationError

from imagecore.rect import Rect


class TestRect:
    """Test Rect geometry"""

    def test_new(self):
        """Test positional construction and derived edges"""
        rect = Rect.new(2, 3, 4, 5)
        assert rect.left == 2
        assert rect.top == 3
        assert rect.right == 5
        assert rect.bottom == 7
        assert rect.position == (2, 3)
        assert rect.size == (4, 5)

    @pytest.mark.parametrize("w, h", [(0, 1), (1, 0), (-2, 3)])
    def test_empty_rejected(self, w, h):
        """Test rects must have a positive size"""
        with pytest.raises(ValidationError):
            Rect.new(0, 0, w, h)

    def test_negative_origin_rejected(self):
        """Test rects start inside the first quadrant"""
        with pytest.raises(ValueError):
            Rect.new(-1, 0, 2, 2)

    def test_frozen(self):
        """Test rects are immutable values"""
        rect = Rect.new(0, 0, 2, 2)
        with pytest.raises(ValidationError):
            rect.left = 3
        assert rect == Rect.new(0, 0, 2, 2)
        assert hash(rect) == hash(Rect.new(0, 0, 2, 2))

    def test_dict_conversion(self):
        """Test to_dict and from_dict"""
        rect = Rect.new(1, 2, 3, 4)
        data = rect.to_dict()
        assert data == {"left": 1, "top": 2, "width": 3, "height": 4}
        assert Rect.from_dict(data) == rect

    def test_str(self):
        """Test the short string form"""
        assert str(Rect.new(1, 2, 3, 4)) == "(1, 2, 3x4)"

    def test_contains(self):
        """Test point containment with inclusive edges"""
        rect = Rect.new(1, 1, 2, 2)
        assert rect.contains(1, 1)
        assert rect.contains(2, 2)
        assert not rect.contains(3, 2)
        assert not rect.contains(0, 1)

    def test_intersection(self):
        """Test overlapping and disjoint rects"""
        a = Rect.new(0, 0, 4, 4)
        b = Rect.new(2, 1, 5, 2)
        assert a.intersection(b) == Rect.new(2, 1, 2, 2)
        assert b.intersection(a) == Rect.new(2, 1, 2, 2)
        assert a.overlaps(b)

        adjacent = Rect.new(4, 0, 2, 2)
        assert a.intersection(adjacent) is None
        assert not a.overlaps(adjacent)


class TestRectAndImage:
    """Test Rect operations relative to an image"""

    def test_fits_image(self, gradient_u8):
        """Test fitting inside a 5x4 image"""
        assert Rect.new(0, 0, 5, 4).fits_image(gradient_u8)
        assert Rect.new(4, 3, 1, 1).fits_image(gradient_u8)
        assert not Rect.new(1, 0, 5, 4).fits_image(gradient_u8)
        assert not Rect.new(0, 4, 1, 1).fits_image(gradient_u8)

    def test_crop_to_image(self, gradient_u8):
        """Test cropping to the image bounds"""
        assert Rect.new(3, 2, 10, 10).crop_to_image(gradient_u8) == Rect.new(3, 2, 2, 2)
        assert Rect.new(5, 0, 2, 2).crop_to_image(gradient_u8) is None

    def test_translate(self, gradient_u8):
        """Test translation with clipping"""
        rect = Rect.new(1, 1, 2, 2)
        assert rect.translate(1, 1, gradient_u8) == Rect.new(2, 2, 2, 2)
        assert rect.translate(-2, -2, gradient_u8) == Rect.new(0, 0, 1, 1)
        assert rect.translate(3, 0, gradient_u8) == Rect.new(4, 1, 1, 2)

    def test_translate_out_of_image(self, gradient_u8):
        """Test translation fully outside returns None"""
        rect = Rect.new(1, 1, 2, 2)
        assert rect.translate(10, 0, gradient_u8) is None
        assert rect.translate(0, -3, gradient_u8) is None
        assert gradient_u8.translate_rect(rect, -5, 0) is None
