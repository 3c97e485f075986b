"""
Axis-aligned integer rectangle.

Rects are immutable values; geometry helpers that need an image only read
its ``width`` and ``height``.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from imagecore.constants import ErrorMessages

if TYPE_CHECKING:
    from imagecore.image2d import Image2D


class Rect(BaseModel):
    """
    Rectangle given by its top-left corner and a strictly positive size.

    ``right`` and ``bottom`` are inclusive coordinates.
    """

    model_config = ConfigDict(frozen=True)

    left: int = Field(..., ge=0, description="X coordinate of the left column")
    top: int = Field(..., ge=0, description="Y coordinate of the top row")
    width: int = Field(..., description="Width")
    height: int = Field(..., description="Height")

    @model_validator(mode="after")
    def validate_size(self) -> "Rect":
        """Reject empty rectangles."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                ErrorMessages.INVALID_RECT.format(width=self.width, height=self.height)
            )
        return self

    @classmethod
    def new(cls, x: int, y: int, w: int, h: int) -> "Rect":
        """Positional constructor."""
        return cls(left=x, top=y, width=w, height=h)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rect":
        """Create Rect from dictionary."""
        return cls(
            left=int(data.get("left", 0)),
            top=int(data.get("top", 0)),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
        )

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}

    @property
    def right(self) -> int:
        """Inclusive right column."""
        return self.left + self.width - 1

    @property
    def bottom(self) -> int:
        """Inclusive bottom row."""
        return self.top + self.height - 1

    @property
    def position(self) -> Tuple[int, int]:
        return (self.left, self.top)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def __str__(self) -> str:
        return f"({self.left}, {self.top}, {self.width}x{self.height})"

    def contains(self, x: int, y: int) -> bool:
        """Check if point is inside the rect."""
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Get intersection with another rect, or None if they do not overlap."""
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if left > right or top > bottom:
            return None
        return Rect.new(left, top, right - left + 1, bottom - top + 1)

    def overlaps(self, other: "Rect") -> bool:
        return self.intersection(other) is not None

    def fits_image(self, img: "Image2D") -> bool:
        """Test whether the rect lies entirely inside the image."""
        return self.right < img.width and self.bottom < img.height

    def crop_to_image(self, img: "Image2D") -> Optional["Rect"]:
        """Largest part of the rect inside the image, or None."""
        return self.intersection(Rect.new(0, 0, img.width, img.height))

    def translate(self, dx: int, dy: int, img: "Image2D") -> Optional["Rect"]:
        """
        Shift the rect by (dx, dy) and clip it to the image.

        Args:
            dx: Horizontal offset, may be negative
            dy: Vertical offset, may be negative
            img: Image whose bounds clip the result

        Returns:
            Translated rect, or None if nothing of it remains inside the image
        """
        left = self.left + dx
        top = self.top + dy
        right = self.right + dx
        bottom = self.bottom + dy

        # Detect early if the result falls out of the image
        if left >= img.width or top >= img.height or right < 0 or bottom < 0:
            return None

        x_left = max(left, 0)
        y_top = max(top, 0)
        return Rect.new(
            x_left,
            y_top,
            min(img.width, right + 1) - x_left,
            min(img.height, bottom + 1) - y_top,
        )
