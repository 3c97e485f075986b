"""
Subpixel numeric types.

A subpixel is the numeric primitive stored in one pixel channel. Only a
closed set of numpy dtypes is supported; every conversion between them goes
through ``cast_array`` so that the clamp-then-cast-with-zero-fallback policy
lives in exactly one place.
"""

from enum import Enum
from typing import Any, Optional, Tuple, Union

import numpy as np


class SubpixelType(str, Enum):
    """Supported subpixel types"""

    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"

    @property
    def dtype(self) -> np.dtype:
        """numpy dtype backing this subpixel type"""
        return _DTYPES[self]

    @property
    def is_float(self) -> bool:
        return self.dtype.kind == "f"

    @property
    def min_value(self) -> Union[int, float]:
        if self.is_float:
            return float(np.finfo(self.dtype).min)
        return int(np.iinfo(self.dtype).min)

    @property
    def max_value(self) -> Union[int, float]:
        if self.is_float:
            return float(np.finfo(self.dtype).max)
        return int(np.iinfo(self.dtype).max)

    @property
    def zero(self) -> np.generic:
        return self.dtype.type(0)

    @property
    def one(self) -> np.generic:
        return self.dtype.type(1)

    @classmethod
    def parse(cls, value: Any) -> "SubpixelType":
        """
        Resolve a subpixel type from a tag, its string value or a numpy dtype.

        Args:
            value: SubpixelType, "u8"-style string, numpy dtype or scalar type

        Returns:
            Matching SubpixelType

        Raises:
            TypeError: If the value does not name a supported type
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        try:
            dtype = np.dtype(value)
        except TypeError:
            raise TypeError(f"Unsupported subpixel type: {value!r}") from None
        for tag, tag_dtype in _DTYPES.items():
            if tag_dtype == dtype:
                return tag
        raise TypeError(f"Unsupported subpixel type: {value!r}")


_DTYPES = {
    SubpixelType.U8: np.dtype(np.uint8),
    SubpixelType.U16: np.dtype(np.uint16),
    SubpixelType.U32: np.dtype(np.uint32),
    SubpixelType.U64: np.dtype(np.uint64),
    SubpixelType.I8: np.dtype(np.int8),
    SubpixelType.I16: np.dtype(np.int16),
    SubpixelType.I32: np.dtype(np.int32),
    SubpixelType.I64: np.dtype(np.int64),
    SubpixelType.F32: np.dtype(np.float32),
    SubpixelType.F64: np.dtype(np.float64),
}

Bounds = Tuple[Union[int, float], Union[int, float]]


def _representable_range(source: np.dtype, target: np.dtype) -> Tuple[Any, Any]:
    """Range of target values expressed in the source dtype (int source only)."""
    s_info = np.iinfo(source)
    if target.kind == "f":
        return s_info.min, s_info.max
    t_info = np.iinfo(target)
    return max(s_info.min, t_info.min), min(s_info.max, t_info.max)


def cast_array(
    values: np.ndarray, target: Any, bounds: Optional[Bounds] = None
) -> np.ndarray:
    """
    Convert an array to another subpixel type, never failing.

    Values are first clamped into ``bounds`` (when given). A value that the
    target type cannot represent degrades to the target's zero: floats are
    truncated toward zero before the range check, NaN and infinities map to
    zero for integer targets, and finite floats beyond a float target's range
    map to zero as well.

    Args:
        values: Input array of any supported dtype
        target: Destination subpixel type (anything SubpixelType.parse accepts)
        bounds: Optional (lo, hi) clamp applied in the source type

    Returns:
        New array of the target dtype
    """
    target = SubpixelType.parse(target)
    values = np.asarray(values)
    src = values.dtype
    dst = target.dtype

    if bounds is not None:
        lo, hi = bounds
        values = np.clip(values, np.asarray(lo, dtype=src), np.asarray(hi, dtype=src))

    with np.errstate(invalid="ignore", over="ignore"):
        if dst.kind == "f":
            if src.kind != "f" or src.itemsize <= dst.itemsize:
                return values.astype(dst)
            limit = float(np.finfo(dst).max)
            # NaN compares False and passes through, infinities stay infinite
            out_of_range = np.isfinite(values) & (np.abs(values) > limit)
            return np.where(out_of_range, 0, values).astype(dst)

        info = np.iinfo(dst)
        if src.kind == "f":
            truncated = np.trunc(values)
            # float(info.max) + 1 is an exact power of two for every integer type
            valid = (
                np.isfinite(truncated)
                & (truncated >= float(info.min))
                & (truncated < float(info.max) + 1.0)
            )
            return np.where(valid, truncated, 0).astype(dst)

        lo, hi = _representable_range(src, dst)
        if lo == np.iinfo(src).min and hi == np.iinfo(src).max:
            return values.astype(dst)
        valid = (values >= np.asarray(lo, dtype=src)) & (values <= np.asarray(hi, dtype=src))
        return np.where(valid, values, np.zeros((), dtype=src)).astype(dst)


def cast_subpixel(value: Any, source: Any, target: Any, bounds: Optional[Bounds] = None) -> Any:
    """Scalar form of cast_array; returns a Python number."""
    source = SubpixelType.parse(source)
    array = np.asarray([value], dtype=source.dtype)
    return cast_array(array, target, bounds)[0].item()


def saturating_bounds(source: Any, working: Any) -> Bounds:
    """
    Bounds of the source type expressed in the working type.

    ``(T(S.min), T(S.max))``, saturated to T's own range when S is wider.
    """
    source = SubpixelType.parse(source)
    working = SubpixelType.parse(working)
    lo = max(source.min_value, working.min_value)
    hi = min(source.max_value, working.max_value)
    if working.is_float:
        return float(lo), float(hi)
    return int(lo), int(hi)


def _binary(a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a)
    b = np.asarray(b)
    if a.dtype != b.dtype:
        raise TypeError(f"Subpixel type mismatch: {a.dtype} and {b.dtype}")
    return a, b


def channel_add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise add; integers wrap."""
    a, b = _binary(a, b)
    with np.errstate(over="ignore"):
        return np.add(a, b, dtype=a.dtype)


def channel_sub(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise subtract; integers wrap."""
    a, b = _binary(a, b)
    with np.errstate(over="ignore"):
        return np.subtract(a, b, dtype=a.dtype)


def channel_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise multiply; integers wrap."""
    a, b = _binary(a, b)
    with np.errstate(over="ignore"):
        return np.multiply(a, b, dtype=a.dtype)


def channel_div(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Elementwise divide.

    Integers truncate toward zero and raise ZeroDivisionError on a zero
    divisor; floats follow IEEE-754.
    """
    a, b = _binary(a, b)
    if a.dtype.kind == "f":
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return np.divide(a, b, dtype=a.dtype)
    if np.any(b == 0):
        raise ZeroDivisionError("integer division by zero")
    with np.errstate(over="ignore"):
        remainder = np.fmod(a, b)
        return np.floor_divide(a - remainder, b).astype(a.dtype)


def channel_rem(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise remainder with the sign of the dividend."""
    a, b = _binary(a, b)
    if a.dtype.kind == "f":
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.fmod(a, b)
    if np.any(b == 0):
        raise ZeroDivisionError("integer modulo by zero")
    return np.fmod(a, b)
