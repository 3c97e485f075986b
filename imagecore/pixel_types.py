"""
Pixel types.

A pixel type is a kind with a fixed channel count (``Luma``, ``LumaA``,
``Rgb``, ``RgbA``) parametrised by a subpixel type::

    Luma[SubpixelType.U8]([42])
    Rgb["f64"]([0.5, 0.25, 1.0])

Parametrised classes are created once and cached, so ``Luma["u8"]`` and
``Luma[np.uint8]`` are the same class.
"""

from typing import Any, Callable, ClassVar, Dict, Iterator, Optional, Tuple, Type, TypeVar

import numpy as np

from imagecore.subpixel import (
    SubpixelType,
    cast_array,
    channel_add,
    channel_div,
    channel_mul,
    channel_rem,
    channel_sub,
)

P = TypeVar("P", bound="Pixel")

_PARAMETRIZED: Dict[Tuple[type, SubpixelType], type] = {}


class Pixel:
    """
    Fixed-arity pixel whose channels share one subpixel type.

    Instances are immutable; arithmetic returns new pixels.
    """

    N_CHANNELS: ClassVar[int] = 0
    SUBPIXEL: ClassVar[Optional[SubpixelType]] = None
    KIND: ClassVar[type]

    __slots__ = ("_data",)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "KIND" not in cls.__dict__ and cls.SUBPIXEL is None:
            cls.KIND = cls

    def __class_getitem__(cls, subpixel: Any) -> Type["Pixel"]:
        if cls.SUBPIXEL is not None:
            raise TypeError(f"{cls.__name__} is already parametrised")
        if cls.N_CHANNELS == 0:
            raise TypeError("Pixel itself cannot be parametrised, use a concrete kind")
        tag = SubpixelType.parse(subpixel)
        key = (cls, tag)
        if key not in _PARAMETRIZED:
            _PARAMETRIZED[key] = type(
                f"{cls.__name__}[{tag.value}]",
                (cls,),
                {"SUBPIXEL": tag, "KIND": cls, "__slots__": (), "__module__": cls.__module__},
            )
        return _PARAMETRIZED[key]

    def __init__(self, data: Any) -> None:
        if self.SUBPIXEL is None:
            raise TypeError(
                f"{type(self).__name__} must be parametrised with a subpixel type, "
                f"e.g. {type(self).__name__}['u8']"
            )
        array = np.array(data, dtype=self.SUBPIXEL.dtype, ndmin=1)
        if array.ndim != 1 or array.shape[0] != self.N_CHANNELS:
            raise ValueError(
                f"{type(self).__name__} needs {self.N_CHANNELS} channels, got {array.size}"
            )
        array.flags.writeable = False
        self._data = array

    @classmethod
    def _wrap(cls: Type[P], array: np.ndarray) -> P:
        pixel = cls.__new__(cls)
        array = np.array(array, dtype=cls.SUBPIXEL.dtype)
        array.flags.writeable = False
        pixel._data = array
        return pixel

    @classmethod
    def from_slice(cls: Type[P], values: Any) -> P:
        """Build a pixel from the first N_CHANNELS values of a sequence."""
        return cls(list(values)[: cls.N_CHANNELS])

    # --- channel access ---

    @property
    def channels(self) -> np.ndarray:
        """Read-only array of channel values"""
        return self._data

    def __len__(self) -> int:
        return self.N_CHANNELS

    def __getitem__(self, index: int) -> Any:
        return self._data[index].item()

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data.tolist())

    def to_list(self) -> list:
        return self._data.tolist()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pixel):
            return NotImplemented
        return type(self) is type(other) and bool(np.array_equal(self._data, other._data))

    def __hash__(self) -> int:
        return hash((type(self), self._data.tobytes()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data.tolist()})"

    # --- constants ---

    @classmethod
    def zero(cls: Type[P]) -> P:
        return cls._wrap(np.full(cls.N_CHANNELS, cls.SUBPIXEL.zero))

    @classmethod
    def one(cls: Type[P]) -> P:
        return cls._wrap(np.full(cls.N_CHANNELS, cls.SUBPIXEL.one))

    @classmethod
    def min_value(cls: Type[P]) -> P:
        return cls._wrap(np.full(cls.N_CHANNELS, cls.SUBPIXEL.min_value, dtype=cls.SUBPIXEL.dtype))

    @classmethod
    def max_value(cls: Type[P]) -> P:
        return cls._wrap(np.full(cls.N_CHANNELS, cls.SUBPIXEL.max_value, dtype=cls.SUBPIXEL.dtype))

    def is_zero(self) -> bool:
        return not np.any(self._data)

    # --- arithmetic ---

    def _check_operand(self, other: "Pixel") -> None:
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot combine {type(self).__name__} with {type(other).__name__}"
            )

    def add(self: P, other: P) -> P:
        self._check_operand(other)
        return self._wrap(channel_add(self._data, other._data))

    def sub(self: P, other: P) -> P:
        self._check_operand(other)
        return self._wrap(channel_sub(self._data, other._data))

    def mul(self: P, other: P) -> P:
        self._check_operand(other)
        return self._wrap(channel_mul(self._data, other._data))

    def div(self: P, other: P) -> P:
        """Channel-wise division; integer division by zero raises ZeroDivisionError."""
        self._check_operand(other)
        return self._wrap(channel_div(self._data, other._data))

    def rem(self: P, other: P) -> P:
        self._check_operand(other)
        return self._wrap(channel_rem(self._data, other._data))

    def __add__(self: P, other: P) -> P:
        if not isinstance(other, Pixel):
            return NotImplemented
        return self.add(other)

    def __sub__(self: P, other: P) -> P:
        if not isinstance(other, Pixel):
            return NotImplemented
        return self.sub(other)

    def __mul__(self: P, other: P) -> P:
        if not isinstance(other, Pixel):
            return NotImplemented
        return self.mul(other)

    def __truediv__(self: P, other: P) -> P:
        if not isinstance(other, Pixel):
            return NotImplemented
        return self.div(other)

    def __mod__(self: P, other: P) -> P:
        if not isinstance(other, Pixel):
            return NotImplemented
        return self.rem(other)

    def map(self: P, f: Callable[[Any], Any]) -> P:
        """Apply f to every channel."""
        return type(self)([f(c) for c in self._data.tolist()])

    def sum(self) -> Any:
        """Fold the channels with + in the subpixel type."""
        with np.errstate(over="ignore"):
            return np.add.reduce(self._data, dtype=self._data.dtype).item()

    # --- casting ---

    @classmethod
    def _check_cast(cls, source: Type["Pixel"], target: Type["Pixel"]) -> None:
        if target.SUBPIXEL is None or source.KIND is not target.KIND:
            raise TypeError(f"Cannot cast {source.__name__} to {target.__name__}")

    def cast_to(self, target: Type[P]) -> P:
        """
        Convert to a pixel type of the same kind with another subpixel type.

        Channels the target cannot represent become zero.
        """
        self._check_cast(type(self), target)
        return target._wrap(cast_array(self._data, target.SUBPIXEL))

    @classmethod
    def cast_from(cls: Type[P], other: "Pixel") -> P:
        """Inverse of cast_to: ``Luma['f64'].cast_from(luma_u8)``."""
        cls._check_cast(type(other), cls)
        return cls._wrap(cast_array(other._data, cls.SUBPIXEL))


class Luma(Pixel):
    """Grayscale pixel"""

    N_CHANNELS = 1
    __slots__ = ()


class LumaA(Pixel):
    """Grayscale with alpha pixel"""

    N_CHANNELS = 2
    __slots__ = ()

    def without_alpha(self) -> Luma:
        return Luma[self.SUBPIXEL]._wrap(self._data[:1])


class Rgb(Pixel):
    """RGB pixel"""

    N_CHANNELS = 3
    __slots__ = ()


class RgbA(Pixel):
    """RGB with alpha pixel"""

    N_CHANNELS = 4
    __slots__ = ()

    def without_alpha(self) -> Rgb:
        return Rgb[self.SUBPIXEL]._wrap(self._data[:3])


PIXEL_KINDS: Dict[int, Type[Pixel]] = {1: Luma, 2: LumaA, 3: Rgb, 4: RgbA}


def kind_for_channels(n_channels: int) -> Type[Pixel]:
    """Return the pixel kind holding n_channels channels."""
    try:
        return PIXEL_KINDS[n_channels]
    except KeyError:
        raise ValueError(f"No pixel kind has {n_channels} channels") from None


def resolve_pixel_type(kind: Type[Pixel], target: Any) -> Type[Pixel]:
    """
    Resolve a target pixel type for ``kind``.

    ``target`` is either a parametrised pixel type of the same kind or
    anything SubpixelType.parse accepts.
    """
    if isinstance(target, type) and issubclass(target, Pixel):
        if target.SUBPIXEL is None or target.KIND is not kind.KIND:
            raise TypeError(f"{target.__name__} is not a parametrised {kind.KIND.__name__}")
        return target
    return kind.KIND[SubpixelType.parse(target)]
