"""
Borrow registry for shared pixel storage.

Every owned image holds one ``PixelStorage``. Views register a ``Borrow`` on
the region they cover; the registry rejects any request that would let a
writer coexist with another live access to the same pixels.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import Iterator, List, Optional

import numpy as np

from imagecore.constants import ErrorMessages
from imagecore.exceptions import BorrowError
from imagecore.rect import Rect

logger = logging.getLogger(__name__)


class BorrowMode(str, Enum):
    """Kind of access a borrow grants"""

    SHARED = "shared"
    EXCLUSIVE = "exclusive"


@dataclass(eq=False)
class Borrow:
    """A live claim on a region of a storage, in storage coordinates"""

    region: Rect
    mode: BorrowMode
    parent: Optional["Borrow"] = None
    id: str = field(default_factory=lambda: f"borrow_{uuid.uuid4().hex[:8]}")
    released: bool = False

    def lineage(self) -> Iterator["Borrow"]:
        """Yield this borrow and all of its ancestors."""
        node: Optional[Borrow] = self
        while node is not None:
            yield node
            node = node.parent


class PixelStorage:
    """Contiguous (height, width, channels) array plus its live borrows"""

    def __init__(self, array: np.ndarray):
        """
        Initialize storage

        Args:
            array: Backing array, owned by this storage from now on
        """
        self.array = array
        self.borrows: List[Borrow] = []
        self.consumed = False

        # RLock so release() can cascade while holding it
        self.lock = RLock()

    @property
    def height(self) -> int:
        return self.array.shape[0]

    @property
    def width(self) -> int:
        return self.array.shape[1]

    @property
    def guarded(self) -> bool:
        """True while access has to go through check_access."""
        return self.consumed or bool(self.borrows)

    def _conflicts(
        self, region: Rect, write: bool, accessor: Optional[Borrow]
    ) -> Optional[Borrow]:
        lineage = set(id(node) for node in accessor.lineage()) if accessor else set()
        for borrow in self.borrows:
            if id(borrow) in lineage or not borrow.region.overlaps(region):
                continue
            if write or borrow.mode == BorrowMode.EXCLUSIVE:
                return borrow
        return None

    def check_access(self, region: Rect, write: bool, accessor: Optional[Borrow] = None) -> None:
        """
        Verify that ``accessor`` may read or write ``region``.

        Args:
            region: Region in storage coordinates
            write: True for write access
            accessor: Borrow held by the accessing view, None for the owner

        Raises:
            BorrowError: If the array was taken, the accessor was released or another
                live borrow conflicts
        """
        with self.lock:
            if self.consumed:
                raise BorrowError(ErrorMessages.STORAGE_CONSUMED)
            if accessor is not None and accessor.released:
                raise BorrowError(ErrorMessages.VIEW_RELEASED)
            conflict = self._conflicts(region, write, accessor)
            if conflict is not None:
                logger.debug(
                    f"Access to {region} ({'write' if write else 'read'}) "
                    f"blocked by {conflict.id} ({conflict.mode.value})"
                )
                raise BorrowError(
                    ErrorMessages.BORROW_CONFLICT.format(
                        access="write" if write else "read",
                        rect=region,
                        mode=conflict.mode.value,
                    )
                )

    def acquire(self, region: Rect, mode: BorrowMode, parent: Optional[Borrow] = None) -> Borrow:
        """
        Register a new borrow.

        Args:
            region: Region in storage coordinates
            mode: Shared or exclusive
            parent: Borrow of the view the new one is derived from

        Returns:
            The registered borrow
        """
        with self.lock:
            self.check_access(region, mode == BorrowMode.EXCLUSIVE, parent)
            borrow = Borrow(region=region, mode=mode, parent=parent)
            self.borrows.append(borrow)
            logger.debug(f"Acquired {borrow.id}: {mode.value} {region}")
            return borrow

    def release(self, borrow: Borrow) -> None:
        """Release a borrow and every borrow derived from it (idempotent)."""
        with self.lock:
            if borrow.released:
                return
            for child in [b for b in self.borrows if b.parent is borrow]:
                self.release(child)
            borrow.released = True
            self.borrows = [b for b in self.borrows if b is not borrow]
            logger.debug(f"Released {borrow.id}")

    def take(self) -> np.ndarray:
        """
        Hand the backing array over to the caller.

        Every later access through this storage raises BorrowError.

        Raises:
            BorrowError: If a borrow is still live or the array was already taken
        """
        with self.lock:
            self.check_access(Rect.new(0, 0, self.width, self.height), write=True)
            self.consumed = True
            logger.debug(f"Storage {self.width}x{self.height} handed over")
            return self.array

    def live_borrows(self) -> int:
        with self.lock:
            return len(self.borrows)
