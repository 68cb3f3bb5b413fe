"""
Undo history for the editor.

Each entry owns an encoded (PNG) copy of the bitmap and a deep copy of the
vector object list. Entries never alias the live surface or the live object
list, so editing after an undo cannot change what is stored.
"""

import copy
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ERP_Libs.ImageEditingLib.image_models import VectorObject
from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface
from ERP_Libs.constants import HISTORY_CAP

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    image_bytes: bytes
    objects: Tuple[VectorObject, ...]

    @classmethod
    def capture(cls, bitmap: BitmapSurface, objects: Sequence[VectorObject]) -> "HistoryEntry":
        return cls(image_bytes=bitmap.encode(), objects=tuple(copy.deepcopy(list(objects))))

    def restore_bitmap(self) -> BitmapSurface:
        return BitmapSurface.decode(self.image_bytes)

    def restore_objects(self) -> List[VectorObject]:
        return copy.deepcopy(list(self.objects))


class HistoryStack:
    """
    Bounded linear history.

    The first entry is the pristine image. Undo never pops the last remaining
    entry; overflow drops the oldest entries, pristine included.
    """

    def __init__(self, cap: int = HISTORY_CAP):
        if cap < 1:
            raise ValueError(f"cap must be >= 1, got {cap}")
        self.cap = cap
        self._entries: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def top(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    @property
    def can_undo(self) -> bool:
        return len(self._entries) > 1

    def reset(self, bitmap: BitmapSurface) -> HistoryEntry:
        """Start over with a pristine entry and no objects."""
        self._entries = []
        return self.push(bitmap, [])

    def push(self, bitmap: BitmapSurface, objects: Sequence[VectorObject]) -> HistoryEntry:
        entry = HistoryEntry.capture(bitmap, objects)
        self._entries.append(entry)
        if len(self._entries) > self.cap:
            del self._entries[: len(self._entries) - self.cap]
        logger.debug(f"History push: {len(self._entries)} entries")
        return entry

    def undo(self) -> Optional[HistoryEntry]:
        """
        Drop the newest entry.

        Returns:
            The entry to restore, or None when only one entry remains
        """
        if not self.can_undo:
            return None
        self._entries.pop()
        return self._entries[-1]

    def clear(self) -> None:
        self._entries = []
