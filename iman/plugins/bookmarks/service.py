"""
Quran bookmarks and named favorite sets. Both have set semantics on their identity.
"""
import logging
from typing import Any, Dict, List

from iman.core import clock, keys
from iman.core.tracker import Tracker

logger = logging.getLogger(__name__)

SURAH_COUNT = 114
FAVORITE_KINDS = ("hadiths", "duas")


def _check_position(surah: int, ayah: int) -> None:
    if not 1 <= int(surah) <= SURAH_COUNT:
        raise ValueError(f"Surah out of range: {surah}")
    if int(ayah) < 1:
        raise ValueError(f"Ayah out of range: {ayah}")


def _check_kind(kind: str) -> str:
    if kind not in FAVORITE_KINDS:
        raise ValueError(f"Unknown favorites kind: {kind!r}")
    return kind


class BookmarkService:
    def __init__(self, tracker: Tracker):
        self.tracker = tracker
        self.store = tracker.store

    # ---- Quran bookmarks ----

    def get_quran_bookmarks(self) -> List[Dict[str, Any]]:
        data = self.store.get(keys.QURAN_BOOKMARKS, [])
        if not isinstance(data, list):
            return []
        return [b for b in data if isinstance(b, dict) and "surah" in b and "ayah" in b]

    def is_bookmarked(self, surah: int, ayah: int) -> bool:
        return any(b["surah"] == surah and b["ayah"] == ayah for b in self.get_quran_bookmarks())

    def add_quran_bookmark(self, surah: int, ayah: int) -> Dict[str, Any]:
        """Add (or refresh the timestamp of) a bookmark; at most one per (surah, ayah)."""
        _check_position(surah, ayah)
        bookmark = {"surah": int(surah), "ayah": int(ayah), "timestamp": clock.now().isoformat()}
        with self.tracker.lock:
            bookmarks = [b for b in self.get_quran_bookmarks()
                         if not (b["surah"] == bookmark["surah"] and b["ayah"] == bookmark["ayah"])]
            bookmarks.append(bookmark)
            self.store.set(keys.QURAN_BOOKMARKS, bookmarks)
        return bookmark

    def remove_quran_bookmark(self, surah: int, ayah: int) -> bool:
        with self.tracker.lock:
            bookmarks = self.get_quran_bookmarks()
            kept = [b for b in bookmarks if not (b["surah"] == surah and b["ayah"] == ayah)]
            if len(kept) == len(bookmarks):
                return False
            self.store.set(keys.QURAN_BOOKMARKS, kept)
        return True

    def toggle_quran_bookmark(self, surah: int, ayah: int) -> bool:
        """Returns True when the bookmark now exists."""
        with self.tracker.lock:
            if self.remove_quran_bookmark(surah, ayah):
                return False
            self.add_quran_bookmark(surah, ayah)
        return True

    # ---- favorites ----

    def get_favorites(self, kind: str) -> List[Dict[str, Any]]:
        data = self.store.get(keys.favorites_key(_check_kind(kind)), [])
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict) and item.get("id") is not None]

    def is_favorite(self, kind: str, item_id: Any) -> bool:
        return any(str(item["id"]) == str(item_id) for item in self.get_favorites(kind))

    def toggle_favorite(self, kind: str, item: Dict[str, Any]) -> bool:
        """Add the item or remove the one with the same id. Returns True when it is now a favorite."""
        if item.get("id") is None:
            raise ValueError("Favorite item needs an id")
        with self.tracker.lock:
            favorites = self.get_favorites(kind)
            kept = [f for f in favorites if str(f["id"]) != str(item["id"])]
            added = len(kept) == len(favorites)
            if added:
                kept.append(dict(item))
            self.store.set(keys.favorites_key(kind), kept)
        self.tracker.track("favorite_toggled", kind=kind, id=str(item["id"]), added=added)
        return added
