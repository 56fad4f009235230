"""
Surah memorization list. Each review pays MEMORIZE_REPEAT through the reward ledger;
removing a surah keeps what its reviews already earned.
"""
import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from iman.core import clock, keys
from iman.core.points import POINTS, RewardKind
from iman.core.tracker import Tracker
from iman.plugins.bookmarks.service import SURAH_COUNT

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 100


@dataclass
class MemorizationEntry:
    surah: int
    added_at: str
    last_reviewed_at: Optional[str] = None
    review_count: int = 0
    confidence: int = 0
    points_earned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["MemorizationEntry"]:
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                surah=int(data["surah"]),
                added_at=str(data.get("added_at") or ""),
                last_reviewed_at=data.get("last_reviewed_at"),
                review_count=max(0, int(data.get("review_count") or 0)),
                confidence=min(MAX_CONFIDENCE, max(0, int(data.get("confidence") or 0))),
                points_earned=max(0, int(data.get("points_earned") or 0)),
            )
        except (KeyError, TypeError, ValueError):
            return None


def _check_surah(surah: int) -> int:
    if not 1 <= int(surah) <= SURAH_COUNT:
        raise ValueError(f"Surah out of range: {surah}")
    return int(surah)


class MemorizationService:
    def __init__(self, tracker: Tracker):
        self.tracker = tracker
        self.store = tracker.store

    def get_memorization_list(self) -> List[MemorizationEntry]:
        data = self.store.get(keys.MEMORIZATION, [])
        if not isinstance(data, list):
            return []
        entries = [MemorizationEntry.from_dict(item) for item in data]
        return [e for e in entries if e is not None]

    def _save(self, entries: List[MemorizationEntry]) -> None:
        self.store.set(keys.MEMORIZATION, [e.to_dict() for e in entries])

    def get_entry(self, surah: int) -> Optional[MemorizationEntry]:
        return next((e for e in self.get_memorization_list() if e.surah == surah), None)

    def add_surah(self, surah: int) -> MemorizationEntry:
        """Add a surah to the list; adding it again returns the existing entry."""
        surah = _check_surah(surah)
        with self.tracker.lock:
            entries = self.get_memorization_list()
            existing = next((e for e in entries if e.surah == surah), None)
            if existing is not None:
                return existing
            entry = MemorizationEntry(surah=surah, added_at=clock.now().isoformat())
            entries.append(entry)
            self._save(entries)
        self.tracker.track("memorization_added", surah=surah)
        return entry

    def remove_surah(self, surah: int) -> bool:
        with self.tracker.lock:
            entries = self.get_memorization_list()
            kept = [e for e in entries if e.surah != surah]
            if len(kept) == len(entries):
                return False
            self._save(kept)
        return True

    def review_surah(self, surah: int, confidence: int) -> Optional[MemorizationEntry]:
        """Record one review. None when the surah is not on the list."""
        with self.tracker.lock:
            entries = self.get_memorization_list()
            entry = next((e for e in entries if e.surah == surah), None)
            if entry is None:
                return None
            points = POINTS["MEMORIZE_REPEAT"]
            entry.last_reviewed_at = clock.now().isoformat()
            entry.review_count += 1
            entry.confidence = min(MAX_CONFIDENCE, max(0, int(confidence)))
            entry.points_earned += points
            self._save(entries)
            self.tracker.award_once(RewardKind.MEMORIZE, f"{surah}:{uuid.uuid4().hex}", points)
        logger.debug(f"Surah {surah} reviewed ({entry.review_count}x, confidence {entry.confidence})")
        return entry
