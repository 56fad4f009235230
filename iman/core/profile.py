"""
User profile record.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from iman.core import keys
from iman.core.store import RecordStore

logger = logging.getLogger(__name__)

# Fields a settings screen may change; points, level and streaks belong to the engines.
EDITABLE_FIELDS = ("name", "external_id", "city", "lat", "lng", "language")


def _int_ge0(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class UserProfile:
    name: str = ""
    external_id: Optional[str] = None
    city: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    language: str = "ru"
    level: str = "Talib"
    total_points: int = 0
    streak: int = 0
    longest_streak: int = 0
    joined_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "external_id": self.external_id,
            "city": self.city,
            "lat": self.lat,
            "lng": self.lng,
            "language": self.language,
            "level": self.level,
            "total_points": self.total_points,
            "streak": self.streak,
            "longest_streak": self.longest_streak,
            "joined_at": self.joined_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "UserProfile":
        profile = cls()
        if not isinstance(data, dict):
            return profile
        profile.name = str(data.get("name") or "")
        external_id = data.get("external_id")
        profile.external_id = str(external_id) if external_id not in (None, "") else None
        profile.city = str(data.get("city") or "")
        profile.lat = _float_or_none(data.get("lat"))
        profile.lng = _float_or_none(data.get("lng"))
        profile.language = str(data.get("language") or "ru")
        profile.level = str(data.get("level") or profile.level)
        profile.total_points = _int_ge0(data.get("total_points"))
        profile.streak = _int_ge0(data.get("streak"))
        profile.longest_streak = max(_int_ge0(data.get("longest_streak")), profile.streak)
        if isinstance(data.get("joined_at"), str) and data["joined_at"]:
            profile.joined_at = data["joined_at"]
        return profile


class ProfileRepository:
    def __init__(self, store: RecordStore):
        self.store = store

    def exists(self) -> bool:
        return self.store.exists(keys.PROFILE)

    def get(self) -> UserProfile:
        """Stored profile, or a fresh default (not persisted) when missing or unreadable."""
        return UserProfile.from_dict(self.store.get(keys.PROFILE, None))

    def save(self, profile: UserProfile) -> UserProfile:
        stored = self.store.get(keys.PROFILE, None)
        if isinstance(stored, dict) and isinstance(stored.get("joined_at"), str) and stored["joined_at"]:
            # joined_at is fixed by the first write
            profile.joined_at = stored["joined_at"]
        profile.total_points = max(0, profile.total_points)
        profile.streak = max(0, profile.streak)
        profile.longest_streak = max(profile.longest_streak, profile.streak)
        self.store.set(keys.PROFILE, profile.to_dict())
        return profile

    def update(self, changes: Dict[str, Any]) -> UserProfile:
        """Apply settings edits. Unknown or engine-owned fields are ignored."""
        profile = self.get()
        ignored = [k for k in changes if k not in EDITABLE_FIELDS]
        if ignored:
            logger.debug(f"Ignoring non-editable profile fields: {ignored}")
        merged = profile.to_dict()
        merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})
        updated = UserProfile.from_dict(merged)
        # engine-owned values are carried over unchanged
        updated.total_points = profile.total_points
        updated.level = profile.level
        updated.streak = profile.streak
        updated.longest_streak = profile.longest_streak
        return self.save(updated)
