"""
One-off rewards: reading content, quizzes, the daily bonus and timed ibadah sessions.
Every payout goes through the tracker's per-kind ledger, so repeating an action never pays twice.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from iman.core import clock, keys
from iman.core.points import POINTS, RewardKind
from iman.core.tracker import Tracker
from iman.plugins.bookmarks.service import SURAH_COUNT

logger = logging.getLogger(__name__)

NAMES_COUNT = 99
IBADAH_TYPES = ("quran", "dhikr", "dua", "reflection", "general")
MAX_SESSION_MINUTES = 24 * 60


class RewardService:
    def __init__(self, tracker: Tracker):
        self.tracker = tracker

    def read_ids(self, kind: RewardKind) -> List[str]:
        return sorted(self.tracker.points.ledger(kind))

    def mark_hadith_read(self, hadith_id: Any) -> bool:
        return self.tracker.award_once(RewardKind.HADITH, hadith_id, POINTS["HADITH"])

    def mark_surah_read(self, surah: int) -> bool:
        if not 1 <= int(surah) <= SURAH_COUNT:
            raise ValueError(f"Surah out of range: {surah}")
        return self.tracker.award_once(RewardKind.SURAH, int(surah), POINTS["SURAH_READ"])

    def mark_seerah_chapter_read(self, chapter_id: Any, points: int = POINTS["SEERAH_CHAPTER"]) -> bool:
        return self.tracker.award_once(RewardKind.SEERAH, chapter_id, points)

    def mark_story_read(self, story_id: Any, points: int) -> bool:
        return self.tracker.award_once(RewardKind.STORY, story_id, points)

    def mark_name_learned(self, index: int) -> bool:
        if not 1 <= int(index) <= NAMES_COUNT:
            raise ValueError(f"Name index out of range: {index}")
        return self.tracker.award_once(RewardKind.NAME, int(index), POINTS["NAMES_QUIZ"])

    def score_quiz(self, quiz_key: str, correct: int) -> bool:
        """Pay QUIZ_CORRECT per correct answer, once per quiz key."""
        correct = max(0, int(correct))
        return self.tracker.award_once(RewardKind.QUIZ, quiz_key, correct * POINTS["QUIZ_CORRECT"])

    def claim_daily_bonus(self) -> bool:
        return self.tracker.award_once(RewardKind.DAILY_BONUS, clock.date_key(), POINTS["DAILY_BONUS"])

    # ---- ibadah timer ----

    def get_ibadah_sessions(self) -> List[Dict[str, Any]]:
        data = self.tracker.store.get(keys.IBADAH_SESSIONS, [])
        if not isinstance(data, list):
            return []
        return [s for s in data if isinstance(s, dict) and s.get("id")]

    def add_ibadah_session(
        self,
        duration_minutes: int,
        type: str = "general",
        started_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        duration = int(duration_minutes)
        if not 0 < duration <= MAX_SESSION_MINUTES:
            raise ValueError(f"Session duration out of range: {duration_minutes}")
        if type not in IBADAH_TYPES:
            raise ValueError(f"Unknown ibadah type: {type!r}")
        session = {
            "id": uuid.uuid4().hex,
            "date": clock.date_key(),
            "started_at": started_at or clock.now().isoformat(),
            "duration_minutes": duration,
            "points_earned": duration * POINTS["IBADAH_MINUTE"],
            "type": type,
        }
        with self.tracker.lock:
            self.tracker.store.set(keys.IBADAH_SESSIONS, self.get_ibadah_sessions() + [session])
            self.tracker.award_once(RewardKind.IBADAH, session["id"], session["points_earned"])
        return session

    def today_ibadah_minutes(self) -> int:
        today = clock.date_key()
        return sum(int(s.get("duration_minutes") or 0) for s in self.get_ibadah_sessions() if s.get("date") == today)

    def total_ibadah_minutes(self) -> int:
        return sum(int(s.get("duration_minutes") or 0) for s in self.get_ibadah_sessions())
