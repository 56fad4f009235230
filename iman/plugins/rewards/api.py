"""
Per-plugin API for one-off rewards. Mounted at /api/rewards/.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from iman.core.points import RewardKind
from iman.plugins.rewards.memorization import MemorizationService
from iman.plugins.rewards.service import IBADAH_TYPES, MAX_SESSION_MINUTES, RewardService


class QuizScore(BaseModel):
    correct: int = Field(..., ge=0)


class PointsRequest(BaseModel):
    points: int = Field(..., ge=0)


class ReviewRequest(BaseModel):
    confidence: int = Field(..., ge=0)


class IbadahSessionRequest(BaseModel):
    duration_minutes: int = Field(..., gt=0, le=MAX_SESSION_MINUTES)
    type: str = "general"
    started_at: Optional[str] = None


def _paid(paid: bool) -> Dict[str, Any]:
    return {"awarded": paid}


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/rewards."""
    router = APIRouter(tags=["Rewards"])
    service = RewardService(iman_app.tracker)
    memorization = MemorizationService(iman_app.tracker)

    @router.get("/{kind}/ids")
    def read_ids(kind: str) -> List[str]:
        try:
            return service.read_ids(RewardKind(kind))
        except ValueError:
            raise HTTPException(status_code=404, detail=f"Unknown reward kind: {kind}")

    @router.post("/hadith/{hadith_id}")
    def hadith_read(hadith_id: str) -> Dict[str, Any]:
        return _paid(service.mark_hadith_read(hadith_id))

    @router.post("/surah/{surah}")
    def surah_read(surah: int) -> Dict[str, Any]:
        try:
            return _paid(service.mark_surah_read(surah))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @router.post("/seerah/{chapter_id}")
    def seerah_read(chapter_id: str, body: Optional[PointsRequest] = None) -> Dict[str, Any]:
        if body is None:
            return _paid(service.mark_seerah_chapter_read(chapter_id))
        return _paid(service.mark_seerah_chapter_read(chapter_id, body.points))

    @router.post("/story/{story_id}")
    def story_read(story_id: str, body: PointsRequest) -> Dict[str, Any]:
        return _paid(service.mark_story_read(story_id, body.points))

    @router.post("/name/{index}")
    def name_learned(index: int) -> Dict[str, Any]:
        try:
            return _paid(service.mark_name_learned(index))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @router.post("/quiz/{quiz_key}")
    def quiz_scored(quiz_key: str, body: QuizScore) -> Dict[str, Any]:
        return _paid(service.score_quiz(quiz_key, body.correct))

    @router.post("/daily-bonus")
    def daily_bonus() -> Dict[str, Any]:
        return _paid(service.claim_daily_bonus())

    @router.get("/ibadah")
    def ibadah_summary() -> Dict[str, Any]:
        return {
            "today_minutes": service.today_ibadah_minutes(),
            "total_minutes": service.total_ibadah_minutes(),
            "sessions": service.get_ibadah_sessions(),
        }

    @router.post("/ibadah")
    def add_session(body: IbadahSessionRequest) -> Dict[str, Any]:
        if body.type not in IBADAH_TYPES:
            raise HTTPException(status_code=422, detail=f"Unknown ibadah type: {body.type}")
        return service.add_ibadah_session(body.duration_minutes, body.type, body.started_at)

    @router.get("/memorization")
    def memorization_list() -> List[Dict[str, Any]]:
        return [e.to_dict() for e in memorization.get_memorization_list()]

    @router.post("/memorization/{surah}")
    def memorization_add(surah: int) -> Dict[str, Any]:
        try:
            return memorization.add_surah(surah).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @router.delete("/memorization/{surah}")
    def memorization_remove(surah: int) -> Dict[str, Any]:
        return {"removed": memorization.remove_surah(surah)}

    @router.post("/memorization/{surah}/review")
    def memorization_review(surah: int, body: ReviewRequest) -> Dict[str, Any]:
        entry = memorization.review_surah(surah, body.confidence)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Surah {surah} is not on the memorization list")
        return entry.to_dict()

    return router
