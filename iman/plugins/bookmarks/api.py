"""
Per-plugin API for Quran bookmarks and favorites. Mounted at /api/bookmarks/.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from iman.plugins.bookmarks.service import FAVORITE_KINDS, SURAH_COUNT, BookmarkService


class BookmarkRequest(BaseModel):
    surah: int = Field(..., ge=1, le=SURAH_COUNT)
    ayah: int = Field(..., ge=1)


class FavoriteItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    collection: Optional[str] = None
    text: Optional[str] = None
    narrator: Optional[str] = None


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/bookmarks."""
    router = APIRouter(tags=["Bookmarks"])
    service = BookmarkService(iman_app.tracker)

    def check_kind(kind: str) -> None:
        if kind not in FAVORITE_KINDS:
            raise HTTPException(status_code=404, detail=f"Unknown favorites kind: {kind}")

    @router.get("/quran")
    def get_bookmarks() -> List[Dict[str, Any]]:
        return service.get_quran_bookmarks()

    @router.post("/quran")
    def add_bookmark(body: BookmarkRequest) -> Dict[str, Any]:
        return service.add_quran_bookmark(body.surah, body.ayah)

    @router.delete("/quran/{surah}/{ayah}")
    def remove_bookmark(surah: int, ayah: int) -> Dict[str, bool]:
        if not service.remove_quran_bookmark(surah, ayah):
            raise HTTPException(status_code=404, detail="Bookmark not found")
        return {"removed": True}

    @router.post("/quran/toggle")
    def toggle_bookmark(body: BookmarkRequest) -> Dict[str, bool]:
        return {"bookmarked": service.toggle_quran_bookmark(body.surah, body.ayah)}

    @router.get("/favorites/{kind}")
    def get_favorites(kind: str) -> List[Dict[str, Any]]:
        check_kind(kind)
        return service.get_favorites(kind)

    @router.post("/favorites/{kind}/toggle")
    def toggle_favorite(kind: str, body: FavoriteItem) -> Dict[str, bool]:
        check_kind(kind)
        return {"favorite": service.toggle_favorite(kind, body.model_dump(exclude_none=True))}

    return router
