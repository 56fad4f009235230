"""
Per-plugin API for the zakat calculator. Mounted at /api/zakat/.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from iman.plugins.zakat.ledger import ZakatLedger


class ZakatAssetsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cash: float = Field(0, ge=0)
    savings: float = Field(0, ge=0)
    gold_grams: float = Field(0, ge=0)
    silver_grams: float = Field(0, ge=0)
    investments: float = Field(0, ge=0)
    business: float = Field(0, ge=0)
    debts_owed_to_you: float = Field(0, ge=0)
    debts_you_owe: float = Field(0, ge=0)


class ZakatHistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: str
    total_assets: float
    zakat_amount: float
    nisab_used: float
    meets_nisab: bool
    assets: Dict[str, float]
    paid: bool


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/zakat."""
    router = APIRouter(tags=["Zakat"])

    def ledger() -> ZakatLedger:
        return ZakatLedger.from_config(iman_app.tracker, iman_app.config.data.get("zakat"))

    @router.get("/assets", response_model=ZakatAssetsModel)
    def get_assets() -> ZakatAssetsModel:
        return ZakatAssetsModel.model_validate(ledger().get_zakat_assets())

    @router.put("/assets", response_model=ZakatAssetsModel)
    def put_assets(body: ZakatAssetsModel) -> ZakatAssetsModel:
        return ZakatAssetsModel.model_validate(ledger().set_zakat_assets(body.model_dump()))

    @router.get("/calculate")
    def calculate() -> Dict[str, Any]:
        return ledger().calculate()

    @router.get("/history", response_model=List[ZakatHistoryEntryResponse])
    def get_history() -> List[ZakatHistoryEntryResponse]:
        return [ZakatHistoryEntryResponse.model_validate(e) for e in ledger().get_zakat_history()]

    @router.post("/history", response_model=ZakatHistoryEntryResponse)
    def add_entry(body: Optional[ZakatAssetsModel] = None) -> ZakatHistoryEntryResponse:
        entry = ledger().add_zakat_entry(body.model_dump() if body else None)
        if entry is None:
            raise HTTPException(status_code=422, detail="Total assets must be positive")
        return ZakatHistoryEntryResponse.model_validate(entry)

    @router.post("/history/{entry_id}/paid")
    def mark_paid(entry_id: str) -> Dict[str, bool]:
        if not ledger().mark_zakat_paid(entry_id):
            raise HTTPException(status_code=404, detail="Entry not found or already paid")
        return {"paid": True}

    @router.get("/paid-total")
    def paid_total(year: Optional[int] = None) -> Dict[str, Any]:
        return {"year": year, "paid_total": ledger().paid_total(year)}

    return router
