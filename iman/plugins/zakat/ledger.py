"""
Zakat calculator and its append-only history.
"""
import logging
import math
import uuid
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional

from iman.core import clock, keys
from iman.core.points import POINTS, RewardKind
from iman.core.tracker import Tracker

logger = logging.getLogger(__name__)

ZAKAT_RATE = 0.025
GOLD_PRICE_PER_GRAM = 65.0
SILVER_PRICE_PER_GRAM = 0.83
NISAB_GOLD_GRAMS = 85


def _non_negative(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


@dataclass
class ZakatAssets:
    cash: float = 0.0
    savings: float = 0.0
    gold_grams: float = 0.0
    silver_grams: float = 0.0
    investments: float = 0.0
    business: float = 0.0
    debts_owed_to_you: float = 0.0
    debts_you_owe: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "ZakatAssets":
        """Missing, non-numeric and negative fields become 0."""
        if not isinstance(data, dict):
            data = {}
        return cls(**{f.name: _non_negative(data.get(f.name)) for f in fields(cls)})


@dataclass
class ZakatHistoryEntry:
    id: str
    date: str
    total_assets: float
    zakat_amount: float
    nisab_used: float
    meets_nisab: bool
    assets: Dict[str, float]
    paid: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ZakatHistoryEntry"]:
        if not isinstance(data, dict) or not data.get("id"):
            return None
        try:
            return cls(
                id=str(data["id"]),
                date=str(data.get("date") or ""),
                total_assets=float(data.get("total_assets") or 0),
                zakat_amount=float(data.get("zakat_amount") or 0),
                nisab_used=float(data.get("nisab_used") or 0),
                meets_nisab=bool(data.get("meets_nisab")),
                assets=ZakatAssets.from_dict(data.get("assets")).to_dict(),
                paid=data.get("paid") is True,
            )
        except (TypeError, ValueError):
            logger.warning(f"Skipping malformed zakat history entry: {data!r}")
            return None


class ZakatLedger:
    def __init__(
        self,
        tracker: Tracker,
        gold_price_per_gram: float = GOLD_PRICE_PER_GRAM,
        silver_price_per_gram: float = SILVER_PRICE_PER_GRAM,
        nisab_gold_grams: float = NISAB_GOLD_GRAMS,
    ):
        self.tracker = tracker
        self.gold_price_per_gram = _non_negative(gold_price_per_gram)
        self.silver_price_per_gram = _non_negative(silver_price_per_gram)
        self.nisab_gold_grams = _non_negative(nisab_gold_grams)

    @classmethod
    def from_config(cls, tracker: Tracker, config: Optional[Dict[str, Any]]) -> "ZakatLedger":
        config = config or {}
        return cls(
            tracker,
            gold_price_per_gram=config.get("gold_price_per_gram", GOLD_PRICE_PER_GRAM),
            silver_price_per_gram=config.get("silver_price_per_gram", SILVER_PRICE_PER_GRAM),
            nisab_gold_grams=config.get("nisab_gold_grams", NISAB_GOLD_GRAMS),
        )

    @property
    def nisab(self) -> float:
        return self.nisab_gold_grams * self.gold_price_per_gram

    # ---- assets snapshot ----

    def get_zakat_assets(self) -> ZakatAssets:
        return ZakatAssets.from_dict(self.tracker.store.get(keys.ZAKAT_ASSETS, {}))

    def set_zakat_assets(self, assets: Any) -> ZakatAssets:
        if isinstance(assets, ZakatAssets):
            assets = assets.to_dict()
        snapshot = ZakatAssets.from_dict(assets)
        with self.tracker.lock:
            self.tracker.store.set(keys.ZAKAT_ASSETS, snapshot.to_dict())
        return snapshot

    def total_assets(self, assets: ZakatAssets) -> float:
        return (
            assets.cash
            + assets.savings
            + assets.gold_grams * self.gold_price_per_gram
            + assets.silver_grams * self.silver_price_per_gram
            + assets.investments
            + assets.business
            + assets.debts_owed_to_you
            - assets.debts_you_owe
        )

    def calculate(self, assets: Optional[Any] = None) -> Dict[str, Any]:
        """Preview the numbers without saving anything."""
        snapshot = self.get_zakat_assets() if assets is None else ZakatAssets.from_dict(
            assets.to_dict() if isinstance(assets, ZakatAssets) else assets
        )
        total = self.total_assets(snapshot)
        meets_nisab = total >= self.nisab
        return {
            "total_assets": total,
            "nisab": self.nisab,
            "meets_nisab": meets_nisab,
            "zakat_amount": round(total * ZAKAT_RATE, 2) if meets_nisab else 0.0,
            "assets": snapshot.to_dict(),
        }

    # ---- history ----

    def get_zakat_history(self) -> List[ZakatHistoryEntry]:
        """Newest first."""
        data = self.tracker.store.get(keys.ZAKAT_HISTORY, [])
        if not isinstance(data, list):
            return []
        return [entry for entry in (ZakatHistoryEntry.from_dict(item) for item in data) if entry]

    def _save_history(self, history: List[ZakatHistoryEntry]) -> None:
        self.tracker.store.set(keys.ZAKAT_HISTORY, [entry.to_dict() for entry in history])

    def add_zakat_entry(self, assets: Optional[Any] = None) -> Optional[ZakatHistoryEntry]:
        """Record a calculation. Returns None (nothing saved) when total assets are not positive."""
        result = self.calculate(assets)
        if result["total_assets"] <= 0:
            logger.info("Zakat entry skipped: total assets not positive")
            return None
        day_key = clock.date_key()
        entry = ZakatHistoryEntry(
            id=uuid.uuid4().hex,
            date=day_key,
            total_assets=result["total_assets"],
            zakat_amount=result["zakat_amount"],
            nisab_used=result["nisab"],
            meets_nisab=result["meets_nisab"],
            assets=result["assets"],
        )
        with self.tracker.lock:
            self._save_history([entry] + self.get_zakat_history())
        self.tracker.award_once(RewardKind.ZAKAT, day_key, POINTS["ZAKAT"])
        self.tracker.track("zakat_calculated", total_assets=entry.total_assets,
                           zakat_amount=entry.zakat_amount, meets_nisab=entry.meets_nisab)
        return entry

    def mark_zakat_paid(self, entry_id: str) -> bool:
        """One-way flip. False when the entry is missing or already paid."""
        with self.tracker.lock:
            history = self.get_zakat_history()
            for entry in history:
                if entry.id == entry_id:
                    if entry.paid:
                        return False
                    entry.paid = True
                    self._save_history(history)
                    logger.info(f"Zakat entry {entry_id} marked paid")
                    return True
        return False

    def paid_total(self, year: Optional[int] = None) -> float:
        year = year or clock.today().year
        prefix = f"{year:04d}-"
        return round(sum(e.zakat_amount for e in self.get_zakat_history()
                         if e.paid and e.date.startswith(prefix)), 2)
