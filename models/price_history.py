from datetime import datetime
from typing import Dict, List, Optional

from models.errors import NotFoundError
from utils.dates import now, parse_date, to_iso

# Each entry holds the price that was in effect until its date.

def record_price_change(product: Optional[Dict], previous_price: float, at: Optional[datetime] = None) -> Dict:
    if product is None:
        raise NotFoundError("Unknown product")
    entry = {"price": float(previous_price), "date": to_iso(at or now())}
    product.setdefault("priceHistory", []).append(entry)
    return entry

def history_newest_first(product: Dict) -> List[Dict]:
    return sorted(product.get("priceHistory") or [], key=lambda h: parse_date(h["date"]), reverse=True)

def price_at(product: Dict, at: datetime) -> float:
    """Price in effect at ``at``.

    The earliest change recorded after ``at`` holds the price that was
    superseded by it, which is the one in effect at ``at``. With no later
    change the current price applies. Queries older than the whole ledger
    get the oldest entry's price, which is only as accurate as the ledger:
    changes made before history was kept are not visible.
    """
    at = parse_date(at)
    history = sorted(product.get("priceHistory") or [], key=lambda h: parse_date(h["date"]))
    for entry in history:
        if parse_date(entry["date"]) > at:
            return float(entry["price"])
    return float(product["price"])
