from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from models.errors import InvalidArgumentError
from models.price_history import price_at
from utils.dates import as_day, days_before, now, parse_date, start_of_day

PERIODS = ("daily", "weekly", "general")
WEEK_DAYS = 7

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def _check_period(period: str):
    if period not in PERIODS:
        raise InvalidArgumentError(f"Unknown period {period!r}, expected one of {', '.join(PERIODS)}")

def _unit_price(sale: Dict) -> float:
    if _is_number(sale.get("unitPrice")):
        return float(sale["unitPrice"])
    # legacy records without a unit price snapshot
    qty = sale.get("quantity") or 0
    total = sale.get("total")
    if qty and _is_number(total):
        return round(float(total) / qty, 2)
    return 0.0

def window_start(period: str, at: Optional[datetime] = None) -> Optional[datetime]:
    _check_period(period)
    today = start_of_day(at or now())
    if period == "daily":
        return today
    if period == "weekly":
        return days_before(today, WEEK_DAYS)
    return None

def filter_by_window(sales: List[Dict], period: str, at: Optional[datetime] = None) -> List[Dict]:
    start = window_start(period, at)
    if start is None:
        return list(sales)
    return [s for s in sales if parse_date(s["date"]) >= start]

def filter_by_day(sales: List[Dict], day) -> List[Dict]:
    day = as_day(day)
    return [s for s in sales if parse_date(s["date"]).date() == day]

def filter_by_range(sales: List[Dict], start, end) -> List[Dict]:
    """Sales between ``start`` and ``end``, both inclusive."""
    start, end = parse_date(start), parse_date(end)
    if end < start:
        raise InvalidArgumentError("Range end is before its start")
    return [s for s in sales if start <= parse_date(s["date"]) <= end]

def total_for_window(sales: List[Dict]) -> float:
    total = 0.0
    for s in sales:
        value = s.get("total")
        if _is_number(value):
            total += value
    return round(total, 2)

def group_daily(sales: List[Dict]) -> List[Dict]:
    groups: "OrderedDict[str, Dict]" = OrderedDict()
    for s in sales:
        name = s.get("productName") or ""
        g = groups.get(name)
        if g is None:
            g = groups[name] = {
                "productName": name,
                "quantity": 0,
                "unitPrice": _unit_price(s),
                "total": 0.0,
                "titles": [],
            }
        g["quantity"] += int(s.get("quantity") or 0)
        if _is_number(s.get("total")):
            g["total"] = round(g["total"] + s["total"], 2)
        title = (s.get("title") or "").strip()
        if title and title not in g["titles"]:
            g["titles"].append(title)
    return sorted(groups.values(), key=lambda g: g["productName"].casefold())

def bucket_key(sale: Dict, period: str) -> str:
    dt = parse_date(sale["date"])
    if period == "daily":
        return dt.strftime("%H:%M")
    return dt.strftime("%d/%m/%Y")

def group_by_date(sales: List[Dict], period: str) -> List[Tuple[str, List[Dict]]]:
    _check_period(period)
    buckets: "OrderedDict[str, List[Dict]]" = OrderedDict()
    latest: Dict[str, datetime] = {}
    for s in sales:
        key = bucket_key(s, period)
        entry = {
            "productName": s.get("productName") or "",
            "quantity": s.get("quantity"),
            "unitPrice": _unit_price(s),
            "total": s.get("total"),
            "title": s.get("title"),
            "date": s["date"],
        }
        buckets.setdefault(key, []).append(entry)
        dt = parse_date(s["date"])
        if key not in latest or dt > latest[key]:
            latest[key] = dt
    for entries in buckets.values():
        entries.sort(key=lambda e: (e["productName"].casefold(), -e["unitPrice"]))
    return sorted(buckets.items(), key=lambda kv: latest[kv[0]], reverse=True)

def top_products(sales: List[Dict], n: int, products: List[Dict]) -> List[Dict]:
    """Best sellers by revenue, re-priced from each product's price history.

    Sales of deleted products fall back to their stored unit price.
    """
    by_id = {p["id"]: p for p in products}
    totals: "OrderedDict[object, Dict]" = OrderedDict()
    for s in sales:
        product = by_id.get(s.get("productId"))
        if product is not None:
            unit = price_at(product, parse_date(s["date"]))
            name = product["name"]
        else:
            unit = _unit_price(s)
            name = s.get("productName") or ""
        qty = int(s.get("quantity") or 0)
        row = totals.setdefault(s.get("productId"), {
            "productId": s.get("productId"),
            "productName": name,
            "quantity": 0,
            "revenue": 0.0,
        })
        row["quantity"] += qty
        row["revenue"] = round(row["revenue"] + unit * qty, 2)
    ranked = sorted(totals.values(), key=lambda r: (-r["revenue"], r["productName"].casefold()))
    return ranked[:max(int(n), 0)]

def summary(sales: List[Dict], period: str, at: Optional[datetime] = None) -> Dict:
    filtered = filter_by_window(sales, period, at)
    if period == "daily":
        groups = group_daily(filtered)
    else:
        groups = [{"date": key, "sales": entries} for key, entries in group_by_date(filtered, period)]
    return {
        "period": period,
        "total": total_for_window(filtered),
        "transactions": len(filtered),
        "groups": groups,
    }
