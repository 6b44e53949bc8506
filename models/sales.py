import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from models.errors import InsufficientStockError, InvalidArgumentError, NotFoundError
from models.inventory import decrement_stock, find_product, get_product
from models.store import Store, next_id, save_store
from utils.dates import as_day, now, parse_date, to_iso

LOG = logging.getLogger(__name__)

# (items, title, groupId) committed together by commit_batch
Batch = Tuple[List[Dict], Optional[str], Optional[str]]

def check_quantity(quantity, product_id=None) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        where = f" for product {product_id}" if product_id is not None else ""
        raise InvalidArgumentError(f"Quantity{where} must be a positive integer, got {quantity!r}")
    return quantity

def new_line_item(store: Store, product_id, quantity: int) -> Dict:
    check_quantity(quantity, product_id)
    product = get_product(store, product_id)
    unit_price = float(product["price"])
    return {
        "productId": product["id"],
        "productName": product["name"],
        "quantity": quantity,
        "unitPrice": unit_price,
        "lineTotal": round(unit_price * quantity, 2),
    }

def add_line_item(store: Store, items: List[Dict], product_id, quantity: int) -> Dict:
    item = new_line_item(store, product_id, quantity)
    items.append(item)
    return item

def remove_line_item(items: List[Dict], index: int) -> Dict:
    if not 0 <= index < len(items):
        raise InvalidArgumentError(f"No line item at position {index}")
    return items.pop(index)

def cart_total(items: Iterable[Dict]) -> float:
    return round(sum(float(i["lineTotal"]) for i in items), 2)

def change_due(total: float, payment: float) -> float:
    return round(float(payment) - float(total), 2)

def _requested_by_product(batches: List[Batch]) -> "OrderedDict":
    requested = OrderedDict()
    for items, _, _ in batches:
        for item in items:
            pid = item["productId"]
            requested[pid] = requested.get(pid, 0) + check_quantity(item.get("quantity"), pid)
    return requested

def check_stock(store: Store, batches: List[Batch]):
    """Validate the whole batch against current stock; raises, never mutates."""
    shortfalls = []
    for pid, qty in _requested_by_product(batches).items():
        product = find_product(store, pid)
        if product is None:
            raise NotFoundError(f"Unknown product: {pid}")
        if qty > int(product["stock"]):
            shortfalls.append({
                "productId": pid,
                "productName": product["name"],
                "requested": qty,
                "available": int(product["stock"]),
            })
    if shortfalls:
        raise InsufficientStockError(shortfalls)

def commit_batch(store: Store, batches: List[Batch], at: Optional[datetime] = None) -> List[Dict]:
    batches = [b for b in batches if b[0]]
    if not batches:
        return []
    check_stock(store, batches)

    date_iso = to_iso(at or now())
    sale_id = next_id(store.sales)
    new_sales = []
    for items, title, group_id in batches:
        for item in items:
            product = decrement_stock(store, item["productId"], item["quantity"])
            sale = {
                "id": sale_id,
                "productId": product["id"],
                "productName": product["name"],
                "quantity": item["quantity"],
                "unitPrice": float(item["unitPrice"]),
                "total": round(float(item["unitPrice"]) * item["quantity"], 2),
                "date": date_iso,
            }
            if title:
                sale["title"] = title
            if group_id:
                sale["groupId"] = group_id
            new_sales.append(sale)
            sale_id += 1
    store.sales.extend(new_sales)
    save_store(store)
    LOG.info("Committed %d sale records totalling %.2f", len(new_sales), sum(s["total"] for s in new_sales))
    return new_sales

def commit(store: Store, items: List[Dict], title: Optional[str] = None,
           group_id: Optional[str] = None, at: Optional[datetime] = None) -> List[Dict]:
    """Turn cart line items into sale records, all or nothing.

    Stock is checked against the product's current stock (not the stock seen
    when the item was added). Unit prices are the ones snapshotted on the
    line items. An empty cart commits nothing.
    """
    return commit_batch(store, [(items, title, group_id)], at)

def all_sales(store: Store) -> List[Dict]:
    return list(store.sales)

def sales_for_date(store: Store, day) -> List[Dict]:
    day = as_day(day)
    return [s for s in store.sales if parse_date(s["date"]).date() == day]
