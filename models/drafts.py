import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional
from models.errors import NotFoundError
from models.inventory import find_product
from models.sales import add_line_item, cart_total, check_quantity, commit, commit_batch, remove_line_item
from models.store import Store, product_label, save_drafts
from utils.dates import now, parse_date, to_iso

LOG = logging.getLogger(__name__)

# Drafts live in drafts.json, apart from the store; they never touch stock or
# the sales log until completed.

def _copy_items(items: List[Dict]) -> List[Dict]:
    for item in items:
        check_quantity(item.get("quantity"), item.get("productId"))
    return [dict(i) for i in items]

def _touch(draft: Dict, at: Optional[datetime] = None):
    draft["total"] = cart_total(draft["items"])
    draft["lastUpdated"] = to_iso(at or now())

def _committed_ids(store: Store) -> set:
    return {s["groupId"] for s in store.sales if s.get("groupId")}

def _drop_committed(store: Store):
    """Forget drafts whose sales are already in the log.

    Happens when the sales were saved but the drafts file was not.
    """
    done = _committed_ids(store)
    stale = [d for d in store.drafts if d["id"] in done]
    if not stale:
        return
    store.drafts = [d for d in store.drafts if d["id"] not in done]
    save_drafts(store)
    LOG.warning("Dropped %d drafts that were already committed", len(stale))

def list_drafts(store: Store) -> List[Dict]:
    done = _committed_ids(store)
    pending = [d for d in store.drafts if d["id"] not in done]
    return sorted(pending, key=lambda d: parse_date(d["lastUpdated"]), reverse=True)

def get_draft(store: Store, draft_id: str) -> Dict:
    for d in store.drafts:
        if d["id"] == draft_id:
            return d
    raise NotFoundError(f"Unknown draft: {draft_id}")

def save_draft(store: Store, items: List[Dict], title: Optional[str] = None,
               at: Optional[datetime] = None) -> Dict:
    stamp = to_iso(at or now())
    draft = {
        "id": uuid.uuid4().hex,
        "title": (title or "").strip(),
        "items": _copy_items(items),
        "total": 0.0,
        "createdAt": stamp,
        "lastUpdated": stamp,
    }
    _touch(draft, at)
    store.drafts.append(draft)
    save_drafts(store)
    return draft

def update_draft(store: Store, draft_id: str, items: List[Dict], title: Optional[str] = None,
                 at: Optional[datetime] = None) -> Dict:
    draft = get_draft(store, draft_id)
    draft["items"] = _copy_items(items)
    if title is not None:
        draft["title"] = title.strip()
    _touch(draft, at)
    save_drafts(store)
    return draft

def add_draft_item(store: Store, draft_id: str, product_id, quantity: int) -> Dict:
    draft = get_draft(store, draft_id)
    add_line_item(store, draft["items"], product_id, quantity)
    _touch(draft)
    save_drafts(store)
    return draft

def remove_draft_item(store: Store, draft_id: str, index: int) -> Dict:
    draft = get_draft(store, draft_id)
    remove_line_item(draft["items"], index)
    _touch(draft)
    save_drafts(store)
    return draft

def discard_draft(store: Store, draft_id: str) -> Dict:
    draft = get_draft(store, draft_id)
    store.drafts = [d for d in store.drafts if d["id"] != draft_id]
    save_drafts(store)
    return draft

def complete_draft(store: Store, draft_id: str, at: Optional[datetime] = None) -> List[Dict]:
    _drop_committed(store)
    draft = get_draft(store, draft_id)
    if not draft["items"]:
        return []
    sales = commit(store, draft["items"], title=draft.get("title") or None, group_id=draft["id"], at=at)
    store.drafts = [d for d in store.drafts if d["id"] != draft_id]
    save_drafts(store)
    LOG.info("Completed draft %s (%s)", draft_id, draft.get("title"))
    return sales

def complete_all_drafts(store: Store, at: Optional[datetime] = None) -> List[Dict]:
    """Commit every pending draft as one batch.

    Quantities of the same product are summed across drafts before the
    stock check, so the batch either fits in stock as a whole or nothing
    is committed and every draft is left as it was.
    """
    _drop_committed(store)
    batches = [(d["items"], d.get("title") or None, d["id"]) for d in store.drafts]
    sales = commit_batch(store, batches, at)
    if not sales:
        return sales
    completed = len(store.drafts)
    store.drafts = []
    save_drafts(store)
    LOG.info("Completed %d drafts into %d sale records", completed, len(sales))
    return sales

def describe_draft(store: Store, draft: Dict) -> Dict:
    out = dict(draft)
    out["items"] = []
    for item in draft["items"]:
        shown = dict(item)
        shown["dangling"] = find_product(store, item["productId"]) is None
        shown["productName"] = product_label(store, item["productId"])
        out["items"].append(shown)
    return out
