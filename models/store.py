import json
import logging
import threading
from typing import Dict, List, Optional

from models.errors import PersistenceError
from utils import file_manager as fm

LOG = logging.getLogger(__name__)

STORE_FILE = "store.json"
DRAFTS_FILE = "drafts.json"
DELETED_PRODUCT = "deleted product"

class Store:
    def __init__(
        self,
        products: Optional[List[Dict]] = None,
        sales: Optional[List[Dict]] = None,
        drafts: Optional[List[Dict]] = None,
        data_dir: Optional[str] = None,
        linked_file: Optional[str] = None,
    ):
        self.products = products if products is not None else []
        self.sales = sales if sales is not None else []
        self.drafts = drafts if drafts is not None else []
        self.data_dir = fm.data_dir(data_dir)
        self.linked_file = linked_file
        self.lock = threading.RLock()

    def snapshot(self) -> Dict:
        return {"products": self.products, "sales": self.sales}

    def __repr__(self):
        return (
            f"Store(products={len(self.products)}, sales={len(self.sales)}, "
            f"drafts={len(self.drafts)}, data_dir={self.data_dir!r})"
        )

def _valid_store(data) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("products"), list)
        and isinstance(data.get("sales"), list)
    )

def load_store(data_dir: Optional[str] = None, linked_file: Optional[str] = None) -> Store:
    store = Store(data_dir=data_dir, linked_file=linked_file)
    try:
        data = fm.read_json(STORE_FILE, store.data_dir)
    except FileNotFoundError:
        data = None
    except (OSError, ValueError) as e:
        LOG.warning("Could not read %s, starting empty: %s", STORE_FILE, e)
        data = None
    if data is not None and not _valid_store(data):
        LOG.warning("%s has an unexpected shape, starting empty", STORE_FILE)
        data = None
    if data:
        store.products = data["products"]
        store.sales = data["sales"]

    try:
        drafts = fm.read_json(DRAFTS_FILE, store.data_dir)
    except FileNotFoundError:
        drafts = []
    except (OSError, ValueError) as e:
        LOG.warning("Could not read %s, starting without drafts: %s", DRAFTS_FILE, e)
        drafts = []
    store.drafts = drafts if isinstance(drafts, list) else []
    return store

def save_store(store: Store):
    # Best-effort: failures are logged and the in-memory store stays authoritative
    payload = store.snapshot()
    if store.linked_file:
        try:
            fm.write_file(store.linked_file, payload)
        except OSError as e:
            LOG.warning("Saving to %s failed, keeping local copy only: %s", store.linked_file, e)
    try:
        fm.write_json(STORE_FILE, payload, store.data_dir)
    except OSError as e:
        LOG.error("Saving %s failed: %s", STORE_FILE, e)

def save_drafts(store: Store):
    try:
        fm.write_json(DRAFTS_FILE, store.drafts, store.data_dir)
    except OSError as e:
        LOG.error("Saving %s failed: %s", DRAFTS_FILE, e)

def export_store(store: Store, path: str) -> str:
    try:
        fm.write_file(path, store.snapshot())
    except OSError as e:
        raise PersistenceError(f"Could not export to {path}: {e}") from e
    store.linked_file = path
    LOG.info("Exported %d products and %d sales to %s", len(store.products), len(store.sales), path)
    return path

def import_store(store: Store, path: str) -> Store:
    try:
        data = fm.read_file(path)
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError(f"Could not import {path}: {e}") from e
    if not _valid_store(data):
        raise PersistenceError(f"{path} does not contain a products/sales store")
    store.products = data["products"]
    store.sales = data["sales"]
    store.linked_file = path
    save_store(store)
    LOG.info("Imported %d products and %d sales from %s", len(store.products), len(store.sales), path)
    return store

def next_id(records, key: str = "id") -> int:
    ids = [r[key] for r in records if isinstance(r.get(key), (int, float))]
    return int(max(ids)) + 1 if ids else 1

def product_label(store: Store, product_id, fallback: Optional[str] = None) -> str:
    for p in store.products:
        if p["id"] == product_id:
            return p["name"]
    return fallback or DELETED_PRODUCT
