import logging
import os
from datetime import datetime
from typing import List, Optional
from models.store import Store
from utils.dates import now
from utils.file_manager import write_file

LOG = logging.getLogger(__name__)

BACKUP_DIR = "backups"

def backup_dir(store: Store) -> str:
    return os.path.join(store.data_dir, BACKUP_DIR)

def list_backups(store: Store) -> List[str]:
    folder = backup_dir(store)
    if not os.path.isdir(folder):
        return []
    # Timestamped names sort chronologically
    return sorted(
        os.path.join(folder, f) for f in os.listdir(folder)
        if f.startswith("store-") and f.endswith(".json")
    )

def backup_store(store: Store, keep: int = 10, at: Optional[datetime] = None) -> Optional[str]:
    """Write a timestamped snapshot of the store and prune old ones.

    Runs as a scheduler job, so failures are logged and reported as ``None``.
    """
    stamp = (at or now()).strftime("%Y%m%dT%H%M%S")
    path = os.path.join(backup_dir(store), f"store-{stamp}.json")
    with store.lock:
        snapshot = {"products": store.products, "sales": store.sales}
        try:
            write_file(path, snapshot)
        except OSError as e:
            LOG.error("Backup to %s failed: %s", path, e)
            return None
    for old in list_backups(store)[:-keep] if keep > 0 else []:
        try:
            os.remove(old)
        except OSError as e:
            LOG.warning("Could not prune backup %s: %s", old, e)
    LOG.info("Backed up store to %s", path)
    return path
