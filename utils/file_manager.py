import json
import os
import tempfile
import threading
from typing import Any, Optional

_DATA_DIR = os.environ.get(
    "SHOP_DATA_DIR",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data"),
)
_FILE_LOCK = threading.Lock()

DEFAULTS = {
    "store.json": {"products": [], "sales": []},
    "drafts.json": [],
    "config.json": {
        "store": {
            "linked_file": None
        },
        "reports": {
            "top_products": 5
        },
        "backup": {
            "enabled": False,
            "interval_seconds": 3600,
            "keep": 10
        }
    }
}

def data_dir(override: Optional[str] = None) -> str:
    return str(override) if override else str(_DATA_DIR)

def data_path(filename: str, base: Optional[str] = None) -> str:
    base = data_dir(base)
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, filename)

def _atomic_write(path: str, data_obj: Any):
    target_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(target_dir, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=target_dir)
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(data_obj, f, indent=2)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

def ensure_defaults(base: Optional[str] = None):
    for fname, default in DEFAULTS.items():
        path = data_path(fname, base)
        if not os.path.exists(path):
            with _FILE_LOCK:
                _atomic_write(path, default)

def read_json(filename: str, base: Optional[str] = None):
    return read_file(data_path(filename, base))

def write_json(filename: str, obj, base: Optional[str] = None):
    write_file(data_path(filename, base), obj)

def read_file(path: str):
    """Read a JSON document from an arbitrary path (import, linked file)."""
    with _FILE_LOCK:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

def write_file(path: str, obj):
    with _FILE_LOCK:
        _atomic_write(path, obj)

def read_config(base: Optional[str] = None) -> dict:
    cfg = read_json("config.json", base)
    # Fill keys added after the file was first written
    for section, values in DEFAULTS["config.json"].items():
        merged = dict(values)
        merged.update(cfg.get(section) or {})
        cfg[section] = merged
    return cfg

def set_linked_file(path: Optional[str], base: Optional[str] = None):
    cfg = read_config(base)
    cfg["store"]["linked_file"] = path
    write_json("config.json", cfg, base)
