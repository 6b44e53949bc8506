import json
from datetime import datetime, timedelta

from backup import backup_store, list_backups
from models.inventory import add_product


def test_backup_writes_snapshot(store):
    add_product(store, "Coke", 1.25, 3)
    path = backup_store(store, keep=5, at=datetime(2024, 1, 1, 12, 0, 0))
    assert path.endswith("store-20240101T120000.json")
    with open(path, encoding="utf-8") as f:
        assert json.load(f)["products"][0]["name"] == "Coke"


def test_backup_prunes_old_snapshots(store):
    start = datetime(2024, 1, 1)
    for i in range(4):
        backup_store(store, keep=2, at=start + timedelta(hours=i))
    kept = list_backups(store)
    assert len(kept) == 2
    assert kept[-1].endswith("store-20240101T030000.json")


def test_backup_failure_is_logged(tmp_path, caplog):
    from models.store import Store

    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    store = Store(data_dir=str(blocker))
    assert backup_store(store) is None
    assert "Backup" in caplog.text
