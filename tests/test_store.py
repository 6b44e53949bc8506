import json
import os

import pytest

from models.errors import PersistenceError
from models.inventory import add_product, update_price
from models.sales import add_line_item, commit
from models.store import Store, export_store, import_store, load_store, save_store
import utils.file_manager as fm


def _populated(store):
    coke = add_product(store, "Coke", 1.25, 10)
    update_price(store, coke["id"], 1.5)
    items = []
    add_line_item(store, items, coke["id"], 2)
    commit(store, items, title="Counter")
    return store


def test_export_then_import_round_trips(store, tmp_path):
    _populated(store)
    target = str(tmp_path / "exports" / "shop.json")
    export_store(store, target)

    fresh = Store(data_dir=str(tmp_path / "other"))
    import_store(fresh, target)

    assert fresh.products == store.products
    assert fresh.sales == store.sales
    # imported data is also persisted locally
    assert load_store(fresh.data_dir).snapshot() == store.snapshot()


def test_export_links_the_file_for_later_saves(store, tmp_path):
    target = str(tmp_path / "shop.json")
    export_store(store, target)
    add_product(store, "Chips", 1.0, 1)
    with open(target, encoding="utf-8") as f:
        assert json.load(f)["products"][0]["name"] == "Chips"


def test_corrupt_store_loads_empty(data_dir):
    with open(os.path.join(data_dir, "store.json"), "w", encoding="utf-8") as f:
        f.write("{not json")
    with open(os.path.join(data_dir, "drafts.json"), "w", encoding="utf-8") as f:
        f.write('{"wrong": "shape"}')
    store = load_store(data_dir)
    assert store.products == [] and store.sales == [] and store.drafts == []


def test_missing_files_load_empty(tmp_path):
    store = load_store(str(tmp_path / "nowhere"))
    assert store.snapshot() == {"products": [], "sales": []}


def test_failed_linked_file_write_falls_back_to_local_copy(store, tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    store.linked_file = str(blocker / "shop.json")

    add_product(store, "Coke", 1.25, 3)

    assert "keeping local copy only" in caplog.text
    assert load_store(store.data_dir).products[0]["name"] == "Coke"


def test_failed_local_write_does_not_raise(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    store = Store(products=[{"id": 1}], data_dir=str(blocker / "data"))
    save_store(store)
    assert "failed" in caplog.text


def test_import_errors_are_surfaced(store, tmp_path):
    with pytest.raises(PersistenceError):
        import_store(store, str(tmp_path / "missing.json"))

    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2, 3]")
    with pytest.raises(PersistenceError):
        import_store(store, str(bad))

    garbled = tmp_path / "garbled.json"
    garbled.write_text("{")
    with pytest.raises(PersistenceError):
        import_store(store, str(garbled))


def test_export_errors_are_surfaced(store, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(PersistenceError):
        export_store(store, str(blocker / "shop.json"))
    assert store.linked_file is None


def test_config_fills_missing_sections(data_dir):
    fm.write_json("config.json", {"backup": {"enabled": True}}, data_dir)
    cfg = fm.read_config(data_dir)
    assert cfg["backup"]["enabled"] is True
    assert cfg["backup"]["keep"] == 10
    assert cfg["reports"]["top_products"] == 5
