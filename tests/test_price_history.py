from datetime import datetime

import pytest

from models.errors import NotFoundError
from models.inventory import add_product, update_price
from models.price_history import price_at, record_price_change

T1 = datetime(2024, 1, 10, 9, 0)
T2 = datetime(2024, 2, 10, 9, 0)


@pytest.fixture
def repriced(store):
    p = add_product(store, "Coke", 1.00, 10)
    update_price(store, p["id"], 1.50, at=T1)
    update_price(store, p["id"], 2.00, at=T2)
    return p


def test_before_first_change_uses_oldest_entry(repriced):
    assert price_at(repriced, datetime(2023, 12, 31)) == 1.00


def test_between_changes_uses_price_then_in_effect(repriced):
    assert price_at(repriced, datetime(2024, 1, 20)) == 1.50


def test_at_or_after_latest_change_uses_current_price(repriced):
    assert price_at(repriced, T2) == 2.00
    assert price_at(repriced, datetime(2025, 1, 1)) == 2.00


def test_change_instant_belongs_to_new_price(repriced):
    assert price_at(repriced, T1) == 1.50


def test_empty_history_uses_current_price(store):
    p = add_product(store, "Water", 0.75, 1)
    assert price_at(p, datetime(2000, 1, 1)) == 0.75


def test_lookup_ignores_insertion_order():
    product = {
        "id": 1, "name": "Chips", "price": 3.0, "stock": 0,
        "priceHistory": [
            {"price": 2.0, "date": T2.isoformat()},
            {"price": 1.0, "date": T1.isoformat()},
        ],
    }
    assert price_at(product, datetime(2024, 1, 1)) == 1.0
    assert price_at(product, datetime(2024, 1, 15)) == 2.0


def test_aware_timestamps_are_accepted():
    product = {"id": 1, "name": "Chips", "price": 3.0, "stock": 0,
               "priceHistory": [{"price": 2.0, "date": "2024-01-10T09:00:00Z"}]}
    assert price_at(product, datetime(2023, 1, 1)) == 2.0
    assert price_at(product, datetime(2025, 1, 1)) == 3.0


def test_record_price_change_requires_product():
    with pytest.raises(NotFoundError):
        record_price_change(None, 1.0)
