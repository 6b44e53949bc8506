from datetime import datetime
from typing import Dict, List, Optional
from models.errors import InsufficientStockError, InvalidArgumentError, NotFoundError
from models.price_history import history_newest_first, record_price_change
from models.store import Store, next_id, save_store

def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidArgumentError("Product name must not be empty")
    return name

def _clean_price(price) -> float:
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Invalid price: {price!r}")
    if value < 0 or value != value:
        raise InvalidArgumentError("Price must be a non-negative number")
    return round(value, 2)

def _clean_stock(stock) -> int:
    if isinstance(stock, bool) or not isinstance(stock, int):
        raise InvalidArgumentError(f"Stock must be an integer, got {stock!r}")
    if stock < 0:
        raise InvalidArgumentError("Stock must not be negative")
    return stock

def find_product(store: Store, product_id) -> Optional[Dict]:
    for p in store.products:
        if p["id"] == product_id:
            return p
    return None

def get_product(store: Store, product_id) -> Dict:
    product = find_product(store, product_id)
    if product is None:
        raise NotFoundError(f"Unknown product: {product_id}")
    return product

def _new_product_id(store: Store) -> int:
    # Ids of deleted products stay reserved by the sales and drafts that mention them
    drafted = [item for d in store.drafts for item in d.get("items", [])]
    return max(
        next_id(store.products),
        next_id(store.sales, key="productId"),
        next_id(drafted, key="productId"),
    )

def add_product(store: Store, name: str, price: float, initial_stock: int) -> Dict:
    product = {
        "id": _new_product_id(store),
        "name": _clean_name(name),
        "price": _clean_price(price),
        "stock": _clean_stock(initial_stock),
        "priceHistory": [],
    }
    store.products.append(product)
    save_store(store)
    return product

def update_price(store: Store, product_id, new_price: float, at: Optional[datetime] = None) -> Dict:
    product = get_product(store, product_id)
    new_price = _clean_price(new_price)
    old_price = float(product["price"])
    if old_price == new_price:
        return product
    record_price_change(product, old_price, at)
    product["price"] = new_price
    save_store(store)
    return product

def update_stock(store: Store, product_id, new_stock: int) -> Dict:
    new_stock = _clean_stock(new_stock)
    product = get_product(store, product_id)
    product["stock"] = new_stock
    save_store(store)
    return product

def decrement_stock(store: Store, product_id, quantity: int) -> Dict:
    """Take ``quantity`` units out of stock. Callers persist afterwards."""
    product = get_product(store, product_id)
    if quantity < 1:
        raise InvalidArgumentError("Quantity must be at least 1")
    available = int(product["stock"])
    if quantity > available:
        raise InsufficientStockError([{
            "productId": product["id"],
            "productName": product["name"],
            "requested": quantity,
            "available": available,
        }])
    product["stock"] = available - quantity
    return product

def edit_product(store: Store, product_id, name: Optional[str] = None, price=None, stock=None) -> Dict:
    product = get_product(store, product_id)
    # Validate everything before touching the record
    clean_name = _clean_name(name) if name is not None else None
    if price is not None:
        _clean_price(price)
    if stock is not None:
        _clean_stock(stock)
    if clean_name is not None:
        product["name"] = clean_name
    if price is not None:
        update_price(store, product_id, price)
    if stock is not None:
        update_stock(store, product_id, stock)
    save_store(store)
    return product

def delete_product(store: Store, product_id) -> Dict:
    product = get_product(store, product_id)
    store.products = [p for p in store.products if p["id"] != product_id]
    save_store(store)
    return product

def search_products(store: Store, term: str = "") -> List[Dict]:
    term = (term or "").strip().lower()
    if not term:
        return list(store.products)
    return [
        p for p in store.products
        if term in p["name"].lower() or term in str(p["price"])
    ]

def price_history(store: Store, product_id) -> List[Dict]:
    return history_newest_first(get_product(store, product_id))
