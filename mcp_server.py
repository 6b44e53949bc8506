"""
Local MCP server for the shop ledger.

This exposes read-only views of the store through FastMCP: inventory status,
period reports, best sellers and pending drafts. The server works on a
``Store`` loaded from the data directory (or one passed in by the caller) and
returns MCP-compliant content arrays.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

from fastmcp import FastMCP

from models import reports
from models.drafts import describe_draft, list_drafts
from models.store import Store, load_store
from utils.file_manager import ensure_defaults, read_config

LOG = logging.getLogger(__name__)

server_instructions = """
This MCP server provides read-only access to a small shop's catalog, sales log
and pending sales. Use it to check stock levels, pull daily/weekly/general
sales reports, find best sellers and list drafts waiting to be completed.
"""

def _content(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}

def inventory_payload(store: Store) -> Dict[str, Any]:
    return {
        "products": [
            {"id": p["id"], "name": p["name"], "price": p["price"], "stock": p["stock"]}
            for p in store.products
        ],
        "out_of_stock": [p["name"] for p in store.products if int(p["stock"]) == 0],
    }

def report_payload(store: Store, period: str) -> Dict[str, Any]:
    try:
        return reports.summary(store.sales, period)
    except ValueError as e:
        return {"error": str(e)}

def top_payload(store: Store, n: int, period: str = "general") -> Dict[str, Any]:
    try:
        filtered = reports.filter_by_window(store.sales, period)
    except ValueError as e:
        return {"error": str(e)}
    return {"period": period, "top": reports.top_products(filtered, n, store.products)}

def store_loader(store: Optional[Store] = None, data_dir: Optional[str] = None) -> Callable[[], Store]:
    """Return a callable giving the store each tool should read.

    A store passed in is shared as is. Otherwise the data directory is read
    again on every call, so changes written by the Flask app show up.
    """
    if store is not None:
        return lambda: store
    ensure_defaults(data_dir)

    def load() -> Store:
        cfg = read_config(data_dir)
        return load_store(data_dir, linked_file=cfg["store"].get("linked_file"))

    return load

def create_server(store: Optional[Store] = None, data_dir: Optional[str] = None) -> FastMCP:
    current = store_loader(store, data_dir)
    mcp = FastMCP(name="Shop Ledger Local MCP", instructions=server_instructions)

    @mcp.tool()
    async def inventory_status() -> Dict[str, Any]:
        """
        Return every product with its current price and stock.

        Returns:
            MCP content array with JSON:
            {"products": [{"id", "name", "price", "stock"}], "out_of_stock": [names]}
        """
        return _content(inventory_payload(current()))

    @mcp.tool()
    async def sales_report(period: str = "daily") -> Dict[str, Any]:
        """
        Return the sales report for a period.

        Args:
            period: "daily" (since midnight, grouped by product), "weekly"
                    (last seven days, grouped by date) or "general" (all sales).

        Edge cases:
            - An unknown period returns {"error": "..."}.
        """
        return _content(report_payload(current(), period))

    @mcp.tool()
    async def top_products(n: int = 0, period: str = "general") -> Dict[str, Any]:
        """
        Return the best-selling products by revenue.

        Revenue is recomputed from each product's price history at the time
        of sale. Deleted products keep the price stored on their sales.
        """
        s = current()
        default_top = int(read_config(s.data_dir)["reports"].get("top_products", 5))
        return _content(top_payload(s, n or default_top, period))

    @mcp.tool()
    async def pending_drafts() -> Dict[str, Any]:
        """
        List pending sales, most recently updated first.

        Items whose product was deleted carry "dangling": true.
        """
        s = current()
        drafts = [describe_draft(s, d) for d in list_drafts(s)]
        return _content({"drafts": drafts})

    return mcp


def main():
    logging.basicConfig(level=logging.INFO)
    server = create_server()
    LOG.info("Starting local MCP server on 0.0.0.0:8000 (HTTP)")
    server.run(transport="http", host="0.0.0.0", port=8000, path="/mcp")


if __name__ == "__main__":
    main()
