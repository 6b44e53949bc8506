import logging
from typing import Optional
from flask import Flask, current_app, jsonify, request
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from backup import backup_store
from models.errors import InsufficientStockError, NotFoundError, PersistenceError
from models.store import Store, export_store, import_store, load_store
from models import drafts as draft_model
from models import inventory, reports
from models.sales import add_line_item, all_sales, cart_total, change_due, commit
from utils.dates import now, parse_date
from utils.file_manager import ensure_defaults, read_config, set_linked_file

LOG = logging.getLogger(__name__)

def _store() -> Store:
    return current_app.config["STORE"]

def _body() -> dict:
    return request.get_json(force=True, silent=True) or {}

def _build_items(store: Store, raw_items) -> list:
    if not isinstance(raw_items, list):
        raise ValueError("Provide 'items' as a list of {productId, quantity}.")
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValueError("Each item must be an object with productId and quantity.")
        add_line_item(store, items, raw.get("productId"), raw.get("quantity"))
    return items

def _schedule_backups(app: Flask, scheduler: BackgroundScheduler):
    cfg = read_config(app.config["STORE"].data_dir)
    backup_cfg = cfg["backup"]
    if not backup_cfg.get("enabled"):
        return
    seconds = int(backup_cfg.get("interval_seconds", 3600))
    keep = int(backup_cfg.get("keep", 10))
    scheduler.add_job(
        backup_store,
        trigger=IntervalTrigger(seconds=seconds),
        args=[app.config["STORE"], keep],
        id="store_backup",
        replace_existing=True,
    )
    if not scheduler.running:
        scheduler.start()
    LOG.info("Scheduled store backups every %s seconds", seconds)

def create_app(data_dir: Optional[str] = None, start_scheduler: bool = True) -> Flask:
    ensure_defaults(data_dir)
    cfg = read_config(data_dir)
    store = load_store(data_dir, linked_file=cfg["store"].get("linked_file"))

    app = Flask(__name__)
    app.config["STORE"] = store
    app.config["TOP_PRODUCTS"] = int(cfg["reports"].get("top_products", 5))
    scheduler = BackgroundScheduler(daemon=True)
    app.config["SCHEDULER"] = scheduler
    if start_scheduler:
        _schedule_backups(app, scheduler)

    # -------- Errors --------
    @app.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify({"ok": False, "error": str(e)}), 404

    @app.errorhandler(InsufficientStockError)
    def insufficient_stock(e):
        return jsonify({"ok": False, "error": str(e), "shortfalls": e.shortfalls}), 409

    @app.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"ok": False, "error": str(e)}), 400

    @app.errorhandler(PersistenceError)
    def persistence_failed(e):
        return jsonify({"ok": False, "error": str(e)}), 500

    @app.get("/status")
    def status():
        s = _store()
        jobs = scheduler.get_jobs()
        return jsonify({
            "products": len(s.products),
            "sales": len(s.sales),
            "drafts": len(s.drafts),
            "linked_file": s.linked_file,
            "scheduler_running": scheduler.running,
            "next_backup": jobs[0].next_run_time.isoformat() if jobs else None,
        })

    # -------- Products --------
    @app.get("/products")
    def products_get():
        return jsonify({"ok": True, "products": inventory.search_products(_store(), request.args.get("q", ""))})

    @app.post("/products")
    def products_post():
        data = _body()
        s = _store()
        with s.lock:
            product = inventory.add_product(s, data.get("name"), data.get("price"), data.get("stock", 0))
        return jsonify({"ok": True, "product": product}), 201

    @app.patch("/products/<int:product_id>")
    def products_patch(product_id):
        data = _body()
        s = _store()
        with s.lock:
            product = inventory.edit_product(
                s, product_id, name=data.get("name"), price=data.get("price"), stock=data.get("stock")
            )
        return jsonify({"ok": True, "product": product})

    @app.delete("/products/<int:product_id>")
    def products_delete(product_id):
        s = _store()
        with s.lock:
            product = inventory.delete_product(s, product_id)
        return jsonify({"ok": True, "product": product})

    @app.post("/products/<int:product_id>/price")
    def products_price(product_id):
        data = _body()
        if data.get("price") is None:
            return jsonify({"ok": False, "error": "Provide 'price'."}), 400
        s = _store()
        with s.lock:
            product = inventory.update_price(s, product_id, data["price"])
        return jsonify({"ok": True, "product": product})

    @app.post("/products/<int:product_id>/stock")
    def products_stock(product_id):
        data = _body()
        s = _store()
        with s.lock:
            product = inventory.update_stock(s, product_id, data.get("stock"))
        return jsonify({"ok": True, "product": product})

    @app.get("/products/<int:product_id>/history")
    def products_history(product_id):
        return jsonify({"ok": True, "history": inventory.price_history(_store(), product_id)})

    # -------- Sales --------
    @app.get("/sales")
    def sales_get():
        return jsonify({"ok": True, "sales": all_sales(_store())})

    @app.post("/sales")
    def sales_post():
        data = _body()
        s = _store()
        with s.lock:
            items = _build_items(s, data.get("items"))
            total = cart_total(items)
            sales = commit(s, items, title=data.get("title"))
        payload = {"ok": True, "sales": sales, "total": total}
        if data.get("payment") is not None:
            payload["change"] = change_due(total, data["payment"])
        return jsonify(payload), 201

    # -------- Drafts --------
    @app.get("/drafts")
    def drafts_get():
        s = _store()
        return jsonify({"ok": True, "drafts": [draft_model.describe_draft(s, d) for d in draft_model.list_drafts(s)]})

    @app.post("/drafts")
    def drafts_post():
        data = _body()
        s = _store()
        with s.lock:
            draft = draft_model.save_draft(s, _build_items(s, data.get("items", [])), data.get("title"))
        return jsonify({"ok": True, "draft": draft}), 201

    @app.put("/drafts/<draft_id>")
    def drafts_put(draft_id):
        data = _body()
        s = _store()
        with s.lock:
            draft = draft_model.update_draft(s, draft_id, _build_items(s, data.get("items", [])), data.get("title"))
        return jsonify({"ok": True, "draft": draft})

    @app.post("/drafts/<draft_id>/items")
    def drafts_add_item(draft_id):
        data = _body()
        s = _store()
        with s.lock:
            draft = draft_model.add_draft_item(s, draft_id, data.get("productId"), data.get("quantity"))
        return jsonify({"ok": True, "draft": draft})

    @app.delete("/drafts/<draft_id>/items/<int:index>")
    def drafts_remove_item(draft_id, index):
        s = _store()
        with s.lock:
            draft = draft_model.remove_draft_item(s, draft_id, index)
        return jsonify({"ok": True, "draft": draft})

    @app.post("/drafts/<draft_id>/complete")
    def drafts_complete(draft_id):
        s = _store()
        with s.lock:
            sales = draft_model.complete_draft(s, draft_id)
        return jsonify({"ok": True, "sales": sales})

    @app.post("/drafts/complete")
    def drafts_complete_all():
        s = _store()
        with s.lock:
            sales = draft_model.complete_all_drafts(s)
        return jsonify({"ok": True, "sales": sales})

    @app.delete("/drafts/<draft_id>")
    def drafts_delete(draft_id):
        s = _store()
        with s.lock:
            draft = draft_model.discard_draft(s, draft_id)
        return jsonify({"ok": True, "draft": draft})

    # -------- Reports --------
    @app.get("/reports/top")
    def reports_top():
        s = _store()
        period = request.args.get("period", "general")
        n = int(request.args.get("n", current_app.config["TOP_PRODUCTS"]))
        filtered = reports.filter_by_window(s.sales, period)
        return jsonify({"ok": True, "period": period, "top": reports.top_products(filtered, n, s.products)})

    @app.get("/reports/range")
    def reports_range():
        start, end = request.args.get("start"), request.args.get("end")
        if not start:
            return jsonify({"ok": False, "error": "Provide 'start' (and optionally 'end')."}), 400
        s = _store()
        if end:
            filtered = reports.filter_by_range(s.sales, start, end)
        else:
            filtered = reports.filter_by_day(s.sales, start)
        return jsonify({
            "ok": True,
            "sales": filtered,
            "total": reports.total_for_window(filtered),
            "transactions": len(filtered),
        })

    @app.get("/reports/<period>")
    def reports_period(period):
        at = request.args.get("at")
        return jsonify({"ok": True, "report": reports.summary(_store().sales, period, parse_date(at) if at else now())})

    # -------- Import / export --------
    @app.post("/export")
    def export_post():
        path = _body().get("path")
        if not path:
            return jsonify({"ok": False, "error": "Provide 'path'."}), 400
        s = _store()
        with s.lock:
            export_store(s, path)
            set_linked_file(path, s.data_dir)
        return jsonify({"ok": True, "path": path})

    @app.post("/import")
    def import_post():
        path = _body().get("path")
        if not path:
            return jsonify({"ok": False, "error": "Provide 'path'."}), 400
        s = _store()
        with s.lock:
            import_store(s, path)
            set_linked_file(path, s.data_dir)
        return jsonify({"ok": True, "products": len(s.products), "sales": len(s.sales)})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(host="0.0.0.0", port=5000, debug=True)
