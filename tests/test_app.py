import pytest

from app import create_app


@pytest.fixture
def client(data_dir):
    app = create_app(data_dir, start_scheduler=False)
    app.config["TESTING"] = True
    return app.test_client()


def _add(client, name, price, stock):
    res = client.post("/products", json={"name": name, "price": price, "stock": stock})
    assert res.status_code == 201
    return res.get_json()["product"]


def test_product_crud_and_history(client):
    coke = _add(client, "Coke", 1.25, 10)

    res = client.post(f"/products/{coke['id']}/price", json={"price": 1.5})
    assert res.get_json()["product"]["price"] == 1.5
    res = client.post(f"/products/{coke['id']}/stock", json={"stock": 7})
    assert res.get_json()["product"]["stock"] == 7
    res = client.patch(f"/products/{coke['id']}", json={"name": "Coca-Cola"})
    assert res.get_json()["product"]["name"] == "Coca-Cola"

    history = client.get(f"/products/{coke['id']}/history").get_json()["history"]
    assert [h["price"] for h in history] == [1.25]

    assert len(client.get("/products?q=coca").get_json()["products"]) == 1
    assert client.delete(f"/products/{coke['id']}").status_code == 200
    assert client.get("/products").get_json()["products"] == []


def test_error_mapping(client):
    assert client.post("/products/99/price", json={"price": 1}).status_code == 404
    assert client.post("/products", json={"name": "", "price": 1}).status_code == 400
    coke = _add(client, "Coke", 1.0, 1)
    assert client.post(f"/products/{coke['id']}/stock", json={"stock": -1}).status_code == 400

    res = client.post("/sales", json={"items": [{"productId": coke["id"], "quantity": 2}]})
    assert res.status_code == 409
    assert res.get_json()["shortfalls"][0]["available"] == 1


def test_sale_with_change_and_reports(client):
    coke = _add(client, "Coke", 1.25, 10)
    chips = _add(client, "Chips", 1.0, 10)

    res = client.post("/sales", json={
        "items": [{"productId": coke["id"], "quantity": 2}, {"productId": chips["id"], "quantity": 1}],
        "title": "Walk-in",
        "payment": 5,
    })
    body = res.get_json()
    assert res.status_code == 201
    assert body["total"] == 3.5
    assert body["change"] == 1.5
    assert len(client.get("/sales").get_json()["sales"]) == 2

    daily = client.get("/reports/daily").get_json()["report"]
    assert daily["total"] == 3.5
    assert [g["productName"] for g in daily["groups"]] == ["Chips", "Coke"]

    top = client.get("/reports/top?n=1").get_json()["top"]
    assert top[0]["productName"] == "Coke"

    assert client.get("/reports/monthly").status_code == 400


def test_draft_workflow(client):
    coke = _add(client, "Coke", 1.0, 5)
    first = client.post("/drafts", json={"title": "A", "items": [{"productId": coke["id"], "quantity": 2}]})
    second = client.post("/drafts", json={"title": "B", "items": []})
    assert first.status_code == 201
    draft_id = second.get_json()["draft"]["id"]

    res = client.post(f"/drafts/{draft_id}/items", json={"productId": coke["id"], "quantity": 3})
    assert res.get_json()["draft"]["total"] == 3.0
    assert len(client.get("/drafts").get_json()["drafts"]) == 2

    res = client.post("/drafts/complete")
    assert len(res.get_json()["sales"]) == 2
    assert client.get("/drafts").get_json()["drafts"] == []
    products = client.get("/products").get_json()["products"]
    assert products[0]["stock"] == 0

    assert client.delete(f"/drafts/{draft_id}").status_code == 404


def test_export_and_import(client, tmp_path):
    _add(client, "Coke", 1.0, 5)
    target = str(tmp_path / "backup.json")
    assert client.post("/export", json={"path": target}).status_code == 200
    assert client.get("/status").get_json()["linked_file"] == target

    res = client.post("/import", json={"path": target})
    assert res.get_json()["products"] == 1
    assert client.post("/import", json={"path": str(tmp_path / "nope.json")}).status_code == 500
