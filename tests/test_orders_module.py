from kkbshop.app.extensions import db
from kkbshop.app.models import Order, Product

from conftest import OTHER, login, place_order


def order_for(client, seed, quantity=2):
    client.post("/api/cart/items", json={"product_id": seed["serum_id"], "quantity": quantity})
    return place_order(client).json


# ORD-001: order history, newest first
def test_order_history(customer_client, seed):
    first = order_for(customer_client, seed, 1)
    second = order_for(customer_client, seed, 1)

    r = customer_client.get("/api/orders")
    assert r.status_code == 200
    assert [o["id"] for o in r.json["items"]] == [second["id"], first["id"]]


# ORD-002: confirmation view includes items
def test_order_detail(customer_client, seed):
    order = order_for(customer_client, seed)
    r = customer_client.get(f"/api/orders/{order['id']}")
    assert r.status_code == 200
    assert r.json["order_number"] == order["order_number"]
    assert r.json["items"][0]["quantity"] == 2


# ORD-003: other users cannot see the order
def test_orders_are_private(app, customer_client, seed):
    order = order_for(customer_client, seed)
    other = app.test_client()
    login(other, OTHER)
    assert other.get("/api/orders").json["items"] == []
    assert other.get(f"/api/orders/{order['id']}").status_code == 404
    assert other.post(f"/api/orders/{order['id']}/cancel").status_code == 404


# ORD-004: cancelling restores stock
def test_cancel_pending_order(app, customer_client, seed):
    order = order_for(customer_client, seed, 3)
    with app.app_context():
        assert db.session.get(Product, seed["serum_id"]).stock_quantity == 7

    r = customer_client.post(f"/api/orders/{order['id']}/cancel")
    assert r.status_code == 200
    assert r.json["status"] == "cancelled"
    with app.app_context():
        assert db.session.get(Product, seed["serum_id"]).stock_quantity == 10

    # second cancel is rejected
    assert customer_client.post(f"/api/orders/{order['id']}/cancel").status_code == 409


def test_cannot_cancel_dispatched_order(app, customer_client, seed):
    order = order_for(customer_client, seed)
    with app.app_context():
        db.session.get(Order, order["id"]).status = "dispatched"
        db.session.commit()

    r = customer_client.post(f"/api/orders/{order['id']}/cancel")
    assert r.status_code == 409
