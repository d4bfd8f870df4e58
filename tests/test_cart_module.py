from conftest import OTHER, login


def add(client, product_id, quantity=1, price_type="retail"):
    return client.post("/api/cart/items", json={"product_id": product_id, "quantity": quantity, "price_type": price_type})


# CART-001: cart requires login
def test_cart_requires_login(client, seed):
    assert client.get("/api/cart").status_code == 401
    assert add(client, seed["serum_id"]).status_code == 401


# CART-002: add product to cart
def test_add_to_cart(customer_client, seed):
    r = add(customer_client, seed["serum_id"], 2)
    assert r.status_code == 201
    assert len(r.json["items"]) == 1
    assert r.json["items"][0]["quantity"] == 2
    assert r.json["items"][0]["unit_price"] == 100000


# CART-003: cart summary uses retail or wholesale price per line
def test_cart_totals(customer_client, seed):
    add(customer_client, seed["serum_id"], 2)
    add(customer_client, seed["cream_id"], 1, "wholesale")

    cart = customer_client.get("/api/cart").json
    assert len(cart["items"]) == 2
    assert cart["summary"]["subtotal"] == 400000  # 100000*2 + 200000
    assert cart["summary"]["item_count"] == 3
    assert cart["summary"]["currency"] == "UGX"


# CART-004: same product and price type increases quantity
def test_add_same_product_increases_quantity(customer_client, seed):
    add(customer_client, seed["serum_id"], 2)
    add(customer_client, seed["serum_id"], 3)
    cart = customer_client.get("/api/cart").json
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5


def test_different_price_types_are_separate_lines(customer_client, seed):
    add(customer_client, seed["serum_id"], 1, "retail")
    add(customer_client, seed["serum_id"], 1, "wholesale")
    assert len(customer_client.get("/api/cart").json["items"]) == 2


# CART-005: validation and stock
def test_add_validation(customer_client, seed):
    assert add(customer_client, seed["serum_id"], 0).status_code == 400
    assert add(customer_client, seed["serum_id"], 1, "vip").status_code == 400
    assert add(customer_client, seed["hidden_id"]).status_code == 404
    assert add(customer_client, 9999).status_code == 404


def test_fractional_quantity_rejected(customer_client, seed):
    r = add(customer_client, seed["serum_id"], 2.9)
    assert r.status_code == 400
    assert r.json["error"]["code"] == "validation_error"
    assert customer_client.post("/api/cart/items", json={"product_id": seed["serum_id"] + 0.5}).status_code == 400
    # whole-number floats are still integers
    assert add(customer_client, seed["serum_id"], 2.0).json["items"][0]["quantity"] == 2


def test_add_beyond_stock(customer_client, seed):
    add(customer_client, seed["cream_id"], 4)
    r = add(customer_client, seed["cream_id"], 2)
    assert r.status_code == 409
    assert r.json["error"]["details"]["available"] == 5


# CART-006: update quantity
def test_update_quantity(customer_client, seed):
    item_id = add(customer_client, seed["serum_id"], 1).json["items"][0]["id"]

    r = customer_client.patch(f"/api/cart/items/{item_id}", json={"quantity": 4})
    assert r.status_code == 200
    assert r.json["items"][0]["quantity"] == 4

    assert customer_client.patch(f"/api/cart/items/{item_id}", json={"quantity": 0}).status_code == 400
    assert customer_client.patch(f"/api/cart/items/{item_id}", json={"quantity": 11}).status_code == 409


# CART-007: remove and clear
def test_remove_and_clear(customer_client, seed):
    item_id = add(customer_client, seed["serum_id"], 1).json["items"][0]["id"]
    add(customer_client, seed["cream_id"], 1)

    r = customer_client.delete(f"/api/cart/items/{item_id}")
    assert r.status_code == 200
    assert len(r.json["items"]) == 1

    assert customer_client.delete("/api/cart").status_code == 200
    assert customer_client.get("/api/cart").json["items"] == []


# CART-008: users cannot touch each other's cart rows
def test_cart_rows_are_private(app, customer_client, seed):
    item_id = add(customer_client, seed["serum_id"], 1).json["items"][0]["id"]

    other = app.test_client()
    login(other, OTHER)
    assert other.get("/api/cart").json["items"] == []
    assert other.patch(f"/api/cart/items/{item_id}", json={"quantity": 2}).status_code == 404
    assert other.delete(f"/api/cart/items/{item_id}").status_code == 404
