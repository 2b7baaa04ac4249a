from flask_jwt_extended import create_access_token


def post_order(client, payload):
    resp = client.post("/orders", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["order"]


def test_submit_returns_201(client, order_payload):
    resp = client.post("/orders", json=order_payload())
    body = resp.get_json()

    assert resp.status_code == 201
    assert body["ok"] is True
    assert body["order"]["status"] == "pending"


def test_submit_validation_error_is_400(client, order_payload):
    resp = client.post("/orders", json=order_payload(quantity=0))
    body = resp.get_json()

    assert resp.status_code == 400
    assert body["ok"] is False
    assert body["error"] == "validation_error"
    assert body["details"][0]["field"] == "quantity"


def test_non_object_json_body_is_400(client, order_payload):
    resp = client.post("/orders", data="[1, 2]", content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"

    oid = post_order(client, order_payload())["id"]
    resp = client.put(f"/orders/{oid}/decision", data='"approved"', content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"

    resp = client.put(f"/orders/{oid}/accept", data='["ab"]', content_type="application/json")
    assert resp.status_code == 400
    assert client.get(f"/orders/{oid}").get_json()["order"]["status"] == "pending"


def test_full_lifecycle(client, order_payload):
    order = post_order(client, order_payload())
    oid = order["id"]

    resp = client.put(f"/orders/{oid}/decision", json={"status": "approved"})
    assert resp.status_code == 200
    assert resp.get_json()["order"]["farmerApprovalDate"]

    resp = client.put(f"/orders/{oid}/accept", json={"deliverymanId": "dm1"})
    assert resp.status_code == 200
    assert resp.get_json()["order"]["deliverymanId"] == "dm1"

    resp = client.put(f"/orders/{oid}/accept", json={"deliverymanId": "dm2"})
    body = resp.get_json()
    assert resp.status_code == 409
    assert body["error"] == "invalid_transition"
    assert body["order"]["deliverymanId"] == "dm1"

    resp = client.put(f"/orders/{oid}/delivery-status", json={"deliveryStatus": "delivered"})
    assert resp.status_code == 200
    assert resp.get_json()["order"]["deliveryCompletedDate"]

    resp = client.get(f"/orders/{order['orderId']}")
    assert resp.status_code == 200
    assert resp.get_json()["order"]["deliveryStatus"] == "delivered"


def test_disapproved_then_accept_is_409(client, order_payload):
    oid = post_order(client, order_payload())["id"]
    client.put(f"/orders/{oid}/decision", json={"status": "disapproved"})

    resp = client.put(f"/orders/{oid}/accept", json={"deliverymanId": "dm1"})
    assert resp.status_code == 409
    assert resp.get_json()["order"]["status"] == "disapproved"


def test_delivery_status_before_accept_is_409(client, order_payload):
    oid = post_order(client, order_payload())["id"]
    client.put(f"/orders/{oid}/decision", json={"status": "approved"})

    resp = client.put(f"/orders/{oid}/delivery-status", json={"deliveryStatus": "in-transit"})
    assert resp.status_code == 409


def test_unknown_order_is_404(client):
    assert client.get("/orders/64b7f0c2a1b2c3d4e5f60718").status_code == 404
    resp = client.put("/orders/ORD-20260101-00000/decision", json={"status": "approved"})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_list_by_role_and_page_size(client, order_payload):
    for item in ("Carrot", "Beans", "Leeks"):
        post_order(client, order_payload(item=item))

    resp = client.get("/orders?role=seller&id=seller-1")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["limit"] == 2
    assert [o["item"] for o in body["orders"]] == ["Leeks", "Beans"]

    body = client.get("/orders?role=seller&id=seller-1&page=2").get_json()
    assert [o["item"] for o in body["orders"]] == ["Carrot"]

    assert client.get("/orders?role=farmer&id=farmer-1&status=approved").get_json()["orders"] == []
    assert client.get("/orders?role=wizard&id=x").status_code == 400
    assert client.get("/orders?role=farmer").status_code == 400


def test_available_listing(client, order_payload):
    open_id = post_order(client, order_payload(item="Beans"))["id"]
    taken_id = post_order(client, order_payload(item="Leeks"))["id"]
    for oid in (open_id, taken_id):
        client.put(f"/orders/{oid}/decision", json={"status": "approved"})
    client.put(f"/orders/{taken_id}/accept", json={"deliverymanId": "dm1"})

    body = client.get("/orders?role=available").get_json()
    assert [o["id"] for o in body["orders"]] == [open_id]


def test_expand_parties(client, db, order_payload):
    db["users"].insert_one({"userId": "seller-1", "name": "Fresh Greens", "role": "seller"})
    post_order(client, order_payload())

    body = client.get("/orders?role=seller&id=seller-1&expand=parties").get_json()
    assert body["orders"][0]["seller"]["name"] == "Fresh Greens"
    assert body["orders"][0]["farmer"] is None


def test_summary(client, order_payload):
    oid = post_order(client, order_payload())["id"]
    client.put(f"/orders/{oid}/decision", json={"status": "approved"})

    body = client.get("/orders/summary?role=farmer&id=farmer-1").get_json()
    assert body["summary"]["byStatus"]["approved"] == 1
    assert body["summary"]["approvedRevenue"] == 5000


def test_accept_uses_jwt_identity_when_body_has_no_deliveryman(app, client, order_payload):
    oid = post_order(client, order_payload())["id"]
    client.put(f"/orders/{oid}/decision", json={"status": "approved"})

    with app.app_context():
        token = create_access_token(identity="dm9", additional_claims={"role": "deliveryman"})

    resp = client.put(f"/orders/{oid}/accept", json={}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.get_json()["order"]["deliverymanId"] == "dm9"


def test_accept_without_any_deliveryman_is_400(client, order_payload):
    oid = post_order(client, order_payload())["id"]
    client.put(f"/orders/{oid}/decision", json={"status": "approved"})

    resp = client.put(f"/orders/{oid}/accept", json={})
    assert resp.status_code == 400


def test_submit_takes_seller_from_session(client, order_payload):
    with client.session_transaction() as sess:
        sess["role"] = "seller"
        sess["user_id"] = "seller-77"

    payload = order_payload()
    payload.pop("sellerId")
    order = post_order(client, payload)
    assert order["sellerId"] == "seller-77"


def test_health_reports_disabled_store(client):
    resp = client.get("/health")
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["store"] == "unavailable"
    assert body["ok"] is False
