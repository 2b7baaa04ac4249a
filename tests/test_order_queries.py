import pytest
from bson import ObjectId

from backend.services.errors import ValidationError
from backend.services.orders.order_queries import OrderQueries


@pytest.fixture
def seeded(service, order_payload):
    """
    o1 pending      seller-1 -> farmer-1
    o2 approved     seller-1 -> farmer-1, unaccepted
    o3 approved     seller-2 -> farmer-1, accepted by dm1, in transit
    o4 disapproved  seller-2 -> farmer-2
    """
    o1 = service.submit_order(order_payload(item="Carrot"))
    o2 = service.submit_order(order_payload(item="Beans"))
    o3 = service.submit_order(order_payload(item="Leeks", sellerId="seller-2"))
    o4 = service.submit_order(order_payload(item="Potato", sellerId="seller-2", farmerId="farmer-2"))

    service.decide(o2["id"], {"status": "approved"})
    service.decide(o3["id"], {"status": "approved"})
    service.accept_delivery(o3["id"], {"deliverymanId": "dm1"})
    service.advance_delivery(o3["id"], {"deliveryStatus": "in-transit"})
    service.decide(o4["id"], {"status": "disapproved"})
    return o1, o2, o3, o4


def items(result):
    return [o["item"] for o in result["orders"]]


def test_available_for_delivery_excludes_accepted(queries, seeded):
    assert items(queries.available_for_delivery()) == ["Beans"]


def test_seller_view_is_newest_first(queries, seeded):
    assert items(queries.for_seller("seller-1")) == ["Beans", "Carrot"]
    assert items(queries.for_seller("seller-2", status="disapproved")) == ["Potato"]


def test_farmer_view_with_status_filter(queries, seeded):
    assert items(queries.for_farmer("farmer-1")) == ["Leeks", "Beans", "Carrot"]
    assert items(queries.for_farmer("farmer-1", status="approved")) == ["Leeks", "Beans"]
    assert items(queries.for_farmer("farmer-1", status="Pending")) == ["Carrot"]


def test_deliveryman_view_with_delivery_status(queries, seeded):
    assert items(queries.for_deliveryman("dm1")) == ["Leeks"]
    assert items(queries.for_deliveryman("dm1", delivery_status="in-transit")) == ["Leeks"]
    assert items(queries.for_deliveryman("dm1", delivery_status="delivered")) == []
    assert items(queries.for_deliveryman("dm2")) == []


def test_bad_filters_are_validation_errors(queries, seeded):
    with pytest.raises(ValidationError):
        queries.for_farmer("farmer-1", status="farmerApproved")
    with pytest.raises(ValidationError):
        queries.for_deliveryman("dm1", delivery_status="lost")
    with pytest.raises(ValidationError):
        queries.list("admin", "x")
    with pytest.raises(ValidationError):
        queries.list("seller", None)
    with pytest.raises(ValidationError):
        queries.all_orders(page=0)


def test_paging_is_capped(store, seeded):
    q = OrderQueries(store, page_size=2, max_page_size=3)

    first = q.all_orders()
    assert first["limit"] == 2
    assert items(first) == ["Potato", "Leeks"]
    assert items(q.all_orders(page=2)) == ["Beans", "Carrot"]
    assert q.all_orders(limit=500)["limit"] == 3


def test_list_dispatches_by_role(queries, seeded):
    assert items(queries.list("available")) == ["Beans"]
    assert items(queries.list("deliveryman", "dm1")) == ["Leeks"]
    assert len(queries.list("all")["orders"]) == 4


def test_with_parties_joins_users(queries, db, seeded):
    farmer_oid = ObjectId()
    db["users"].insert_many([
        {"userId": "seller-1", "name": "Fresh Greens", "role": "seller", "phone": "0771", "password": "x"},
        {"_id": farmer_oid, "fullName": "Nimal", "role": "farmer"},
        {"user_id": "dm1", "name": "Kasun", "role": "deliveryman"},
    ])
    db["seller_orders"].update_many({"farmer_id": "farmer-1"}, {"$set": {"farmer_id": str(farmer_oid)}})

    orders = queries.with_parties(queries.list("seller", "seller-1")["orders"])

    assert orders[0]["seller"]["name"] == "Fresh Greens"
    assert "password" not in orders[0]["seller"]
    assert orders[0]["farmer"]["name"] == "Nimal"
    assert orders[0]["deliveryman"] is None

    leeks = queries.with_parties(queries.for_deliveryman("dm1")["orders"])
    assert leeks[0]["deliveryman"]["name"] == "Kasun"
    assert leeks[0]["seller"] is None


def test_summary_counts(queries, seeded):
    summary = queries.summary("farmer", "farmer-1")

    assert summary["total"] == 3
    assert summary["byStatus"] == {"pending": 1, "approved": 2, "disapproved": 0}
    assert summary["byDeliveryStatus"]["in-transit"] == 1
    assert summary["approvedRevenue"] == 10000

    with pytest.raises(ValidationError):
        queries.summary("available", "x")
