# backend/tests/test_stock_api.py
import pytest

from models.category import Category
from models.stock import StockMovement
from utils.permissions import Capability, Role
from conftest import auth_header, make_category, make_company, make_item, make_user


@pytest.fixture
def clerk(db, company):
    """Can move stock but sees neither cost nor profit."""
    return make_user(db, "clerk@acme.com", company, capabilities=[Capability.ADD_STOCK, Capability.REMOVE_STOCK])


@pytest.fixture
def hammer(db, company, manager):
    return make_item(db, company, manager, quantity=10, cost_price=5, selling_price=8, sku="HAM", barcode="5900000000001")


def test_create_item(client, manager):
    response = client.post(
        "/stock",
        json={"name": "Hammer", "quantity": 10, "costPrice": 5, "sellingPrice": 8, "minStockLevel": 2},
        headers=auth_header(manager),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Hammer"
    assert body["quantity"] == 10
    assert body["cost_price"] == 5
    assert body["profit"] == 30
    assert body["sku"].startswith("SKU-")
    assert body["min_stock_level"] == 2


def test_create_item_requires_add_capability(client, db, company):
    viewer = make_user(db, "viewer@acme.com", company)
    response = client.post("/stock", json={"name": "Saw"}, headers=auth_header(viewer))
    assert response.status_code == 403


def test_pending_user_has_no_stock_access(client, db):
    pending = make_user(db, "pending@acme.com")
    response = client.get("/stock", headers=auth_header(pending))
    assert response.status_code == 403
    assert response.json()["detail"] == "Your account is waiting to be assigned to a company"


def test_list_hides_cost_and_profit(client, clerk, manager, hammer):
    as_clerk = client.get("/stock", headers=auth_header(clerk)).json()
    as_manager = client.get("/stock", headers=auth_header(manager)).json()

    assert "cost_price" not in as_clerk[0]
    assert "profit" not in as_clerk[0]
    assert as_clerk[0]["selling_price"] == 8
    assert as_manager[0]["cost_price"] == 5
    assert as_manager[0]["profit"] == 30


def test_list_shows_only_own_company(client, db, hammer):
    other = make_company(db, "Other")
    outsider = make_user(db, "boss@other.com", other, role=Role.MANAGER)
    assert client.get("/stock", headers=auth_header(outsider)).json() == []


def test_receipt_updates_average_cost(client, manager, hammer):
    response = client.post(
        "/stock/movement",
        json={"stockItemId": hammer.id, "quantity": 5, "type": "IN", "costPrice": 8},
        headers=auth_header(manager),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "5 x 'Hammer' added to stock. Remaining: 15"
    assert body["item"]["quantity"] == 15
    assert body["item"]["cost_price"] == 6
    assert body["movement"]["quantity"] == 5
    assert body["movement"]["type"] == "IN"
    assert body["movement"]["stock_item_name"] == "Hammer"


def test_issue_beyond_stock(client, clerk, hammer):
    response = client.post(
        "/stock/movement",
        json={"stockItemId": hammer.id, "quantity": 11, "type": "OUT"},
        headers=auth_header(clerk),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Insufficient stock. Available quantity: 10", "available": 10}


def test_direction_needs_matching_capability(client, db, company, hammer):
    receiver = make_user(db, "receiver@acme.com", company, capabilities=[Capability.ADD_STOCK])
    headers = auth_header(receiver)

    issued = client.post("/stock/movement", json={"stockItemId": hammer.id, "quantity": 1, "type": "OUT"}, headers=headers)
    received = client.post("/stock/movement", json={"stockItemId": hammer.id, "quantity": 1, "type": "IN"}, headers=headers)

    assert issued.status_code == 403
    assert issued.json()["detail"] == "You are not allowed to remove stock"
    assert received.status_code == 200


@pytest.mark.parametrize("body", [
    {"quantity": 0, "type": "IN"},
    {"quantity": 1, "type": "ADJUST"},
    {"quantity": 1, "type": "IN", "costPrice": -2},
    {"quantity": 1, "type": "IN", "warehouse": "B"},
])
def test_invalid_movement_bodies(client, manager, hammer, body):
    response = client.post("/stock/movement", json={"stockItemId": hammer.id, **body}, headers=auth_header(manager))
    assert response.status_code == 422


def test_movement_on_foreign_item(client, db, hammer):
    other = make_company(db, "Other")
    outsider = make_user(db, "boss@other.com", other, role=Role.MANAGER)

    response = client.post(
        "/stock/movement",
        json={"stockItemId": hammer.id, "quantity": 1, "type": "OUT"},
        headers=auth_header(outsider),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Stock item not found"


def test_scan_transaction_by_barcode(client, clerk, hammer):
    response = client.post(
        "/stock/scan-transaction",
        json={"code": "5900000000001", "quantity": 3, "type": "OUT"},
        headers=auth_header(clerk),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["item"]["quantity"] == 7
    assert body["movement"]["quantity"] == -3
    assert body["movement"]["selling_price"] == 8
    assert "removed from stock" in body["message"]


def test_scan_transaction_unknown_code(client, clerk, hammer):
    response = client.post(
        "/stock/scan-transaction", json={"code": "XYZ", "quantity": 1, "type": "IN"}, headers=auth_header(clerk)
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "No item with code 'XYZ' was found"


def test_scan_out_removes_one(client, db, clerk, hammer):
    response = client.post("/stock/scan-out", json={"code": "HAM"}, headers=auth_header(clerk))

    assert response.status_code == 200
    assert response.json()["item"]["quantity"] == 9
    notes = [m.notes for m in db.query(StockMovement).filter(StockMovement.stock_item_id == hammer.id)]
    assert "Scanned out with barcode reader" in notes


def test_scan_out_requires_remove_capability(client, db, company, hammer):
    receiver = make_user(db, "receiver@acme.com", company, capabilities=[Capability.ADD_STOCK])
    response = client.post("/stock/scan-out", json={"code": "HAM"}, headers=auth_header(receiver))
    assert response.status_code == 403


def test_update_item(client, manager, hammer):
    response = client.patch(f"/stock/{hammer.id}", json={"name": "Claw hammer", "location": "A-1"}, headers=auth_header(manager))

    assert response.status_code == 200
    assert response.json()["name"] == "Claw hammer"
    assert response.json()["quantity"] == 10


def test_update_cannot_touch_quantity(client, manager, hammer):
    response = client.patch(f"/stock/{hammer.id}", json={"quantity": 99}, headers=auth_header(manager))
    assert response.status_code == 422


def test_delete_item(client, db, company, manager, hammer):
    remover = make_user(db, "remover@acme.com", company, capabilities=[Capability.DELETE_STOCK])
    clerk_like = make_user(db, "adder@acme.com", company, capabilities=[Capability.ADD_STOCK])
    item_id = hammer.id

    assert client.delete(f"/stock/{item_id}", headers=auth_header(clerk_like)).status_code == 403
    assert client.delete(f"/stock/{item_id}", headers=auth_header(remover)).status_code == 204
    assert client.get("/stock", headers=auth_header(manager)).json() == []


def test_item_history(client, db, company, manager, hammer):
    client.post("/stock/scan-out", json={"code": "HAM"}, headers=auth_header(manager))

    history = client.get(f"/stock/{hammer.id}/movements", headers=auth_header(manager)).json()

    assert [m["quantity"] for m in history] == [-1, 10]
    assert history[1]["notes"] == "initial stock entry"
    assert history[0]["user_name"] == "manager"


def test_history_requires_log_capability(client, clerk, hammer):
    assert client.get(f"/stock/{hammer.id}/movements", headers=auth_header(clerk)).status_code == 403
    assert client.get("/stock/movements", headers=auth_header(clerk)).status_code == 403


def test_movements_page_capability(client, db, company, hammer):
    auditor = make_user(db, "auditor@acme.com", company, capabilities=[Capability.SEE_MOVEMENTS_PAGE])
    response = client.get("/stock/movements", headers=auth_header(auditor))
    assert response.status_code == 200
    assert len(response.json()) == 1


def test_tree_totals_follow_permissions(client, db, company, manager, clerk):
    tools = make_category(db, company, "Tools")
    hand = make_category(db, company, "Hand tools", parent=tools)
    make_item(db, company, manager, name="Hammer", quantity=10, cost_price=5, selling_price=7, category_id=hand.id)
    make_item(db, company, manager, name="Tape", quantity=1, min_stock_level=2)

    as_manager = client.get("/stock/tree", headers=auth_header(manager)).json()
    as_clerk = client.get("/stock/tree", headers=auth_header(clerk)).json()

    root = as_manager["categories"][0]
    assert root["name"] == "Tools"
    assert root["total_cost"] == 50
    assert root["total_profit"] == 20
    assert root["children"][0]["items"][0]["name"] == "Hammer"
    assert as_manager["categories"][1]["id"] == "uncategorized"
    assert [i["name"] for i in as_manager["low_stock"]] == ["Tape"]

    assert "total_cost" not in as_clerk["categories"][0]
    assert "cost_price" not in as_clerk["categories"][0]["children"][0]["items"][0]


def test_tree_search_and_collapse(client, db, company, manager):
    tools = make_category(db, company, "Tools")
    make_item(db, company, manager, name="Hammer", category_id=tools.id)
    make_item(db, company, manager, name="Rake")

    response = client.get(
        "/stock/tree", params={"q": "ham", "collapsed": [str(tools.id)]}, headers=auth_header(manager)
    )

    categories = response.json()["categories"]
    assert len(categories) == 1
    assert categories[0]["collapsed"] is True
    assert [i["name"] for i in categories[0]["items"]] == ["Hammer"]


def test_report_rows_in_tree_order(client, db, company, manager):
    tools = make_category(db, company, "Tools")
    hand = make_category(db, company, "Hand tools", parent=tools)
    make_item(db, company, manager, name="Hammer", category_id=hand.id)

    rows = client.get("/stock/report", headers=auth_header(manager)).json()

    assert [(row["level"], row["name"]) for row in rows] == [(0, "Tools"), (1, "Hand tools")]


def test_mutations_are_audited(client, db, manager, hammer):
    from models.log import Log

    client.post("/stock/scan-out", json={"code": "HAM"}, headers=auth_header(manager))

    actions = [entry.action for entry in db.query(Log).all()]
    assert "STOCK_SCAN_OUT" in actions


def make_chain(db, company, depth):
    """Categories nested ``depth`` levels deep; returns the deepest one."""
    parent = None
    for level in range(depth):
        category = Category(name=f"Level {level}", company_id=company.id, parent=parent)
        db.add(category)
        parent = category
    db.commit()
    return parent


def test_tree_at_depth_limit(client, db, company, manager):
    leaf = make_chain(db, company, 100)
    make_item(db, company, manager, name="Bottom", quantity=1, cost_price=2, category_id=leaf.id)

    response = client.get("/stock/tree", headers=auth_header(manager))

    assert response.status_code == 200
    node, levels = response.json()["categories"][0], 1
    while node["children"]:
        node, levels = node["children"][0], levels + 1
    assert levels == 100
    assert node["items"][0]["name"] == "Bottom"


def test_tree_too_deep_is_a_clear_error(client, db, company, manager):
    leaf = make_chain(db, company, 1000)
    make_item(db, company, manager, name="Bottom", category_id=leaf.id)

    tree = client.get("/stock/tree", headers=auth_header(manager))
    report = client.get("/stock/report", headers=auth_header(manager))

    assert tree.status_code == 400
    assert tree.json()["detail"] == "Categories cannot be nested more than 100 levels deep"
    assert report.status_code == 200
    rows = report.json()
    assert len(rows) == 1000
    assert rows[-1]["level"] == 999
    assert rows[-1]["items"][0]["name"] == "Bottom"


def test_movements_record_running_balance(client, manager, hammer):
    headers = auth_header(manager)

    issued = client.post("/stock/movement", json={"stockItemId": hammer.id, "quantity": 4, "type": "OUT"}, headers=headers)
    received = client.post("/stock/movement", json={"stockItemId": hammer.id, "quantity": 50, "type": "IN"}, headers=headers)

    assert issued.json()["message"] == "4 x 'Hammer' removed from stock. Remaining: 6"
    assert issued.json()["movement"]["balance_after"] == 6
    assert received.json()["message"] == "50 x 'Hammer' added to stock. Remaining: 56"
    history = client.get(f"/stock/{hammer.id}/movements", headers=headers).json()
    assert [m["balance_after"] for m in history] == [56, 6, 10]
