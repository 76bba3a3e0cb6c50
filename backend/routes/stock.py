# backend/routes/stock.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session
from typing import Optional, List

from config import settings
from database import get_db
from models.stock import StockItem, StockMovement
from models.users import User
from utils.tokenJWT import get_company_user, capability_required
from utils.audit import write_log
from utils.permissions import Capability, has_permission, visible_item
from utils.errors import CategoryTooDeep
from utils.category_tree import (
    build_tree, filter_tree, mark_collapsed, low_stock_items, iter_nodes, iter_postorder, tree_depth,
)
from utils import ledger
import schemas.stock as stock_schemas

router = APIRouter(tags=["Stock"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


# Movement direction decides which capability is needed
def _require_direction(user: User, movement_type: str) -> None:
    if movement_type == "IN" and not has_permission(user, Capability.ADD_STOCK):
        raise HTTPException(status_code=403, detail="You are not allowed to add stock")
    if movement_type == "OUT" and not has_permission(user, Capability.REMOVE_STOCK):
        raise HTTPException(status_code=403, detail="You are not allowed to remove stock")


def _movement_out(m: StockMovement) -> dict:
    return {
        "id": m.id,
        "stock_item_id": m.stock_item_id,
        "type": m.type.value if hasattr(m.type, "value") else m.type,
        "quantity": m.quantity,
        "balance_after": m.balance_after,
        "cost_price": m.cost_price,
        "selling_price": m.selling_price,
        "notes": m.notes,
        "user_id": m.user_id,
        "created_at": m.created_at,
        "stock_item_name": m.stock_item.name if m.stock_item else None,
        "user_name": (m.user.name or m.user.email) if m.user else None,
    }


def _movement_result(item: StockItem, movement: StockMovement, user: User, quantity: int) -> dict:
    if movement.quantity >= 0:
        message = f"{quantity} x '{item.name}' added to stock. Remaining: {movement.balance_after}"
    else:
        message = f"{quantity} x '{item.name}' removed from stock. Remaining: {movement.balance_after}"
    return {"message": message, "item": visible_item(item, user), "movement": _movement_out(movement)}


def _snapshot(db: Session, user: User):
    items = [visible_item(item, user) for item in ledger.list_items(db, user.company_id)]
    categories = [
        {"id": c.id, "name": c.name, "parent_id": c.parent_id, "company_id": c.company_id}
        for c in ledger.list_categories(db, user.company_id)
    ]
    return items, categories


def _totals(node, user: User) -> dict:
    totals = {}
    if has_permission(user, Capability.SEE_COST):
        totals["total_cost"] = node.total_cost
    if has_permission(user, Capability.SEE_PROFIT):
        totals["total_profit"] = node.total_profit
    return totals


def _tree_out(tree, user: User) -> List[dict]:
    # Children are converted before their parents, so no recursion is needed
    converted = {}
    for node in iter_postorder(tree):
        converted[id(node)] = {
            "id": node.id,
            "name": node.name,
            "parent_id": node.parent_id,
            "collapsed": node.collapsed,
            "items": node.items,
            "children": [converted[id(child)] for child in node.children],
            **_totals(node, user),
        }
    return [converted[id(root)] for root in tree]


# =========================
# LISTS AND DASHBOARD
# =========================
@router.get("", response_model=List[stock_schemas.StockItemOut], response_model_exclude_unset=True)
def list_stock(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    return [visible_item(item, current_user) for item in ledger.list_items(db, current_user.company_id)]


@router.get("/tree", response_model=stock_schemas.StockTreeOut, response_model_exclude_unset=True)
def stock_tree(
    q: Optional[str] = Query(None, description="Search category, item name or SKU"),
    collapsed: List[str] = Query([], description="Ids of collapsed categories"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    items, categories = _snapshot(db, current_user)
    tree = build_tree(items, categories)
    if q:
        tree = filter_tree(tree, q)
    # The nested response is serialized recursively; the flat /report has no such limit
    if tree_depth(tree) > settings.CATEGORY_MAX_DEPTH:
        raise CategoryTooDeep(settings.CATEGORY_MAX_DEPTH)
    mark_collapsed(tree, collapsed)
    return {"categories": _tree_out(tree, current_user), "low_stock": low_stock_items(items)}


@router.get("/report", response_model=List[stock_schemas.StockReportRow], response_model_exclude_unset=True)
def stock_report(
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    items, categories = _snapshot(db, current_user)
    tree = build_tree(items, categories)
    if q:
        tree = filter_tree(tree, q)
    return [
        {"level": level, "category_id": node.id, "name": node.name, "items": node.items, **_totals(node, current_user)}
        for level, node in iter_nodes(tree)
    ]


@router.get("/low-stock", response_model=List[stock_schemas.StockItemOut], response_model_exclude_unset=True)
def low_stock(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    items, _ = _snapshot(db, current_user)
    return low_stock_items(items)


@router.get("/movements", response_model=List[stock_schemas.StockMovementOut])
def company_movements(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    if not (has_permission(current_user, Capability.SEE_LOGS)
            or has_permission(current_user, Capability.SEE_MOVEMENTS_PAGE)):
        raise HTTPException(status_code=403, detail="You are not allowed to see stock movements")
    return [_movement_out(m) for m in ledger.list_movements(db, current_user.company_id)]


# =========================
# MOVEMENTS
# =========================
@router.post("/movement", response_model=stock_schemas.MovementResult, response_model_exclude_unset=True)
def record_movement(
    payload: stock_schemas.StockMovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    _require_direction(current_user, payload.type)
    item, movement = ledger.apply_movement(
        db, current_user.company_id, ledger.ItemLookup.by_id(payload.stock_item_id),
        payload.type, payload.quantity, current_user.id,
        notes=payload.notes, cost_price=payload.cost_price, selling_price=payload.selling_price,
    )
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="STOCK_MOVEMENT",
        resource="stock", ip=_client_ip(request),
        meta={"stock_item_id": item.id, "type": payload.type, "quantity": payload.quantity},
    )
    return _movement_result(item, movement, current_user, payload.quantity)


@router.post("/scan-transaction", response_model=stock_schemas.MovementResult, response_model_exclude_unset=True)
def scan_transaction(
    payload: stock_schemas.ScanTransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    _require_direction(current_user, payload.type)
    item, movement = ledger.apply_movement(
        db, current_user.company_id, ledger.ItemLookup.by_code(payload.code),
        payload.type, payload.quantity, current_user.id,
        notes=ledger.SCAN_TRANSACTION_NOTE, cost_price=payload.cost_price,
        selling_price=payload.selling_price,
        fallback_selling_price=settings.SCAN_SELLING_PRICE_FALLBACK,
    )
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="STOCK_SCAN",
        resource="stock", ip=_client_ip(request),
        meta={"code": payload.code, "type": payload.type, "quantity": payload.quantity},
    )
    return _movement_result(item, movement, current_user, payload.quantity)


@router.post("/scan-out", response_model=stock_schemas.MovementResult, response_model_exclude_unset=True)
def scan_out(
    payload: stock_schemas.ScanOutCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(capability_required(Capability.REMOVE_STOCK, "You are not allowed to remove stock")),
):
    item, movement = ledger.scan_out(db, current_user.company_id, payload.code, current_user.id)
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="STOCK_SCAN_OUT",
        resource="stock", ip=_client_ip(request), meta={"code": payload.code},
    )
    return _movement_result(item, movement, current_user, 1)


# =========================
# ITEMS
# =========================
@router.post("", response_model=stock_schemas.StockItemOut, status_code=201, response_model_exclude_unset=True)
def create_stock_item(
    payload: stock_schemas.StockItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(capability_required(Capability.ADD_STOCK, "You are not allowed to add stock")),
):
    item = ledger.create_item(db, current_user.company_id, current_user.id, payload.model_dump(exclude_none=True))
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="STOCK_CREATE",
        resource="stock", ip=_client_ip(request), meta={"stock_item_id": item.id, "sku": item.sku},
    )
    return visible_item(item, current_user)


@router.get("/{item_id}/movements", response_model=List[stock_schemas.StockMovementOut])
def item_movements(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(capability_required(Capability.SEE_LOGS, "You are not allowed to see stock history")),
):
    return [_movement_out(m) for m in ledger.list_movements(db, current_user.company_id, item_id=item_id)]


@router.patch("/{item_id}", response_model=stock_schemas.StockItemOut, response_model_exclude_unset=True)
def update_stock_item(
    item_id: int,
    payload: stock_schemas.StockItemUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(capability_required(Capability.ADD_STOCK, "You are not allowed to edit stock")),
):
    changes = payload.model_dump(exclude_unset=True)
    item = ledger.update_item(db, current_user.company_id, item_id, changes)
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="STOCK_UPDATE",
        resource="stock", ip=_client_ip(request), meta={"stock_item_id": item_id, "fields": sorted(changes)},
    )
    return visible_item(item, current_user)


@router.delete("/{item_id}", status_code=204)
def delete_stock_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(capability_required(Capability.DELETE_STOCK, "You are not allowed to delete stock")),
):
    name = ledger.delete_item(db, current_user.company_id, item_id)
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="STOCK_DELETE",
        resource="stock", ip=_client_ip(request), meta={"stock_item_id": item_id, "name": name},
    )
    return Response(status_code=204)
