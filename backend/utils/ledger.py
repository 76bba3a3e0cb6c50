# backend/utils/ledger.py
"""
Stock ledger.

This is the only place that changes ``StockItem.quantity`` and
``StockItem.cost_price``. Every change runs in one transaction which re-reads the
item row, validates the movement, writes the new quantity and weighted-average
cost, and appends one signed ``StockMovement``. Either both writes are committed
or neither is.

Concurrent writers are serialized by ``SELECT ... FOR UPDATE`` where the database
supports it, and by the item's ``version`` column everywhere else: the writer
that loses the race gets a ``StaleDataError``, its transaction is rolled back and
the movement is replayed against the fresh row.
"""
import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from database import transaction
from models.category import Category
from models.stock import MovementType, StockItem, StockMovement
from utils.errors import (
    ConcurrentModification, InsufficientStock, InvalidInput, NotFound, Unauthorized,
)

logger = logging.getLogger(__name__)

COST_PLACES = Decimal("0.0001")

INITIAL_STOCK_NOTE = "initial stock entry"
SCAN_TRANSACTION_NOTE = "Recorded with quick scan"
SCAN_OUT_NOTE = "Scanned out with barcode reader"

# Fields a caller may set on create; quantity and cost_price only as the opening balance
ITEM_FIELDS = {
    "name", "description", "sku", "barcode", "brand", "location", "quantity",
    "min_stock_level", "max_stock_level", "unit", "cost_price", "selling_price",
    "vat_rate", "category_id",
}
LEDGER_FIELDS = {"quantity", "cost_price"}
EDITABLE_FIELDS = ITEM_FIELDS - LEDGER_FIELDS
NOT_NULL_FIELDS = {"name", "selling_price", "vat_rate"}
PRICE_FIELDS = {"cost_price", "selling_price", "vat_rate"}
LEVEL_FIELDS = {"min_stock_level", "max_stock_level"}


@dataclass(frozen=True)
class ItemLookup:
    """Identifies an item either by primary key or by a scanned sku/barcode."""
    item_id: Optional[int] = None
    code: Optional[str] = None

    @classmethod
    def by_id(cls, item_id: int) -> "ItemLookup":
        return cls(item_id=item_id)

    @classmethod
    def by_code(cls, code: str) -> "ItemLookup":
        return cls(code=code)

    def not_found_message(self) -> str:
        if self.code is not None:
            return f"No item with code '{self.code}' was found"
        return "Stock item not found"


def generate_sku() -> str:
    return f"{settings.SKU_PREFIX}-{secrets.token_hex(4).upper()}"


def generate_barcode() -> str:
    # Best effort only: collisions are not checked against existing items
    return "".join(str(secrets.randbelow(10)) for _ in range(settings.BARCODE_LENGTH))


def weighted_average_cost(current_cost, current_quantity: int, receipt_cost, receipt_quantity: int) -> Decimal:
    total_quantity = current_quantity + receipt_quantity
    if total_quantity <= 0:
        return Decimal(receipt_cost).quantize(COST_PLACES, rounding=ROUND_HALF_UP)
    total_cost = Decimal(current_cost) * current_quantity + Decimal(receipt_cost) * receipt_quantity
    return (total_cost / total_quantity).quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def _price(value, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field} must be a number", field=field)
    if not price.is_finite() or price < 0:
        raise InvalidInput(f"{field} must not be negative", field=field)
    return price


def _positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput("Quantity must be a positive whole number", field="quantity")
    return quantity


def _movement_type(value) -> MovementType:
    try:
        movement_type = MovementType(value)
    except ValueError:
        raise InvalidInput(f"Unknown movement type: {value}", field="type")
    if movement_type not in (MovementType.IN, MovementType.OUT):
        raise InvalidInput("Only IN and OUT movements can be recorded", field="type")
    return movement_type


def _item_query(db: Session, company_id: int, lookup: ItemLookup):
    query = db.query(StockItem).filter(StockItem.company_id == company_id)
    if lookup.item_id is not None:
        return query.filter(StockItem.id == lookup.item_id)
    if lookup.code:
        return query.filter(
            or_(StockItem.sku == lookup.code, StockItem.barcode == lookup.code)
        ).order_by(StockItem.id)
    raise InvalidInput("An item id or code is required", field="code")


def _require_category(db: Session, company_id: int, category_id: int) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id, Category.company_id == company_id
    ).first()
    if category is None:
        raise NotFound("Category not found")
    return category


def find_item(db: Session, company_id: int, lookup: ItemLookup) -> StockItem:
    item = _item_query(db, company_id, lookup).first()
    if item is None:
        raise NotFound(lookup.not_found_message())
    return item


def list_items(db: Session, company_id: int) -> List[StockItem]:
    return (
        db.query(StockItem)
        .filter(StockItem.company_id == company_id)
        .order_by(StockItem.created_at.desc(), StockItem.id.desc())
        .all()
    )


def list_categories(db: Session, company_id: int) -> List[Category]:
    return db.query(Category).filter(Category.company_id == company_id).order_by(Category.name).all()


def list_movements(db: Session, company_id: int, item_id: int = None, limit: int = None) -> List[StockMovement]:
    query = db.query(StockMovement).join(StockItem).filter(StockItem.company_id == company_id)
    if item_id is not None:
        find_item(db, company_id, ItemLookup.by_id(item_id))
        query = query.filter(StockMovement.stock_item_id == item_id)
    return (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit or settings.MOVEMENT_HISTORY_LIMIT)
        .all()
    )


def _apply_once(db, company_id, lookup, movement_type, quantity, actor_id, notes,
                cost_price, selling_price, fallback_selling_price) -> Tuple[StockItem, StockMovement]:
    # Fresh read of the row under lock; never trust what the session already holds
    item = _item_query(db, company_id, lookup).with_for_update().populate_existing().first()
    if item is None:
        raise NotFound(lookup.not_found_message())

    if movement_type is MovementType.IN:
        if cost_price is not None:
            item.cost_price = weighted_average_cost(item.cost_price, item.quantity, cost_price, quantity)
        item.quantity = item.quantity + quantity
        signed_quantity = quantity
        selling_price = None
    else:
        if quantity > item.quantity:
            raise InsufficientStock(available=item.quantity, requested=quantity)
        item.quantity = item.quantity - quantity
        signed_quantity = -quantity
        if selling_price is None and fallback_selling_price:
            selling_price = item.selling_price
        cost_price = None

    movement = StockMovement(
        stock_item=item,
        user_id=actor_id,
        type=movement_type,
        quantity=signed_quantity,
        balance_after=item.quantity,
        cost_price=cost_price,
        selling_price=selling_price,
        notes=notes,
    )
    db.add(movement)
    return item, movement


def apply_movement(
    db: Session,
    company_id: int,
    lookup: ItemLookup,
    movement_type,
    quantity: int,
    actor_id: int,
    notes: str = None,
    cost_price=None,
    selling_price=None,
    fallback_selling_price: bool = False,
) -> Tuple[StockItem, StockMovement]:
    """
    Apply an IN or OUT movement to one stock item and record it.

    IN adds ``quantity``; when ``cost_price`` is given the item's average cost is
    re-weighted with the receipt, otherwise the current average is carried forward.
    OUT removes ``quantity`` and fails with ``InsufficientStock`` rather than going
    below zero. With ``fallback_selling_price`` an OUT without a price records the
    item's current selling price.
    """
    if actor_id is None:
        raise Unauthorized("An authenticated user is required to record stock movements")
    movement_type = _movement_type(movement_type)
    quantity = _positive_quantity(quantity)
    cost_price = _price(cost_price, "cost_price")
    selling_price = _price(selling_price, "selling_price")

    limit = max(1, settings.MOVEMENT_RETRY_LIMIT)
    for attempt in range(1, limit + 1):
        try:
            with transaction(db):
                item, movement = _apply_once(
                    db, company_id, lookup, movement_type, quantity, actor_id, notes,
                    cost_price, selling_price, fallback_selling_price,
                )
                # Read before commit; afterwards the row may already hold another writer's change
                item_id, balance = item.id, movement.balance_after
        except StaleDataError:
            logger.warning(
                "Stock item %s changed concurrently, replaying %s movement (attempt %d/%d)",
                lookup, movement_type.value, attempt, limit,
            )
            continue

        logger.info(
            "%s %d on stock item %s (company %s) by user %s, quantity now %d",
            movement_type.value, quantity, item_id, company_id, actor_id, balance,
        )
        return item, movement

    raise ConcurrentModification("The stock item was changed by another operation, please try again")


def scan_out(db: Session, company_id: int, code: str, actor_id: int) -> Tuple[StockItem, StockMovement]:
    """Remove a single unit of the item matching a scanned sku or barcode."""
    return apply_movement(
        db, company_id, ItemLookup.by_code(code), MovementType.OUT, 1, actor_id,
        notes=SCAN_OUT_NOTE, fallback_selling_price=True,
    )


def _clean_attributes(attributes: dict, allowed: set) -> dict:
    unknown = set(attributes) - allowed
    if unknown:
        field = sorted(unknown)[0]
        raise InvalidInput(f"Field '{field}' cannot be set here", field=field)

    cleaned = {}
    for field, value in attributes.items():
        if value is None:
            if field in NOT_NULL_FIELDS:
                raise InvalidInput(f"{field} is required", field=field)
            cleaned[field] = None
            continue
        if field in PRICE_FIELDS:
            value = _price(value, field)
        elif field in LEVEL_FIELDS or field == "quantity":
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidInput(f"{field} must be a whole number of at least 0", field=field)
        elif field == "name":
            value = value.strip()
            if not value:
                raise InvalidInput("Item name is required", field="name")
        cleaned[field] = value
    return cleaned


def create_item(db: Session, company_id: int, actor_id: int, attributes: dict) -> StockItem:
    """
    Insert a new item with its opening balance and record that balance as an IN movement.

    Missing sku/barcode values are generated.
    """
    if actor_id is None:
        raise Unauthorized("An authenticated user is required to create stock items")
    data = _clean_attributes(attributes, ITEM_FIELDS)
    if not data.get("name"):
        raise InvalidInput("Item name is required", field="name")

    data.setdefault("quantity", 0)
    data["cost_price"] = data.get("cost_price") or Decimal("0")
    data["selling_price"] = data.get("selling_price") or Decimal("0")
    data["vat_rate"] = data.get("vat_rate") or Decimal("0")
    data["sku"] = data.get("sku") or generate_sku()
    data["barcode"] = data.get("barcode") or generate_barcode()

    with transaction(db):
        if data.get("category_id") is not None:
            _require_category(db, company_id, data["category_id"])
        item = StockItem(company_id=company_id, **data)
        db.add(item)
        db.add(StockMovement(
            stock_item=item,
            user_id=actor_id,
            type=MovementType.IN,
            quantity=item.quantity,
            balance_after=item.quantity,
            cost_price=item.cost_price,
            notes=INITIAL_STOCK_NOTE,
        ))

    logger.info("Created stock item %s (%s) in company %s", item.id, item.sku, company_id)
    return item


def update_item(db: Session, company_id: int, item_id: int, changes: dict) -> StockItem:
    if LEDGER_FIELDS & set(changes):
        field = sorted(LEDGER_FIELDS & set(changes))[0]
        raise InvalidInput("Quantity and cost are changed through stock movements only", field=field)
    data = _clean_attributes(changes, EDITABLE_FIELDS)

    try:
        with transaction(db):
            item = find_item(db, company_id, ItemLookup.by_id(item_id))
            if data.get("category_id") is not None:
                _require_category(db, company_id, data["category_id"])
            for field, value in data.items():
                setattr(item, field, value)
    except StaleDataError:
        raise ConcurrentModification("The stock item was changed by another operation, please try again")
    return item


def delete_item(db: Session, company_id: int, item_id: int) -> str:
    """Delete an item together with its whole movement history. Returns the item name."""
    with transaction(db):
        item = find_item(db, company_id, ItemLookup.by_id(item_id))
        name = item.name
        db.delete(item)
    logger.info("Deleted stock item %s (%s) from company %s", item_id, name, company_id)
    return name
