# backend/utils/permissions.py
import enum
from decimal import Decimal

from models.users import User
from models.stock import StockItem


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"


# Every capability maps onto a boolean column of UserPermission
class Capability(str, enum.Enum):
    ACCESS_DASHBOARD = "can_access_dashboard"
    ADD_STOCK = "can_add_stock"
    REMOVE_STOCK = "can_remove_stock"
    DELETE_STOCK = "can_delete_stock"
    SEE_COST = "can_see_cost"
    SEE_PROFIT = "can_see_profit"
    SEE_LOGS = "can_see_logs"
    SEE_MOVEMENTS_PAGE = "can_see_movements_page"


def has_permission(user: User, capability: Capability) -> bool:
    """Managers hold every capability inside their company; users need the explicit flag."""
    if user is None or user.company_id is None:
        return False
    if (user.role or "").upper() == Role.MANAGER.value:
        return True
    if user.permission is None:
        return False
    return bool(getattr(user.permission, capability.value, False))


def capabilities_of(user: User) -> dict:
    return {cap.value: has_permission(user, cap) for cap in Capability}


def visible_item(item: StockItem, user: User) -> dict:
    """Serialize a stock item, dropping cost and profit the user may not see."""
    data = {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "sku": item.sku,
        "barcode": item.barcode,
        "brand": item.brand,
        "location": item.location,
        "quantity": item.quantity,
        "selling_price": item.selling_price,
        "vat_rate": item.vat_rate,
        "min_stock_level": item.min_stock_level,
        "max_stock_level": item.max_stock_level,
        "unit": item.unit,
        "category_id": item.category_id,
        "created_at": item.created_at,
    }
    if has_permission(user, Capability.SEE_COST):
        data["cost_price"] = item.cost_price
    if has_permission(user, Capability.SEE_PROFIT):
        data["profit"] = (Decimal(item.selling_price or 0) - Decimal(item.cost_price or 0)) * item.quantity
    return data
