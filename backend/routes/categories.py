# backend/routes/categories.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List

from database import get_db, transaction
from models.category import Category
from models.stock import StockItem
from models.users import User
from utils.tokenJWT import get_company_user
from utils.audit import write_log
from utils.permissions import Role
from utils import ledger
from utils.errors import CategoryTooDeep
from config import settings
from schemas.category import CategoryCreate, CategoryOut

router = APIRouter(prefix="/categories", tags=["Categories"])
logger = logging.getLogger(__name__)


def _require_manager(user: User) -> None:
    if (user.role or "").upper() != Role.MANAGER.value:
        raise HTTPException(status_code=403, detail="Only managers can change categories")


def _subtree_ids(db: Session, company_id: int, root_id: int) -> List[int]:
    # Breadth-first over the company's parent links, guarding against bad cyclic rows
    children_of = {}
    for category_id, parent_id in db.query(Category.id, Category.parent_id).filter(Category.company_id == company_id):
        children_of.setdefault(parent_id, []).append(category_id)

    found, queue, seen = [], [root_id], {root_id}
    while queue:
        current = queue.pop(0)
        found.append(current)
        for child_id in children_of.get(current, []):
            if child_id not in seen:
                seen.add(child_id)
                queue.append(child_id)
    return found


def _chain_length(db: Session, company_id: int, category_id: int) -> int:
    # Levels from the root down to category_id; a cyclic chain stops at the repeat
    parent_of = dict(db.query(Category.id, Category.parent_id).filter(Category.company_id == company_id))
    length, current, seen = 0, category_id, set()
    while current is not None and current in parent_of and current not in seen:
        seen.add(current)
        length += 1
        current = parent_of[current]
    return length


# List all categories of the company, alphabetically
@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db), current_user: User = Depends(get_company_user)):
    return ledger.list_categories(db, current_user.company_id)


# Create a category or subcategory (managers only)
@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    _require_manager(current_user)
    with transaction(db):
        if payload.parent_id is not None:
            parent = db.query(Category).filter(
                Category.id == payload.parent_id, Category.company_id == current_user.company_id
            ).first()
            if not parent:
                raise HTTPException(status_code=404, detail="Parent category not found")
            if _chain_length(db, current_user.company_id, parent.id) >= settings.CATEGORY_MAX_DEPTH:
                raise CategoryTooDeep(settings.CATEGORY_MAX_DEPTH)
        category = Category(name=payload.name.strip(), parent_id=payload.parent_id, company_id=current_user.company_id)
        db.add(category)

    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="CATEGORY_CREATE",
        resource="category", ip=request.client.host if request.client else None,
        meta={"category_id": category.id, "parent_id": payload.parent_id},
    )
    return category


# Delete a category with its subcategories; refused while items still point at it
@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    _require_manager(current_user)
    category = db.query(Category).filter(
        Category.id == category_id, Category.company_id == current_user.company_id
    ).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    attached = db.query(StockItem).filter(
        StockItem.category_id == category_id, StockItem.company_id == current_user.company_id
    ).count()
    if attached > 0:
        raise HTTPException(
            status_code=400,
            detail=f"This category cannot be deleted because {attached} item(s) still belong to it",
        )

    subtree = _subtree_ids(db, current_user.company_id, category_id)
    with transaction(db):
        # Items of deleted subcategories fall back to "Uncategorized"
        db.query(StockItem).filter(
            StockItem.company_id == current_user.company_id, StockItem.category_id.in_(subtree)
        ).update({StockItem.category_id: None}, synchronize_session=False)
        db.query(Category).filter(Category.id.in_(subtree)).update(
            {Category.parent_id: None}, synchronize_session=False
        )
        db.query(Category).filter(Category.id.in_(subtree)).delete(synchronize_session=False)

    logger.info("Deleted categories %s from company %s", subtree, current_user.company_id)
    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="CATEGORY_DELETE",
        resource="category", ip=request.client.host if request.client else None,
        meta={"category_ids": subtree},
    )
    return {"message": "Category deleted", "deleted_ids": subtree}
