# backend/routes/manager.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List

from database import get_db, transaction
from models.users import User, UserPermission
from utils.tokenJWT import get_company_user
from utils.audit import write_log
from utils.permissions import Role
from schemas.user import ManagerUserUpdate, UserResponse
from routes.auth import user_out

router = APIRouter(prefix="/manager", tags=["Manager"])


def _require_manager(user: User) -> User:
    if (user.role or "").upper() != Role.MANAGER.value:
        raise HTTPException(status_code=403, detail="Manager access required")
    return user


def _company_member(db: Session, manager: User, user_id: int) -> User:
    user = db.query(User).filter(
        User.id == user_id,
        User.company_id == manager.company_id,
        User.role != Role.ADMIN.value,
    ).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found or not in your company")
    return user


# Users of the manager's company with their capability flags
@router.get("/users", response_model=List[UserResponse])
def list_company_users(db: Session = Depends(get_db), current_user: User = Depends(get_company_user)):
    _require_manager(current_user)
    users = (
        db.query(User)
        .filter(User.company_id == current_user.company_id, User.role != Role.ADMIN.value)
        .order_by(User.email)
        .all()
    )
    return [user_out(u) for u in users]


# Change a member's role and/or capability flags
@router.patch("/users/{user_id}", response_model=UserResponse)
def update_company_user(
    user_id: int,
    payload: ManagerUserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_company_user),
):
    _require_manager(current_user)
    flags = payload.permissions.model_dump(exclude_none=True) if payload.permissions else {}

    with transaction(db):
        user = _company_member(db, current_user, user_id)
        if payload.role is not None:
            user.role = payload.role
        if user.permission is None:
            user.permission = UserPermission()
        for flag, value in flags.items():
            setattr(user.permission, flag, value)

    write_log(
        db, user_id=current_user.id, company_id=current_user.company_id, action="USER_PERMISSIONS_UPDATE",
        resource="manager", ip=request.client.host if request.client else None,
        meta={"target_user_id": user_id, "role": payload.role, "permissions": flags},
    )
    return user_out(user)
