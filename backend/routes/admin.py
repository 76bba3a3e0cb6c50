# backend/routes/admin.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from typing import List, Optional, Literal
from sqlalchemy.orm import Session
from pydantic import BaseModel

from database import get_db, transaction
from models.company import Company
from models.users import User, UserPermission
from utils.tokenJWT import role_required
from utils.audit import write_log
from utils.permissions import Role
from schemas.user import AdminUserUpdate, UserResponse
from schemas.company import CompanyCreate, CompanyOut
from routes.auth import user_out

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = role_required(Role.ADMIN)

# Schema for paginated user list response
class PaginatedUsersResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int


# Retrieve non-admin users with filtering, sorting, and pagination
@router.get("/users", response_model=PaginatedUsersResponse)
def get_all_users(
    q: Optional[str] = Query(None, description="Search by e-mail or name"),
    company_id: Optional[int] = Query(None),
    pending: bool = Query(False, description="Only users without a company"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["id", "email", "role", "name"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    query = db.query(User).filter(User.role != Role.ADMIN.value)

    if q:
        like = f"%{q.lower()}%"
        query = query.filter(User.email.ilike(like) | User.name.ilike(like))
    if company_id is not None:
        query = query.filter(User.company_id == company_id)
    if pending:
        query = query.filter(User.company_id.is_(None))

    sort_map = {"id": User.id, "email": User.email, "role": User.role, "name": User.name}
    col = sort_map.get(sort_by, User.id)
    query = query.order_by(col.asc() if order == "asc" else col.desc())

    total = query.count()
    users = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": [user_out(u) for u in users],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


# Assign a user to a company and/or change their role
@router.patch("/users", response_model=UserResponse)
def assign_user(
    payload: AdminUserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")

    with transaction(db):
        user = db.query(User).filter(User.id == payload.user_id, User.role != Role.ADMIN.value).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        if "company_id" in changes:
            if payload.company_id is not None and not db.get(Company, payload.company_id):
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
            user.company_id = payload.company_id
        if payload.role is not None:
            user.role = payload.role
        if user.permission is None:
            user.permission = UserPermission()

    write_log(
        db, user_id=current_user.id, company_id=user.company_id, action="USER_ASSIGN", resource="admin",
        ip=request.client.host if request.client else None,
        meta={"target_user_id": user.id, **changes},
    )
    return user_out(user)


@router.get("/companies", response_model=List[CompanyOut])
def list_companies(db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    return db.query(Company).order_by(Company.name).all()


@router.post("/companies", response_model=CompanyOut, status_code=201)
def create_company(
    payload: CompanyCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    name = payload.name.strip()
    if db.query(Company).filter(Company.name == name).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Company already exists")

    with transaction(db):
        company = Company(name=name)
        db.add(company)

    write_log(
        db, user_id=current_user.id, company_id=company.id, action="COMPANY_CREATE", resource="company",
        ip=request.client.host if request.client else None, meta={"name": name},
    )
    return company
