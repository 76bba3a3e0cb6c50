# backend/routes/logs.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from database import get_db
from models.log import Log
from models.users import User
from utils.tokenJWT import get_current_user
from utils.permissions import Capability, Role, has_permission

router = APIRouter(prefix="/logs", tags=["Logs"])

class LogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    company_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)

class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int


def _parse_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    if not value:
        return None
    if end_of_day and len(value) == 10:
        value += " 23:59:59"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


# Admins see every entry, users with the log capability only their company's
@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user id"),
    status: Optional[str] = Query(None, description="SUCCESS or FAIL"),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Log)
    if (current_user.role or "").upper() != Role.ADMIN.value:
        if not has_permission(current_user, Capability.SEE_LOGS):
            raise HTTPException(status_code=403, detail="You are not allowed to see logs")
        query = query.filter(Log.company_id == current_user.company_id)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if status:
        query = query.filter(Log.status == status)

    dt_from = _parse_date(date_from)
    if dt_from:
        query = query.filter(Log.ts >= dt_from)
    dt_to = _parse_date(date_to, end_of_day=True)
    if dt_to:
        query = query.filter(Log.ts <= dt_to)

    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
