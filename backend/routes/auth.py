# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db, transaction
from models import users as models
from schemas import user as schemas
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user
from utils.audit import write_log
from utils.permissions import Role, capabilities_of

router = APIRouter(tags=["Auth"])


def user_out(user: models.User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "company_id": user.company_id,
        "permissions": capabilities_of(user),
    }


# Register a new user; they stay pending until an admin assigns a company
@router.post("/register", response_model=schemas.UserResponse, status_code=201)
def register(user: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    normalized_email = user.email.strip().lower()
    ip = request.client.host if request.client else None

    db_user = db.query(models.User).filter(func.lower(models.User.email) == normalized_email).first()
    if db_user:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL", ip=ip,
                  meta={"email": normalized_email, "reason": "Email exists"})
        raise HTTPException(status_code=409, detail="Email already registered")

    with transaction(db):
        new_user = models.User(
            email=normalized_email, name=user.name, password_hash=get_password_hash(user.password),
            role=Role.USER.value,
        )
        new_user.permission = models.UserPermission()
        db.add(new_user)

    write_log(db, user_id=new_user.id, action="REGISTER", resource="auth", status="SUCCESS", ip=ip,
              meta={"email": new_user.email})
    return user_out(new_user)


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    ip = request.client.host if request.client else None
    db_user = db.query(models.User).filter(func.lower(models.User.email) == email).first()

    if not db_user or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=ip, meta={"email": email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(
        data={"sub": db_user.email, "role": db_user.role, "company_id": db_user.company_id}
    )
    write_log(db, user_id=db_user.id, company_id=db_user.company_id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=ip, meta={"email": db_user.email})
    return {"access_token": access_token, "token_type": "bearer"}


# Current user with the effective capability set
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: models.User = Depends(get_current_user)):
    return user_out(current_user)
