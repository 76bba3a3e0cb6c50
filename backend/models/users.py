# backend/models/users.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from database import Base

# Represents a user account with authentication details, system role and tenant
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    # ADMIN, MANAGER or USER
    role = Column(String, nullable=False, default="USER")
    # Users without a company are waiting for an administrator to assign them
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)

    company = relationship("Company", back_populates="users")
    permission = relationship(
        "UserPermission", back_populates="user", uselist=False,
        cascade="all, delete-orphan", lazy="joined",
    )


# Fixed set of capability flags granted to a single user
class UserPermission(Base):
    __tablename__ = "user_permissions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    can_access_dashboard = Column(Boolean, nullable=False, default=False)
    can_add_stock = Column(Boolean, nullable=False, default=False)
    can_remove_stock = Column(Boolean, nullable=False, default=False)
    can_delete_stock = Column(Boolean, nullable=False, default=False)
    can_see_cost = Column(Boolean, nullable=False, default=False)
    can_see_profit = Column(Boolean, nullable=False, default=False)
    can_see_logs = Column(Boolean, nullable=False, default=False)
    can_see_movements_page = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="permission")
