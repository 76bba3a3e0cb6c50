from pydantic import BaseModel, EmailStr, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, Literal

# Roles a manager or admin may hand out; ADMIN is never assignable through the API
AssignableRole = Literal["USER", "MANAGER"]

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    name: str = Field(min_length=3)
    password: str = Field(min_length=6)

# Fixed capability schema; unknown flags are rejected instead of merged blindly
class PermissionSet(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid", from_attributes=True,
    )

    can_access_dashboard: Optional[bool] = None
    can_add_stock: Optional[bool] = None
    can_remove_stock: Optional[bool] = None
    can_delete_stock: Optional[bool] = None
    can_see_cost: Optional[bool] = None
    can_see_profit: Optional[bool] = None
    can_see_logs: Optional[bool] = None
    can_see_movements_page: Optional[bool] = None

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    name: Optional[str] = None
    role: str
    company_id: Optional[int] = None
    permissions: dict = {}

    model_config = ConfigDict(from_attributes=True)

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Manager update of a user in their company
class ManagerUserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Optional[AssignableRole] = None
    permissions: Optional[PermissionSet] = None

# Admin assignment of a user to a company and role
class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    user_id: int
    company_id: Optional[int] = None
    role: Optional[AssignableRole] = None
