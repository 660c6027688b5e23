from enum import Enum
from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime

from lastbite.core.validation import validate_phone, require_min_length


class Role(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"


def dashboard_path(role: Role) -> str:
    return f"/{Role(role).value}/dashboard"


class Profile(BaseModel):
    id: Optional[str] = None
    user_id: str
    role: Role
    is_verified: bool = False
    full_name: Optional[str] = None
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def dashboard_path(self) -> str:
        return dashboard_path(self.role)


class ProfileCreate(BaseModel):
    user_id: str
    role: Role
    is_verified: bool = False


class ProfileUpdate(BaseModel):
    # no role: it is fixed at creation
    full_name: Optional[str] = None
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    is_verified: Optional[bool] = None


class RoleSelectionRequest(BaseModel):
    role: Role


class RoleSelectionView(BaseModel):
    roles: List[Role] = [Role.BUYER, Role.SELLER]
    profile: Optional[Profile] = None


class RoleSelectionResponse(BaseModel):
    profile: Profile
    redirect_to: str


class VerificationStatus(BaseModel):
    is_verified: bool
    redirect_to: Optional[str] = None


class VerificationRequest(BaseModel):
    business_name: str
    full_name: str
    phone_number: str
    address: str

    @field_validator("business_name")
    @classmethod
    def check_business_name(cls, value: str) -> str:
        return require_min_length(value, 2, "Business name is required")

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: str) -> str:
        return require_min_length(value, 2, "Full name is required")

    @field_validator("phone_number")
    @classmethod
    def check_phone_number(cls, value: str) -> str:
        return validate_phone(value)

    @field_validator("address")
    @classmethod
    def check_address(cls, value: str) -> str:
        return require_min_length(value, 5, "Business address is required")


class NavigationResult(BaseModel):
    profile: Profile
    redirect_to: str


class DashboardView(BaseModel):
    role: Role
    profile: Profile
