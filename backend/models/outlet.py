"""
Retail CRM - Outlet model (store / warehouse / office / online channel)

The code is the business key referenced by every customer.
"""

from enum import Enum
from typing import Optional, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .customer import Address, is_valid_email_format, normalize_email


class OutletStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class OutletType(str, Enum):
    STORE = "store"
    WAREHOUSE = "warehouse"
    OFFICE = "office"
    ONLINE = "online"


class OpeningHours(BaseModel):
    open: Optional[str] = None
    close: Optional[str] = None


def _validate_optional_email(v):
    if not v:
        return v
    v = normalize_email(v)
    if not is_valid_email_format(v):
        raise ValueError("Please add a valid email")
    return v


class OutletCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., max_length=20)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[Address] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = None
    manager: Optional[str] = Field(None, max_length=100)
    status: OutletStatus = OutletStatus.ACTIVE
    type: OutletType = OutletType.STORE
    operatingHours: Optional[Dict[str, OpeningHours]] = None

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Please add an outlet code")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_optional_email(v)


class OutletUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[Address] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = None
    manager: Optional[str] = Field(None, max_length=100)
    status: Optional[OutletStatus] = None
    type: Optional[OutletType] = None
    operatingHours: Optional[Dict[str, OpeningHours]] = None

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Outlet code cannot be empty")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_optional_email(v)


NON_NULLABLE_FIELDS = ("name", "code", "status", "type")


def outlet_display_name(outlet: dict) -> str:
    return f"{outlet.get('name', '')} ({outlet.get('code', '')})"


def outlet_full_address(outlet: dict) -> str:
    address = outlet.get("address") or {}
    parts = [
        address.get("street"),
        address.get("city"),
        address.get("state"),
        address.get("zipCode"),
        address.get("country"),
    ]
    return ", ".join(p for p in parts if p)


def with_derived_fields(outlet: dict) -> dict:
    outlet["displayName"] = outlet_display_name(outlet)
    outlet["fullAddress"] = outlet_full_address(outlet)
    return outlet
