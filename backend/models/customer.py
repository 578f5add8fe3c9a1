"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Retail CRM - Customer model                                                 ║
║                                                                              ║
║  RULES:                                                                      ║
║  - email is globally unique (stored lower-cased)                             ║
║  - outlet code is mandatory                                                  ║
║  - sync metadata (externalClientId, syncStatus, syncDate, syncError) is      ║
║    written ONLY by the creation workflow, never accepted from input          ║
║  - syncStatus = synced IMPLIES externalClientId is set                       ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator
import re


class CustomerStatus(str, Enum):
    LEAD = "lead"
    PROSPECT = "prospect"
    CUSTOMER = "customer"
    INACTIVE = "inactive"


class CustomerSource(str, Enum):
    WEBSITE = "website"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    EMAIL_CAMPAIGN = "email_campaign"
    COLD_CALL = "cold_call"
    EVENT = "event"
    OTHER = "other"


class CustomerType(str, Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class SyncStatus(str, Enum):
    """Xilnex registration state of a customer"""
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
    DISABLED = "disabled"


SYNC_FIELDS = ("externalClientId", "syncStatus", "syncDate", "syncError")

# PUT may clear any other optional field with an explicit null
NON_NULLABLE_FIELDS = (
    "firstName", "lastName", "email", "outlet",
    "tags", "dealValue", "customerType", "status", "source",
)


def is_valid_email_format(email: str) -> bool:
    """Basic local@domain.tld check"""
    if not email:
        return False
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def full_name(first_name: str, last_name: str) -> str:
    return f"{first_name} {last_name}"


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None


class CustomerCreate(BaseModel):
    """
    Inbound "create customer" request.
    Unknown keys (including any sync metadata) are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    firstName: str = Field(..., max_length=50)
    lastName: str = Field(..., max_length=50)
    email: str
    outlet: str = Field(..., max_length=20)

    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    address: Optional[Address] = None
    notes: Optional[str] = Field(None, max_length=1000)
    tags: List[str] = []
    dealValue: float = Field(0, ge=0)
    customerType: CustomerType = CustomerType.INDIVIDUAL
    status: CustomerStatus = CustomerStatus.CUSTOMER
    source: CustomerSource = CustomerSource.WEBSITE
    lastContactDate: Optional[str] = None

    @field_validator('firstName', 'lastName', 'outlet')
    @classmethod
    def required_text(cls, v, info):
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{info.field_name} is required")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = normalize_email(v)
        if not is_valid_email_format(v):
            raise ValueError("Valid email is required")
        return v

    @field_validator('tags')
    @classmethod
    def strip_tags(cls, v):
        return [t.strip() for t in v if t and t.strip()]


class CustomerUpdate(BaseModel):
    """Partial update. Sync metadata is not updatable here."""
    model_config = ConfigDict(extra="ignore")

    firstName: Optional[str] = Field(None, max_length=50)
    lastName: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = None
    outlet: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    address: Optional[Address] = None
    notes: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = None
    dealValue: Optional[float] = Field(None, ge=0)
    customerType: Optional[CustomerType] = None
    status: Optional[CustomerStatus] = None
    source: Optional[CustomerSource] = None
    lastContactDate: Optional[str] = None

    @field_validator('firstName', 'lastName', 'outlet')
    @classmethod
    def non_empty_text(cls, v, info):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} cannot be empty")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None:
            return v
        v = normalize_email(v)
        if not is_valid_email_format(v):
            raise ValueError("Valid email is required")
        return v


def with_full_name(doc: dict) -> dict:
    """Add the derived fullName to a stored customer document"""
    doc["fullName"] = full_name(doc.get("firstName", ""), doc.get("lastName", ""))
    return doc
