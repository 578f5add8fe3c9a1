"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Retail CRM - Models Package                                                 ║
║                                                                              ║
║  from models import CustomerCreate, OutletCreate, XilnexSyncResult, etc.     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Customer
from .customer import (
    CustomerStatus,
    CustomerSource,
    CustomerType,
    SyncStatus,
    SYNC_FIELDS,
    Address,
    CustomerCreate,
    CustomerUpdate,
    is_valid_email_format,
    normalize_email,
    full_name,
    with_full_name,
)

# Outlet
from .outlet import (
    OutletStatus,
    OutletType,
    OutletCreate,
    OutletUpdate,
    with_derived_fields,
)

# Xilnex
from .sync import XilnexSyncResult

__all__ = [
    # Customer
    "CustomerStatus",
    "CustomerSource",
    "CustomerType",
    "SyncStatus",
    "SYNC_FIELDS",
    "Address",
    "CustomerCreate",
    "CustomerUpdate",
    "is_valid_email_format",
    "normalize_email",
    "full_name",
    "with_full_name",
    # Outlet
    "OutletStatus",
    "OutletType",
    "OutletCreate",
    "OutletUpdate",
    "with_derived_fields",
    # Xilnex
    "XilnexSyncResult",
]
