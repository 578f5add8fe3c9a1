"""
Retail CRM - Xilnex sync outcomes

Every call to the external platform ends in one of these, never in a raised
upstream error.
"""

from typing import Any, Optional
from pydantic import BaseModel


class XilnexSyncResult(BaseModel):
    success: bool
    skipped: bool = False
    reason: Optional[str] = None

    # Create only
    xilnexClientId: Optional[str] = None
    data: Any = None

    # Failure
    error: Optional[str] = None
    statusCode: Optional[int] = None
    details: Any = None

    @classmethod
    def skipped_disabled(cls) -> "XilnexSyncResult":
        return cls(success=True, skipped=True, reason="Integration disabled")

    @classmethod
    def failure(cls, error: str, status_code: int = None, details: Any = None) -> "XilnexSyncResult":
        return cls(success=False, error=error, statusCode=status_code, details=details)
