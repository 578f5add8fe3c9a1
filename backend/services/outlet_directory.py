"""
Retail CRM - Outlet Directory

Resolves an outlet code to the display name Xilnex shows as "created outlet".

FAIL-OPEN: not found or storage error → the code itself (or DEFAULT_OUTLET_NAME
when no code is given). Never raises.
No cache: every lookup reads the outlets collection.
"""

import logging
from config import db

logger = logging.getLogger("outlet_directory")

DEFAULT_OUTLET_NAME = "Default Outlet"


async def get_outlet_display_name(outlet_code: str, database=None) -> str:
    fallback = outlet_code or DEFAULT_OUTLET_NAME
    if not outlet_code:
        return fallback

    database = db if database is None else database
    try:
        outlet = await database.outlets.find_one({"code": outlet_code}, {"_id": 0, "name": 1})
    except Exception as e:
        logger.warning(f"[OUTLET] Lookup failed for {outlet_code} (fallback): {e}")
        return fallback

    if outlet and outlet.get("name"):
        return outlet["name"]
    return fallback
