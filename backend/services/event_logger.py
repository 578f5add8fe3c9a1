"""
Retail CRM - Event Logger

Centralized audit trail for customer and Xilnex actions.
Single function to call from any route/service. An audit failure is logged
and never changes the outcome of the caller.
"""

import logging
from config import db, now_iso, generate_id

logger = logging.getLogger("event_logger")


async def log_event(
    action: str,
    entity_type: str,
    entity_id: str,
    user: str = "system",
    details: dict = None,
    database=None
):
    """
    Write a single event to the event_log collection.

    Args:
        action: customer_create | customer_sync_rejected | customer_update |
                customer_delete | xilnex_compensation | outlet_create | ...
        entity_type: customer | outlet
        entity_id: ID of the primary entity (may be None when nothing was stored)
        user: who performed the action
        details: free-form dict (email, sync status, upstream error, ...)
    """
    database = db if database is None else database
    try:
        await database.event_log.insert_one({
            "id": generate_id(),
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "user": user,
            "details": details or {},
            "created_at": now_iso()
        })
    except Exception as e:
        logger.error(f"Audit write failed for {action} {entity_type}/{entity_id}: {e}")
