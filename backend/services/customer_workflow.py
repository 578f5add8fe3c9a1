"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Retail CRM - Customer Creation Workflow                                     ║
║                                                                              ║
║  SEUL CE MODULE écrit les métadonnées de synchronisation d'un client.        ║
║                                                                              ║
║  FLOW:                                                                       ║
║  1. Requête déjà validée (CustomerCreate) + email pas déjà pris              ║
║  2. Client provisoire (non persisté, id provisoire, fullName dérivé)         ║
║  3. xilnex.sync_contact(provisoire)                                          ║
║  4. Échec non "skipped" → REJET, rien n'est écrit en base                    ║
║     Succès avec id      → syncStatus=synced, syncDate, externalClientId      ║
║     Skipped             → syncStatus=disabled, pas d'id externe              ║
║  5. Échec d'écriture locale après création Xilnex → delete compensatoire     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from enum import Enum
from typing import Optional, Dict, Any

from pymongo.errors import DuplicateKeyError, PyMongoError

from config import db, now_iso, generate_id
from models.customer import CustomerCreate, SyncStatus, full_name, with_full_name
from models.sync import XilnexSyncResult
from services.event_logger import log_event
from services.xilnex_client import XilnexService

logger = logging.getLogger("customer_workflow")

PROVISIONAL_CUSTOMER_ID = "provisional-customer"


class CreationOutcome(str, Enum):
    PERSISTED_SYNCED = "persisted_synced"
    PERSISTED_DISABLED = "persisted_disabled"
    PERSISTED_PENDING = "persisted_pending"    # Xilnex accepted but returned no id
    REJECTED_SYNC = "rejected_sync"
    REJECTED_DUPLICATE = "rejected_duplicate"
    PERSISTENCE_FAILED = "persistence_failed"


PERSISTED_OUTCOMES = {
    CreationOutcome.PERSISTED_SYNCED,
    CreationOutcome.PERSISTED_DISABLED,
    CreationOutcome.PERSISTED_PENDING,
}


class CustomerCreationResult:
    """Résultat du workflow de création"""

    def __init__(
        self,
        outcome: CreationOutcome,
        message: str = "",
        customer: Optional[dict] = None,
        sync: Optional[XilnexSyncResult] = None,
        error: Optional[str] = None
    ):
        self.outcome = outcome
        self.message = message
        self.customer = customer
        self.sync = sync
        self.error = error

    @property
    def persisted(self) -> bool:
        return self.outcome in PERSISTED_OUTCOMES

    @property
    def sync_failed(self) -> bool:
        return self.outcome == CreationOutcome.REJECTED_SYNC

    @property
    def duplicate(self) -> bool:
        return self.outcome == CreationOutcome.REJECTED_DUPLICATE

    def to_dict(self) -> Dict[str, Any]:
        if self.persisted:
            return {
                "success": True,
                "outcome": self.outcome.value,
                "data": self.customer,
                "xilnexSync": self.sync.model_dump() if self.sync else None,
            }
        result = {
            "success": False,
            "outcome": self.outcome.value,
            "message": self.message,
            "error": self.error or self.message,
            "syncFailed": self.sync_failed,
            "duplicate": self.duplicate,
        }
        if self.sync is not None:
            result["xilnexError"] = self.sync.model_dump()
        return result


def build_provisional_customer(data: CustomerCreate, registration_date: str) -> dict:
    """In-memory customer used only to drive the Xilnex call"""
    fields = data.model_dump(mode="json")
    return {
        **fields,
        "id": PROVISIONAL_CUSTOMER_ID,
        "fullName": full_name(data.firstName, data.lastName),
        "registrationDate": registration_date,
    }


def apply_sync_metadata(customer: dict, sync: XilnexSyncResult, sync_date: str) -> CreationOutcome:
    """Stamp sync metadata on a customer about to be persisted"""
    customer["externalClientId"] = None
    customer["syncDate"] = None
    customer["syncError"] = None

    if sync.skipped:
        customer["syncStatus"] = SyncStatus.DISABLED.value
        return CreationOutcome.PERSISTED_DISABLED

    if sync.xilnexClientId:
        customer["externalClientId"] = sync.xilnexClientId
        customer["syncStatus"] = SyncStatus.SYNCED.value
        customer["syncDate"] = sync_date
        return CreationOutcome.PERSISTED_SYNCED

    customer["syncStatus"] = SyncStatus.PENDING.value
    customer["syncError"] = "Xilnex accepted the client but returned no id"
    return CreationOutcome.PERSISTED_PENDING


async def _compensate(xilnex: XilnexService, sync: XilnexSyncResult, email: str, database):
    """Best-effort removal of a Xilnex client whose local insert failed"""
    if not sync.xilnexClientId:
        return
    try:
        result = await xilnex.delete_client(sync.xilnexClientId)
    except Exception as e:
        logger.error(f"[WORKFLOW] Compensation delete crashed for {sync.xilnexClientId}: {e}")
        result = XilnexSyncResult.failure(str(e))

    if result.success:
        logger.info(f"[WORKFLOW] Orphan Xilnex client {sync.xilnexClientId} removed")
    else:
        logger.error(
            f"[WORKFLOW] Orphan Xilnex client {sync.xilnexClientId} left for {email}: {result.error}"
        )

    await log_event(
        action="xilnex_compensation",
        entity_type="customer",
        entity_id=None,
        details={
            "email": email,
            "xilnexClientId": sync.xilnexClientId,
            "removed": result.success,
            "error": result.error,
        },
        database=database,
    )


async def create_customer(
    data: CustomerCreate,
    xilnex: XilnexService,
    database=None,
    user: str = "system"
) -> CustomerCreationResult:
    """
    Create a customer, registering it with Xilnex first.
    A failed Xilnex registration never leaves a local customer behind.
    """
    database = db if database is None else database

    # 1. Email déjà pris → rejet avant tout appel externe
    try:
        existing = await database.customers.find_one({"email": data.email}, {"_id": 0, "id": 1})
    except PyMongoError as e:
        logger.error(f"[WORKFLOW] Duplicate check failed for {data.email}: {e}")
        return CustomerCreationResult(
            CreationOutcome.PERSISTENCE_FAILED,
            message="Failed to save customer",
            error=str(e),
        )
    if existing:
        return CustomerCreationResult(
            CreationOutcome.REJECTED_DUPLICATE,
            message="Customer with this email already exists",
        )

    # 2. Client provisoire
    now = now_iso()
    provisional = build_provisional_customer(data, now)

    # 3. Xilnex
    sync = await xilnex.sync_contact(provisional)

    # 4. Décision
    if not sync.success and not sync.skipped:
        logger.warning(f"[WORKFLOW] Xilnex sync failed for {data.email}: {sync.error}")
        await log_event(
            action="customer_sync_rejected",
            entity_type="customer",
            entity_id=None,
            user=user,
            details={"email": data.email, "error": sync.error, "statusCode": sync.statusCode},
            database=database,
        )
        return CustomerCreationResult(
            CreationOutcome.REJECTED_SYNC,
            message="Failed to sync with Xilnex. Customer not created.",
            sync=sync,
            error=sync.error or "Xilnex sync failed",
        )

    customer = data.model_dump(mode="json")
    customer.update({
        "id": generate_id(),
        "registrationDate": now,
        "createdAt": now,
        "updatedAt": now,
    })
    outcome = apply_sync_metadata(customer, sync, now_iso())

    # 5. Persistance
    try:
        await database.customers.insert_one(customer)
    except DuplicateKeyError as e:
        logger.warning(f"[WORKFLOW] Duplicate key on insert for {data.email}: {e}")
        await _compensate(xilnex, sync, data.email, database)
        return CustomerCreationResult(
            CreationOutcome.REJECTED_DUPLICATE,
            message="Customer with this email already exists",
            sync=sync,
        )
    except PyMongoError as e:
        logger.error(f"[WORKFLOW] Insert failed for {data.email}: {e}")
        await _compensate(xilnex, sync, data.email, database)
        return CustomerCreationResult(
            CreationOutcome.PERSISTENCE_FAILED,
            message="Failed to save customer",
            sync=sync,
            error=str(e),
        )

    customer.pop("_id", None)
    with_full_name(customer)
    logger.info(f"[WORKFLOW] Customer {customer['id']} created ({customer['syncStatus']})")

    await log_event(
        action="customer_create",
        entity_type="customer",
        entity_id=customer["id"],
        user=user,
        details={
            "email": customer["email"],
            "syncStatus": customer["syncStatus"],
            "externalClientId": customer["externalClientId"],
        },
        database=database,
    )

    return CustomerCreationResult(outcome, customer=customer, sync=sync)
