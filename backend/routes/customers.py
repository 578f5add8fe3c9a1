"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Retail CRM - Routes Customers                                               ║
║                                                                              ║
║  POST   → workflow de création (Xilnex d'abord, MongoDB ensuite)             ║
║  PUT    → édition locale, ne relance PAS la synchro Xilnex                   ║
║  DELETE → suppression locale, pas de cascade vers Xilnex                     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from typing import Optional
import math
import re

from config import db, now_iso
from models import CustomerCreate, CustomerUpdate, with_full_name
from models.customer import NON_NULLABLE_FIELDS as CUSTOMER_NON_NULLABLE
from services.customer_workflow import create_customer as run_creation_workflow, CreationOutcome
from services.event_logger import log_event
from services.xilnex_client import XilnexService

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_xilnex_service(request: Request) -> XilnexService:
    """Instance unique construite au démarrage (server.py)"""
    return request.app.state.xilnex


@router.get("")
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=500),
    status: Optional[str] = None,
    outlet: Optional[str] = None,
    search: Optional[str] = None
):
    """Liste paginée, filtres status / outlet / recherche texte"""
    query = {}
    if status:
        query["status"] = status
    if outlet:
        query["outlet"] = outlet
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"firstName": pattern},
            {"lastName": pattern},
            {"email": pattern},
            {"company": pattern},
        ]

    start_index = (page - 1) * limit
    end_index = page * limit

    total = await db.customers.count_documents(query)
    customers = await db.customers.find(query, {"_id": 0}) \
        .sort("createdAt", -1) \
        .skip(start_index) \
        .limit(limit) \
        .to_list(limit)

    pagination = {}
    if end_index < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start_index > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}

    return {
        "success": True,
        "count": len(customers),
        "pagination": pagination,
        "meta": {
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit)
        },
        "data": [with_full_name(c) for c in customers]
    }


@router.get("/{customer_id}")
async def get_customer(customer_id: str):
    customer = await db.customers.find_one({"id": customer_id}, {"_id": 0})
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return {"success": True, "data": with_full_name(customer)}


@router.post("", status_code=201)
async def create_customer(
    data: CustomerCreate,
    xilnex: XilnexService = Depends(get_xilnex_service)
):
    """
    Crée un client.

    201 → persisté (synced / disabled)
    400 → refus Xilnex (syncFailed=true) ou email déjà utilisé (duplicate=true)
    500 → échec d'écriture locale
    """
    result = await run_creation_workflow(data, xilnex, database=db)

    if result.persisted:
        return result.to_dict()

    status_code = 500 if result.outcome == CreationOutcome.PERSISTENCE_FAILED else 400
    return JSONResponse(status_code=status_code, content=result.to_dict())


@router.put("/{customer_id}")
async def update_customer(customer_id: str, data: CustomerUpdate):
    """Met à jour les champs métier (jamais les métadonnées de synchro)"""
    customer = await db.customers.find_one({"id": customer_id}, {"_id": 0})
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    update_data = data.model_dump(mode="json", exclude_unset=True)
    update_data = {
        k: v for k, v in update_data.items()
        if v is not None or k not in CUSTOMER_NON_NULLABLE
    }

    if update_data.get("email") and update_data["email"] != customer.get("email"):
        taken = await db.customers.find_one(
            {"email": update_data["email"], "id": {"$ne": customer_id}},
            {"_id": 0, "id": 1}
        )
        if taken:
            raise HTTPException(status_code=400, detail="Customer with this email already exists")

    update_data["updatedAt"] = now_iso()

    try:
        await db.customers.update_one({"id": customer_id}, {"$set": update_data})
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Customer with this email already exists")

    await log_event(
        action="customer_update",
        entity_type="customer",
        entity_id=customer_id,
        details={"fields": sorted(k for k in update_data if k != "updatedAt")},
        database=db,
    )

    customer = await db.customers.find_one({"id": customer_id}, {"_id": 0})
    return {"success": True, "data": with_full_name(customer)}


@router.delete("/{customer_id}")
async def delete_customer(customer_id: str):
    customer = await db.customers.find_one({"id": customer_id}, {"_id": 0})
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    await db.customers.delete_one({"id": customer_id})

    await log_event(
        action="customer_delete",
        entity_type="customer",
        entity_id=customer_id,
        details={"email": customer.get("email"), "externalClientId": customer.get("externalClientId")},
        database=db,
    )

    return {"success": True, "data": {}, "message": "Customer deleted successfully"}
