"""
Retail CRM - Routes Outlets

CRUD des points de vente. Le code outlet est la clé référencée par les clients
et résolue en nom pour Xilnex (services/outlet_directory.py).
"""

from fastapi import APIRouter, HTTPException
from pymongo.errors import DuplicateKeyError
from typing import Optional
import re

from config import db, now_iso, generate_id
from models import OutletCreate, OutletUpdate, OutletStatus, with_derived_fields
from models.outlet import NON_NULLABLE_FIELDS as OUTLET_NON_NULLABLE
from services.event_logger import log_event

router = APIRouter(prefix="/outlets", tags=["Outlets"])

DUPLICATE_CODE = "Outlet code already exists"


@router.get("")
async def list_outlets(
    status: Optional[str] = None,
    type: Optional[str] = None,
    search: Optional[str] = None
):
    query = {}
    if status:
        query["status"] = status
    if type:
        query["type"] = type
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"name": pattern},
            {"code": pattern},
            {"description": pattern},
        ]

    outlets = await db.outlets.find(query, {"_id": 0}).sort("name", 1).to_list(1000)
    return {
        "success": True,
        "count": len(outlets),
        "data": [with_derived_fields(o) for o in outlets]
    }


@router.get("/stats/overview")
async def outlet_stats():
    total = await db.outlets.count_documents({})
    by_status = {
        s.value: await db.outlets.count_documents({"status": s.value})
        for s in OutletStatus
    }
    type_stats = await db.outlets.aggregate([
        {"$group": {"_id": "$type", "count": {"$sum": 1}}}
    ]).to_list(100)

    return {
        "success": True,
        "data": {
            "total": total,
            **by_status,
            "byType": {item["_id"]: item["count"] for item in type_stats}
        }
    }


@router.get("/{outlet_id}")
async def get_outlet(outlet_id: str):
    outlet = await db.outlets.find_one({"id": outlet_id}, {"_id": 0})
    if not outlet:
        raise HTTPException(status_code=404, detail="Outlet not found")
    return {"success": True, "data": with_derived_fields(outlet)}


@router.post("", status_code=201)
async def create_outlet(data: OutletCreate):
    if await db.outlets.find_one({"code": data.code}, {"_id": 0, "id": 1}):
        raise HTTPException(status_code=400, detail=DUPLICATE_CODE)

    outlet = data.model_dump(mode="json")
    outlet.update({
        "id": generate_id(),
        "createdAt": now_iso(),
        "updatedAt": now_iso(),
    })

    try:
        await db.outlets.insert_one(outlet)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=DUPLICATE_CODE)
    outlet.pop("_id", None)

    await log_event(
        action="outlet_create",
        entity_type="outlet",
        entity_id=outlet["id"],
        details={"code": outlet["code"]},
        database=db,
    )

    return {"success": True, "data": with_derived_fields(outlet)}


@router.put("/{outlet_id}")
async def update_outlet(outlet_id: str, data: OutletUpdate):
    outlet = await db.outlets.find_one({"id": outlet_id}, {"_id": 0})
    if not outlet:
        raise HTTPException(status_code=404, detail="Outlet not found")

    update_data = {
        k: v for k, v in data.model_dump(mode="json", exclude_unset=True).items()
        if v is not None or k not in OUTLET_NON_NULLABLE
    }

    if update_data.get("code") and update_data["code"] != outlet.get("code"):
        if await db.outlets.find_one({"code": update_data["code"]}, {"_id": 0, "id": 1}):
            raise HTTPException(status_code=400, detail=DUPLICATE_CODE)

    update_data["updatedAt"] = now_iso()

    try:
        await db.outlets.update_one({"id": outlet_id}, {"$set": update_data})
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=DUPLICATE_CODE)

    await log_event(
        action="outlet_update",
        entity_type="outlet",
        entity_id=outlet_id,
        details={"fields": sorted(k for k in update_data if k != "updatedAt")},
        database=db,
    )

    outlet = await db.outlets.find_one({"id": outlet_id}, {"_id": 0})
    return {"success": True, "data": with_derived_fields(outlet)}


@router.delete("/{outlet_id}")
async def delete_outlet(outlet_id: str):
    outlet = await db.outlets.find_one({"id": outlet_id}, {"_id": 0})
    if not outlet:
        raise HTTPException(status_code=404, detail="Outlet not found")

    await db.outlets.delete_one({"id": outlet_id})

    await log_event(
        action="outlet_delete",
        entity_type="outlet",
        entity_id=outlet_id,
        details={"code": outlet.get("code")},
        database=db,
    )

    return {"success": True, "data": {}, "message": "Outlet deleted successfully"}
