"""
Retail CRM - Seed default outlets
Upserts the default outlet set by code.
Run: python scripts/seed_outlets.py
Reset: python scripts/seed_outlets.py --reset   (drops every outlet first)
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import client, db, now_iso, generate_id  # noqa: E402


def _address(street, city, zip_code):
    return {
        "street": street,
        "city": city,
        "state": "Metro Manila",
        "zipCode": zip_code,
        "country": "Philippines",
    }


DEFAULT_OUTLETS = [
    {"name": "Training Outlet", "code": "TRAIN", "type": "store",
     "description": "Training and demo outlet for staff learning and customer demos",
     "address": _address("123 Training Street", "Manila", "1000"),
     "phone": "+63917123456", "email": "training@company.com", "manager": "Training Manager"},
    {"name": "Main Store", "code": "MAIN", "type": "store",
     "description": "Primary retail location and flagship store",
     "address": _address("456 Main Avenue", "Manila", "1001"),
     "phone": "+63917234567", "email": "main@company.com", "manager": "Store Manager"},
    {"name": "Branch 1", "code": "BR1", "type": "store",
     "description": "First branch location in Quezon City",
     "address": _address("789 Branch Road", "Quezon City", "1100"),
     "phone": "+63917345678", "email": "branch1@company.com", "manager": "Branch Manager 1"},
    {"name": "Branch 2", "code": "BR2", "type": "store",
     "description": "Second branch location in Makati",
     "address": _address("321 Business District", "Makati", "1200"),
     "phone": "+63917456789", "email": "branch2@company.com", "manager": "Branch Manager 2"},
    {"name": "Online Store", "code": "ONLINE", "type": "online",
     "description": "E-commerce platform and online sales channel",
     "address": _address("999 Digital Plaza", "Taguig", "1600"),
     "phone": "+63917567890", "email": "online@company.com", "manager": "E-commerce Manager"},
    {"name": "Main Warehouse", "code": "WH1", "type": "warehouse",
     "description": "Primary storage and distribution center",
     "address": _address("555 Industrial Zone", "Marikina", "1800"),
     "phone": "+63917678901", "email": "warehouse@company.com", "manager": "Warehouse Manager"},
]


async def reset(database):
    result = await database.outlets.delete_many({})
    print(f"Deleted {result.deleted_count} outlets")


async def seed(database) -> dict:
    """Create or update the default outlets, keyed by code"""
    counts = {"created": 0, "updated": 0}
    for o in DEFAULT_OUTLETS:
        existing = await database.outlets.find_one({"code": o["code"]}, {"_id": 0, "id": 1})
        doc = {**o, "status": "active", "updatedAt": now_iso()}
        if existing:
            await database.outlets.update_one({"code": o["code"]}, {"$set": doc})
            counts["updated"] += 1
            print(f"  Updated: {o['name']} ({o['code']})")
        else:
            doc["id"] = generate_id()
            doc["createdAt"] = now_iso()
            await database.outlets.insert_one(doc)
            counts["created"] += 1
            print(f"  Created: {o['name']} ({o['code']})")
    return counts


async def main():
    if "--reset" in sys.argv:
        await reset(db)
    counts = await seed(db)
    print(f"\n{counts['created']} created, {counts['updated']} updated")
    client.close()


if __name__ == "__main__":
    asyncio.run(main())
