"""
Retail CRM - API Backend
Clients, outlets et synchronisation Xilnex

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

import config
from config import db, now_iso
from services.xilnex_client import XilnexService

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("retail_crm")

# Créer l'app
app = FastAPI(
    title="Retail CRM",
    description="CRM clients avec synchronisation Xilnex",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Client Xilnex unique pour le process
app.state.xilnex = XilnexService.from_config(database=db)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Validation error",
            "errors": jsonable_encoder(exc.errors())
        }
    )


# ==================== IMPORT DES ROUTES ====================

from routes import customers, outlets

app.include_router(customers.router, prefix="/api")
app.include_router(outlets.router, prefix="/api")


# ==================== ROUTES RACINE ====================

@app.get("/")
async def root():
    return {
        "name": "Retail CRM API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    return {
        "status": "OK",
        "message": "CRM Backend API is running",
        "timestamp": now_iso(),
        "xilnexEnabled": app.state.xilnex.is_enabled()
    }


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    logger.info("🚀 Retail CRM démarré")

    if config.XILNEX_ENABLED:
        missing = config.missing_xilnex_credentials()
        if missing:
            logger.warning(
                f"⚠️  Xilnex integration is enabled but missing: {', '.join(missing)}. "
                "Xilnex integration will be disabled."
            )
    logger.info(f"Xilnex integration: {'enabled' if app.state.xilnex.is_enabled() else 'disabled'}")

    await db.customers.create_index("id", unique=True)
    await db.customers.create_index("email", unique=True)
    await db.customers.create_index("status")
    await db.customers.create_index("outlet")
    await db.customers.create_index([("createdAt", -1)])
    await db.customers.create_index(
        "externalClientId",
        unique=True,
        partialFilterExpression={"externalClientId": {"$type": "string"}}
    )
    await db.outlets.create_index("id", unique=True)
    await db.outlets.create_index("code", unique=True)
    await db.outlets.create_index("status")
    await db.outlets.create_index("type")
    await db.event_log.create_index("created_at")

    logger.info("✅ Index MongoDB créés")


@app.on_event("shutdown")
async def shutdown():
    await app.state.xilnex.aclose()
    config.client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
