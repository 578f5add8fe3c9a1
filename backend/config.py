"""
Configuration et utilitaires partagés
"""

import os
import uuid
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'retail_crm')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== XILNEX ====================

XILNEX_ENABLED = os.environ.get('XILNEX_ENABLED', 'false').strip().lower() == 'true'
XILNEX_API_URL = os.environ.get('XILNEX_API_URL', 'https://api.xilnex.com')
XILNEX_APPID = os.environ.get('XILNEX_APPID', '')
XILNEX_APPTOKEN = os.environ.get('XILNEX_APPTOKEN', '')
XILNEX_AUTH = os.environ.get('XILNEX_AUTH', '')
XILNEX_TIMEOUT = float(os.environ.get('XILNEX_TIMEOUT', '30'))


def missing_xilnex_credentials() -> list:
    """Noms des variables Xilnex absentes (vide si tout est renseigné)"""
    values = {
        'XILNEX_APPID': XILNEX_APPID,
        'XILNEX_APPTOKEN': XILNEX_APPTOKEN,
        'XILNEX_AUTH': XILNEX_AUTH,
    }
    return [name for name, value in values.items() if not value]


# ==================== HELPERS ====================

def generate_id() -> str:
    """Identifiant document (uuid4)"""
    return str(uuid.uuid4())

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()
