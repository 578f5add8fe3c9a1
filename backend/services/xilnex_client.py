"""
Service de synchronisation des clients vers Xilnex (POS retail)

Format API Xilnex:
- Create: POST /logic/v2/clients
- Update / Get / Delete: PUT | GET | DELETE /clients/{id}
- Auth: headers appid, token, auth (statiques)
- Body: {"client": {...}, "isRequireGenerateXCard": false, "isCreditTransferable": false}

RÈGLES:
- Intégration active SEULEMENT si XILNEX_ENABLED=true ET les 3 identifiants sont renseignés
- create/update/get/delete lèvent XilnexConfigError si inactive
- sync_contact ne lève jamais: inactive → skipped, erreur → XilnexSyncResult(success=False)
- Un refus Xilnex est une VALEUR retournée, jamais une exception
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

import httpx

import config
from models.customer import CustomerStatus, full_name
from models.sync import XilnexSyncResult
from services.outlet_directory import get_outlet_display_name

logger = logging.getLogger("xilnex_client")

CREATE_PATH = "/logic/v2/clients"
CLIENT_PATH = "/clients/{client_id}"

SENTINEL_CLIENT_CODE = 9001

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 1.0  # secondes entre deux lots (rate limit Xilnex)


class XilnexConfigError(Exception):
    """Raised when a direct Xilnex call is made while the integration is off"""
    pass


# ════════════════════════════════════════════════════════════════════════════
# MAPPINGS
# ════════════════════════════════════════════════════════════════════════════

CRM_TO_XILNEX_STATUS = {
    CustomerStatus.LEAD.value: "prospect",
    CustomerStatus.PROSPECT.value: "prospect",
    CustomerStatus.CUSTOMER.value: "active",
    CustomerStatus.INACTIVE.value: "inactive",
}
DEFAULT_XILNEX_STATUS = "prospect"


def map_crm_status_to_xilnex(crm_status: Optional[str]) -> str:
    """Xilnex client status for a CRM status. Not part of the client envelope."""
    return CRM_TO_XILNEX_STATUS.get(crm_status, DEFAULT_XILNEX_STATUS)


def client_code_from_id(local_id) -> int:
    """
    Numeric Xilnex client code: last 4 digits found in the local id.
    No digits (or 0000) → SENTINEL_CLIENT_CODE.
    """
    digits = re.sub(r"\D", "", str(local_id or ""))
    code = int(digits[-4:]) if digits else 0
    return code or SENTINEL_CLIENT_CODE


def _default_dob() -> str:
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return today.isoformat()


def _response_body(resp: httpx.Response):
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


# ════════════════════════════════════════════════════════════════════════════
# CLIENT
# ════════════════════════════════════════════════════════════════════════════

class XilnexService:
    """
    One instance per process (built in server.py), injected into routes.
    Owns a single httpx.AsyncClient.
    """

    def __init__(
        self,
        api_url: str,
        app_id: str = "",
        app_token: str = "",
        auth: str = "",
        enabled: bool = False,
        timeout: float = 30.0,
        database=None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.api_url = api_url
        self.app_id = app_id or ""
        self.app_token = app_token or ""
        self.auth = auth or ""
        self.enabled = enabled
        self.timeout = timeout
        self.database = database

        self.http = httpx.AsyncClient(
            base_url=api_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "appid": self.app_id,
                "token": self.app_token,
                "auth": self.auth,
            },
        )

    @classmethod
    def from_config(cls, database=None) -> "XilnexService":
        return cls(
            api_url=config.XILNEX_API_URL,
            app_id=config.XILNEX_APPID,
            app_token=config.XILNEX_APPTOKEN,
            auth=config.XILNEX_AUTH,
            enabled=config.XILNEX_ENABLED,
            timeout=config.XILNEX_TIMEOUT,
            database=database,
        )

    async def aclose(self):
        await self.http.aclose()

    def is_enabled(self) -> bool:
        return bool(self.enabled and self.app_id and self.app_token and self.auth)

    def _require_enabled(self):
        if not self.is_enabled():
            raise XilnexConfigError("Xilnex integration is not enabled or configured")

    # ---- Transformation ----

    async def transform_contact(self, contact: dict) -> dict:
        """
        CRM customer → Xilnex client envelope.
        Deterministic for a given contact and outlet directory state.
        """
        outlet_name = await get_outlet_display_name(contact.get("outlet"), self.database)
        code = client_code_from_id(contact.get("id"))
        first_name = contact.get("firstName", "")
        last_name = contact.get("lastName", "")

        return {
            "client": {
                "buddyReferenceID": 0,
                "buddyPoints": 0,
                "lifetimePointValueToUpgrade": 0,
                "lifetimePointValueToMaintain": 0,
                "targetLifetimePointValueToUpgrade": 0,
                "targetLifetimePointValueToMaintain": 0,
                "id": code,
                "name": contact.get("fullName") or full_name(first_name, last_name),
                "alternateLookup": "",
                "creditLimit": 0,
                "code": str(code),
                "email": contact.get("email", ""),
                "type": "",
                "registrationCode": "",
                "dob": contact.get("registrationDate") or _default_dob(),
                "firstName": first_name,
                "lastName": last_name,
                "mobile": contact.get("phone") or "",
                "active": True,
                "allowAllOutlets": True,
                "gstInclusive": False,
                "pointValue": 0,
                "lifetimePointValue": 0,
                "lastLifetimePointValue": 0,
                "createdOutlet": outlet_name,
                "pointFactor": 0,
                "paymentTerms": 0,
                "enableDOB": False,
                "allowToReceiveMarketing": False,
                "individualDiscount": 0,
                "verified": False,
                "purchaseLimit": 0,
                "isActivatedBuddyReward": False,
                "isActivatedBuddyReferenceReward": False,
                "isActivatedStoreReferenceReward": False,
                "floatingPointValue": 0,
                "isAutoEmailReceipt": False,
                "eLHDNIsForeign": False,
                "priceMarkupPercentage": 0,
                "controlledDiscountLimit": 0,
            },
            "isRequireGenerateXCard": False,
            "isCreditTransferable": False,
        }

    # ---- HTTP ----

    async def _request(self, method: str, path: str, payload: dict = None) -> httpx.Response:
        resp = await self.http.request(method, path, json=payload)
        resp.raise_for_status()
        return resp

    def _failure(self, action: str, error: Exception) -> XilnexSyncResult:
        if isinstance(error, httpx.HTTPStatusError):
            body = _response_body(error.response)
            message = body.get("message") if isinstance(body, dict) else None
            if message is not None and not isinstance(message, str):
                message = json.dumps(message) if isinstance(message, (list, dict)) else str(message)
            logger.warning(f"[XILNEX] {action} rejected ({error.response.status_code}): {body}")
            return XilnexSyncResult.failure(
                message or str(error),
                status_code=error.response.status_code,
                details=body,
            )

        if isinstance(error, httpx.TimeoutException):
            message = f"Timeout after {self.timeout:g}s"
        else:
            message = str(error) or error.__class__.__name__
        logger.warning(f"[XILNEX] {action} failed: {message}")
        return XilnexSyncResult.failure(message)

    # ---- Operations ----

    async def create_client(self, contact: dict) -> XilnexSyncResult:
        self._require_enabled()
        try:
            payload = await self.transform_contact(contact)
            logger.info(f"[XILNEX] Creating client {payload['client']['code']}")
            resp = await self._request("POST", CREATE_PATH, payload)
        except httpx.HTTPError as e:
            return self._failure("create", e)

        data = _response_body(resp)
        client_id = None
        if isinstance(data, dict):
            client_id = data.get("id") or (data.get("client") or {}).get("id")

        logger.info(f"[XILNEX] Client created: {client_id}")
        return XilnexSyncResult(
            success=True,
            xilnexClientId=str(client_id) if client_id is not None else None,
            data=data,
        )

    async def update_client(self, xilnex_client_id: str, contact: dict) -> XilnexSyncResult:
        self._require_enabled()
        try:
            payload = await self.transform_contact(contact)
            resp = await self._request("PUT", CLIENT_PATH.format(client_id=xilnex_client_id), payload)
        except httpx.HTTPError as e:
            return self._failure("update", e)

        logger.info(f"[XILNEX] Client updated: {xilnex_client_id}")
        return XilnexSyncResult(success=True, data=_response_body(resp))

    async def get_client(self, xilnex_client_id: str) -> XilnexSyncResult:
        self._require_enabled()
        try:
            resp = await self._request("GET", CLIENT_PATH.format(client_id=xilnex_client_id))
        except httpx.HTTPError as e:
            return self._failure("get", e)
        return XilnexSyncResult(success=True, data=_response_body(resp))

    async def delete_client(self, xilnex_client_id: str) -> XilnexSyncResult:
        self._require_enabled()
        try:
            resp = await self._request("DELETE", CLIENT_PATH.format(client_id=xilnex_client_id))
        except httpx.HTTPError as e:
            return self._failure("delete", e)

        logger.info(f"[XILNEX] Client deleted: {xilnex_client_id}")
        return XilnexSyncResult(success=True, data=_response_body(resp))

    async def sync_contact(self, contact: dict) -> XilnexSyncResult:
        """
        Create or update depending on whether the contact already has a
        Xilnex id. Never raises.
        """
        if not self.is_enabled():
            return XilnexSyncResult.skipped_disabled()

        try:
            if contact.get("externalClientId"):
                return await self.update_client(contact["externalClientId"], contact)
            return await self.create_client(contact)
        except Exception as e:
            logger.error(f"[XILNEX] Unexpected sync error for {contact.get('id')}: {e}")
            return XilnexSyncResult.failure(str(e) or e.__class__.__name__)

    async def batch_sync_contacts(
        self,
        contacts: List[dict],
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay: float = DEFAULT_BATCH_DELAY,
    ) -> List[dict]:
        """
        Sync contacts in fixed-size groups: concurrent inside a group,
        `delay` seconds between groups. Disabled → [] (nothing queued).

        Returns [{"contact": <local id>, "result": XilnexSyncResult}] in input order.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        if not self.is_enabled():
            return []

        results = []
        for start in range(0, len(contacts), batch_size):
            batch = contacts[start:start + batch_size]
            outcomes = await asyncio.gather(*(self.sync_contact(c) for c in batch))
            results.extend(
                {"contact": contact.get("id"), "result": outcome}
                for contact, outcome in zip(batch, outcomes)
            )

            if start + batch_size < len(contacts):
                await asyncio.sleep(delay)

        logger.info(
            f"[XILNEX] Batch sync done: {sum(1 for r in results if r['result'].success)}"
            f"/{len(results)} succeeded"
        )
        return results
