"""
Client for the external inventory lookup service.

GET {INVENTORY_API_URL}/api/Producto/Imei?imei=<imei> answers
``{"success": bool, "result": {...}}``. A device that is not in inventory is
a normal outcome (``None``); repeated transport or server failures and
unreadable answers raise ``InventoryLookupError``.
"""

import logging
import time
from decimal import Decimal
from typing import Optional

import httpx
from pydantic import ValidationError

from vendor_sales.core.config import settings
from vendor_sales.schemas.inventory import InventoryRecord
from vendor_sales.utils.imei import mask_imei

logger = logging.getLogger(__name__)


class InventoryLookupError(Exception):
    """Inventory service unreachable after all retries"""


class InventoryClient:
    LOOKUP_PATH = "/api/Producto/Imei"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = settings.INVENTORY_TIMEOUT_SECONDS,
        max_retries: int = settings.INVENTORY_MAX_RETRIES,
        backoff_seconds: float = settings.INVENTORY_BACKOFF_SECONDS,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "InventoryClient":
        return cls(base_url=settings.INVENTORY_API_URL, api_key=settings.INVENTORY_API_KEY)

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.base_url.strip() and self.api_key and self.api_key.strip())

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def lookup(self, imei: str) -> Optional[InventoryRecord]:
        if not self.is_configured:
            logger.warning("Inventory API not configured, skipping lookup for IMEI %s", mask_imei(imei))
            return None

        url = f"{self.base_url}{self.LOOKUP_PATH}"
        last_error: Optional[Exception] = None

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, self.max_retries + 1):
                logger.info(
                    "Checking IMEI %s in inventory (attempt %d/%d)",
                    mask_imei(imei), attempt, self.max_retries
                )
                try:
                    response = client.get(url, params={"imei": imei}, headers=self._headers())
                except httpx.RequestError as e:
                    last_error = e
                    logger.warning("Inventory request failed: %s", e.__class__.__name__)
                else:
                    if response.status_code >= 500:
                        last_error = InventoryLookupError(f"Server error {response.status_code}")
                        logger.warning("Inventory server error %d", response.status_code)
                    elif response.status_code >= 400:
                        # Client errors are not retried
                        logger.error("Inventory API error: status %d", response.status_code)
                        return None
                    else:
                        try:
                            return self._parse(imei, response.json())
                        except (ValueError, ArithmeticError, TypeError, ValidationError) as e:
                            # Malformed answers are not retried
                            logger.error(
                                "Unreadable inventory response for IMEI %s: %s",
                                mask_imei(imei), e.__class__.__name__
                            )
                            raise InventoryLookupError("Malformed inventory response") from e

                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))

        logger.error("All inventory lookups failed for IMEI %s", mask_imei(imei))
        raise InventoryLookupError(str(last_error) if last_error else "Inventory lookup failed")

    @staticmethod
    def _parse(imei: str, data: dict) -> Optional[InventoryRecord]:
        if not isinstance(data, dict):
            raise TypeError("Inventory response is not an object")
        if data.get("success") is not True or not data.get("result"):
            return None

        result = data["result"]
        if not isinstance(result, dict):
            raise TypeError("Inventory result is not an object")
        return InventoryRecord(
            id=str(result.get("id") or ""),
            imei=result.get("imei") or imei,
            brand=result.get("marca") or "",
            model=result.get("modelo") or "",
            color=result.get("color") or "",
            capacity=result.get("capacidad") or "",
            price=Decimal(str(result.get("precio") or 0)),
            status="available" if result.get("estatus") is True else "unavailable",
            added_to_inventory=result.get("fechaCreacion")
        )


def get_inventory_client() -> InventoryClient:
    """FastAPI dependency"""
    return InventoryClient.from_settings()
