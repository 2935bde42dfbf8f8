from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal


class InventoryRecord(BaseModel):
    id: str = ""
    imei: str
    brand: str = ""
    model: str = ""
    color: str = ""
    capacity: str = ""
    price: Decimal = Decimal("0")
    status: str = ""
    added_to_inventory: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.status == "available"


class InventoryCheckRequest(BaseModel):
    imei: str = Field(..., min_length=1, max_length=32)


class InventoryCheckResponse(BaseModel):
    imei: str
    checksum_valid: bool
    found: bool
    record: Optional[InventoryRecord] = None
