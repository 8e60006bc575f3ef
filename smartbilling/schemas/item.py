from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from smartbilling.core.constants import DEFAULT_UOM


class ItemPayload(BaseModel):
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    quantity: int = 0
    item_price: float = 0
    cost_price: float = 0
    mrp: float = 0
    gst: float = 0
    uom: Optional[str] = DEFAULT_UOM
    expiry_date: Optional[date] = None

    @field_validator("quantity", "item_price", "cost_price", "mrp", "gst", mode="before")
    @classmethod
    def _blank_numbers(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return value

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _blank_expiry(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ItemRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    item_code: str
    item_name: str
    quantity: int
    item_price: float
    cost_price: float
    mrp: float
    gst: float
    uom: Optional[str] = None
    expiry_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ItemPage(BaseModel):
    items: List[ItemRead] = Field(default_factory=list)
    total: int
    totalPrice: float


class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(default_factory=list)


class ImportResult(BaseModel):
    imported: int
    total: int
    errors: Optional[List[str]] = None
    errorCount: Optional[int] = None
