from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BillLineIn(BaseModel):
    item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: int = 0
    unit_price: float = 0
    gst: float = 0
    uom: Optional[str] = None

    @field_validator("quantity", "unit_price", "gst", mode="before")
    @classmethod
    def _blank_numbers(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return value


class BillCreate(BaseModel):
    customer_name: Optional[str] = None
    customer_mobile: Optional[str] = None
    items: List[BillLineIn] = Field(default_factory=list)
    pending_amount: float = 0


class BillCreated(BaseModel):
    id: int
    bill_number: str
    total: float


class BillLineRead(BaseModel):
    id: int
    bill_id: int
    item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: int
    unit_price: float
    gst: float
    total: float
    uom: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BillRead(BaseModel):
    id: int
    bill_number: str
    customer_name: Optional[str] = None
    customer_mobile: Optional[str] = None
    total_amount: float
    pending_amount: float
    user_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BillDetail(BillRead):
    items: List[BillLineRead] = Field(default_factory=list)
