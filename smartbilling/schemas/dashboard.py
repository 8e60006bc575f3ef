from typing import Optional

from pydantic import BaseModel


class DashboardSummary(BaseModel):
    totalRevenue: float
    todayRevenue: float
    totalBills: int
    pendingAmount: float
    profitAmount: float


class RevenuePoint(BaseModel):
    date: str
    amount: float


class TopItem(BaseModel):
    item_name: Optional[str] = None
    qty: int
    total: float
