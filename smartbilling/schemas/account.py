from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: Optional[str] = None
    shop_name: Optional[str] = None


class UserRead(BaseModel):
    id: int
    email: Optional[str] = None
    shop_name: Optional[str] = None
    subscription_expiry: Optional[date] = None
    created_at: Optional[datetime] = None
    subscriptionActive: bool = True

    model_config = ConfigDict(from_attributes=True)


class RechargeRequest(BaseModel):
    plan_months: int
    amount: float = 0
