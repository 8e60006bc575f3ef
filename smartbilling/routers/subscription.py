from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from smartbilling.dependencies import get_db, get_owner_id
from smartbilling.schemas.account import RechargeRequest
from smartbilling.services.account_service import recharge_subscription

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])


@router.post("/recharge")
def recharge(
    payload: RechargeRequest,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    try:
        expiry = recharge_subscription(db, owner_id, payload.plan_months, payload.amount)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if expiry is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"ok": True, "expiry": expiry.isoformat()}


__all__ = ["router"]
