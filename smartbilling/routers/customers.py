from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from smartbilling.dependencies import get_db, get_owner_id
from smartbilling.schemas.customer import CustomerDetailsPayload, CustomerDetailsRead
from smartbilling.services.customer_service import get_customer_details, save_customer_details

router = APIRouter(prefix="/api/customer-details", tags=["Customers"])


@router.get("", response_model=CustomerDetailsRead)
def read_customer_details(db: Session = Depends(get_db), owner_id: int = Depends(get_owner_id)):
    return get_customer_details(db, owner_id)


@router.post("")
def upsert_customer_details(
    payload: CustomerDetailsPayload,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    save_customer_details(db, owner_id, payload)
    return {"success": True, "message": "Customer saved successfully"}


__all__ = ["router"]
