from sqlalchemy import select
from sqlalchemy.orm import Session

from smartbilling.models.customer import CustomerDetails
from smartbilling.schemas.customer import CustomerDetailsPayload

CUSTOMER_FIELDS = ("name", "organization_name", "email", "address", "gstin")


def get_customer_details(db: Session, owner_id: int) -> dict:
    row = db.execute(
        select(CustomerDetails).where(CustomerDetails.user_id == owner_id)
    ).scalars().first()
    if row is None:
        return {field: "" for field in CUSTOMER_FIELDS}
    return {field: getattr(row, field) or "" for field in CUSTOMER_FIELDS}


def save_customer_details(db: Session, owner_id: int, payload: CustomerDetailsPayload) -> CustomerDetails:
    row = db.execute(
        select(CustomerDetails).where(CustomerDetails.user_id == owner_id)
    ).scalars().first()
    if row is None:
        row = CustomerDetails(user_id=owner_id)
        db.add(row)
    for field in CUSTOMER_FIELDS:
        setattr(row, field, (getattr(payload, field) or "").strip())
    db.commit()
    db.refresh(row)
    return row


__all__ = ["CUSTOMER_FIELDS", "get_customer_details", "save_customer_details"]
