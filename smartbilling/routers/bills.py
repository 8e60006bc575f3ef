from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from smartbilling.core.csv_export import CSV_MEDIA_TYPE, attachment_headers
from smartbilling.dependencies import get_db, get_owner_id
from smartbilling.schemas.bill import BillCreate, BillCreated, BillDetail, BillLineRead, BillRead
from smartbilling.services import billing_service

router = APIRouter(prefix="/api/bills", tags=["Bills"])


@router.post("", response_model=BillCreated)
def create_bill(
    payload: BillCreate,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    try:
        bill = billing_service.create_bill(db, owner_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BillCreated(id=bill.id, bill_number=bill.bill_number, total=bill.total_amount)


@router.get("", response_model=list[BillRead])
def list_bills(
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    return billing_service.list_bills(db, owner_id, search, start_date, end_date)


@router.get("/export")
def export_bills(
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    body, filename = billing_service.export_bills_csv(db, owner_id, search, start_date, end_date)
    return Response(content=body, media_type=CSV_MEDIA_TYPE, headers=attachment_headers(filename))


@router.get("/{bill_id}", response_model=BillDetail)
def get_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    bill = billing_service.get_bill(db, owner_id, bill_id)
    if bill is None:
        raise HTTPException(status_code=404, detail="Not found")
    base = BillRead.model_validate(bill).model_dump()
    base["items"] = [BillLineRead.model_validate(line) for line in bill.lines]
    return BillDetail(**base)


__all__ = ["router"]
