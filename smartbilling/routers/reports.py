from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from smartbilling.core.constants import HISTORY_PAGE_SIZE_MAX, ITEMS_PAGE_SIZE
from smartbilling.core.csv_export import CSV_MEDIA_TYPE, attachment_headers
from smartbilling.dependencies import get_db, get_owner_id
from smartbilling.schemas.item import ItemRead
from smartbilling.services import report_service

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("", response_model=list[ItemRead])
def items_report(
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    return report_service.items_report(db, owner_id, search, start_date, end_date)


@router.get("/items-history")
def items_history(
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1),
    limit: int = Query(ITEMS_PAGE_SIZE),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    # Out-of-range paging is clamped, not rejected.
    page = max(1, page)
    limit = max(1, min(HISTORY_PAGE_SIZE_MAX, limit))
    return report_service.items_history(
        db, owner_id, search, start_date, end_date, page=page, limit=limit
    )


@router.get("/items-export")
def export_history(
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    body, filename = report_service.export_history_csv(db, owner_id, search, start_date, end_date)
    return Response(content=body, media_type=CSV_MEDIA_TYPE, headers=attachment_headers(filename))


@router.get("/export")
def export_items(
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    body, filename = report_service.export_items_report_csv(db, owner_id, search, start_date, end_date)
    return Response(content=body, media_type=CSV_MEDIA_TYPE, headers=attachment_headers(filename))


__all__ = ["router"]
