import math
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from smartbilling.core.constants import HISTORY_PAGE_SIZE_MAX, ITEMS_PAGE_SIZE
from smartbilling.core.csv_export import rows_to_csv
from smartbilling.core.dates import date_window, utc_today
from smartbilling.models.item import Item
from smartbilling.models.item_history import ItemUpdateHistory

HISTORY_EXPORT_HEADERS = [
    "Item Code",
    "Item Name",
    "Sale Price",
    "Available QTY",
    "Updated QTY",
    "Difference",
    "Action Type",
    "Date & Time",
]
ITEMS_EXPORT_HEADERS = ["Item Code", "Item Name", "Quantity", "Price", "GST", "UOM", "Updated At"]


def _filters(model, owner_id: int, search, start_date, end_date):
    filters = [model.user_id == owner_id]
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        filters.append(or_(model.item_code.like(pattern), model.item_name.like(pattern)))
    start, end = date_window(start_date, end_date)
    if start is not None:
        filters.append(model.created_at >= start)
    if end is not None:
        filters.append(model.created_at < end)
    return filters


def _isoformat(value):
    return value.isoformat() if value is not None else ""


def items_report(db: Session, owner_id: int, search=None, start_date=None, end_date=None) -> list[Item]:
    stmt = (
        select(Item)
        .where(*_filters(Item, owner_id, search, start_date, end_date))
        .order_by(Item.created_at.desc(), Item.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def items_history(
    db: Session,
    owner_id: int,
    search: Optional[str] = None,
    start_date=None,
    end_date=None,
    page=1,
    limit=ITEMS_PAGE_SIZE,
) -> dict:
    filters = _filters(ItemUpdateHistory, owner_id, search, start_date, end_date)
    page_num = max(1, int(page or 1))
    limit_num = max(1, min(HISTORY_PAGE_SIZE_MAX, int(limit or ITEMS_PAGE_SIZE)))

    total = db.execute(select(func.count(ItemUpdateHistory.id)).where(*filters)).scalar_one()
    rows = (
        db.execute(
            select(ItemUpdateHistory)
            .where(*filters)
            .order_by(ItemUpdateHistory.created_at.desc(), ItemUpdateHistory.id.desc())
            .limit(limit_num)
            .offset((page_num - 1) * limit_num)
        )
        .scalars()
        .all()
    )
    return {
        "data": [
            {
                "id": row.id,
                "user_id": row.user_id,
                "item_id": row.item_id,
                "item_code": row.item_code,
                "item_name": row.item_name,
                "sale_price": row.sale_price,
                "available_qty": row.available_qty,
                "updated_qty": row.updated_qty,
                "difference": row.difference,
                "action_type": row.action_type,
                "created_at": _isoformat(row.created_at),
            }
            for row in rows
        ],
        "pagination": {
            "page": page_num,
            "limit": limit_num,
            "total": int(total or 0),
            "pages": math.ceil((total or 0) / limit_num),
        },
    }


def export_history_csv(db: Session, owner_id: int, search=None, start_date=None, end_date=None) -> tuple[str, str]:
    rows = db.execute(
        select(ItemUpdateHistory)
        .where(*_filters(ItemUpdateHistory, owner_id, search, start_date, end_date))
        .order_by(ItemUpdateHistory.created_at.desc(), ItemUpdateHistory.id.desc())
    ).scalars()
    body = rows_to_csv(
        HISTORY_EXPORT_HEADERS,
        (
            (
                row.item_code or "",
                row.item_name or "",
                row.sale_price or 0,
                row.available_qty or 0,
                row.updated_qty or 0,
                row.difference or 0,
                row.action_type or "",
                row.created_at.strftime("%d/%m/%Y, %H:%M:%S") if row.created_at else "",
            )
            for row in rows
        ),
        quote_all=True,
    )
    return body, "reports.csv"


def export_items_report_csv(db: Session, owner_id: int, search=None, start_date=None, end_date=None) -> tuple[str, str]:
    items = items_report(db, owner_id, search, start_date, end_date)
    body = rows_to_csv(
        ITEMS_EXPORT_HEADERS,
        (
            (
                item.item_code,
                item.item_name,
                item.quantity,
                item.item_price,
                item.gst,
                item.uom,
                _isoformat(item.updated_at or item.created_at),
            )
            for item in items
        ),
    )
    return body, f"items_export_{utc_today().isoformat()}.csv"


__all__ = [
    "export_history_csv",
    "export_items_report_csv",
    "items_history",
    "items_report",
]
