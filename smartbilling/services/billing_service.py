import logging
import threading
import time
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, or_, select, update
from sqlalchemy.orm import Session, selectinload

from smartbilling.core.constants import BILL_NUMBER_PREFIX
from smartbilling.core.csv_export import rows_to_csv
from smartbilling.core.dates import date_window, utc_today
from smartbilling.core.money import ZERO, round_currency, to_decimal
from smartbilling.models.bill import Bill, BillItem
from smartbilling.models.item import Item
from smartbilling.schemas.bill import BillCreate

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "bill_number",
    "customer_name",
    "customer_mobile",
    "total_amount",
    "pending_amount",
    "created_at",
]

_HUNDRED = Decimal("100")

_bill_number_lock = threading.Lock()
_last_bill_millis = 0


def new_bill_number() -> str:
    global _last_bill_millis
    # Epoch milliseconds, strictly increasing within the process.
    with _bill_number_lock:
        millis = max(int(time.time() * 1000), _last_bill_millis + 1)
        _last_bill_millis = millis
    return f"{BILL_NUMBER_PREFIX}{millis}"


def line_total(unit_price, quantity, gst) -> Decimal:
    """Gross line amount: ``price * qty * (1 + gst / 100)``, unrounded."""
    return to_decimal(unit_price) * int(quantity) * (1 + to_decimal(gst) / _HUNDRED)


def validate_bill(payload: BillCreate) -> Decimal:
    if not payload.customer_name or not payload.customer_name.strip():
        raise ValueError("Customer name is required")
    if not payload.items:
        raise ValueError("At least one item is required")

    total = ZERO
    for line in payload.items:
        if line.quantity <= 0:
            raise ValueError("Item quantity must be greater than 0")
        if line.unit_price < 0:
            raise ValueError("Item price cannot be negative")
        if line.gst < 0 or line.gst > 100:
            raise ValueError("GST must be between 0 and 100")
        total += line_total(line.unit_price, line.quantity, line.gst)

    total = round_currency(total)
    if total <= ZERO:
        raise ValueError("Bill total must be greater than 0")

    pending = to_decimal(payload.pending_amount)
    if pending < ZERO or pending > total:
        raise ValueError("Pending amount must be between 0 and the bill total")
    return total


def _sellable_by(owner_id: int):
    return or_(Item.user_id == owner_id, Item.user_id.is_(None))


def _check_items_exist(db: Session, owner_id: int, payload: BillCreate) -> None:
    item_ids = {line.item_id for line in payload.items if line.item_id}
    if not item_ids:
        return
    found = set(
        db.execute(select(Item.id).where(Item.id.in_(item_ids), _sellable_by(owner_id))).scalars()
    )
    missing = sorted(item_ids - found)
    if missing:
        raise ValueError("Unknown item id(s): {}".format(", ".join(str(item_id) for item_id in missing)))


def create_bill(db: Session, owner_id: int, payload: BillCreate) -> Bill:
    """Persist a bill, its lines and the stock decrements in one transaction."""
    total = validate_bill(payload)
    _check_items_exist(db, owner_id, payload)

    bill = Bill(
        bill_number=new_bill_number(),
        user_id=owner_id,
        customer_name=payload.customer_name.strip(),
        customer_mobile=(payload.customer_mobile or "").strip() or None,
        total_amount=float(total),
        pending_amount=float(round_currency(payload.pending_amount)),
    )
    for line in payload.items:
        bill.lines.append(
            BillItem(
                item_id=line.item_id or None,
                item_name=line.item_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                gst=line.gst,
                total=float(round_currency(line_total(line.unit_price, line.quantity, line.gst))),
                uom=line.uom,
            )
        )

    try:
        db.add(bill)
        db.flush()
        for line in payload.items:
            if not line.item_id:
                continue
            remaining = Item.quantity - line.quantity
            db.execute(
                update(Item)
                .where(Item.id == line.item_id, _sellable_by(owner_id))
                .values(quantity=case((remaining < 0, 0), else_=remaining))
                .execution_options(synchronize_session=False)
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Bill %s created for %s.",
        bill.bill_number,
        bill.customer_name,
        extra={"owner_id": owner_id, "bill_id": bill.id},
    )
    return bill


def _bill_filters(owner_id: int, search: Optional[str], start_date, end_date):
    filters = [Bill.user_id == owner_id]
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(
                Bill.bill_number.like(pattern),
                Bill.customer_name.like(pattern),
                Bill.customer_mobile.like(pattern),
            )
        )
    start, end = date_window(start_date, end_date)
    if start is not None:
        filters.append(Bill.created_at >= start)
    if end is not None:
        filters.append(Bill.created_at < end)
    return filters


def list_bills(
    db: Session,
    owner_id: int,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[Bill]:
    stmt = (
        select(Bill)
        .where(*_bill_filters(owner_id, search, start_date, end_date))
        .order_by(Bill.created_at.desc(), Bill.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def get_bill(db: Session, owner_id: int, bill_id: int) -> Optional[Bill]:
    return db.execute(
        select(Bill)
        .options(selectinload(Bill.lines))
        .where(Bill.id == bill_id, Bill.user_id == owner_id)
    ).scalars().first()


def export_bills_csv(
    db: Session,
    owner_id: int,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[str, str]:
    bills = list_bills(db, owner_id, search, start_date, end_date)
    body = rows_to_csv(
        EXPORT_COLUMNS,
        (
            (
                bill.bill_number,
                bill.customer_name,
                bill.customer_mobile,
                bill.total_amount,
                bill.pending_amount,
                bill.created_at.isoformat() if bill.created_at else "",
            )
            for bill in bills
        ),
    )
    return body, f"bills_{utc_today().isoformat()}.csv"


__all__ = [
    "create_bill",
    "export_bills_csv",
    "get_bill",
    "line_total",
    "list_bills",
    "new_bill_number",
    "validate_bill",
]
