from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from smartbilling.core.constants import REVENUE_GRAPH_DAYS, TOP_ITEMS_LIMIT, TOP_ITEMS_MONTHS
from smartbilling.core.dates import add_months, day_bounds, day_start, normalize_date, utc_today
from smartbilling.core.money import ZERO, currency_float, to_decimal
from smartbilling.models.bill import Bill, BillItem
from smartbilling.services.ledger_service import compute_profit


def _bill_totals(db: Session, owner_id: int):
    stmt = select(
        func.coalesce(func.sum(Bill.total_amount), 0),
        func.count(Bill.id),
        func.coalesce(func.sum(Bill.pending_amount), 0),
    ).where(Bill.user_id == owner_id)
    return db.execute(stmt).one()


def _revenue_between(db: Session, owner_id: int, start, end):
    stmt = select(func.coalesce(func.sum(Bill.total_amount), 0)).where(
        Bill.user_id == owner_id,
        Bill.created_at >= start,
        Bill.created_at < end,
    )
    return db.execute(stmt).scalar_one()


def dashboard_summary(db: Session, owner_id: int, today: Optional[date] = None) -> dict:
    if today is None:
        today = utc_today()

    total_revenue, total_bills, pending = _bill_totals(db, owner_id)
    today_start, today_end = day_bounds(today)
    today_revenue = _revenue_between(db, owner_id, today_start, today_end)

    breakdown = compute_profit(db, owner_id, today=today)

    return {
        "totalRevenue": currency_float(total_revenue),
        "todayRevenue": currency_float(today_revenue),
        "totalBills": int(total_bills or 0),
        "pendingAmount": currency_float(pending),
        "profitAmount": float(breakdown.profit),
    }


def revenue_graph(
    db: Session,
    owner_id: int,
    today: Optional[date] = None,
    days: int = REVENUE_GRAPH_DAYS,
) -> list[dict]:
    if today is None:
        today = utc_today()
    window_start = day_start(today - timedelta(days=days))

    rows = db.execute(
        select(Bill.created_at, Bill.total_amount)
        .where(Bill.user_id == owner_id, Bill.created_at >= window_start)
        .order_by(Bill.created_at)
    ).all()

    buckets = {}
    for created_at, total_amount in rows:
        bill_day = normalize_date(created_at)
        if bill_day is None:
            continue
        buckets[bill_day] = buckets.get(bill_day, ZERO) + to_decimal(total_amount)

    return [
        {"date": bill_day.isoformat(), "amount": currency_float(amount)}
        for bill_day, amount in sorted(buckets.items())
    ]


def top_items(
    db: Session,
    owner_id: int,
    today: Optional[date] = None,
    limit: int = TOP_ITEMS_LIMIT,
) -> list[dict]:
    if today is None:
        today = utc_today()
    window_start = day_start(add_months(today, -TOP_ITEMS_MONTHS))

    qty = func.sum(BillItem.quantity).label("qty")
    stmt = (
        select(BillItem.item_name, qty, func.sum(BillItem.total).label("total"))
        .join(Bill, BillItem.bill_id == Bill.id)
        .where(Bill.user_id == owner_id, Bill.created_at >= window_start)
        .group_by(BillItem.item_name)
        .order_by(qty.desc(), BillItem.item_name)
        .limit(limit)
    )
    return [
        {"item_name": row.item_name, "qty": int(row.qty or 0), "total": currency_float(row.total)}
        for row in db.execute(stmt).all()
    ]


__all__ = ["dashboard_summary", "revenue_graph", "top_items"]
