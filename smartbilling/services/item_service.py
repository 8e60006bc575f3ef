import csv
import io
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from smartbilling.config import get_settings
from smartbilling.core.constants import DEFAULT_UOM, HISTORY_PAGE_SIZE_MAX, ITEM_SEARCH_LIMIT, ITEMS_PAGE_SIZE
from smartbilling.core.csv_export import rows_to_csv
from smartbilling.core.dates import utc_today
from smartbilling.core.errors import ConflictError
from smartbilling.core.money import currency_float
from smartbilling.models.item import Item
from smartbilling.models.item_history import (
    ACTION_ADDED,
    ACTION_IMPORTED,
    ACTION_REDUCED,
    ItemUpdateHistory,
)
from smartbilling.schemas.item import ItemPayload

logger = logging.getLogger(__name__)

_ALIAS_SPECS = (
    (("item", "code"), "item_code"),
    (("code",), "item_code"),
    (("item", "name"), "item_name"),
    (("name",), "item_name"),
    (("qty",), "quantity"),
    (("item", "price"), "item_price"),
    (("sale", "price"), "item_price"),
    (("price",), "item_price"),
    (("cost", "price"), "cost_price"),
    (("cost",), "cost_price"),
    (("item", "mrp"), "mrp"),
    (("expiry", "date"), "expiry_date"),
    (("expiry",), "expiry_date"),
    (("unit",), "uom"),
)

HEADER_ALIASES = {"".join(parts): target for parts, target in _ALIAS_SPECS}
SUPPORTED_IMPORT_SUFFIXES = (".csv", ".xlsx")

EXPORT_HEADERS = ["Item Code", "Item Name", "UOM", "Quantity", "Item Price", "GST"]


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_header(value):
    if value is None:
        return ""
    value_text = str(value).strip().lower()
    if not value_text:
        return ""
    for char in (" ", "-", ".", "/"):
        value_text = value_text.replace(char, "_")
    value_text = "_".join(part for part in value_text.split("_") if part)
    alias = HEADER_ALIASES.get(value_text)
    if alias:
        return alias
    alias = HEADER_ALIASES.get(value_text.replace("_", ""))
    if alias:
        return alias
    return value_text


def to_int(value, field):
    if _is_blank(value):
        return 0
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(f"{field} must be an integer")
    value_text = str(value).strip()
    try:
        return int(value_text)
    except ValueError:
        try:
            numeric = float(value_text)
        except ValueError:
            raise ValueError(f"{field} must be an integer") from None
        if not numeric.is_integer():
            raise ValueError(f"{field} must be an integer")
        return int(numeric)


def to_float(value, field):
    if _is_blank(value):
        return 0.0
    if isinstance(value, str):
        value = value.replace(",", "")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number") from None


def to_date(value, field):
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value_text = str(value).strip()
    try:
        return date.fromisoformat(value_text[:10])
    except ValueError:
        pass
    for fmt in ("%Y/%m/%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(value_text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"{field} must be a date (YYYY-MM-DD)")


def validate_item_values(item_code, item_name, quantity, item_price, gst):
    if _is_blank(item_code):
        raise ValueError("Item code is required")
    if _is_blank(item_name):
        raise ValueError("Item name is required")
    if quantity < 0:
        raise ValueError("Quantity cannot be negative")
    if item_price < 0:
        raise ValueError("Price cannot be negative")
    if gst < 0 or gst > 100:
        raise ValueError("GST must be between 0 and 100")


def _visible_to(owner_id: int):
    # Ownerless rows predate per-user inventories and stay visible to everyone.
    return or_(Item.user_id == owner_id, Item.user_id.is_(None))


def _search_filter(search: Optional[str]):
    pattern = f"%{search.strip()}%"
    return or_(Item.item_code.like(pattern), Item.item_name.like(pattern))


def record_stock_change(
    db: Session,
    owner_id: int,
    item: Item,
    old_qty: int,
    new_qty: int,
    action_type: Optional[str] = None,
) -> Optional[ItemUpdateHistory]:
    difference = new_qty - old_qty
    if difference == 0:
        return None
    if action_type is None:
        action_type = ACTION_ADDED if difference > 0 else ACTION_REDUCED
    entry = ItemUpdateHistory(
        user_id=owner_id,
        item_id=item.id,
        item_code=item.item_code,
        item_name=item.item_name,
        sale_price=float(item.item_price or 0),
        available_qty=old_qty,
        updated_qty=new_qty,
        difference=abs(difference),
        action_type=action_type,
    )
    db.add(entry)
    return entry


def list_items(
    db: Session,
    owner_id: int,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = ITEMS_PAGE_SIZE,
) -> dict:
    page = max(1, int(page or 1))
    limit = max(1, min(HISTORY_PAGE_SIZE_MAX, int(limit or ITEMS_PAGE_SIZE)))

    filters = [_visible_to(owner_id)]
    if search and search.strip():
        filters.append(_search_filter(search))

    total = db.execute(select(func.count(Item.id)).where(*filters)).scalar_one()
    total_price = db.execute(
        select(func.coalesce(func.sum(Item.item_price * Item.quantity), 0)).where(*filters)
    ).scalar_one()
    rows = (
        db.execute(
            select(Item)
            .where(*filters)
            .order_by(Item.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        .scalars()
        .all()
    )
    return {"items": list(rows), "total": int(total or 0), "totalPrice": currency_float(total_price)}


def get_owned_item(db: Session, owner_id: int, item_id: int) -> Optional[Item]:
    return db.execute(
        select(Item).where(Item.id == item_id, Item.user_id == owner_id)
    ).scalars().first()


def create_item(db: Session, owner_id: int, payload: ItemPayload) -> Item:
    validate_item_values(
        payload.item_code, payload.item_name, payload.quantity, payload.item_price, payload.gst
    )
    item = Item(
        user_id=owner_id,
        item_code=payload.item_code.strip(),
        item_name=payload.item_name.strip(),
        uom=(payload.uom or DEFAULT_UOM).strip() or DEFAULT_UOM,
        quantity=payload.quantity,
        item_price=payload.item_price,
        cost_price=payload.cost_price,
        mrp=payload.mrp,
        gst=payload.gst,
        expiry_date=payload.expiry_date,
    )
    db.add(item)
    try:
        db.flush()
        if item.quantity > 0:
            record_stock_change(db, owner_id, item, 0, item.quantity)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Item code already exists") from exc
    db.refresh(item)
    logger.info("Item %s created.", item.item_code, extra={"owner_id": owner_id, "item_id": item.id})
    return item


def update_item(db: Session, owner_id: int, item_id: int, payload: ItemPayload) -> Optional[Item]:
    validate_item_values(
        payload.item_code, payload.item_name, payload.quantity, payload.item_price, payload.gst
    )
    item = get_owned_item(db, owner_id, item_id)
    if item is None:
        return None

    old_qty = int(item.quantity or 0)
    item.item_code = payload.item_code.strip()
    item.item_name = payload.item_name.strip()
    item.uom = (payload.uom or DEFAULT_UOM).strip() or DEFAULT_UOM
    item.quantity = payload.quantity
    item.item_price = payload.item_price
    item.cost_price = payload.cost_price
    item.mrp = payload.mrp
    item.gst = payload.gst
    item.expiry_date = payload.expiry_date
    record_stock_change(db, owner_id, item, old_qty, payload.quantity)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Item code already exists") from exc
    db.refresh(item)
    return item


def delete_item(db: Session, owner_id: int, item_id: int) -> bool:
    result = db.execute(delete(Item).where(Item.id == item_id, Item.user_id == owner_id))
    db.commit()
    return bool(result.rowcount)


def bulk_delete_items(db: Session, owner_id: int, ids) -> int:
    item_ids = [int(item_id) for item_id in ids or []]
    if not item_ids:
        raise ValueError("No ids")
    result = db.execute(delete(Item).where(Item.id.in_(item_ids), Item.user_id == owner_id))
    db.commit()
    return int(result.rowcount or 0)


def search_items(db: Session, owner_id: int, query: Optional[str], limit: int = ITEM_SEARCH_LIMIT) -> list[Item]:
    stmt = (
        select(Item)
        .where(_visible_to(owner_id), _search_filter(query or ""))
        .order_by(Item.item_name)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def _csv_rows(content: bytes):
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValueError("CSV file must be UTF-8 encoded") from None
    reader = csv.reader(io.StringIO(text))
    headers = next(reader, None)
    if not headers:
        return []
    header_keys = [normalize_header(header) for header in headers]
    rows = []
    for row in reader:
        if all(_is_blank(value) for value in row):
            continue
        rows.append({key: row[idx] for idx, key in enumerate(header_keys) if key and idx < len(row)})
    return rows


def _xlsx_rows(content: bytes):
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, OSError, KeyError) as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc
    try:
        worksheet = workbook.worksheets[0]
        rows_iter = worksheet.iter_rows(values_only=True)
        headers = next(rows_iter, None)
        if not headers:
            return []
        header_keys = [normalize_header(header) for header in headers]
        rows = []
        for row in rows_iter:
            if row is None or all(_is_blank(value) for value in row):
                continue
            rows.append({key: row[idx] for idx, key in enumerate(header_keys) if key and idx < len(row)})
        return rows
    finally:
        workbook.close()


def read_item_rows(filename: Optional[str], content: bytes) -> list[dict]:
    suffix = Path(filename or "").suffix.lower()
    if suffix == ".csv":
        return _csv_rows(content)
    if suffix == ".xlsx":
        return _xlsx_rows(content)
    raise ValueError("Unsupported file type; upload a .csv or .xlsx file")


def _parse_import_row(row: dict) -> dict:
    code = row.get("item_code")
    if _is_blank(code):
        raise ValueError("Item code is required")
    values = {
        "item_code": str(code).strip(),
        "item_name": "" if _is_blank(row.get("item_name")) else str(row.get("item_name")).strip(),
        "quantity": to_int(row.get("quantity"), "quantity"),
        "item_price": to_float(row.get("item_price"), "item_price"),
        "gst": to_float(row.get("gst"), "gst"),
        "cost_price": to_float(row.get("cost_price"), "cost_price"),
        "mrp": to_float(row.get("mrp"), "mrp"),
        "expiry_date": to_date(row.get("expiry_date"), "expiry_date"),
        "uom": DEFAULT_UOM if _is_blank(row.get("uom")) else str(row.get("uom")).strip(),
    }
    if values["quantity"] < 0:
        raise ValueError("Quantity cannot be negative")
    if values["item_price"] < 0:
        raise ValueError("Price cannot be negative")
    if values["gst"] < 0 or values["gst"] > 100:
        raise ValueError("GST must be between 0 and 100")
    return values


def _upsert_import_row(db: Session, owner_id: int, values: dict) -> None:
    item = db.execute(
        select(Item).where(Item.item_code == values["item_code"], Item.user_id == owner_id)
    ).scalars().first()
    if item is None:
        if not values["item_name"]:
            values["item_name"] = values["item_code"]
        item = Item(user_id=owner_id, **values)
        db.add(item)
        db.flush()
        record_stock_change(db, owner_id, item, 0, item.quantity, ACTION_IMPORTED)
    else:
        old_qty = int(item.quantity or 0)
        for key, value in values.items():
            if key == "item_name" and not value:
                continue
            setattr(item, key, value)
        record_stock_change(db, owner_id, item, old_qty, item.quantity, ACTION_IMPORTED)
    db.commit()


def import_items(db: Session, owner_id: int, filename: Optional[str], content: bytes) -> dict:
    rows = read_item_rows(filename, content)
    max_errors = get_settings().IMPORT_MAX_REPORTED_ERRORS

    imported = 0
    errors = []
    for idx, row in enumerate(rows, start=1):
        try:
            values = _parse_import_row(row)
        except ValueError as exc:
            errors.append(f"Row {idx}: {exc}")
            continue
        try:
            _upsert_import_row(db, owner_id, values)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Import row %s failed.", idx, exc_info=True)
            errors.append(f"Row {idx}: {exc.__class__.__name__}")
            continue
        imported += 1

    logger.info(
        "Imported %d of %d item rows (%d errors).",
        imported,
        len(rows),
        len(errors),
        extra={"owner_id": owner_id},
    )
    response = {"imported": imported, "total": len(rows)}
    if errors:
        response["errors"] = errors[:max_errors]
        response["errorCount"] = len(errors)
    return response


def export_items_csv(db: Session, owner_id: int) -> tuple[str, str]:
    rows = db.execute(
        select(Item.item_code, Item.item_name, Item.uom, Item.quantity, Item.item_price, Item.gst)
        .where(_visible_to(owner_id))
        .order_by(Item.id.desc())
    ).all()
    body = rows_to_csv(
        EXPORT_HEADERS,
        (
            (code or "", name or "", uom or DEFAULT_UOM, qty or 0, price or 0, gst or 0)
            for code, name, uom, qty, price, gst in rows
        ),
    )
    return body, f"items_{utc_today().isoformat()}.csv"


__all__ = [
    "HEADER_ALIASES",
    "bulk_delete_items",
    "create_item",
    "delete_item",
    "export_items_csv",
    "get_owned_item",
    "import_items",
    "list_items",
    "normalize_header",
    "read_item_rows",
    "record_stock_change",
    "search_items",
    "update_item",
    "validate_item_values",
]
