from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from smartbilling.core.constants import ITEMS_PAGE_SIZE
from smartbilling.core.csv_export import CSV_MEDIA_TYPE, attachment_headers
from smartbilling.core.errors import ConflictError
from smartbilling.dependencies import get_db, get_owner_id
from smartbilling.schemas.item import BulkDeleteRequest, ImportResult, ItemPage, ItemPayload, ItemRead
from smartbilling.services import item_service

router = APIRouter(prefix="/api/items", tags=["Items"])


@router.get("", response_model=ItemPage)
def list_items(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(ITEMS_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    return item_service.list_items(db, owner_id, search=search, page=page, limit=limit)


@router.post("")
def create_item(
    payload: ItemPayload,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    try:
        item = item_service.create_item(db, owner_id, payload)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "success": True,
        "message": f"{item.item_name} saved successfully",
        "itemName": item.item_name,
        "id": item.id,
    }


@router.get("/search", response_model=list[ItemRead])
def search_items(
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    return item_service.search_items(db, owner_id, q)


@router.get("/export")
def export_items(db: Session = Depends(get_db), owner_id: int = Depends(get_owner_id)):
    body, filename = item_service.export_items_csv(db, owner_id)
    return Response(content=body, media_type=CSV_MEDIA_TYPE, headers=attachment_headers(filename))


@router.post("/import", response_model=ImportResult, response_model_exclude_none=True)
async def import_items(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    if file is None:
        raise HTTPException(status_code=400, detail="file is required")
    content = await file.read()
    try:
        return item_service.import_items(db, owner_id, file.filename, content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/bulk-delete")
def bulk_delete(
    payload: BulkDeleteRequest,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    try:
        deleted = item_service.bulk_delete_items(db, owner_id, payload.ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "deleted": deleted}


@router.put("/{item_id}")
def update_item(
    item_id: int,
    payload: ItemPayload,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    try:
        item = item_service.update_item(db, owner_id, item_id, payload)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True}


@router.delete("/{item_id}")
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_owner_id),
):
    if not item_service.delete_item(db, owner_id, item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True}


__all__ = ["router"]
