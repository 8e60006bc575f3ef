from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from smartbilling.dependencies import get_db, get_owner_id
from smartbilling.schemas.dashboard import DashboardSummary, RevenuePoint, TopItem
from smartbilling.services.dashboard_service import dashboard_summary, revenue_graph, top_items

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummary)
def summary(db: Session = Depends(get_db), owner_id: int = Depends(get_owner_id)):
    return dashboard_summary(db, owner_id)


@router.get("/revenue-graph", response_model=list[RevenuePoint])
def revenue(db: Session = Depends(get_db), owner_id: int = Depends(get_owner_id)):
    return revenue_graph(db, owner_id)


@router.get("/top-items", response_model=list[TopItem])
def best_sellers(db: Session = Depends(get_db), owner_id: int = Depends(get_owner_id)):
    return top_items(db, owner_id)


__all__ = ["router"]
