from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from smartbilling.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/api/health")
def health_check():
    settings = get_settings()
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "time": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def landing_page(request: Request):
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "index.html",
        {"app_name": get_settings().APP_NAME},
    )


__all__ = ["router"]
