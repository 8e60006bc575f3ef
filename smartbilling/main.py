import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from smartbilling.config import Settings, get_settings, split_csv_setting
from smartbilling.core.constants import TEMPLATES_DIR
from smartbilling.core.logging import setup_logging
from smartbilling.core.security import get_token_decoder
from smartbilling.database import SessionLocal, apply_migrations, engine, session_scope
from smartbilling.routers import (
    auth_router,
    bills_router,
    customers_router,
    dashboard_router,
    health_router,
    items_router,
    reports_router,
    subscription_router,
)
from smartbilling.services.account_service import ensure_demo_user

setup_logging()
settings: Settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # An invalid token configuration fails here rather than on the first request.
    get_token_decoder()
    apply_migrations(engine)
    if settings.SEED_DEMO_USER:
        with session_scope(SessionLocal) as db:
            ensure_demo_user(db, settings)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

cors_origins = split_csv_setting(settings.CORS_ORIGINS) or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(items_router)
app.include_router(bills_router)
app.include_router(reports_router)
app.include_router(customers_router)
app.include_router(subscription_router)


__all__ = ["app"]
