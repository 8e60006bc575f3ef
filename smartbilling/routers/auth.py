from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from smartbilling.core.errors import ConflictError
from smartbilling.dependencies import get_db
from smartbilling.schemas.account import LoginRequest, RegisterRequest
from smartbilling.services.account_service import authenticate, register_user, serialize_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"user": serialize_user(user)}


@router.post("/register")
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        user = register_user(db, payload.email, payload.password, payload.shop_name)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": user.id, "message": "Registered"}


__all__ = ["router"]
