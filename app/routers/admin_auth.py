# app/routers/admin_auth.py
import logging

from fastapi import APIRouter, Depends

from app.core.auth import authenticate_admin, require_admin
from app.core.config import Settings, get_settings
from app.schemas.auth import AdminLogin, TokenRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Auth"])


@router.post("/login", response_model=TokenRead)
def login(payload: AdminLogin, settings: Settings = Depends(get_settings)):
    """
    Exchange the admin email/password for a bearer token.
    """
    token = authenticate_admin(str(payload.email), payload.password, settings)
    logger.info("Admin login: %s", payload.email)
    return TokenRead(
        access_token=token,
        expires_in=settings.ADMIN_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.get("/me")
def get_admin_me(admin_email: str = Depends(require_admin)):
    """
    Who the current token belongs to.
    """
    return {"email": admin_email, "role": "admin"}
