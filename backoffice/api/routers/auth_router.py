from fastapi import APIRouter, Depends, HTTPException, status
from typing import Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import CurrentAdmin, get_current_admin
from backoffice.db.base import get_db
from backoffice.schemas.auth import AdminOut, LoginRequest, UpdatePasswordRequest
from backoffice.services.auth_service import (
    authenticate_admin, create_admin_token, update_admin_password
)

router = APIRouter()

def _token_response(admin) -> Dict[str, Any]:
    token = create_admin_token(admin)
    return {
        "status": "success",
        "token": token["access_token"],
        "data": {
            "admin": AdminOut.model_validate(admin).model_dump(mode="json")
        }
    }

@router.post("/auth/login", response_model=Dict[str, Any])
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange admin credentials for a bearer token.
    """
    admin = await authenticate_admin(credentials.email, credentials.password, db)
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _token_response(admin)

@router.post("/auth/logout", response_model=Dict[str, Any])
async def logout():
    # Tokens are stateless; the client discards its copy
    return {
        "status": "success",
        "message": "Logged out successfully"
    }

@router.get("/auth/me", response_model=Dict[str, Any])
async def get_me(admin: CurrentAdmin = Depends(get_current_admin)):
    """
    Return the admin the bearer token belongs to.
    """
    return {
        "status": "success",
        "data": {
            "admin": admin.model_dump(mode="json")
        }
    }

@router.patch("/auth/update-password", response_model=Dict[str, Any])
async def update_password(
    payload: UpdatePasswordRequest,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Change the current admin's password and issue a fresh token.
    """
    updated = await update_admin_password(admin.id, payload.current_password, payload.new_password, db)
    return _token_response(updated)
