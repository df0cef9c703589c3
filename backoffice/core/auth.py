from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from uuid import UUID

from backoffice.core.config import get_settings
from backoffice.db.base import get_db
from backoffice.db.models.admin import ADMIN_ROLES, Admin as AdminModel

settings = get_settings()

class TokenData(BaseModel):
    admin_id: Optional[UUID] = None

class CurrentAdmin(BaseModel):
    id: UUID
    name: str
    email: str
    role: str

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

async def get_current_admin(request: Request, db: AsyncSession = Depends(get_db)) -> CurrentAdmin:
    """
    Validate the bearer token and return the admin it belongs to.
    """
    not_logged_in = _unauthorized("You are not logged in! Please log in to get access.")

    # Extract token from Authorization header
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise not_logged_in
    token = auth_header.split(" ", 1)[1].strip()
    # Validate token structure before decoding
    if len(token.split('.')) != 3:
        raise _unauthorized("Invalid token format")

    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        admin_id: str = payload.get("sub")
        if admin_id is None:
            raise not_logged_in
        token_data = TokenData(admin_id=UUID(admin_id))
    except (JWTError, ValueError, UnicodeDecodeError):
        raise _unauthorized("Invalid token. Please log in again.")

    stmt = select(AdminModel).where(AdminModel.id == token_data.admin_id)
    result = await db.execute(stmt)
    admin = result.scalars().first()

    if admin is None or not admin.active:
        raise _unauthorized("The user belonging to this token no longer exists.")

    return CurrentAdmin(id=admin.id, name=admin.name, email=admin.email, role=admin.role)

async def require_admin(admin: CurrentAdmin = Depends(get_current_admin)) -> CurrentAdmin:
    """
    Restrict a route to the admin and super-admin roles.
    """
    if admin.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )
    return admin
