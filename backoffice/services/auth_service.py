from typing import Optional, Dict, Any
from datetime import timedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID, uuid4
from fastapi import HTTPException, status

from backoffice.db.models.admin import ADMIN_ROLES, Admin as AdminModel
from backoffice.core.errors import NotFoundError, ValidationFailedError
from backoffice.core.security import verify_password, hash_password, create_access_token
from backoffice.core.config import get_settings

settings = get_settings()

async def get_admin_by_email(email: str, db: AsyncSession) -> Optional[AdminModel]:
    stmt = select(AdminModel).where(AdminModel.email == email.strip().lower())
    result = await db.execute(stmt)
    return result.scalars().first()

async def authenticate_admin(email: str, password: str, db: AsyncSession) -> Optional[AdminModel]:
    """
    Authenticate an admin by verifying email and password.
    Returns the admin if authentication is successful, None otherwise.
    """
    admin = await get_admin_by_email(email, db)

    if not admin or not admin.active:
        return None

    if not verify_password(password, admin.hashed_password):
        return None

    return admin

async def create_admin(name: str, email: str, password: str, db: AsyncSession, role: str = "admin") -> AdminModel:
    """
    Create a new admin with the given credentials.
    Returns the created admin.
    """
    if role not in ADMIN_ROLES:
        raise ValidationFailedError(f"Role must be one of: {', '.join(ADMIN_ROLES)}")

    existing_admin = await get_admin_by_email(email, db)
    if existing_admin:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admin with this email already exists"
        )

    admin = AdminModel(
        id=uuid4(),
        name=name.strip(),
        email=email.strip().lower(),
        hashed_password=hash_password(password),
        role=role,
        active=True
    )

    db.add(admin)
    await db.commit()
    await db.refresh(admin)

    return admin

async def update_admin_password(admin_id: UUID, current_password: str, new_password: str, db: AsyncSession) -> AdminModel:
    """
    Replace an admin's password after checking the current one.
    """
    admin = await db.get(AdminModel, admin_id)
    if admin is None:
        raise NotFoundError("Admin not found")

    if not verify_password(current_password, admin.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Your current password is incorrect"
        )

    admin.hashed_password = hash_password(new_password)
    await db.commit()
    await db.refresh(admin)
    return admin

def create_admin_token(admin: AdminModel) -> Dict[str, Any]:
    """
    Create an access token for the given admin.
    """
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return {
        "access_token": create_access_token(
            data={"sub": str(admin.id), "role": admin.role},
            expires_delta=access_token_expires
        ),
        "token_type": "bearer"
    }
