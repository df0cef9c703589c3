import uuid
from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid, func

from backoffice.db.base import Base

ADMIN_ROLES = ("admin", "super-admin")


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(Text, nullable=False)
    role = Column(String(20), nullable=False, default="admin")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Admin(email={self.email}, role={self.role})>"
