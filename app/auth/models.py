import uuid

from sqlalchemy import Column, DateTime, String, Text, Uuid

from app.core.timeutil import utcnow
from app.db.session import Base


class Admin(Base):
    """Dashboard operator. Every API route except login/health requires one."""

    __tablename__ = "admins"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    # Stored lowercased
    email = Column(String(180), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    # Embedded data URL (data:image/...;base64,...)
    photo_image = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
