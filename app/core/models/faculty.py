import uuid

from sqlalchemy import Column, DateTime, String, Text, Uuid

from app.core.timeutil import utcnow
from app.db.session import Base


class Faculty(Base):
    """Top level of the academic hierarchy (Faculty -> Department -> Class)."""

    __tablename__ = "faculties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(140), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
