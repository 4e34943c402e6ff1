import uuid

from sqlalchemy import Column, DateTime, String, Text, Uuid

from app.core.timeutil import utcnow
from app.db.session import Base


class Job(Base):
    """Job title an alumnus can be employed as. Name is globally unique."""

    __tablename__ = "jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(140), nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
