import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.core.timeutil import utcnow
from app.db.session import Base


class Department(Base):
    """Department within a faculty. Name is unique per faculty."""

    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("faculty_id", "name", name="uq_department_faculty_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    faculty_id = Column(Uuid, ForeignKey("faculties.id"), nullable=False, index=True)
    name = Column(String(140), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    faculty = relationship("Faculty")
