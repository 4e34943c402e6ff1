"""Classes within a department. Model named AcademicClass to avoid Python 'class' keyword."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.core.timeutil import utcnow
from app.db.session import Base


class AcademicClass(Base):
    """Leaf of the academic hierarchy; students belong to exactly one class."""

    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("department_id", "name", name="uq_class_department_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    department_id = Column(Uuid, ForeignKey("departments.id"), nullable=False, index=True)
    name = Column(String(140), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    department = relationship("Department")
