import uuid

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.core.timeutil import utcnow
from app.db.session import Base


class Student(Base):
    """Alumni record. Soft delete via is_deleted/deleted_at; studentId unique across all rows."""

    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("student_id >= 1", name="ck_student_id_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(BigInteger, nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    gender = Column(String(10), nullable=False, default="Male", index=True)  # Male | Female
    # Lowercased; NULL when absent so the unique index only covers real addresses
    email = Column(String(180), nullable=True, unique=True)
    phone_number = Column(String(40), nullable=False, default="")
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(Uuid, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL = unemployed
    job_id = Column(Uuid, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    photo_image = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    academic_class = relationship("AcademicClass")
    batch = relationship("Batch")
    job = relationship("Job")
