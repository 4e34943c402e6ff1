import math
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import is_duplicate_of
from app.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from app.core.logging_config import logger
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student
from app.core.query_params import parse_student_id, to_uuid
from app.core.schemas import BatchRef, ClassRef, DepartmentRef, FacultyRef, JobRef, MessageResponse
from app.core.timeutil import utcnow
from app.core.uploads import read_image_upload, save_student_photo

from .fields import as_text, is_valid_email, normalize_email, normalize_gender
from .filters import StudentFilterParams, build_student_conditions, resolve_class_ids
from .schemas import (
    ClassOption,
    DepartmentOption,
    StudentDetailResponse,
    StudentFiltersResponse,
    StudentListResponse,
    StudentResponse,
)

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100
RELATED_LIMIT = 6

STUDENT_ID_MESSAGE = "studentId is required and must be a positive integer"


def student_load_options() -> tuple:
    """Eager-load class -> department -> faculty, batch and job."""
    return (
        selectinload(Student.academic_class)
        .selectinload(AcademicClass.department)
        .selectinload(Department.faculty),
        selectinload(Student.batch),
        selectinload(Student.job),
    )


def student_to_response(s: Student) -> StudentResponse:
    academic_class = None
    if s.academic_class:
        dept = s.academic_class.department
        department = None
        if dept:
            faculty = FacultyRef(id=dept.faculty.id, name=dept.faculty.name) if dept.faculty else None
            department = DepartmentRef(id=dept.id, name=dept.name, faculty=faculty)
        academic_class = ClassRef(id=s.academic_class.id, name=s.academic_class.name, department=department)
    return StudentResponse(
        id=s.id,
        student_id=s.student_id,
        name=s.name,
        gender=s.gender,
        email=s.email or "",
        phone_number=s.phone_number or "",
        class_id=s.class_id,
        batch_id=s.batch_id,
        job_id=s.job_id,
        academic_class=academic_class,
        batch=BatchRef(id=s.batch.id, name=s.batch.name, year=s.batch.year) if s.batch else None,
        job=JobRef(id=s.job.id, name=s.job.name) if s.job else None,
        photo_image=s.photo_image or "",
        description=s.description or "",
        is_deleted=bool(s.is_deleted),
        deleted_at=s.deleted_at,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def _load_student(db: AsyncSession, student_pk: UUID) -> Optional[Student]:
    result = await db.execute(
        select(Student)
        .where(Student.id == student_pk)
        .options(*student_load_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_students(
    db: AsyncSession,
    params: StudentFilterParams,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> StudentListResponse:
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))
    conditions = await build_student_conditions(db, params)

    total = await db.scalar(select(func.count()).select_from(Student).where(*conditions)) or 0
    result = await db.execute(
        select(Student)
        .where(*conditions)
        .options(*student_load_options())
        .order_by(Student.created_at.desc(), Student.student_id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return StudentListResponse(
        items=[student_to_response(s) for s in result.scalars().all()],
        total=total,
        page=page,
        limit=limit,
        pages=max(1, math.ceil(total / limit)),
    )


async def get_student(db: AsyncSession, student_pk: UUID) -> Optional[StudentDetailResponse]:
    student = await _load_student(db, student_pk)
    if not student or student.is_deleted:
        return None
    result = await db.execute(
        select(Student)
        .where(
            Student.id != student.id,
            Student.is_deleted == False,  # noqa: E712
            or_(Student.batch_id == student.batch_id, Student.class_id == student.class_id),
        )
        .options(*student_load_options())
        .order_by(Student.created_at.desc())
        .limit(RELATED_LIMIT)
    )
    related = [student_to_response(s) for s in result.scalars().all()]
    return StudentDetailResponse(**student_to_response(student).model_dump(), related=related)


async def _ensure_student_id_free(db: AsyncSession, student_id: int, exclude_pk: Optional[UUID] = None) -> None:
    """Soft-deleted students still hold their studentId."""
    stmt = select(Student.id).where(Student.student_id == student_id)
    if exclude_pk is not None:
        stmt = stmt.where(Student.id != exclude_pk)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError(f"studentId {student_id} already exists")


async def _ensure_email_free(db: AsyncSession, email: str, exclude_pk: Optional[UUID] = None) -> None:
    stmt = select(Student.id).where(Student.email == email)
    if exclude_pk is not None:
        stmt = stmt.where(Student.id != exclude_pk)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError("Email already exists")


async def _require_reference(db: AsyncSession, model, raw: Any, field: str, label: str) -> UUID:
    if raw in (None, ""):
        raise ValidationFailed(f"{field} is required")
    ref_id = to_uuid(raw)
    if ref_id is None:
        raise ValidationFailed(f"Invalid {field}")
    if not await db.get(model, ref_id):
        raise NotFoundError(f"{label} not found")
    return ref_id


async def _resolve_job(db: AsyncSession, raw: Any) -> Optional[UUID]:
    """Blank or malformed id means unemployed."""
    job_id = to_uuid(raw) if raw not in (None, "") else None
    if job_id is None:
        return None
    if not await db.get(Job, job_id):
        raise NotFoundError("Job not found")
    return job_id


def _clean_gender(raw: Any) -> str:
    gender = normalize_gender(raw)
    if gender is None:
        raise ValidationFailed("Gender must be Male or Female")
    return gender


def _clean_email(raw: Any) -> Optional[str]:
    email = normalize_email(raw)
    if not email:
        return None
    if not is_valid_email(email):
        raise ValidationFailed("Invalid email format")
    return email


async def _store_photo(photo: Optional[UploadFile]) -> Optional[str]:
    if photo is None:
        return None
    content = await read_image_upload(photo)
    return save_student_photo(content, photo.content_type)


async def _commit_student(db: AsyncSession, student: Student) -> None:
    student_id = student.student_id
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if is_duplicate_of(exc, "student_id"):
            raise ConflictError(f"studentId {student_id} already exists")
        if is_duplicate_of(exc, "email"):
            raise ConflictError("Email already exists")
        raise


async def create_student(
    db: AsyncSession,
    data: Dict[str, Any],
    photo: Optional[UploadFile] = None,
) -> StudentResponse:
    student_id = parse_student_id(data.get("studentId"))
    if student_id is None:
        raise ValidationFailed(STUDENT_ID_MESSAGE)
    name = as_text(data.get("name"))
    if not name:
        raise ValidationFailed("Name is required")
    gender = _clean_gender(data.get("gender"))
    email = _clean_email(data.get("email"))

    class_id = await _require_reference(db, AcademicClass, data.get("classId"), "classId", "Class")
    batch_id = await _require_reference(db, Batch, data.get("batchId"), "batchId", "Batch")
    job_id = await _resolve_job(db, data.get("jobId"))

    await _ensure_student_id_free(db, student_id)
    if email:
        await _ensure_email_free(db, email)

    photo_image = await _store_photo(photo)
    if photo_image is None:
        photo_image = as_text(data.get("photoImage"))

    student = Student(
        student_id=student_id,
        name=name,
        gender=gender,
        email=email,
        phone_number=as_text(data.get("phoneNumber")),
        class_id=class_id,
        batch_id=batch_id,
        job_id=job_id,
        photo_image=photo_image,
        description=as_text(data.get("description")),
    )
    db.add(student)
    await _commit_student(db, student)
    logger.info("Created student %s (%s)", student.student_id, student.id)
    return student_to_response(await _load_student(db, student.id))


async def update_student(
    db: AsyncSession,
    student_pk: UUID,
    data: Dict[str, Any],
    photo: Optional[UploadFile] = None,
) -> Optional[StudentResponse]:
    """Apply only the keys present in `data`."""
    student = await db.get(Student, student_pk)
    if not student or student.is_deleted:
        return None

    if "studentId" in data:
        student_id = parse_student_id(data["studentId"])
        if student_id is None:
            raise ValidationFailed("studentId must be a positive integer with no decimals")
        if student_id != student.student_id:
            await _ensure_student_id_free(db, student_id, exclude_pk=student.id)
        student.student_id = student_id
    if "name" in data:
        name = as_text(data["name"])
        if not name:
            raise ValidationFailed("Name is required")
        student.name = name
    if "gender" in data:
        student.gender = _clean_gender(data["gender"])
    if "email" in data:
        email = _clean_email(data["email"])
        if email and email != student.email:
            await _ensure_email_free(db, email, exclude_pk=student.id)
        student.email = email
    if "phoneNumber" in data:
        student.phone_number = as_text(data["phoneNumber"])
    if "classId" in data:
        student.class_id = await _require_reference(db, AcademicClass, data["classId"], "classId", "Class")
    if "batchId" in data:
        student.batch_id = await _require_reference(db, Batch, data["batchId"], "batchId", "Batch")
    if "jobId" in data:
        student.job_id = await _resolve_job(db, data["jobId"])
    if "description" in data:
        student.description = as_text(data["description"])
    if "photoImage" in data and photo is None:
        student.photo_image = as_text(data["photoImage"])

    photo_image = await _store_photo(photo)
    if photo_image is not None:
        student.photo_image = photo_image

    await _commit_student(db, student)
    logger.info("Updated student %s (%s)", student.student_id, student.id)
    return student_to_response(await _load_student(db, student_pk))


async def delete_student(db: AsyncSession, student_pk: UUID, force: bool = False) -> Optional[MessageResponse]:
    student = await db.get(Student, student_pk)
    if not student:
        return None
    if force:
        await db.delete(student)
        message = "Student deleted permanently"
    else:
        student.is_deleted = True
        student.deleted_at = utcnow()
        message = "Student deleted"
    await db.commit()
    logger.info("%s: %s", message, student_pk)
    return MessageResponse(message=message)


async def restore_student(db: AsyncSession, student_pk: UUID) -> Optional[MessageResponse]:
    student = await db.get(Student, student_pk)
    if not student:
        return None
    student.is_deleted = False
    student.deleted_at = None
    await db.commit()
    logger.info("Restored student %s", student_pk)
    return MessageResponse(message="Student restored")


async def delete_all_students(db: AsyncSession, force: bool = False) -> MessageResponse:
    if force:
        result = await db.execute(delete(Student))
        message = "All students deleted permanently"
    else:
        result = await db.execute(
            update(Student)
            .where(Student.is_deleted == False)  # noqa: E712
            .values(is_deleted=True, deleted_at=utcnow())
        )
        message = "All active students deleted"
    await db.commit()
    logger.warning("%s (%d rows)", message, result.rowcount or 0)
    return MessageResponse(message=message, affected=result.rowcount or 0)


async def delete_students_by_filter(
    db: AsyncSession,
    params: StudentFilterParams,
    force: bool = False,
) -> MessageResponse:
    """Delete every student in the classes selected by the faculty/department/class filters."""
    if not params.has_hierarchy_filter:
        raise ValidationFailed("Select at least one faculty, department, or class filter before delete")

    class_ids = await resolve_class_ids(db, params)
    if not class_ids:
        return MessageResponse(message="No students matched selected class filters", affected=0)

    if force:
        result = await db.execute(delete(Student).where(Student.class_id.in_(class_ids)))
        message = "Filtered students deleted permanently"
    else:
        result = await db.execute(
            update(Student)
            .where(Student.class_id.in_(class_ids), Student.is_deleted == False)  # noqa: E712
            .values(is_deleted=True, deleted_at=utcnow())
        )
        message = "Filtered students deleted"
    await db.commit()
    logger.warning("%s (%d rows, %d classes)", message, result.rowcount or 0, len(class_ids))
    return MessageResponse(message=message, affected=result.rowcount or 0)


async def get_filter_options(db: AsyncSession) -> StudentFiltersResponse:
    faculties = (await db.execute(select(Faculty).order_by(Faculty.name))).scalars().all()
    departments = (await db.execute(select(Department).order_by(Department.name))).scalars().all()
    classes = (await db.execute(select(AcademicClass).order_by(AcademicClass.name))).scalars().all()
    batches = (await db.execute(select(Batch).order_by(Batch.year.desc()))).scalars().all()
    jobs = (await db.execute(select(Job).order_by(Job.name))).scalars().all()
    return StudentFiltersResponse(
        faculties=[FacultyRef(id=f.id, name=f.name) for f in faculties],
        departments=[DepartmentOption(id=d.id, name=d.name, faculty_id=d.faculty_id) for d in departments],
        classes=[ClassOption(id=c.id, name=c.name, department_id=c.department_id) for c in classes],
        batches=[BatchRef(id=b.id, name=b.name, year=b.year) for b in batches],
        jobs=[JobRef(id=j.id, name=j.name) for j in jobs],
    )


async def fetch_filtered_students(db: AsyncSession, params: StudentFilterParams) -> List[Student]:
    """All matching students, fully populated, newest first. Used by exports."""
    conditions = await build_student_conditions(db, params)
    result = await db.execute(
        select(Student).where(*conditions).options(*student_load_options()).order_by(Student.created_at.desc())
    )
    return list(result.scalars().all())
