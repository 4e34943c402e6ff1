"""
Seed script for the first admin and, optionally, demo alumni data.

Run after schema_check with env set:
  SEED_ADMIN_EMAIL=admin@example.com
  SEED_ADMIN_PASSWORD=YourSecurePassword

  python -m app.db.seed           # admin only (created, or password reset if it exists)
  python -m app.db.seed --demo    # also faculties, departments, classes, batches, jobs and
                                  # SEED_STUDENT_COUNT students, when the database has no faculties yet
"""
import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Admin
from app.auth.security import hash_password
from app.core.config import settings
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student
from app.db.session import AsyncSessionLocal

DEMO_FACULTIES = {
    "Engineering": {
        "Computer Engineering": ["CE-1", "CE-2"],
        "Civil Engineering": ["CivE-1"],
    },
    "Science": {
        "Computer Science": ["CS-1", "CS-2"],
        "Biology": ["Bio-1"],
    },
    "Business": {
        "Business Administration": ["BBA-1", "BBA-2"],
    },
}
DEMO_BATCH_YEARS = (2022, 2023, 2024, 2025)
DEMO_JOBS = (
    "Software Engineer",
    "Data Analyst",
    "Product Manager",
    "Research Assistant",
    "Civil Engineer",
    "Network Engineer",
    "Accountant",
    "Teacher",
    "Entrepreneur",
    "UX Designer",
)
FIRST_NAMES = ("Ahmed", "Amina", "Hassan", "Fatima", "Omar", "Hodan", "Yusuf", "Maryam", "Ali", "Sahra")
LAST_NAMES = ("Ali", "Hassan", "Mohamed", "Abdi", "Warsame", "Farah", "Ismail", "Nur", "Osman", "Jama")
EMPLOYED_SHARE = 0.7


async def seed_admin(db: AsyncSession) -> None:
    email = settings.seed_admin_email.strip().lower()
    result = await db.execute(select(Admin).where(Admin.email == email))
    admin = result.scalar_one_or_none()
    if not admin:
        db.add(
            Admin(
                name=settings.seed_admin_name.strip() or "System Admin",
                email=email,
                password_hash=hash_password(settings.seed_admin_password),
            )
        )
        print("Created admin:", email)
    else:
        admin.password_hash = hash_password(settings.seed_admin_password)
        print("Admin already exists; password reset:", email)
    await db.commit()


def _random_date_in_year(rng: random.Random, year: int) -> datetime:
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    return start + timedelta(seconds=rng.randrange(365 * 24 * 3600))


async def seed_demo_data(db: AsyncSession, student_count: int) -> None:
    if await db.scalar(select(func.count()).select_from(Faculty)):
        print("Faculties already exist; skipping demo data.")
        return

    rng = random.Random(2024)
    classes = []
    for faculty_name, departments in DEMO_FACULTIES.items():
        faculty = Faculty(name=faculty_name, description=f"{faculty_name} faculty")
        db.add(faculty)
        await db.flush()
        for dept_name, class_names in departments.items():
            dept = Department(name=dept_name, faculty_id=faculty.id)
            db.add(dept)
            await db.flush()
            for class_name in class_names:
                academic_class = AcademicClass(name=class_name, department_id=dept.id)
                db.add(academic_class)
                classes.append(academic_class)

    batches = [Batch(name=f"Batch {y}", year=y, description=f"Graduating class of {y}") for y in DEMO_BATCH_YEARS]
    jobs = [Job(name=name) for name in DEMO_JOBS]
    db.add_all(batches + jobs)
    await db.flush()

    for i in range(student_count):
        first, last = rng.choice(FIRST_NAMES), rng.choice(LAST_NAMES)
        batch = rng.choice(batches)
        created_at = _random_date_in_year(rng, batch.year)
        db.add(
            Student(
                student_id=1001 + i,
                name=f"{first} {last}",
                gender=rng.choices(("Male", "Female"), weights=(55, 45))[0],
                email=f"{i + 1}.{first}.{last}@example.com".lower(),
                phone_number=f"+2526{rng.randrange(10**7, 10**8)}",
                class_id=rng.choice(classes).id,
                batch_id=batch.id,
                job_id=rng.choice(jobs).id if rng.random() < EMPLOYED_SHARE else None,
                created_at=created_at,
                updated_at=created_at,
            )
        )
    await db.commit()
    print(f"Demo data created: {len(classes)} classes, {len(batches)} batches, {student_count} students.")


async def main(demo: bool = False) -> None:
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
            if demo:
                await seed_demo_data(db, max(0, settings.seed_student_count))
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main(demo="--demo" in sys.argv[1:]))
