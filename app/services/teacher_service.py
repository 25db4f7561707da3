"""Teacher Service - Business Logic Layer"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import get_logger
from app.models.academic import Teacher
from app.schemas.academic import TeacherCreate, TeacherUpdate
from app.services import code_allocator
from app.services.subject_service import SubjectService

logger = get_logger(__name__)


class TeacherService:
    """Service layer for teacher-related operations"""

    @staticmethod
    async def get_teacher_by_email(db: AsyncSession, email: str) -> Optional[Teacher]:
        result = await db.execute(select(Teacher).where(func.lower(Teacher.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_teacher(db: AsyncSession, teacher_in: TeacherCreate) -> Teacher:
        """
        Create a teacher with a registry code derived from the department,
        ``<DEPT>-<seq4>`` (e.g. COMP-0001).

        Raises:
            InvalidPartitionInput: if the department is blank
            ConflictError: if the email is already registered
            NotFoundError: if one of ``subject_ids`` does not exist
            AllocationConflictError: if no unique code could be issued
        """
        # Derive the partition first so a bad department fails before any query
        code_allocator.department_prefix(teacher_in.department)

        if await TeacherService.get_teacher_by_email(db, teacher_in.email) is not None:
            raise ConflictError(f"Teacher with email {teacher_in.email} already exists", code="EMAIL_EXISTS")

        subjects = await SubjectService.get_subjects(db, teacher_in.subject_ids)

        async def next_registry() -> str:
            return await code_allocator.allocate_teacher_registry(db, teacher_in.department)

        async def insert(registry: str) -> Teacher:
            teacher = Teacher(
                registry_code=registry,
                name=teacher_in.name,
                email=teacher_in.email,
                department=teacher_in.department,
                subjects=[],
            )
            return await code_allocator.insert_with_code(db, teacher, Teacher.registry_code)

        try:
            teacher = await code_allocator.allocate_with_retry(next_registry, insert)
        except IntegrityError as exc:
            # Lost a race on the email constraint after the pre-check passed
            raise ConflictError(
                f"Teacher with email {teacher_in.email} already exists", code="EMAIL_EXISTS"
            ) from exc

        teacher.subjects.extend(subjects)
        await db.commit()

        logger.info(
            f"Teacher {teacher.name} created with registry {teacher.registry_code}",
            extra={"teacher_id": str(teacher.id), "registry": teacher.registry_code},
        )
        return teacher

    @staticmethod
    async def get_teacher(db: AsyncSession, teacher_id: UUID) -> Teacher:
        """
        Get teacher by ID, with subjects.

        Raises:
            NotFoundError: if the teacher does not exist
        """
        result = await db.execute(
            select(Teacher)
            .where(Teacher.id == teacher_id)
            .options(selectinload(Teacher.subjects))
            .execution_options(populate_existing=True)
        )
        teacher = result.scalar_one_or_none()
        if teacher is None:
            raise NotFoundError(f"Teacher with id {teacher_id} not found")
        return teacher

    @staticmethod
    async def list_teachers(
        db: AsyncSession,
        name: Optional[str] = None,
        department: Optional[str] = None,
        email: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[List[Teacher], int]:
        """
        Get paginated list of teachers. Filters are case-insensitive substring
        matches.

        Returns:
            Tuple of (teachers list, total count)
        """
        filters = []
        if name:
            filters.append(Teacher.name.icontains(name, autoescape=True))
        if department:
            filters.append(Teacher.department.icontains(department, autoescape=True))
        if email:
            filters.append(Teacher.email.icontains(email, autoescape=True))

        count_result = await db.execute(select(func.count(Teacher.id)).where(*filters))
        total = count_result.scalar_one()

        result = await db.execute(
            select(Teacher)
            .where(*filters)
            .options(selectinload(Teacher.subjects))
            .order_by(Teacher.registry_code)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def update_teacher(
        db: AsyncSession,
        teacher_id: UUID,
        teacher_update: TeacherUpdate,
    ) -> Teacher:
        """
        Update name, email or department. The registry code is never reissued.

        Raises:
            ConflictError: if the new email belongs to another teacher
        """
        teacher = await TeacherService.get_teacher(db, teacher_id)
        update_data = teacher_update.model_dump(exclude_unset=True, exclude_none=True)

        new_email = update_data.get("email")
        if new_email and new_email.lower() != teacher.email.lower():
            other = await TeacherService.get_teacher_by_email(db, new_email)
            if other is not None:
                raise ConflictError(f"Teacher with email {new_email} already exists", code="EMAIL_EXISTS")

        for field, value in update_data.items():
            setattr(teacher, field, value)

        try:
            await db.commit()
        except IntegrityError as exc:
            # Another teacher took the email after the check above
            await db.rollback()
            raise ConflictError(
                f"Teacher with email {new_email} already exists", code="EMAIL_EXISTS"
            ) from exc
        return await TeacherService.get_teacher(db, teacher_id)

    @staticmethod
    async def delete_teacher(db: AsyncSession, teacher_id: UUID) -> None:
        teacher = await TeacherService.get_teacher(db, teacher_id)
        await db.delete(teacher)
        await db.commit()
        logger.info(f"Teacher {teacher.registry_code} deleted", extra={"teacher_id": str(teacher_id)})

    @staticmethod
    async def add_subject(db: AsyncSession, teacher_id: UUID, subject_id: str) -> Teacher:
        """Associate a subject with a teacher. Adding an existing association is a no-op."""
        teacher = await TeacherService.get_teacher(db, teacher_id)
        subject = await SubjectService.get_subject(db, subject_id)

        if subject not in teacher.subjects:
            teacher.subjects.append(subject)
            await db.commit()
        return teacher

    @staticmethod
    async def remove_subject(db: AsyncSession, teacher_id: UUID, subject_id: str) -> Teacher:
        teacher = await TeacherService.get_teacher(db, teacher_id)
        subject = next((s for s in teacher.subjects if s.id == subject_id), None)
        if subject is None:
            raise NotFoundError(f"Subject {subject_id} is not associated with teacher {teacher_id}")

        teacher.subjects.remove(subject)
        await db.commit()
        return teacher
