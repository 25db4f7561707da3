"""Student Service - Business Logic Layer"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models.academic import Student
from app.schemas.academic import StudentCreate, StudentUpdate
from app.services import code_allocator
from app.services.subject_service import SubjectService

logger = get_logger(__name__)


class StudentService:
    """Service layer for student-related operations"""

    @staticmethod
    async def create_student(
        db: AsyncSession,
        student_in: StudentCreate,
        year: Optional[int] = None,
    ) -> Student:
        """
        Create a student with an auto-generated enrollment code.

        The code is ``<year><shift><seq4>`` (e.g. 2025M0001) where ``year`` is the
        current calendar year unless given. The shift is validated before the
        database is touched.

        Raises:
            InvalidPartitionInput: if the shift is not M, T or N
            NotFoundError: if one of ``subject_ids`` does not exist
            AllocationConflictError: if no unique code could be issued
        """
        shift = code_allocator.normalize_shift(student_in.shift)
        if year is None:
            year = datetime.now().year

        subjects = await SubjectService.get_subjects(db, student_in.subject_ids)

        async def next_enrollment() -> str:
            return await code_allocator.allocate_student_enrollment(db, shift, year)

        async def insert(enrollment: str) -> Student:
            student = Student(
                enrollment=enrollment,
                name=student_in.name,
                current_year=student_in.current_year or 1,
                shift=shift,
                subjects=[],
            )
            return await code_allocator.insert_with_code(db, student, Student.enrollment)

        student = await code_allocator.allocate_with_retry(next_enrollment, insert)
        student.subjects.extend(subjects)
        await db.commit()

        logger.info(
            f"Student {student.name} created with enrollment {student.enrollment}",
            extra={"student_id": str(student.id), "enrollment": student.enrollment},
        )
        return student

    @staticmethod
    async def get_student(db: AsyncSession, student_id: UUID) -> Student:
        """
        Get student by ID, with subjects.

        Raises:
            NotFoundError: if the student does not exist
        """
        result = await db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(selectinload(Student.subjects))
            .execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError(f"Student with id {student_id} not found")
        return student

    @staticmethod
    async def list_students(
        db: AsyncSession,
        year: Optional[int] = None,
        shift: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[List[Student], int]:
        """
        Get paginated list of students ordered by enrollment.

        Args:
            year: course year (``current_year``) filter
            shift: shift filter, validated like on creation

        Returns:
            Tuple of (students list, total count)
        """
        filters = []
        if year is not None:
            filters.append(Student.current_year == year)
        if shift:
            filters.append(Student.shift == code_allocator.normalize_shift(shift))

        count_result = await db.execute(select(func.count(Student.id)).where(*filters))
        total = count_result.scalar_one()

        result = await db.execute(
            select(Student)
            .where(*filters)
            .options(selectinload(Student.subjects))
            .order_by(Student.enrollment)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def update_student(
        db: AsyncSession,
        student_id: UUID,
        student_update: StudentUpdate,
    ) -> Student:
        """
        Update name, course year or shift. The enrollment code keeps the shift
        it was issued with.
        """
        update_data = student_update.model_dump(exclude_unset=True, exclude_none=True)
        if "shift" in update_data:
            update_data["shift"] = code_allocator.normalize_shift(update_data["shift"])

        student = await StudentService.get_student(db, student_id)
        for field, value in update_data.items():
            setattr(student, field, value)

        await db.commit()
        return await StudentService.get_student(db, student_id)

    @staticmethod
    async def delete_student(db: AsyncSession, student_id: UUID) -> None:
        student = await StudentService.get_student(db, student_id)
        await db.delete(student)
        await db.commit()
        logger.info(f"Student {student.enrollment} deleted", extra={"student_id": str(student_id)})

    @staticmethod
    async def add_subject(db: AsyncSession, student_id: UUID, subject_id: str) -> Student:
        """Associate a subject with a student. Adding an existing association is a no-op."""
        student = await StudentService.get_student(db, student_id)
        subject = await SubjectService.get_subject(db, subject_id)

        if subject not in student.subjects:
            student.subjects.append(subject)
            await db.commit()
        return student

    @staticmethod
    async def remove_subject(db: AsyncSession, student_id: UUID, subject_id: str) -> Student:
        """
        Raises:
            NotFoundError: if the student is unknown or not taking the subject
        """
        student = await StudentService.get_student(db, student_id)
        subject = next((s for s in student.subjects if s.id == subject_id), None)
        if subject is None:
            raise NotFoundError(f"Subject {subject_id} is not associated with student {student_id}")

        student.subjects.remove(subject)
        await db.commit()
        return student
