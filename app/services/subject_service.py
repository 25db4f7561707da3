"""Subject Service - catalogue of courses"""

from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import get_logger
from app.models.academic import Subject
from app.schemas.academic import SubjectCreate, SubjectUpdate

logger = get_logger(__name__)


class SubjectService:
    """Service layer for subject CRUD"""

    @staticmethod
    async def create_subject(db: AsyncSession, subject_in: SubjectCreate) -> Subject:
        """
        Create a subject under its registrar-chosen id.

        Raises:
            ConflictError: if a subject with the same id exists
        """
        if await db.get(Subject, subject_in.id) is not None:
            raise ConflictError(f"Subject with id {subject_in.id} already exists", code="SUBJECT_EXISTS")

        subject = Subject(**subject_in.model_dump())
        db.add(subject)
        await db.commit()
        logger.info(f"Subject {subject.id} created", extra={"subject_id": subject.id})
        return subject

    @staticmethod
    async def get_subject(db: AsyncSession, subject_id: str) -> Subject:
        """
        Get subject by ID.

        Raises:
            NotFoundError: if the subject does not exist
        """
        subject = await db.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError(f"Subject with id {subject_id} not found")
        return subject

    @staticmethod
    async def get_subjects(db: AsyncSession, subject_ids: Sequence[str]) -> List[Subject]:
        """Load every subject in ``subject_ids``, failing on the first unknown id."""
        wanted = list(dict.fromkeys(subject_ids))
        if not wanted:
            return []
        result = await db.execute(select(Subject).where(Subject.id.in_(wanted)))
        found = {s.id: s for s in result.scalars().all()}
        missing = [sid for sid in wanted if sid not in found]
        if missing:
            raise NotFoundError(f"Subjects not found: {', '.join(missing)}")
        return [found[sid] for sid in wanted]

    @staticmethod
    async def list_subjects(
        db: AsyncSession,
        year: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[List[Subject], int]:
        """
        Get paginated list of subjects, optionally for one course year.

        Returns:
            Tuple of (subjects list, total count)
        """
        filters = []
        if year is not None:
            filters.append(Subject.year == year)

        count_result = await db.execute(select(func.count(Subject.id)).where(*filters))
        total = count_result.scalar_one()

        result = await db.execute(
            select(Subject).where(*filters).order_by(Subject.id).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def update_subject(db: AsyncSession, subject_id: str, subject_update: SubjectUpdate) -> Subject:
        subject = await SubjectService.get_subject(db, subject_id)

        for field, value in subject_update.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(subject, field, value)

        await db.commit()
        return subject

    @staticmethod
    async def delete_subject(db: AsyncSession, subject_id: str) -> None:
        """Delete a subject together with its student and teacher associations."""
        result = await db.execute(
            select(Subject)
            .where(Subject.id == subject_id)
            .options(selectinload(Subject.students), selectinload(Subject.teachers))
        )
        subject = result.scalar_one_or_none()
        if subject is None:
            raise NotFoundError(f"Subject with id {subject_id} not found")

        await db.delete(subject)
        await db.commit()
        logger.info(f"Subject {subject_id} deleted", extra={"subject_id": subject_id})
