from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.core.rate_limit import limiter
from app.schemas.academic import StudentCreate, StudentResponse, StudentUpdate
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.services.student_service import StudentService

router = APIRouter()


@router.post("", response_model=SuccessResponse[StudentResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_CREATE)
async def create_student(
    request: Request,
    student_in: StudentCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Create a student. The enrollment code (e.g. 2025M0001) is generated from
    the current year and the shift.
    """
    student = await StudentService.create_student(db, student_in)
    return SuccessResponse(data=StudentResponse.model_validate(student), message="Student created successfully")


@router.get("", response_model=PaginatedResponse[StudentResponse])
async def list_students(
    year: Optional[int] = None,
    shift: Optional[str] = None,
    page: deps.Pagination = Depends(deps.pagination),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List students, filtered by course year and/or shift.
    """
    students, total = await StudentService.list_students(
        db, year=year, shift=shift, skip=page.skip, limit=page.limit
    )
    return PaginatedResponse(
        data=[StudentResponse.model_validate(s) for s in students],
        meta=PaginationMeta.build(page.page, page.limit, total),
    )


@router.get("/{student_id}", response_model=SuccessResponse[StudentResponse])
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    student = await StudentService.get_student(db, student_id)
    return SuccessResponse(data=StudentResponse.model_validate(student))


@router.put("/{student_id}", response_model=SuccessResponse[StudentResponse])
async def update_student(
    student_id: UUID,
    student_in: StudentUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Update a student. The enrollment code is immutable.
    """
    student = await StudentService.update_student(db, student_id, student_in)
    return SuccessResponse(data=StudentResponse.model_validate(student), message="Student updated successfully")


@router.delete("/{student_id}", response_model=SuccessResponse)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    await StudentService.delete_student(db, student_id)
    return SuccessResponse(data=None, message="Student deleted successfully")


@router.post("/{student_id}/subjects/{subject_id}", response_model=SuccessResponse[StudentResponse])
async def add_subject_to_student(
    student_id: UUID,
    subject_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    student = await StudentService.add_subject(db, student_id, subject_id)
    return SuccessResponse(data=StudentResponse.model_validate(student), message="Subject added to student")


@router.delete("/{student_id}/subjects/{subject_id}", response_model=SuccessResponse[StudentResponse])
async def remove_subject_from_student(
    student_id: UUID,
    subject_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    student = await StudentService.remove_subject(db, student_id, subject_id)
    return SuccessResponse(data=StudentResponse.model_validate(student), message="Subject removed from student")
