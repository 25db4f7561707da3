from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.academic import SubjectCreate, SubjectResponse, SubjectUpdate
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.services.subject_service import SubjectService

router = APIRouter()


@router.post("", response_model=SuccessResponse[SubjectResponse], status_code=status.HTTP_201_CREATED)
async def create_subject(
    subject_in: SubjectCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    subject = await SubjectService.create_subject(db, subject_in)
    return SuccessResponse(data=SubjectResponse.model_validate(subject), message="Subject created successfully")


@router.get("", response_model=PaginatedResponse[SubjectResponse])
async def list_subjects(
    year: Optional[int] = None,
    page: deps.Pagination = Depends(deps.pagination),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List subjects, optionally only those offered in ``year``.
    """
    subjects, total = await SubjectService.list_subjects(db, year=year, skip=page.skip, limit=page.limit)
    return PaginatedResponse(
        data=[SubjectResponse.model_validate(s) for s in subjects],
        meta=PaginationMeta.build(page.page, page.limit, total),
    )


@router.get("/{subject_id}", response_model=SuccessResponse[SubjectResponse])
async def get_subject(
    subject_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    subject = await SubjectService.get_subject(db, subject_id)
    return SuccessResponse(data=SubjectResponse.model_validate(subject))


@router.put("/{subject_id}", response_model=SuccessResponse[SubjectResponse])
async def update_subject(
    subject_id: str,
    subject_in: SubjectUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    subject = await SubjectService.update_subject(db, subject_id, subject_in)
    return SuccessResponse(data=SubjectResponse.model_validate(subject), message="Subject updated successfully")


@router.delete("/{subject_id}", response_model=SuccessResponse)
async def delete_subject(
    subject_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Delete a subject and drop it from every student and teacher.
    """
    await SubjectService.delete_subject(db, subject_id)
    return SuccessResponse(data=None, message="Subject deleted successfully")
