"""Integration tests: code allocation against a real (SQLite) store.

These call the services directly so the lookup can be made stale on purpose
to exercise the unique-constraint retry path.
"""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.exceptions import AllocationConflictError, ConflictError, SequenceExhaustedError
from app.database import Base, configure_sqlite_engine
from app.models.academic import Student, Teacher
from app.models.enums import Shift
from app.schemas.academic import StudentCreate, TeacherCreate, TeacherUpdate
from app.services import code_allocator
from app.services.student_service import StudentService
from app.services.teacher_service import TeacherService


async def count_students(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Student.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_years_have_separate_sequences(db_session: AsyncSession):
    old = await StudentService.create_student(db_session, StudentCreate(name="A", shift="M"), year=2024)
    new = await StudentService.create_student(db_session, StudentCreate(name="B", shift="M"), year=2025)
    assert old.enrollment == "2024M0001"
    assert new.enrollment == "2025M0001"


@pytest.mark.asyncio
async def test_stale_lookup_is_retried(db_session: AsyncSession, monkeypatch):
    await StudentService.create_student(db_session, StudentCreate(name="A", shift="M"), year=2025)

    real_lookup = code_allocator.lookup_last_code
    calls = []

    async def stale_once(db, column, partition):
        calls.append(partition.search_prefix)
        if len(calls) == 1:
            # Simulates a concurrent writer committing between read and insert
            return None
        return await real_lookup(db, column, partition)

    monkeypatch.setattr(code_allocator, "lookup_last_code", stale_once)

    student = await StudentService.create_student(db_session, StudentCreate(name="B", shift="M"), year=2025)

    assert student.enrollment == "2025M0002"
    assert len(calls) == 2
    assert await count_students(db_session) == 2


@pytest.mark.asyncio
async def test_retries_exhausted(db_session: AsyncSession, monkeypatch):
    await StudentService.create_student(db_session, StudentCreate(name="A", shift="N"), year=2025)

    async def always_stale(db, column, partition):
        return None

    monkeypatch.setattr(code_allocator, "lookup_last_code", always_stale)

    with pytest.raises(AllocationConflictError):
        await StudentService.create_student(db_session, StudentCreate(name="B", shift="N"), year=2025)

    await db_session.rollback()
    assert await count_students(db_session) == 1


@pytest.mark.asyncio
async def test_malformed_stored_code_restarts_sequence(db_session: AsyncSession):
    db_session.add(Student(enrollment="2025M", name="Legacy", current_year=1, shift=Shift.MORNING))
    await db_session.commit()

    student = await StudentService.create_student(db_session, StudentCreate(name="A", shift="M"), year=2025)
    assert student.enrollment == "2025M0001"


@pytest.mark.asyncio
async def test_partition_exhausted(db_session: AsyncSession):
    db_session.add(Student(enrollment="2025T9999", name="Last", current_year=1, shift=Shift.AFTERNOON))
    await db_session.commit()

    with pytest.raises(SequenceExhaustedError):
        await StudentService.create_student(db_session, StudentCreate(name="A", shift="T"), year=2025)

    # Other partitions are unaffected
    await db_session.rollback()
    student = await StudentService.create_student(db_session, StudentCreate(name="B", shift="N"), year=2025)
    assert student.enrollment == "2025N0001"


@pytest.mark.asyncio
async def test_last_code_lookup_escapes_wildcards(db_session: AsyncSession):
    db_session.add(
        Teacher(registry_code="A_B-0007", name="X", email="x@college.edu", department="A_B")
    )
    db_session.add(
        Teacher(registry_code="AXB-0009", name="Y", email="y@college.edu", department="AXB")
    )
    await db_session.commit()

    registry = await code_allocator.allocate_teacher_registry(db_session, "A_B")
    assert registry == "A_B-0008"


@pytest.mark.asyncio
async def test_teacher_email_race_is_a_conflict(db_session: AsyncSession, monkeypatch):
    teacher_in = TeacherCreate(name="Alan Turing", email="alan@college.edu", department="Computer Science")
    await TeacherService.create_teacher(db_session, teacher_in)

    async def not_found(db, email):
        return None

    # The pre-check misses the existing row, as if both requests checked at once
    monkeypatch.setattr(TeacherService, "get_teacher_by_email", staticmethod(not_found))

    with pytest.raises(ConflictError) as exc_info:
        await TeacherService.create_teacher(db_session, teacher_in)
    assert exc_info.value.code == "EMAIL_EXISTS"


@pytest.mark.asyncio
async def test_hyphenated_department_does_not_leak_into_shorter_prefix(db_session: AsyncSession):
    # "Bio-Chem" cuts to "BIO-", so its registries start with "BIO-" too
    biochem = await TeacherService.create_teacher(
        db_session, TeacherCreate(name="Rosalind", email="rosalind@college.edu", department="Bio-Chem")
    )
    assert biochem.registry_code == "BIO--0001"

    bio = await TeacherService.create_teacher(
        db_session, TeacherCreate(name="Barbara", email="barbara@college.edu", department="Bio")
    )
    assert bio.registry_code == "BIO-0001"

    second_biochem = await TeacherService.create_teacher(
        db_session, TeacherCreate(name="Dorothy", email="dorothy@college.edu", department="bio-chemistry")
    )
    assert second_biochem.registry_code == "BIO--0002"


@pytest.mark.asyncio
async def test_hand_entered_codes_are_skipped_by_lookup(db_session: AsyncSession):
    db_session.add(Student(enrollment="2025M0003", name="A", current_year=1, shift=Shift.MORNING))
    # Sorts above every numeric code of the partition
    db_session.add(Student(enrollment="2025MAB12", name="B", current_year=1, shift=Shift.MORNING))
    await db_session.commit()

    student = await StudentService.create_student(db_session, StudentCreate(name="C", shift="M"), year=2025)
    assert student.enrollment == "2025M0004"


@pytest.mark.asyncio
async def test_concurrent_creates_on_file_database(tmp_path):
    """Each request has its own connection, as with the default on-disk SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    configure_sqlite_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async def enroll(i: int) -> str:
        async with sessions() as session:
            student = await StudentService.create_student(
                session, StudentCreate(name=f"Student {i}", shift="M"), year=2025
            )
            return student.enrollment

    try:
        enrollments = await asyncio.gather(*(enroll(i) for i in range(6)))
    finally:
        await engine.dispose()

    assert sorted(enrollments) == [f"2025M{i:04d}" for i in range(1, 7)]


@pytest.mark.asyncio
async def test_teacher_email_update_race_is_a_conflict(db_session: AsyncSession, monkeypatch):
    alan = await TeacherService.create_teacher(
        db_session, TeacherCreate(name="Alan Turing", email="alan@college.edu", department="Computer Science")
    )
    await TeacherService.create_teacher(
        db_session, TeacherCreate(name="Ada Lovelace", email="ada@college.edu", department="Mathematics")
    )

    async def not_found(db, email):
        return None

    alan_id = alan.id
    monkeypatch.setattr(TeacherService, "get_teacher_by_email", staticmethod(not_found))

    with pytest.raises(ConflictError) as exc_info:
        await TeacherService.update_teacher(db_session, alan_id, TeacherUpdate(email="ada@college.edu"))
    assert exc_info.value.code == "EMAIL_EXISTS"

    # The session is usable again and the row kept its email
    reloaded = await TeacherService.get_teacher(db_session, alan_id)
    assert reloaded.email == "alan@college.edu"
