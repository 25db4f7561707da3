"""Sequential Code Allocator

Issues the human-readable identifiers of the registry:

* enrollment codes for students, ``<year><shift><seq4>`` (e.g. ``2025M0001``)
* registry codes for teachers, ``<DEPT>-<seq4>`` (e.g. ``COMP-0001``)

Each code belongs to a partition (year + shift, or department prefix) with its
own sequence. The next sequence is read from the greatest code already stored
in the partition, so no counter state is kept between requests. Concurrent
writers are serialized by the unique constraint on the code column: the loser
of a race gets a ``CodeConflict`` from its insert and retries with a fresh
lookup, up to ``CODE_ALLOCATION_MAX_ATTEMPTS`` times. On SQLite the writers
also queue on the database write lock (see ``app.database``).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from sqlalchemy import UniqueConstraint, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AllocationConflictError,
    CodeLookupError,
    InvalidPartitionInput,
    SequenceExhaustedError,
)
from app.core.logging import get_logger
from app.models.academic import Student, Teacher
from app.models.enums import Shift

logger = get_logger(__name__)

T = TypeVar("T")

SEQUENCE_WIDTH = 4
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1
DEPARTMENT_PREFIX_LENGTH = 4
REGISTRY_SEPARATOR = "-"


class CodeConflict(Exception):
    """An insert lost the race for its code; the caller should allocate again."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Code {code} is already taken")
        self.code = code


@dataclass(frozen=True)
class CodePartition:
    """A family of codes sharing ``prefix`` and counting their own sequence."""

    prefix: str
    separator: str = ""

    @property
    def search_prefix(self) -> str:
        """Leading text shared by every code of the partition"""
        return f"{self.prefix}{self.separator}"

    def sequence_of(self, code: str) -> int:
        """
        Parse the sequence number carried by ``code``.

        Separated codes keep their sequence after the last separator; compact
        codes keep it in the trailing ``SEQUENCE_WIDTH`` characters.

        Raises:
            ValueError: if the code carries no numeric suffix
        """
        if self.separator:
            _, found, suffix = code.rpartition(self.separator)
            if not found:
                raise ValueError(f"no '{self.separator}' separator in {code!r}")
        else:
            if len(code) <= len(self.prefix):
                raise ValueError(f"{code!r} has no sequence after prefix {self.prefix!r}")
            suffix = code[-SEQUENCE_WIDTH:]
        if not (suffix.isascii() and suffix.isdigit()):
            raise ValueError(f"sequence {suffix!r} of {code!r} is not numeric")
        return int(suffix)


# Partition key derivation

def normalize_shift(value: Union[str, Shift, None]) -> Shift:
    """Upper-case and validate a shift letter.

    Raises:
        InvalidPartitionInput: if the value is not M, T or N
    """
    if isinstance(value, Shift):
        return value
    normalized = (value or "").strip().upper()
    try:
        return Shift(normalized)
    except ValueError:
        raise InvalidPartitionInput(
            f"Invalid shift '{value}'. Must be 'M' (morning), 'T' (afternoon) or 'N' (night)",
            code="INVALID_SHIFT",
        ) from None


def student_partition(shift: Union[str, Shift], year: Optional[int] = None) -> CodePartition:
    """Partition of enrollment codes for ``year`` (default: current year) and ``shift``."""
    shift = normalize_shift(shift)
    if year is None:
        year = datetime.now().year
    return CodePartition(prefix=f"{year:04d}{shift.value}")


def department_prefix(department: str) -> str:
    """
    Registry prefix of a department: its upper-cased name cut to four characters.

    "Computer Science" -> "COMP", "AI" -> "AI". Departments sharing their first
    four letters share a registry sequence.
    """
    name = (department or "").strip()
    if not name:
        raise InvalidPartitionInput("Department is required to issue a registry code", code="INVALID_DEPARTMENT")
    return name.upper()[:DEPARTMENT_PREFIX_LENGTH]


def teacher_partition(department: str) -> CodePartition:
    return CodePartition(prefix=department_prefix(department), separator=REGISTRY_SEPARATOR)


# Sequence handling

def next_sequence(last_code: Optional[str], partition: CodePartition) -> int:
    """
    Sequence following ``last_code``; 1 for an empty partition.

    A stored code without a numeric suffix restarts the sequence at 1 instead of
    blocking the partition; the unique constraint still rejects a duplicate.
    """
    if last_code is None:
        return 1
    try:
        return partition.sequence_of(last_code) + 1
    except ValueError as exc:
        logger.warning(
            f"Malformed code {last_code!r} in partition {partition.search_prefix!r}; restarting sequence at 1",
            extra={"partition": partition.search_prefix, "last_code": last_code, "reason": str(exc)},
        )
        return 1


def allocate_code(partition: CodePartition, sequence: int) -> str:
    """Render ``sequence`` zero-padded to four digits inside ``partition``.

    Raises:
        SequenceExhaustedError: if the sequence no longer fits in four digits
    """
    if sequence < 1:
        raise ValueError(f"sequence must be positive, got {sequence}")
    if sequence > MAX_SEQUENCE:
        raise SequenceExhaustedError(
            f"No codes left in partition {partition.search_prefix} (limit {MAX_SEQUENCE})"
        )
    return f"{partition.search_prefix}{sequence:0{SEQUENCE_WIDTH}d}"


# Store access

async def lookup_last_code(db: AsyncSession, column: Any, partition: CodePartition) -> Optional[str]:
    """
    Greatest stored code of ``partition`` in ``column``, or None if it is empty.

    Only codes of the exact partition shape count: the search prefix followed
    by ``SEQUENCE_WIDTH`` digits. Codes of a longer prefix that happens to start
    with this one ("BIO--0001" when looking up "BIO-") and hand-entered codes
    with other suffixes are ignored. String order equals numeric order because
    sequences are fixed width.
    """
    search_prefix = partition.search_prefix
    suffix_start = len(search_prefix) + 1
    digits = [
        func.substr(column, suffix_start + offset, 1).between("0", "9")
        for offset in range(SEQUENCE_WIDTH)
    ]
    stmt = (
        select(column)
        .where(
            column.startswith(search_prefix, autoescape=True),
            func.length(column) == len(search_prefix) + SEQUENCE_WIDTH,
            *digits,
        )
        .order_by(column.desc())
        .limit(1)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error(
            f"Last code lookup failed for partition {partition.search_prefix!r}",
            extra={"partition": partition.search_prefix},
            exc_info=True,
        )
        raise CodeLookupError(f"Could not read issued codes for {partition.search_prefix}") from exc
    return result.scalar_one_or_none()


def is_code_violation(exc: IntegrityError, column: Any) -> bool:
    """True if ``exc`` is the unique constraint of ``column`` firing."""
    col = column.property.columns[0]
    table = col.table
    # SQLite reports "table.column", PostgreSQL reports the constraint name
    markers = {f"{table.name}.{col.name}"}
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint) and constraint.name and [c.name for c in constraint.columns] == [col.name]:
            markers.add(constraint.name)
    message = str(exc.orig)
    return any(marker in message for marker in markers)


async def insert_with_code(db: AsyncSession, entity: T, column: Any) -> T:
    """
    Flush ``entity`` inside a SAVEPOINT.

    Raises:
        CodeConflict: if its code collides with a stored one; the savepoint is
            rolled back and the surrounding transaction stays usable
        IntegrityError: for any other constraint violation
    """
    try:
        async with db.begin_nested():
            db.add(entity)
    except IntegrityError as exc:
        if is_code_violation(exc, column):
            raise CodeConflict(getattr(entity, column.key)) from exc
        raise
    return entity


async def allocate_with_retry(
    next_code: Callable[[], Awaitable[str]],
    insert: Callable[[str], Awaitable[T]],
    max_attempts: Optional[int] = None,
) -> T:
    """
    Compute a code and persist its owner, recomputing after each conflict.

    Args:
        next_code: returns the next code of the partition from a fresh lookup
        insert: persists the owning entity with the code, raising CodeConflict
            when another writer took it first
        max_attempts: defaults to settings.CODE_ALLOCATION_MAX_ATTEMPTS

    Raises:
        AllocationConflictError: when every attempt collided
    """
    attempts = max_attempts or settings.CODE_ALLOCATION_MAX_ATTEMPTS
    code = None
    for attempt in range(1, attempts + 1):
        code = await next_code()
        try:
            entity = await insert(code)
        except CodeConflict:
            logger.warning(
                f"Code {code} was issued concurrently (attempt {attempt}/{attempts})",
                extra={"code": code, "attempt": attempt},
            )
            continue
        logger.info(f"Issued code {code}", extra={"code": code, "attempt": attempt})
        return entity

    raise AllocationConflictError(
        f"Could not issue a unique code after {attempts} attempts (last tried {code})"
    )


# Entry points for the creation services

async def allocate_student_enrollment(
    db: AsyncSession, shift: Union[str, Shift], year: Optional[int] = None
) -> str:
    """Next enrollment code for ``shift`` in ``year`` (default: current year)."""
    partition = student_partition(shift, year)
    last_code = await lookup_last_code(db, Student.enrollment, partition)
    return allocate_code(partition, next_sequence(last_code, partition))


async def allocate_teacher_registry(db: AsyncSession, department: str) -> str:
    """Next registry code for ``department``."""
    partition = teacher_partition(department)
    last_code = await lookup_last_code(db, Teacher.registry_code, partition)
    return allocate_code(partition, next_sequence(last_code, partition))
