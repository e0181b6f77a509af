"""Student display ids of the form ``EHA-<SHORT>-<NNNN>``.

The short code is derived from the batch name, the trailing number is a
per-(teacher, short code) counter kept in ``student_id_sequences``. Counters
are reserved under a row lock inside the caller's transaction, so the id and
the student row that uses it commit together.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from tuition_desk.config import settings
from tuition_desk.core.errors import DuplicateStudentIdError, StudentIdAllocationError, ValidationFailedError
from tuition_desk.models import Student, StudentIdSequence


logger = logging.getLogger(__name__)

_STOPWORDS = frozenset({'batch', 'class', 'the', 'and', 'of'})
_WORD_SPLIT_RE = re.compile(r'[\s_-]+')
_DIGITS_RE = re.compile(r'\d+')
_TRAILING_SEQUENCE_RE = re.compile(r'-(\d+)$')
_SEQUENCE_WIDTH = 4


def derive_short_code(batch_name: str) -> str:
    """Abbreviate a batch name into the namespace segment of a student id.

    >>> derive_short_code('Morning Batch 1')
    'M1'
    >>> derive_short_code('Evening Batch A')
    'EA'
    >>> derive_short_code('SSC')
    'SS'
    """
    raw_name = batch_name or ''
    words = [word for word in _WORD_SPLIT_RE.split(raw_name.lower()) if word and word not in _STOPWORDS]
    if not words:
        return raw_name[:3].upper()

    number_word = next((word for word in words if _DIGITS_RE.search(word)), None)
    if number_word is not None:
        digits = _DIGITS_RE.search(number_word).group(0)
        return f'{words[0][0].upper()}{digits}'

    if len(words) >= 2:
        return ''.join(word[0].upper() for word in words[:3])

    word = words[0]
    return word[: 3 if len(word) >= 4 else 2].upper()


def build_prefix(short_code: str) -> str:
    return f'{settings.student_id_prefix}-{short_code}'


def format_student_id(prefix: str, sequence: int) -> str:
    # Widens past 9999 instead of wrapping.
    return f'{prefix}-{int(sequence):0{_SEQUENCE_WIDTH}d}'


def parse_sequence(student_id: str) -> int | None:
    match = _TRAILING_SEQUENCE_RE.search(student_id or '')
    if not match:
        return None
    return int(match.group(1))


def _format_pattern() -> re.Pattern[str]:
    return re.compile(rf'^{re.escape(settings.student_id_prefix)}-([A-Z0-9]+)-(\d{{{_SEQUENCE_WIDTH},}})$')


def is_valid_student_id_format(student_id: str) -> bool:
    return bool(_format_pattern().match(student_id or ''))


def extract_short_code(student_id: str) -> str | None:
    match = _format_pattern().match(student_id or '')
    return match.group(1) if match else None


def student_id_exists(db: Session, teacher_id: int, student_id: str, *, exclude_id: int | None = None) -> bool:
    query = db.query(Student.id).filter(Student.teacher_id == int(teacher_id), Student.student_id == student_id)
    if exclude_id is not None:
        query = query.filter(Student.id != int(exclude_id))
    return query.first() is not None


def ensure_student_id_available(db: Session, teacher_id: int, student_id: str, *, exclude_id: int | None = None) -> None:
    if student_id_exists(db, teacher_id, student_id, exclude_id=exclude_id):
        raise DuplicateStudentIdError('Student ID already exists')


def _greatest_existing_sequence(db: Session, teacher_id: int, prefix: str) -> int:
    # Compared numerically; lexicographic order breaks once ids widen past 4 digits.
    scoped_prefix = f'{prefix}-'
    rows = (
        db.query(Student.student_id)
        .filter(
            Student.teacher_id == int(teacher_id),
            Student.student_id.startswith(scoped_prefix, autoescape=True),
        )
        .all()
    )
    greatest = 0
    for (student_id,) in rows:
        remainder = student_id[len(scoped_prefix):]
        if remainder.isdigit():
            greatest = max(greatest, int(remainder))
    return greatest


def _require_short_code(batch_name: str) -> str:
    short_code = derive_short_code(batch_name)
    if not short_code.strip():
        raise ValidationFailedError('Batch name cannot produce a student id')
    return short_code


def reserve_next(db: Session, *, teacher_id: int, short_code: str) -> int:
    """Atomically claim the next sequence number for ``(teacher_id, short_code)``.

    The counter row is locked for the rest of the caller's transaction. Ids that
    already exist under the prefix (custom ids, rows older than the counter)
    push the counter forward so numbering stays monotonic.
    """
    row = (
        db.query(StudentIdSequence)
        .filter(
            StudentIdSequence.teacher_id == int(teacher_id),
            StudentIdSequence.short_code == short_code,
        )
        .with_for_update()
        .first()
    )
    greatest = _greatest_existing_sequence(db, teacher_id, build_prefix(short_code))
    if row is None:
        row = StudentIdSequence(teacher_id=int(teacher_id), short_code=short_code, last_value=0)
        db.add(row)
    row.last_value = max(int(row.last_value or 0), greatest) + 1
    db.flush()
    return row.last_value


def allocate_student_id(db: Session, batch_name: str, teacher_id: int) -> str:
    short_code = _require_short_code(batch_name)
    prefix = build_prefix(short_code)
    max_attempts = max(1, int(settings.student_id_max_attempts))
    for attempt in range(1, max_attempts + 1):
        sequence = reserve_next(db, teacher_id=teacher_id, short_code=short_code)
        candidate = format_student_id(prefix, sequence)
        if not student_id_exists(db, teacher_id, candidate):
            return candidate
        logger.warning(
            'student_id_collision teacher_id=%s student_id=%s attempt=%s',
            teacher_id,
            candidate,
            attempt,
        )
    raise StudentIdAllocationError(f'Could not allocate a student id for prefix {prefix}')


def preview_student_id(db: Session, batch_name: str, teacher_id: int) -> str:
    """Return the id the next allocation would produce, without reserving it."""
    short_code = _require_short_code(batch_name)
    prefix = build_prefix(short_code)
    last_value = (
        db.query(StudentIdSequence.last_value)
        .filter(
            StudentIdSequence.teacher_id == int(teacher_id),
            StudentIdSequence.short_code == short_code,
        )
        .scalar()
    )
    sequence = max(int(last_value or 0), _greatest_existing_sequence(db, teacher_id, prefix)) + 1
    for _ in range(max(1, int(settings.student_id_max_attempts))):
        candidate = format_student_id(prefix, sequence)
        if not student_id_exists(db, teacher_id, candidate):
            return candidate
        sequence += 1
    raise StudentIdAllocationError(f'Could not preview a student id for prefix {prefix}')
