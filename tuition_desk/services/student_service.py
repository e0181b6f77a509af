from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from tuition_desk.config import settings
from tuition_desk.core.errors import (
    DuplicateStudentIdError,
    NotFoundError,
    StudentIdAllocationError,
    ValidationFailedError,
)
from tuition_desk.metrics import timed_service
from tuition_desk.models import Attendance, CourseSubscription, Result, Student
from tuition_desk.services.batch_service import require_batch
from tuition_desk.services.student_id_service import (
    allocate_student_id,
    ensure_student_id_available,
    preview_student_id,
)


logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ('name', 'institution_name', 'class_name', 'gender', 'batch_id')
_OPTIONAL_FIELDS = (
    'avatar',
    'email',
    'phone',
    'address',
    'date_of_birth',
    'guardian_name',
    'guardian_phone',
)


def _clean_optional(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


def get_student_for_teacher(db: Session, student_pk: int, teacher_id: int) -> Student | None:
    return (
        db.query(Student)
        .options(joinedload(Student.batch))
        .filter(Student.id == int(student_pk), Student.teacher_id == int(teacher_id))
        .first()
    )


def require_student(db: Session, student_pk: int, teacher_id: int) -> Student:
    row = get_student_for_teacher(db, student_pk, teacher_id)
    if not row:
        raise NotFoundError('Student not found')
    return row


def serialize_student(row: Student, counts: dict[str, int] | None = None) -> dict:
    payload = {
        'id': row.id,
        'studentId': row.student_id,
        'name': row.name,
        'institutionName': row.institution_name,
        'class': row.class_name,
        'gender': row.gender,
        'batchId': row.batch_id,
        'teacherId': row.teacher_id,
        'avatar': row.avatar,
        'email': row.email,
        'phone': row.phone,
        'address': row.address,
        'dateOfBirth': row.date_of_birth,
        'guardianName': row.guardian_name,
        'guardianPhone': row.guardian_phone,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
        'batch': {
            'id': row.batch.id,
            'batchName': row.batch.name,
            'batchYear': row.batch.year,
        }
        if row.batch
        else None,
    }
    if counts is not None:
        payload['_count'] = dict(counts)
    return payload


def _related_counts(db: Session, student_pks: list[int]) -> dict[int, dict[str, int]]:
    counts = {pk: {'courseSubscriptions': 0, 'attendances': 0, 'results': 0} for pk in student_pks}
    if not student_pks:
        return counts
    for key, model in (
        ('courseSubscriptions', CourseSubscription),
        ('attendances', Attendance),
        ('results', Result),
    ):
        rows = (
            db.query(model.student_id, func.count(model.id))
            .filter(model.student_id.in_(student_pks))
            .group_by(model.student_id)
            .all()
        )
        for student_pk, total in rows:
            counts[student_pk][key] = int(total)
    return counts


def list_students(db: Session, teacher_id: int, *, batch_id: int | None = None) -> list[dict]:
    query = db.query(Student).options(joinedload(Student.batch)).filter(Student.teacher_id == int(teacher_id))
    if batch_id:
        query = query.filter(Student.batch_id == int(batch_id))
    rows = query.order_by(Student.created_at.desc(), Student.id.desc()).all()
    counts = _related_counts(db, [row.id for row in rows])
    return [serialize_student(row, counts[row.id]) for row in rows]


def get_student_detail(db: Session, student_pk: int, teacher_id: int) -> dict:
    row = require_student(db, student_pk, teacher_id)
    return serialize_student(row, _related_counts(db, [row.id])[row.id])


def preview_next_student_id(db: Session, *, teacher_id: int, batch_id: int | None) -> str:
    if not batch_id:
        raise ValidationFailedError('Batch ID is required')
    batch = require_batch(db, batch_id, teacher_id)
    return preview_student_id(db, batch.name, teacher_id)


@timed_service('student_create')
def create_student(db: Session, *, teacher_id: int, payload: dict) -> dict:
    """Insert a student, allocating its display id in the same transaction.

    A custom ``student_id`` is only checked for uniqueness. Otherwise an id is
    reserved from the batch's counter; if the attempt loses a race, either on
    the first insert of the counter row or on the ``(teacher_id, student_id)``
    constraint, the whole attempt is rolled back and retried.
    """
    missing = [field for field in _REQUIRED_FIELDS if not _clean_optional(payload.get(field))]
    if missing:
        raise ValidationFailedError('Missing required fields')

    batch = require_batch(db, payload['batch_id'], teacher_id)
    batch_pk = batch.id
    batch_name = batch.name
    custom_student_id = _clean_optional(payload.get('student_id'))
    if custom_student_id:
        ensure_student_id_available(db, teacher_id, custom_student_id)

    max_attempts = max(1, int(settings.student_id_max_attempts))
    for attempt in range(1, max_attempts + 1):
        student_id = custom_student_id
        try:
            if not custom_student_id:
                student_id = allocate_student_id(db, batch_name, teacher_id)
            row = Student(
                student_id=student_id,
                name=payload['name'].strip(),
                institution_name=payload['institution_name'].strip(),
                class_name=payload['class_name'].strip(),
                gender=payload['gender'].strip(),
                batch_id=batch_pk,
                teacher_id=int(teacher_id),
                **{field: _clean_optional(payload.get(field)) for field in _OPTIONAL_FIELDS},
            )
            db.add(row)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if custom_student_id:
                raise DuplicateStudentIdError('Student ID already exists') from exc
            logger.warning(
                'student_create_conflict teacher_id=%s student_id=%s attempt=%s',
                teacher_id,
                student_id,
                attempt,
            )
            continue
        db.refresh(row)
        logger.info('student_created teacher_id=%s student_pk=%s student_id=%s', teacher_id, row.id, row.student_id)
        return serialize_student(row)
    raise StudentIdAllocationError('Could not allocate a unique student id')


def update_student(db: Session, student_pk: int, *, teacher_id: int, changes: dict) -> dict:
    row = require_student(db, student_pk, teacher_id)

    requested_student_id = _clean_optional(changes.get('student_id'))
    if requested_student_id and requested_student_id != row.student_id:
        raise ValidationFailedError('Student ID cannot be changed')

    if changes.get('batch_id') and int(changes['batch_id']) != row.batch_id:
        row.batch_id = require_batch(db, changes['batch_id'], teacher_id).id

    for field in ('name', 'institution_name', 'class_name', 'gender'):
        value = _clean_optional(changes.get(field))
        if value:
            setattr(row, field, value)
    for field in _OPTIONAL_FIELDS:
        if field in changes:
            setattr(row, field, _clean_optional(changes[field]))

    db.commit()
    db.refresh(row)
    logger.info('student_updated teacher_id=%s student_pk=%s', teacher_id, row.id)
    return serialize_student(row)


def delete_student(db: Session, student_pk: int, *, teacher_id: int) -> None:
    row = require_student(db, student_pk, teacher_id)
    db.delete(row)
    db.commit()
    logger.info('student_deleted teacher_id=%s student_pk=%s', teacher_id, student_pk)
