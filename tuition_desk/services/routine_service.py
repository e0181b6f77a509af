from __future__ import annotations

import logging

from sqlalchemy.orm import Session, joinedload

from tuition_desk.core.errors import NotFoundError, ValidationFailedError
from tuition_desk.models import Batch, Course, Routine
from tuition_desk.services.batch_service import require_batch
from tuition_desk.services.course_service import require_course


logger = logging.getLogger(__name__)


def normalize_schedule(schedule) -> list[dict]:
    if not schedule or not isinstance(schedule, list):
        raise ValidationFailedError('schedule must be a non-empty array')
    slots = []
    for item in schedule:
        if not isinstance(item, dict):
            raise ValidationFailedError('Each schedule item must have day, startTime, and endTime')
        day = str(item.get('day') or '').strip()
        start_time = str(item.get('start_time') or item.get('startTime') or '').strip()
        end_time = str(item.get('end_time') or item.get('endTime') or '').strip()
        if not day or not start_time or not end_time:
            raise ValidationFailedError('Each schedule item must have day, startTime, and endTime')
        slots.append({'day': day, 'startTime': start_time, 'endTime': end_time})
    return slots


def _owned_routines(db: Session, teacher_id: int):
    return (
        db.query(Routine)
        .join(Batch, Routine.batch_id == Batch.id)
        .options(joinedload(Routine.course), joinedload(Routine.batch))
        .filter(Batch.teacher_id == int(teacher_id))
    )


def require_routine(db: Session, routine_id: int, teacher_id: int) -> Routine:
    row = _owned_routines(db, teacher_id).filter(Routine.id == int(routine_id)).first()
    if not row:
        raise NotFoundError('Routine not found')
    return row


def serialize_routine(row: Routine) -> dict:
    return {
        'id': row.id,
        'courseId': row.course_id,
        'batchId': row.batch_id,
        'schedule': list(row.schedule or []),
        'isActive': row.is_active,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
        'course': {
            'id': row.course.id,
            'title': row.course.title,
            'courseFor': row.course.course_for,
        }
        if row.course
        else None,
        'batch': {
            'id': row.batch.id,
            'batchName': row.batch.name,
            'batchYear': row.batch.year,
        }
        if row.batch
        else None,
    }


def list_routines(
    db: Session,
    teacher_id: int,
    *,
    course_id: int | None = None,
    batch_id: int | None = None,
    is_active: bool | None = None,
) -> list[dict]:
    query = _owned_routines(db, teacher_id)
    if course_id:
        query = query.filter(Routine.course_id == int(course_id))
    if batch_id:
        query = query.filter(Routine.batch_id == int(batch_id))
    if is_active is not None:
        query = query.filter(Routine.is_active.is_(bool(is_active)))
    rows = query.order_by(Routine.created_at.desc(), Routine.id.desc()).all()
    return [serialize_routine(row) for row in rows]


def get_routine_detail(db: Session, routine_id: int, teacher_id: int) -> dict:
    return serialize_routine(require_routine(db, routine_id, teacher_id))


def create_routine(db: Session, *, teacher_id: int, payload: dict) -> dict:
    if not payload.get('course_id') or not payload.get('batch_id'):
        raise ValidationFailedError('courseId and batchId are required')
    schedule = normalize_schedule(payload.get('schedule'))
    course = require_course(db, payload['course_id'], teacher_id)
    batch = require_batch(db, payload['batch_id'], teacher_id)
    row = Routine(
        course_id=course.id,
        batch_id=batch.id,
        schedule=schedule,
        is_active=bool(payload.get('is_active', True)),
    )
    db.add(row)
    db.commit()
    logger.info('routine_created teacher_id=%s routine_id=%s', teacher_id, row.id)
    return get_routine_detail(db, row.id, teacher_id)


def update_routine(db: Session, routine_id: int, *, teacher_id: int, changes: dict) -> dict:
    row = require_routine(db, routine_id, teacher_id)
    if changes.get('course_id'):
        row.course_id = require_course(db, changes['course_id'], teacher_id).id
    if changes.get('batch_id'):
        row.batch_id = require_batch(db, changes['batch_id'], teacher_id).id
    if changes.get('schedule') is not None:
        row.schedule = normalize_schedule(changes['schedule'])
    if changes.get('is_active') is not None:
        row.is_active = bool(changes['is_active'])
    db.commit()
    db.expire_all()
    logger.info('routine_updated teacher_id=%s routine_id=%s', teacher_id, routine_id)
    return get_routine_detail(db, routine_id, teacher_id)


def delete_routine(db: Session, routine_id: int, *, teacher_id: int) -> None:
    row = require_routine(db, routine_id, teacher_id)
    db.delete(row)
    db.commit()
    logger.info('routine_deleted teacher_id=%s routine_id=%s', teacher_id, routine_id)


def list_course_and_batch_options(db: Session, teacher_id: int) -> list[list[dict]]:
    courses = (
        db.query(Course.id, Course.title)
        .filter(Course.teacher_id == int(teacher_id))
        .order_by(Course.created_at.desc())
        .all()
    )
    batches = (
        db.query(Batch.id, Batch.name)
        .filter(Batch.teacher_id == int(teacher_id))
        .order_by(Batch.created_at.desc())
        .all()
    )
    return [
        [{'id': course_id, 'title': title} for course_id, title in courses],
        [{'id': batch_id, 'batchName': name} for batch_id, name in batches],
    ]
