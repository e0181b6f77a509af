from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from tuition_desk.core.errors import CourseInUseError, NotFoundError, ValidationFailedError
from tuition_desk.models import Course, CourseSubscription, Routine


logger = logging.getLogger(__name__)


def get_course_for_teacher(db: Session, course_id: int, teacher_id: int) -> Course | None:
    return (
        db.query(Course)
        .filter(Course.id == int(course_id), Course.teacher_id == int(teacher_id))
        .first()
    )


def require_course(db: Session, course_id: int, teacher_id: int) -> Course:
    row = get_course_for_teacher(db, course_id, teacher_id)
    if not row:
        raise NotFoundError('Course not found')
    return row


def _validate_fee(course_fee) -> float:
    try:
        fee = float(course_fee)
    except (TypeError, ValueError) as exc:
        raise ValidationFailedError('Course fee must be a valid number') from exc
    if fee < 0:
        raise ValidationFailedError('Course fee must be a non-negative number')
    return fee


def _validate_duration(course_duration) -> int:
    try:
        duration = int(course_duration)
    except (TypeError, ValueError) as exc:
        raise ValidationFailedError('Course duration must be a valid number') from exc
    if duration < 1:
        raise ValidationFailedError('Course duration must be at least 1 month')
    return duration


def _counts_by_course(db: Session, course_ids: list[int]) -> dict[int, dict[str, int]]:
    counts = {course_id: {'subscriptions': 0, 'routines': 0} for course_id in course_ids}
    if not course_ids:
        return counts
    for key, model in (('subscriptions', CourseSubscription), ('routines', Routine)):
        for course_id, total in (
            db.query(model.course_id, func.count(model.id))
            .filter(model.course_id.in_(course_ids))
            .group_by(model.course_id)
            .all()
        ):
            counts[course_id][key] = int(total)
    return counts


def serialize_course(row: Course, counts: dict[str, int] | None = None) -> dict:
    payload = {
        'id': row.id,
        'title': row.title,
        'description': row.description,
        'courseFee': row.course_fee,
        'courseDuration': row.course_duration,
        'courseFor': row.course_for,
        'isActive': row.is_active,
        'teacherId': row.teacher_id,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
    }
    if counts is not None:
        payload['_count'] = dict(counts)
    return payload


def list_courses(db: Session, teacher_id: int, *, is_active: bool | None = None) -> list[dict]:
    query = db.query(Course).filter(Course.teacher_id == int(teacher_id))
    if is_active is not None:
        query = query.filter(Course.is_active.is_(bool(is_active)))
    rows = query.order_by(Course.created_at.desc(), Course.id.desc()).all()
    counts = _counts_by_course(db, [row.id for row in rows])
    return [serialize_course(row, counts[row.id]) for row in rows]


def get_course_detail(db: Session, course_id: int, teacher_id: int) -> dict:
    row = require_course(db, course_id, teacher_id)
    payload = serialize_course(row, _counts_by_course(db, [row.id])[row.id])
    payload['subscriptions'] = [
        {
            'id': sub.id,
            'studentId': sub.student_id,
            'studentName': sub.student.name if sub.student else None,
            'paymentStatus': sub.payment_status,
            'amountPaid': sub.amount_paid,
            'isActive': sub.is_active,
        }
        for sub in row.subscriptions
    ]
    payload['routines'] = [
        {
            'id': routine.id,
            'batchId': routine.batch_id,
            'batchName': routine.batch.name if routine.batch else None,
            'schedule': routine.schedule or [],
            'isActive': routine.is_active,
        }
        for routine in row.routines
    ]
    return payload


def create_course(db: Session, *, teacher_id: int, payload: dict) -> dict:
    title = (payload.get('title') or '').strip()
    course_for = (payload.get('course_for') or '').strip()
    if not title or payload.get('course_fee') is None or not payload.get('course_duration') or not course_for:
        raise ValidationFailedError('Missing required fields')
    row = Course(
        title=title,
        description=(payload.get('description') or '').strip() or None,
        course_fee=_validate_fee(payload['course_fee']),
        course_duration=_validate_duration(payload['course_duration']),
        course_for=course_for,
        is_active=bool(payload.get('is_active', True)),
        teacher_id=int(teacher_id),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('course_created teacher_id=%s course_id=%s', teacher_id, row.id)
    return serialize_course(row, {'subscriptions': 0, 'routines': 0})


def update_course(db: Session, course_id: int, *, teacher_id: int, changes: dict) -> dict:
    row = require_course(db, course_id, teacher_id)
    if changes.get('course_fee') is not None:
        row.course_fee = _validate_fee(changes['course_fee'])
    if changes.get('course_duration') is not None:
        row.course_duration = _validate_duration(changes['course_duration'])
    if (changes.get('title') or '').strip():
        row.title = changes['title'].strip()
    if 'description' in changes:
        row.description = (changes['description'] or '').strip() or None
    if (changes.get('course_for') or '').strip():
        row.course_for = changes['course_for'].strip()
    if changes.get('is_active') is not None:
        row.is_active = bool(changes['is_active'])
    db.commit()
    db.refresh(row)
    logger.info('course_updated teacher_id=%s course_id=%s', teacher_id, row.id)
    return serialize_course(row, _counts_by_course(db, [row.id])[row.id])


def delete_course(db: Session, course_id: int, *, teacher_id: int) -> None:
    row = require_course(db, course_id, teacher_id)
    in_use = db.query(CourseSubscription.id).filter(CourseSubscription.course_id == row.id).first() is not None
    if in_use:
        raise CourseInUseError('Cannot delete course with active subscriptions')
    db.delete(row)
    db.commit()
    logger.info('course_deleted teacher_id=%s course_id=%s', teacher_id, course_id)
