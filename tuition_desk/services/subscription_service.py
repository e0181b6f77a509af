from __future__ import annotations

import calendar
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from tuition_desk.core.errors import ConflictError, NotFoundError, ValidationFailedError
from tuition_desk.core.time_provider import TimeProvider, default_time_provider
from tuition_desk.models import CourseSubscription, PaymentStatus, Student
from tuition_desk.services.course_service import require_course
from tuition_desk.services.student_service import require_student


logger = logging.getLogger(__name__)

_PAYMENT_STATUSES = {status.value for status in PaymentStatus}


def add_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping to the last day of a shorter month."""
    month_index = value.month - 1 + int(months)
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def derive_payment_status(amount_paid: float, course_fee: float) -> str:
    if amount_paid == 0:
        return PaymentStatus.PENDING.value
    if amount_paid >= course_fee:
        return PaymentStatus.PAID.value
    return PaymentStatus.PARTIAL.value


def _validate_amount(amount_paid, course_fee: float) -> float:
    try:
        amount = float(amount_paid)
    except (TypeError, ValueError) as exc:
        raise ValidationFailedError('Invalid amount paid') from exc
    if amount < 0 or amount > float(course_fee):
        raise ValidationFailedError('Invalid amount paid')
    return amount


def _owned_subscriptions(db: Session, teacher_id: int):
    return (
        db.query(CourseSubscription)
        .join(Student, CourseSubscription.student_id == Student.id)
        .options(
            joinedload(CourseSubscription.student).joinedload(Student.batch),
            joinedload(CourseSubscription.course),
        )
        .filter(Student.teacher_id == int(teacher_id))
    )


def require_subscription(db: Session, subscription_id: int, teacher_id: int) -> CourseSubscription:
    row = _owned_subscriptions(db, teacher_id).filter(CourseSubscription.id == int(subscription_id)).first()
    if not row:
        raise NotFoundError('Subscription not found')
    return row


def serialize_subscription(row: CourseSubscription) -> dict:
    student = row.student
    course = row.course
    return {
        'id': row.id,
        'studentId': row.student_id,
        'courseId': row.course_id,
        'enrolledDate': row.enrolled_date,
        'validTill': row.valid_till,
        'paymentStatus': row.payment_status,
        'amountPaid': row.amount_paid,
        'isActive': row.is_active,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
        'student': {
            'id': student.id,
            'studentId': student.student_id,
            'name': student.name,
            'avatar': student.avatar,
            'email': student.email,
            'phone': student.phone,
            'batch': {'id': student.batch.id, 'batchName': student.batch.name} if student.batch else None,
        }
        if student
        else None,
        'course': {
            'id': course.id,
            'title': course.title,
            'courseFee': course.course_fee,
            'courseDuration': course.course_duration,
            'courseFor': course.course_for,
        }
        if course
        else None,
    }


def list_subscriptions(
    db: Session,
    teacher_id: int,
    *,
    student_id: int | None = None,
    course_id: int | None = None,
    is_active: bool | None = None,
    payment_status: str | None = None,
) -> list[dict]:
    query = _owned_subscriptions(db, teacher_id)
    if student_id:
        query = query.filter(CourseSubscription.student_id == int(student_id))
    if course_id:
        query = query.filter(CourseSubscription.course_id == int(course_id))
    if is_active is not None:
        query = query.filter(CourseSubscription.is_active.is_(bool(is_active)))
    if payment_status:
        query = query.filter(CourseSubscription.payment_status == payment_status)
    rows = query.order_by(CourseSubscription.created_at.desc(), CourseSubscription.id.desc()).all()
    return [serialize_subscription(row) for row in rows]


def get_subscription_detail(db: Session, subscription_id: int, teacher_id: int) -> dict:
    return serialize_subscription(require_subscription(db, subscription_id, teacher_id))


def create_subscription(
    db: Session,
    *,
    teacher_id: int,
    payload: dict,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if not payload.get('student_id') or not payload.get('course_id'):
        raise ValidationFailedError('Student and course are required')
    student = require_student(db, payload['student_id'], teacher_id)
    course = require_course(db, payload['course_id'], teacher_id)

    existing = (
        db.query(CourseSubscription.id)
        .filter(CourseSubscription.student_id == student.id, CourseSubscription.course_id == course.id)
        .first()
    )
    if existing is not None:
        raise ConflictError('Student is already enrolled in this course')

    enrolled_date = payload.get('enrolled_date') or time_provider.utcnow_naive()
    valid_till = payload.get('valid_till') or add_months(enrolled_date, course.course_duration)
    amount_paid = _validate_amount(payload.get('amount_paid') or 0, course.course_fee)

    row = CourseSubscription(
        student_id=student.id,
        course_id=course.id,
        enrolled_date=enrolled_date,
        valid_till=valid_till,
        payment_status=derive_payment_status(amount_paid, course.course_fee),
        amount_paid=amount_paid,
        is_active=bool(payload.get('is_active', True)),
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Student is already enrolled in this course') from exc
    logger.info(
        'subscription_created teacher_id=%s subscription_id=%s status=%s',
        teacher_id,
        row.id,
        row.payment_status,
    )
    return get_subscription_detail(db, row.id, teacher_id)


def update_subscription(db: Session, subscription_id: int, *, teacher_id: int, changes: dict) -> dict:
    row = require_subscription(db, subscription_id, teacher_id)
    if changes.get('amount_paid') is not None:
        amount_paid = _validate_amount(changes['amount_paid'], row.course.course_fee)
        row.amount_paid = amount_paid
        row.payment_status = derive_payment_status(amount_paid, row.course.course_fee)
    if changes.get('enrolled_date'):
        row.enrolled_date = changes['enrolled_date']
    if changes.get('valid_till'):
        row.valid_till = changes['valid_till']
    if changes.get('is_active') is not None:
        row.is_active = bool(changes['is_active'])
    db.commit()
    logger.info('subscription_updated teacher_id=%s subscription_id=%s', teacher_id, subscription_id)
    return get_subscription_detail(db, subscription_id, teacher_id)


def delete_subscription(db: Session, subscription_id: int, *, teacher_id: int) -> None:
    row = require_subscription(db, subscription_id, teacher_id)
    db.delete(row)
    db.commit()
    logger.info('subscription_deleted teacher_id=%s subscription_id=%s', teacher_id, subscription_id)


def is_known_payment_status(value: str) -> bool:
    return value in _PAYMENT_STATUSES
