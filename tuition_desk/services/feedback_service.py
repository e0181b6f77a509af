from __future__ import annotations

import logging

from sqlalchemy.orm import Session, joinedload

from tuition_desk.core.errors import ValidationFailedError
from tuition_desk.core.time_provider import TimeProvider, default_time_provider
from tuition_desk.models import Feedback, Student
from tuition_desk.services.student_service import require_student


logger = logging.getLogger(__name__)


def serialize_feedback(row: Feedback) -> dict:
    return {
        'id': row.id,
        'studentId': row.student_id,
        'studentName': row.student.name if row.student else None,
        'feedback': row.feedback,
        'rating': row.rating,
        'feedbackDate': row.feedback_date,
        'createdAt': row.created_at,
    }


def list_feedbacks(db: Session, teacher_id: int, *, student_id: int | None = None) -> list[dict]:
    query = (
        db.query(Feedback)
        .join(Student, Feedback.student_id == Student.id)
        .options(joinedload(Feedback.student))
        .filter(Student.teacher_id == int(teacher_id))
    )
    if student_id:
        query = query.filter(Feedback.student_id == int(student_id))
    rows = query.order_by(Feedback.feedback_date.desc(), Feedback.id.desc()).all()
    return [serialize_feedback(row) for row in rows]


def create_feedback(
    db: Session,
    *,
    teacher_id: int,
    payload: dict,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    text = (payload.get('feedback') or '').strip()
    if not payload.get('student_id') or not text:
        raise ValidationFailedError('studentId and feedback are required')
    rating = payload.get('rating')
    if rating is not None and not 1 <= int(rating) <= 5:
        raise ValidationFailedError('Rating must be between 1 and 5')

    student = require_student(db, payload['student_id'], teacher_id)
    row = Feedback(
        student_id=student.id,
        feedback=text,
        rating=int(rating) if rating is not None else None,
        feedback_date=payload.get('feedback_date') or time_provider.utcnow_naive(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('feedback_created teacher_id=%s student_pk=%s feedback_id=%s', teacher_id, student.id, row.id)
    return serialize_feedback(row)
