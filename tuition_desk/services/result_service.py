from __future__ import annotations

import logging

from sqlalchemy.orm import Session, joinedload

from tuition_desk.core.errors import ValidationFailedError
from tuition_desk.models import Result, Student
from tuition_desk.services.course_service import require_course
from tuition_desk.services.student_service import require_student


logger = logging.getLogger(__name__)


def serialize_result(row: Result) -> dict:
    return {
        'id': row.id,
        'studentId': row.student_id,
        'courseId': row.course_id,
        'examName': row.exam_name,
        'marksObtained': row.marks_obtained,
        'totalMarks': row.total_marks,
        'examDate': row.exam_date,
        'createdAt': row.created_at,
        'studentName': row.student.name if row.student else None,
        'courseTitle': row.course.title if row.course else None,
    }


def list_results(db: Session, teacher_id: int, *, student_id: int | None = None) -> list[dict]:
    query = (
        db.query(Result)
        .join(Student, Result.student_id == Student.id)
        .options(joinedload(Result.student), joinedload(Result.course))
        .filter(Student.teacher_id == int(teacher_id))
    )
    if student_id:
        query = query.filter(Result.student_id == int(student_id))
    rows = query.order_by(Result.exam_date.desc(), Result.id.desc()).all()
    return [serialize_result(row) for row in rows]


def create_result(db: Session, *, teacher_id: int, payload: dict) -> dict:
    exam_name = (payload.get('exam_name') or '').strip()
    if (
        not payload.get('student_id')
        or not exam_name
        or payload.get('marks_obtained') is None
        or not payload.get('exam_date')
    ):
        raise ValidationFailedError('studentId, examName, marksObtained and examDate are required')
    total_marks = float(payload.get('total_marks') or 100)
    marks = float(payload['marks_obtained'])
    if total_marks <= 0 or marks < 0 or marks > total_marks:
        raise ValidationFailedError('Marks must be between 0 and total marks')

    student = require_student(db, payload['student_id'], teacher_id)
    course_id = None
    if payload.get('course_id'):
        course_id = require_course(db, payload['course_id'], teacher_id).id

    row = Result(
        student_id=student.id,
        course_id=course_id,
        exam_name=exam_name,
        marks_obtained=marks,
        total_marks=total_marks,
        exam_date=payload['exam_date'],
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('result_created teacher_id=%s student_pk=%s result_id=%s', teacher_id, student.id, row.id)
    return serialize_result(row)
