from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from tuition_desk.core.errors import ConflictError, NotFoundError, ValidationFailedError
from tuition_desk.metrics import timed_service
from tuition_desk.models import Attendance, AttendanceStatus, Student
from tuition_desk.services.student_service import require_student


logger = logging.getLogger(__name__)

_STATUSES = tuple(status.value for status in AttendanceStatus)


def normalize_status(status: str | None) -> str:
    value = (status or '').strip().lower()
    if value not in _STATUSES:
        raise ValidationFailedError(f"Invalid status. Must be one of: {', '.join(_STATUSES)}")
    return value


def _owned_attendances(db: Session, teacher_id: int):
    return (
        db.query(Attendance)
        .join(Student, Attendance.student_id == Student.id)
        .options(joinedload(Attendance.student).joinedload(Student.batch))
        .filter(Student.teacher_id == int(teacher_id))
    )


def require_attendance(db: Session, attendance_id: int, teacher_id: int) -> Attendance:
    row = _owned_attendances(db, teacher_id).filter(Attendance.id == int(attendance_id)).first()
    if not row:
        raise NotFoundError('Attendance record not found')
    return row


def serialize_attendance(row: Attendance) -> dict:
    student = row.student
    return {
        'id': row.id,
        'studentId': row.student_id,
        'date': row.attendance_date,
        'status': row.status,
        'remarks': row.remarks,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
        'student': {
            'id': student.id,
            'studentId': student.student_id,
            'name': student.name,
            'batch': {'id': student.batch.id, 'batchName': student.batch.name} if student.batch else None,
        }
        if student
        else None,
    }


def list_attendances(
    db: Session,
    teacher_id: int,
    *,
    attendance_id: int | None = None,
    student_id: int | None = None,
    on_date: date | None = None,
    status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    query = _owned_attendances(db, teacher_id)
    if attendance_id:
        query = query.filter(Attendance.id == int(attendance_id))
    if student_id:
        query = query.filter(Attendance.student_id == int(student_id))
    if on_date:
        query = query.filter(Attendance.attendance_date == on_date)
    if status:
        query = query.filter(Attendance.status == normalize_status(status))
    if start_date:
        query = query.filter(Attendance.attendance_date >= start_date)
    if end_date:
        query = query.filter(Attendance.attendance_date <= end_date)
    rows = query.order_by(Attendance.attendance_date.desc(), Attendance.id.desc()).all()
    return [serialize_attendance(row) for row in rows]


def get_attendance_detail(db: Session, attendance_id: int, teacher_id: int) -> dict:
    return serialize_attendance(require_attendance(db, attendance_id, teacher_id))


def create_attendance(db: Session, *, teacher_id: int, payload: dict) -> dict:
    if not payload.get('student_id') or not payload.get('attendance_date') or not payload.get('status'):
        raise ValidationFailedError('studentId, date, and status are required')
    status = normalize_status(payload['status'])
    student = require_student(db, payload['student_id'], teacher_id)
    attendance_date = payload['attendance_date']

    existing = (
        db.query(Attendance.id)
        .filter(Attendance.student_id == student.id, Attendance.attendance_date == attendance_date)
        .first()
    )
    if existing is not None:
        raise ConflictError('Attendance already recorded for this student on this date')

    row = Attendance(
        student_id=student.id,
        attendance_date=attendance_date,
        status=status,
        remarks=(payload.get('remarks') or '').strip() or None,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Attendance already recorded for this student on this date') from exc
    logger.info(
        'attendance_created teacher_id=%s student_pk=%s date=%s status=%s',
        teacher_id,
        student.id,
        attendance_date,
        status,
    )
    return get_attendance_detail(db, row.id, teacher_id)


def update_attendance(db: Session, attendance_id: int, *, teacher_id: int, changes: dict) -> dict:
    row = require_attendance(db, attendance_id, teacher_id)
    if changes.get('student_id') and int(changes['student_id']) != row.student_id:
        row.student_id = require_student(db, changes['student_id'], teacher_id).id
    if changes.get('attendance_date'):
        row.attendance_date = changes['attendance_date']
    if changes.get('status'):
        row.status = normalize_status(changes['status'])
    if 'remarks' in changes:
        row.remarks = (changes['remarks'] or '').strip() or None
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Attendance already recorded for this student on this date') from exc
    db.expire_all()
    logger.info('attendance_updated teacher_id=%s attendance_id=%s', teacher_id, attendance_id)
    return get_attendance_detail(db, attendance_id, teacher_id)


def delete_attendance(db: Session, attendance_id: int, *, teacher_id: int) -> None:
    row = require_attendance(db, attendance_id, teacher_id)
    db.delete(row)
    db.commit()
    logger.info('attendance_deleted teacher_id=%s attendance_id=%s', teacher_id, attendance_id)


@timed_service('attendance_bulk_upsert')
def bulk_upsert_attendance(
    db: Session,
    *,
    teacher_id: int,
    student_ids: list[int],
    attendance_date: date | None,
    status: str | None,
    remarks: str | None = None,
) -> dict:
    """Mark one status for many students on one day.

    Existing (student, date) rows are updated in place and missing ones are
    inserted. Either every row is written or none is.
    """
    unique_ids = list(dict.fromkeys(int(student_id) for student_id in (student_ids or [])))
    if not unique_ids:
        raise ValidationFailedError('studentIds must be a non-empty array')
    if not attendance_date or not status:
        raise ValidationFailedError('date and status are required')
    clean_status = normalize_status(status)
    clean_remarks = (remarks or '').strip() or None

    owned = {
        student_pk
        for (student_pk,) in db.query(Student.id)
        .filter(Student.teacher_id == int(teacher_id), Student.id.in_(unique_ids))
        .all()
    }
    if len(owned) != len(unique_ids):
        raise NotFoundError('One or more students not found')

    existing = {
        row.student_id: row
        for row in db.query(Attendance)
        .filter(Attendance.student_id.in_(unique_ids), Attendance.attendance_date == attendance_date)
        .all()
    }
    created = 0
    updated = 0
    try:
        for student_pk in unique_ids:
            row = existing.get(student_pk)
            if row is None:
                db.add(
                    Attendance(
                        student_id=student_pk,
                        attendance_date=attendance_date,
                        status=clean_status,
                        remarks=clean_remarks,
                    )
                )
                created += 1
            else:
                row.status = clean_status
                row.remarks = clean_remarks
                updated += 1
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Attendance changed while saving, please retry') from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        'attendance_bulk_upserted teacher_id=%s date=%s status=%s created=%s updated=%s',
        teacher_id,
        attendance_date,
        clean_status,
        created,
        updated,
    )
    return {
        'date': attendance_date,
        'status': clean_status,
        'created': created,
        'updated': updated,
        'total': created + updated,
    }
