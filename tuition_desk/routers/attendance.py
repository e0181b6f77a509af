from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import AttendanceCreateRequest, AttendanceUpdateRequest, BulkAttendanceRequest
from tuition_desk.services.attendance_service import (
    bulk_upsert_attendance,
    create_attendance,
    delete_attendance,
    list_attendances,
    update_attendance,
)


router = APIRouter(prefix='/api', tags=['Attendance'], route_class=EndpointNameRoute)


@router.get('/attendances')
def attendances_list(
    attendance_id: int | None = Query(default=None, alias='id'),
    student_id: int | None = Query(default=None, alias='studentId'),
    on_date: date | None = Query(default=None, alias='date'),
    status: str | None = None,
    start_date: date | None = Query(default=None, alias='startDate'),
    end_date: date | None = Query(default=None, alias='endDate'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return list_attendances(
            db,
            teacher['teacher_id'],
            attendance_id=attendance_id,
            student_id=student_id,
            on_date=on_date,
            status=status,
            start_date=start_date,
            end_date=end_date,
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.post('/attendances', status_code=201)
def attendances_create(
    payload: AttendanceCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_attendance(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.post('/attendances/bulk')
def attendances_bulk(
    payload: BulkAttendanceRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return bulk_upsert_attendance(
            db,
            teacher_id=teacher['teacher_id'],
            student_ids=payload.student_ids,
            attendance_date=payload.attendance_date,
            status=payload.status,
            remarks=payload.remarks,
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.put('/attendance/{attendance_id}')
@router.patch('/attendance/{attendance_id}')
def attendance_update(
    attendance_id: int,
    payload: AttendanceUpdateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return update_attendance(
            db,
            attendance_id,
            teacher_id=teacher['teacher_id'],
            changes=payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.delete('/attendance/{attendance_id}')
def attendance_delete(attendance_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        delete_attendance(db, attendance_id, teacher_id=teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'message': 'Attendance deleted successfully'}
