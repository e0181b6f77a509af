from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import StudentCreateRequest, StudentIdPreviewRequest, StudentUpdateRequest
from tuition_desk.services.student_service import (
    create_student,
    delete_student,
    get_student_detail,
    list_students,
    preview_next_student_id,
    update_student,
)


router = APIRouter(prefix='/api/students', tags=['Students'], route_class=EndpointNameRoute)


@router.get('')
def students_list(
    batch_id: int | None = Query(default=None, alias='batchId'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return list_students(db, teacher['teacher_id'], batch_id=batch_id)


@router.post('', status_code=201)
def students_create(
    payload: StudentCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_student(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.post('/preview-id')
def students_preview_id(
    payload: StudentIdPreviewRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        student_id = preview_next_student_id(db, teacher_id=teacher['teacher_id'], batch_id=payload.batch_id)
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'studentId': student_id}


@router.get('/{student_pk}')
def students_detail(student_pk: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        return get_student_detail(db, student_pk, teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.patch('/{student_pk}')
def students_update(
    student_pk: int,
    payload: StudentUpdateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return update_student(
            db,
            student_pk,
            teacher_id=teacher['teacher_id'],
            changes=payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.delete('/{student_pk}')
def students_delete(student_pk: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        delete_student(db, student_pk, teacher_id=teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'message': 'Student deleted successfully'}
