from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import RoutineCreateRequest, RoutineUpdateRequest
from tuition_desk.services.routine_service import (
    create_routine,
    delete_routine,
    get_routine_detail,
    list_course_and_batch_options,
    list_routines,
    update_routine,
)


router = APIRouter(prefix='/api/routines', tags=['Routines'], route_class=EndpointNameRoute)


@router.get('')
def routines_list(
    course_id: int | None = Query(default=None, alias='courseId'),
    batch_id: int | None = Query(default=None, alias='batchId'),
    is_active: bool | None = Query(default=None, alias='isActive'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return list_routines(db, teacher['teacher_id'], course_id=course_id, batch_id=batch_id, is_active=is_active)


@router.get('/courses-batches')
def routines_options(teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    return list_course_and_batch_options(db, teacher['teacher_id'])


@router.post('', status_code=201)
def routines_create(
    payload: RoutineCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_routine(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.get('/{routine_id}')
def routines_detail(routine_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        return get_routine_detail(db, routine_id, teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.put('/{routine_id}')
@router.patch('/{routine_id}')
def routines_update(
    routine_id: int,
    payload: RoutineUpdateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return update_routine(
            db,
            routine_id,
            teacher_id=teacher['teacher_id'],
            changes=payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.delete('/{routine_id}')
def routines_delete(routine_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        delete_routine(db, routine_id, teacher_id=teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'message': 'Routine deleted successfully'}
