from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import BatchCreateRequest, BatchUpdateRequest
from tuition_desk.services.batch_service import (
    create_batch,
    delete_batch,
    get_batch_detail,
    list_batches,
    update_batch,
)


router = APIRouter(prefix='/api/batches', tags=['Batches'], route_class=EndpointNameRoute)


@router.get('')
def batches_list(teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    return list_batches(db, teacher['teacher_id'])


@router.post('', status_code=201)
def batches_create(
    payload: BatchCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_batch(db, teacher_id=teacher['teacher_id'], name=payload.batch_name, year=payload.batch_year)
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.get('/{batch_id}')
def batches_detail(batch_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        return get_batch_detail(db, batch_id, teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.patch('/{batch_id}')
def batches_update(
    batch_id: int,
    payload: BatchUpdateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return update_batch(
            db,
            batch_id,
            teacher_id=teacher['teacher_id'],
            changes=payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.delete('/{batch_id}')
def batches_delete(batch_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        delete_batch(db, batch_id, teacher_id=teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'message': 'Batch deleted successfully'}
