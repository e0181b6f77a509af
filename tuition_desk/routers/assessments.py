from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import FeedbackCreateRequest, ResultCreateRequest
from tuition_desk.services.feedback_service import create_feedback, list_feedbacks
from tuition_desk.services.result_service import create_result, list_results


router = APIRouter(prefix='/api', tags=['Results & Feedback'], route_class=EndpointNameRoute)


@router.get('/results')
def results_list(
    student_id: int | None = Query(default=None, alias='studentId'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return list_results(db, teacher['teacher_id'], student_id=student_id)


@router.post('/results', status_code=201)
def results_create(
    payload: ResultCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_result(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.get('/feedbacks')
def feedbacks_list(
    student_id: int | None = Query(default=None, alias='studentId'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return list_feedbacks(db, teacher['teacher_id'], student_id=student_id)


@router.post('/feedbacks', status_code=201)
def feedbacks_create(
    payload: FeedbackCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_feedback(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
