from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import CourseCreateRequest, CourseUpdateRequest
from tuition_desk.services.course_service import (
    create_course,
    delete_course,
    get_course_detail,
    list_courses,
    update_course,
)


router = APIRouter(prefix='/api/courses', tags=['Courses'], route_class=EndpointNameRoute)


@router.get('')
def courses_list(
    is_active: bool | None = Query(default=None, alias='isActive'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return list_courses(db, teacher['teacher_id'], is_active=is_active)


@router.post('', status_code=201)
def courses_create(
    payload: CourseCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_course(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.get('/{course_id}')
def courses_detail(course_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        return get_course_detail(db, course_id, teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.patch('/{course_id}')
def courses_update(
    course_id: int,
    payload: CourseUpdateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return update_course(
            db,
            course_id,
            teacher_id=teacher['teacher_id'],
            changes=payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.delete('/{course_id}')
def courses_delete(course_id: int, teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    try:
        delete_course(db, course_id, teacher_id=teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'message': 'Course deleted successfully'}
