from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tuition_desk.core.errors import DOMAIN_ERRORS
from tuition_desk.core.http_errors import as_http_error
from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import SubscriptionCreateRequest, SubscriptionUpdateRequest
from tuition_desk.services.subscription_service import (
    create_subscription,
    delete_subscription,
    get_subscription_detail,
    list_subscriptions,
    update_subscription,
)


router = APIRouter(prefix='/api/subscriptions', tags=['Subscriptions'], route_class=EndpointNameRoute)


@router.get('')
def subscriptions_list(
    student_id: int | None = Query(default=None, alias='studentId'),
    course_id: int | None = Query(default=None, alias='courseId'),
    is_active: bool | None = Query(default=None, alias='isActive'),
    payment_status: str | None = Query(default=None, alias='paymentStatus'),
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return list_subscriptions(
        db,
        teacher['teacher_id'],
        student_id=student_id,
        course_id=course_id,
        is_active=is_active,
        payment_status=payment_status,
    )


@router.post('', status_code=201)
def subscriptions_create(
    payload: SubscriptionCreateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return create_subscription(db, teacher_id=teacher['teacher_id'], payload=payload.model_dump())
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.get('/{subscription_id}')
def subscriptions_detail(
    subscription_id: int,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return get_subscription_detail(db, subscription_id, teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.patch('/{subscription_id}')
def subscriptions_update(
    subscription_id: int,
    payload: SubscriptionUpdateRequest,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        return update_subscription(
            db,
            subscription_id,
            teacher_id=teacher['teacher_id'],
            changes=payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc


@router.delete('/{subscription_id}')
def subscriptions_delete(
    subscription_id: int,
    teacher: dict = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        delete_subscription(db, subscription_id, teacher_id=teacher['teacher_id'])
    except DOMAIN_ERRORS as exc:
        raise as_http_error(exc) from exc
    return {'message': 'Subscription deleted successfully'}
