from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tuition_desk.core.router_guard import require_teacher
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.services.dashboard_service import compute_dashboard_stats


router = APIRouter(prefix='/api/dashboard', tags=['Dashboard'], route_class=EndpointNameRoute)


@router.get('/stats')
def dashboard_stats(teacher: dict = Depends(require_teacher), db: Session = Depends(get_db)):
    return compute_dashboard_stats(db, teacher['teacher_id'])
