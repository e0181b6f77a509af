from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from tuition_desk.config import settings
from tuition_desk.core.router_guard import resolve_token
from tuition_desk.db import get_db
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.schemas import LoginRequest, SignupRequest
from tuition_desk.services.auth_service import (
    AuthenticationError,
    clear_session_token,
    login_teacher,
    signup_teacher,
)


router = APIRouter(prefix='/api/auth', tags=['Auth'], route_class=EndpointNameRoute)


def _session_cookie_response(data: dict, *, status_code: int = 200):
    response = JSONResponse(
        status_code=status_code,
        content={
            'ok': True,
            'token': data['token'],
            'teacherId': data['teacher_id'],
            'email': data['email'],
            'role': data['role'],
        },
    )
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=data['token'],
        httponly=True,
        samesite='lax',
        secure=settings.app_env == 'production',
        max_age=int(settings.auth_session_max_age_seconds),
    )
    return response


@router.post('/signup')
def auth_signup(payload: SignupRequest, db: Session = Depends(get_db)):
    try:
        data = signup_teacher(db, name=payload.name, email=payload.email, password=payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _session_cookie_response(data, status_code=201)


@router.post('/login')
def auth_login(payload: LoginRequest, db: Session = Depends(get_db)):
    try:
        data = login_teacher(db, email=payload.email, password=payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return _session_cookie_response(data)


@router.post('/logout')
def auth_logout(request: Request):
    clear_session_token(resolve_token(request))
    response = JSONResponse({'ok': True})
    response.delete_cookie(settings.auth_cookie_name)
    return response
