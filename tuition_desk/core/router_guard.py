from __future__ import annotations

from fastapi import HTTPException, Request

from tuition_desk.config import settings
from tuition_desk.services.auth_service import validate_session_token


def resolve_token(request: Request) -> str | None:
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip()
    return None


def require_teacher(request: Request) -> dict:
    """FastAPI dependency resolving the calling teacher's context.

    Every service receives ``teacher_id`` explicitly from this dict; nothing
    downstream reads the session on its own.
    """
    session = validate_session_token(resolve_token(request))
    if not session:
        raise HTTPException(status_code=401, detail='Unauthorized')
    teacher_id = int(session.get('teacher_id') or 0)
    if teacher_id <= 0:
        raise HTTPException(status_code=401, detail='Unauthorized')
    return {
        'teacher_id': teacher_id,
        'email': str(session.get('email') or ''),
        'role': str(session.get('role') or '').strip().lower(),
    }
