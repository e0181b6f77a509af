from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
import threading

from sqlalchemy.orm import Session

from tuition_desk.config import settings
from tuition_desk.core.errors import ConflictError, ValidationFailedError
from tuition_desk.core.time_provider import TimeProvider, default_time_provider
from tuition_desk.models import Role, Teacher


_REVOKED_TOKENS: set[str] = set()
_TOKENS_LOCK = threading.RLock()
logger = logging.getLogger(__name__)


class AuthenticationError(ValueError):
    """Raised when credentials do not match a teacher account."""


def _normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def _mask_email(email: str) -> str:
    local, _, domain = _normalize_email(email).partition('@')
    if not domain:
        return '***'
    return f'{local[:1]}***@{domain}'


def _hash_password(password: str) -> str:
    if len(password or '') < 8:
        raise ValidationFailedError('Password must be at least 8 characters')
    salt = secrets.token_hex(16)
    iterations = 120000
    derived = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), iterations)
    return f'pbkdf2_sha256${iterations}${salt}${derived.hex()}'


def _verify_password(password: str, password_hash: str) -> bool:
    try:
        algo, iter_raw, salt, digest_hex = password_hash.split('$', 3)
    except ValueError:
        return False
    if algo != 'pbkdf2_sha256':
        return False
    derived = hashlib.pbkdf2_hmac('sha256', (password or '').encode('utf-8'), salt.encode('utf-8'), int(iter_raw)).hex()
    return hmac.compare_digest(derived, digest_hex)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64url_decode(value: str) -> bytes:
    padding = '=' * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode('ascii'))


def _encode_jwt(payload: dict) -> str:
    header = {'alg': 'HS256', 'typ': 'JWT'}
    header_part = _b64url_encode(json.dumps(header, separators=(',', ':')).encode('utf-8'))
    payload_part = _b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    signing_input = f'{header_part}.{payload_part}'.encode('ascii')
    signature = hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()
    return f'{header_part}.{payload_part}.{_b64url_encode(signature)}'


def _decode_jwt(token: str) -> dict | None:
    try:
        header_part, payload_part, signature_part = token.split('.')
    except ValueError:
        return None

    signing_input = f'{header_part}.{payload_part}'.encode('ascii')
    expected_signature = hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()
    try:
        provided_signature = _b64url_decode(signature_part)
    except ValueError:
        return None
    if not hmac.compare_digest(provided_signature, expected_signature):
        return None

    try:
        payload = json.loads(_b64url_decode(payload_part).decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(payload, dict):
        return None
    return payload


def issue_session_token(teacher: Teacher, *, time_provider: TimeProvider = default_time_provider) -> dict:
    issued_at = int(time_provider.now().timestamp())
    expires_at = issued_at + int(settings.auth_session_max_age_seconds)
    token = _encode_jwt(
        {
            'sub': teacher.id,
            'email': teacher.email,
            'role': teacher.role,
            'iat': issued_at,
            'exp': expires_at,
        }
    )
    with _TOKENS_LOCK:
        _REVOKED_TOKENS.discard(token)
    return {
        'token': token,
        'teacher_id': teacher.id,
        'email': teacher.email,
        'role': teacher.role,
        'expires_at': expires_at,
    }


def signup_teacher(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    clean_email = _normalize_email(email)
    if '@' not in clean_email:
        raise ValidationFailedError('A valid email is required')
    if not (name or '').strip():
        raise ValidationFailedError('Name is required')
    if db.query(Teacher.id).filter(Teacher.email == clean_email).first() is not None:
        raise ConflictError('User already exist with the email')

    teacher = Teacher(
        name=name.strip(),
        email=clean_email,
        password_hash=_hash_password(password),
        role=Role.TEACHER.value,
    )
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    logger.info('auth_signup_success email=%s teacher_id=%s', _mask_email(clean_email), teacher.id)
    return issue_session_token(teacher, time_provider=time_provider)


def login_teacher(
    db: Session,
    *,
    email: str,
    password: str,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    clean_email = _normalize_email(email)
    teacher = db.query(Teacher).filter(Teacher.email == clean_email).first()
    if not teacher or not teacher.password_hash or not _verify_password(password, teacher.password_hash):
        logger.warning('auth_login_failed email=%s', _mask_email(clean_email))
        raise AuthenticationError('Invalid credentials')
    logger.info('auth_login_success email=%s teacher_id=%s', _mask_email(clean_email), teacher.id)
    return issue_session_token(teacher, time_provider=time_provider)


def validate_session_token(
    token: str | None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict | None:
    if not token:
        return None
    with _TOKENS_LOCK:
        if token in _REVOKED_TOKENS:
            return None

    payload = _decode_jwt(token)
    if not payload:
        return None

    teacher_id = payload.get('sub')
    role = payload.get('role')
    if teacher_id is None or not role:
        return None
    expires_at = int(payload.get('exp') or 0)
    if expires_at and expires_at < int(time_provider.now().timestamp()):
        return None

    return {
        'teacher_id': int(teacher_id),
        'email': payload.get('email') or '',
        'role': role,
        'expires_at': expires_at or None,
    }


def clear_session_token(token: str | None) -> None:
    if not token:
        return
    with _TOKENS_LOCK:
        _REVOKED_TOKENS.add(token)
