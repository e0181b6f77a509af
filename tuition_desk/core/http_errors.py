from __future__ import annotations

from fastapi import HTTPException

from tuition_desk.core.errors import ConflictError, NotFoundError, StudentIdAllocationError


def as_http_error(exc: Exception) -> HTTPException:
    """Translate a domain error raised by a service into its HTTP response."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc) or 'Not found')
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc) or 'Conflict')
    if isinstance(exc, StudentIdAllocationError):
        return HTTPException(status_code=500, detail=str(exc) or 'Could not allocate a student id')
    return HTTPException(status_code=400, detail=str(exc) or 'Bad request')
