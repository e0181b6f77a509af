from __future__ import annotations


class ValidationFailedError(ValueError):
    """Request passed schema validation but breaks a business rule."""


class NotFoundError(LookupError):
    """Row is missing or is owned by another teacher."""


class ConflictError(ValueError):
    pass


class DuplicateStudentIdError(ValueError):
    pass


class CourseInUseError(ValueError):
    pass


class StudentIdAllocationError(RuntimeError):
    pass


DOMAIN_ERRORS = (
    ValidationFailedError,
    NotFoundError,
    ConflictError,
    DuplicateStudentIdError,
    CourseInUseError,
    StudentIdAllocationError,
)
