from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from tuition_desk.core.errors import NotFoundError, ValidationFailedError
from tuition_desk.models import Batch, Routine, Student


logger = logging.getLogger(__name__)


def get_batch_for_teacher(db: Session, batch_id: int, teacher_id: int) -> Batch | None:
    return (
        db.query(Batch)
        .filter(Batch.id == int(batch_id), Batch.teacher_id == int(teacher_id))
        .first()
    )


def require_batch(db: Session, batch_id: int, teacher_id: int) -> Batch:
    row = get_batch_for_teacher(db, batch_id, teacher_id)
    if not row:
        raise NotFoundError('Batch not found')
    return row


def _counts_by_batch(db: Session, batch_ids: list[int]) -> dict[int, dict[str, int]]:
    counts = {batch_id: {'students': 0, 'routines': 0} for batch_id in batch_ids}
    if not batch_ids:
        return counts
    for batch_id, total in (
        db.query(Student.batch_id, func.count(Student.id))
        .filter(Student.batch_id.in_(batch_ids))
        .group_by(Student.batch_id)
        .all()
    ):
        counts[batch_id]['students'] = int(total)
    for batch_id, total in (
        db.query(Routine.batch_id, func.count(Routine.id))
        .filter(Routine.batch_id.in_(batch_ids))
        .group_by(Routine.batch_id)
        .all()
    ):
        counts[batch_id]['routines'] = int(total)
    return counts


def serialize_batch(row: Batch, counts: dict[str, int] | None = None) -> dict:
    payload = {
        'id': row.id,
        'batchName': row.name,
        'batchYear': row.year,
        'teacherId': row.teacher_id,
        'createdAt': row.created_at,
        'updatedAt': row.updated_at,
    }
    if counts is not None:
        payload['_count'] = dict(counts)
    return payload


def list_batches(db: Session, teacher_id: int) -> list[dict]:
    rows = (
        db.query(Batch)
        .filter(Batch.teacher_id == int(teacher_id))
        .order_by(Batch.created_at.desc(), Batch.id.desc())
        .all()
    )
    counts = _counts_by_batch(db, [row.id for row in rows])
    return [serialize_batch(row, counts[row.id]) for row in rows]


def get_batch_detail(db: Session, batch_id: int, teacher_id: int) -> dict:
    row = require_batch(db, batch_id, teacher_id)
    return serialize_batch(row, _counts_by_batch(db, [row.id])[row.id])


def create_batch(db: Session, *, teacher_id: int, name: str | None, year: str | None = None) -> dict:
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValidationFailedError('Batch name is required')
    row = Batch(name=clean_name, year=(year or '').strip() or None, teacher_id=int(teacher_id))
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('batch_created teacher_id=%s batch_id=%s', teacher_id, row.id)
    return serialize_batch(row, {'students': 0, 'routines': 0})


def update_batch(db: Session, batch_id: int, *, teacher_id: int, changes: dict) -> dict:
    row = require_batch(db, batch_id, teacher_id)
    if changes.get('batch_name'):
        clean_name = str(changes['batch_name']).strip()
        if not clean_name:
            raise ValidationFailedError('Batch name is required')
        row.name = clean_name
    if 'batch_year' in changes:
        row.year = (changes['batch_year'] or '').strip() or None
    db.commit()
    db.refresh(row)
    logger.info('batch_updated teacher_id=%s batch_id=%s', teacher_id, row.id)
    return serialize_batch(row, _counts_by_batch(db, [row.id])[row.id])


def delete_batch(db: Session, batch_id: int, *, teacher_id: int) -> None:
    row = require_batch(db, batch_id, teacher_id)
    db.delete(row)
    db.commit()
    logger.info('batch_deleted teacher_id=%s batch_id=%s', teacher_id, batch_id)
