from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from functools import partial
from typing import Callable

from sqlalchemy import func
from sqlalchemy.orm import Session

from tuition_desk.config import settings
from tuition_desk.core.time_provider import TimeProvider, default_time_provider
from tuition_desk.metrics import timed_service
from tuition_desk.models import (
    Attendance,
    AttendanceStatus,
    Batch,
    Course,
    CourseSubscription,
    Feedback,
    PaymentStatus,
    Result,
    Routine,
    Student,
)


logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
TOP_PERFORMER_LIMIT = 5
UPCOMING_CLASS_LIMIT = 10


def empty_dashboard_stats() -> dict:
    return {
        'overview': {
            'totalStudents': 0,
            'totalBatches': 0,
            'totalCourses': 0,
            'activeCourses': 0,
            'totalRevenue': 0,
            'pendingPayments': 0,
            'attendanceRate': 0,
        },
        'charts': {
            'monthlyRevenue': [],
            'studentGrowth': [],
            'courseEnrollments': [],
            'attendanceStats': [],
        },
        'recentActivities': {
            'recentStudents': [],
            'topPerformers': [],
            'recentFeedbacks': [],
        },
        'upcomingClasses': [],
    }


def month_buckets(today: date, count: int) -> list[tuple[int, int]]:
    """(year, month) pairs for the last ``count`` months, oldest first."""
    buckets = []
    year, month = today.year, today.month
    for _ in range(max(1, int(count))):
        buckets.append((year, month))
        month -= 1
        if month == 0:
            year -= 1
            month = 12
    buckets.reverse()
    return buckets


def month_label(year: int, month: int) -> str:
    return date(year, month, 1).strftime('%b %Y')


def _bucket_totals(buckets: list[tuple[int, int]], rows: list[tuple[datetime, float]]) -> list[float]:
    totals = {bucket: 0 for bucket in buckets}
    for moment, amount in rows:
        if moment is None:
            continue
        key = (moment.year, moment.month)
        if key in totals:
            totals[key] += amount or 0
    return [totals[bucket] for bucket in buckets]


def _count_students(session: Session, teacher_id: int) -> int:
    return session.query(func.count(Student.id)).filter(Student.teacher_id == teacher_id).scalar() or 0


def _count_batches(session: Session, teacher_id: int) -> int:
    return session.query(func.count(Batch.id)).filter(Batch.teacher_id == teacher_id).scalar() or 0


def _count_courses(session: Session, teacher_id: int, *, active_only: bool = False) -> int:
    query = session.query(func.count(Course.id)).filter(Course.teacher_id == teacher_id)
    if active_only:
        query = query.filter(Course.is_active.is_(True))
    return query.scalar() or 0


def _total_revenue(session: Session, teacher_id: int) -> float:
    total = (
        session.query(func.sum(CourseSubscription.amount_paid))
        .join(Student, CourseSubscription.student_id == Student.id)
        .filter(Student.teacher_id == teacher_id)
        .scalar()
    )
    return total or 0


def _pending_payments(session: Session, teacher_id: int) -> float:
    total = (
        session.query(func.sum(Course.course_fee - CourseSubscription.amount_paid))
        .select_from(CourseSubscription)
        .join(Student, CourseSubscription.student_id == Student.id)
        .join(Course, CourseSubscription.course_id == Course.id)
        .filter(
            Student.teacher_id == teacher_id,
            CourseSubscription.payment_status.in_([PaymentStatus.PENDING.value, PaymentStatus.PARTIAL.value]),
        )
        .scalar()
    )
    return total or 0


def _recent_students(session: Session, teacher_id: int) -> list[dict]:
    rows = (
        session.query(Student.id, Student.name, Batch.name, Student.created_at, Student.avatar)
        .join(Batch, Student.batch_id == Batch.id)
        .filter(Student.teacher_id == teacher_id)
        .order_by(Student.created_at.desc(), Student.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    return [
        {'id': pk, 'name': name, 'batch': batch_name, 'joinedDate': created_at, 'avatar': avatar}
        for pk, name, batch_name, created_at, avatar in rows
    ]


def _attendance_by_status(session: Session, teacher_id: int, since: date) -> dict[str, int]:
    rows = (
        session.query(Attendance.status, func.count(Attendance.id))
        .join(Student, Attendance.student_id == Student.id)
        .filter(Student.teacher_id == teacher_id, Attendance.attendance_date >= since)
        .group_by(Attendance.status)
        .all()
    )
    return {status: int(total) for status, total in rows}


def _enrollments_by_course(session: Session, teacher_id: int) -> list[tuple[int, int]]:
    rows = (
        session.query(CourseSubscription.course_id, func.count(CourseSubscription.id))
        .join(Student, CourseSubscription.student_id == Student.id)
        .filter(Student.teacher_id == teacher_id, CourseSubscription.is_active.is_(True))
        .group_by(CourseSubscription.course_id)
        .order_by(CourseSubscription.course_id)
        .all()
    )
    return [(course_id, int(total)) for course_id, total in rows]


def _revenue_rows(session: Session, teacher_id: int, since: datetime) -> list[tuple[datetime, float]]:
    return [
        (enrolled_date, amount_paid)
        for enrolled_date, amount_paid in session.query(CourseSubscription.enrolled_date, CourseSubscription.amount_paid)
        .join(Student, CourseSubscription.student_id == Student.id)
        .filter(Student.teacher_id == teacher_id, CourseSubscription.enrolled_date >= since)
        .all()
    ]


def _growth_rows(session: Session, teacher_id: int, since: datetime) -> list[tuple[datetime, int]]:
    return [
        (created_at, 1)
        for (created_at,) in session.query(Student.created_at)
        .filter(Student.teacher_id == teacher_id, Student.created_at >= since)
        .all()
    ]


def _top_average_marks(session: Session, teacher_id: int) -> list[tuple[int, float | None]]:
    average = func.avg(Result.marks_obtained)
    rows = (
        session.query(Result.student_id, average)
        .join(Student, Result.student_id == Student.id)
        .filter(Student.teacher_id == teacher_id)
        .group_by(Result.student_id)
        .order_by(average.desc(), Result.student_id)
        .limit(TOP_PERFORMER_LIMIT)
        .all()
    )
    return [(student_pk, avg_marks) for student_pk, avg_marks in rows]


def _upcoming_classes(session: Session, teacher_id: int) -> list[dict]:
    rows = (
        session.query(Routine.id, Course.title, Batch.name, Routine.schedule)
        .join(Batch, Routine.batch_id == Batch.id)
        .join(Course, Routine.course_id == Course.id)
        .filter(Batch.teacher_id == teacher_id, Routine.is_active.is_(True))
        .order_by(Routine.id)
        .limit(UPCOMING_CLASS_LIMIT)
        .all()
    )
    return [
        {'id': pk, 'courseName': title, 'batchName': batch_name, 'schedule': list(schedule or [])}
        for pk, title, batch_name, schedule in rows
    ]


def _recent_feedbacks(session: Session, teacher_id: int) -> list[dict]:
    rows = (
        session.query(Feedback.id, Student.name, Feedback.feedback, Feedback.rating, Feedback.feedback_date)
        .join(Student, Feedback.student_id == Student.id)
        .filter(Student.teacher_id == teacher_id)
        .order_by(Feedback.feedback_date.desc(), Feedback.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    return [
        {'id': pk, 'studentName': name, 'feedback': text, 'rating': rating, 'date': feedback_date}
        for pk, name, text, rating, feedback_date in rows
    ]


def _course_titles(session: Session, course_ids: list[int]) -> dict[int, str]:
    if not course_ids:
        return {}
    return dict(session.query(Course.id, Course.title).filter(Course.id.in_(course_ids)).all())


def _student_cards(session: Session, student_pks: list[int]) -> dict[int, tuple[str, str | None]]:
    if not student_pks:
        return {}
    rows = session.query(Student.id, Student.name, Student.avatar).filter(Student.id.in_(student_pks)).all()
    return {pk: (name, avatar) for pk, name, avatar in rows}


def _run_in_session(bind, query: Callable[[Session], object]):
    with Session(bind=bind) as session:
        return query(session)


def _run_queries(pool: ThreadPoolExecutor, bind, queries: dict[str, Callable[[Session], object]]) -> dict:
    futures = {name: pool.submit(_run_in_session, bind, query) for name, query in queries.items()}
    return {name: future.result() for name, future in futures.items()}


def _collect(bind, teacher_id: int, time_provider: TimeProvider) -> dict:
    today = time_provider.today()
    # created_at and enrolled_date are naive UTC, so month edges follow the UTC calendar.
    buckets = month_buckets(time_provider.utcnow_naive().date(), settings.dashboard_month_buckets)
    first_year, first_month = buckets[0]
    buckets_start = datetime(first_year, first_month, 1)
    attendance_since = today - timedelta(days=int(settings.attendance_rate_window_days))

    queries = {
        'total_students': partial(_count_students, teacher_id=teacher_id),
        'total_batches': partial(_count_batches, teacher_id=teacher_id),
        'total_courses': partial(_count_courses, teacher_id=teacher_id),
        'active_courses': partial(_count_courses, teacher_id=teacher_id, active_only=True),
        'total_revenue': partial(_total_revenue, teacher_id=teacher_id),
        'pending_payments': partial(_pending_payments, teacher_id=teacher_id),
        'recent_students': partial(_recent_students, teacher_id=teacher_id),
        'attendance': partial(_attendance_by_status, teacher_id=teacher_id, since=attendance_since),
        'enrollments': partial(_enrollments_by_course, teacher_id=teacher_id),
        'revenue_rows': partial(_revenue_rows, teacher_id=teacher_id, since=buckets_start),
        'growth_rows': partial(_growth_rows, teacher_id=teacher_id, since=buckets_start),
        'top_marks': partial(_top_average_marks, teacher_id=teacher_id),
        'upcoming_classes': partial(_upcoming_classes, teacher_id=teacher_id),
        'recent_feedbacks': partial(_recent_feedbacks, teacher_id=teacher_id),
    }
    workers = max(1, min(int(settings.dashboard_max_workers), len(queries)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='dashboard') as pool:
        data = _run_queries(pool, bind, queries)
        lookups = _run_queries(
            pool,
            bind,
            {
                'course_titles': partial(_course_titles, course_ids=[course_id for course_id, _ in data['enrollments']]),
                'student_cards': partial(_student_cards, student_pks=[student_pk for student_pk, _ in data['top_marks']]),
            },
        )
    data.update(lookups)
    data['buckets'] = buckets
    return data


def _assemble(data: dict) -> dict:
    attendance = data['attendance']
    counts = {status: attendance.get(status.value, 0) for status in AttendanceStatus}
    total_attendance = sum(counts.values())
    attendance_rate = (
        round(counts[AttendanceStatus.PRESENT] / total_attendance * 100, 1) if total_attendance > 0 else 0
    )

    buckets = data['buckets']
    labels = [month_label(year, month) for year, month in buckets]
    revenue = _bucket_totals(buckets, data['revenue_rows'])
    growth = _bucket_totals(buckets, data['growth_rows'])

    titles = data['course_titles']
    cards = data['student_cards']
    top_performers = []
    for student_pk, avg_marks in data['top_marks']:
        name, avatar = cards.get(student_pk, ('Unknown', None))
        top_performers.append(
            {
                'studentId': student_pk,
                'name': name,
                'avatar': avatar,
                'averageMarks': f'{avg_marks:.2f}' if avg_marks is not None else '0',
            }
        )

    return {
        'overview': {
            'totalStudents': int(data['total_students']),
            'totalBatches': int(data['total_batches']),
            'totalCourses': int(data['total_courses']),
            'activeCourses': int(data['active_courses']),
            'totalRevenue': data['total_revenue'],
            'pendingPayments': data['pending_payments'],
            'attendanceRate': attendance_rate,
        },
        'charts': {
            'monthlyRevenue': [{'month': label, 'revenue': value} for label, value in zip(labels, revenue)],
            'studentGrowth': [{'month': label, 'students': value} for label, value in zip(labels, growth)],
            'courseEnrollments': [
                {'courseName': titles.get(course_id, 'Unknown'), 'enrollments': total}
                for course_id, total in data['enrollments']
            ],
            'attendanceStats': [
                {'status': status.value.capitalize(), 'count': count} for status, count in counts.items()
            ],
        },
        'recentActivities': {
            'recentStudents': data['recent_students'],
            'topPerformers': top_performers,
            'recentFeedbacks': data['recent_feedbacks'],
        },
        'upcomingClasses': data['upcoming_classes'],
    }


@timed_service('dashboard_stats')
def compute_dashboard_stats(
    db: Session,
    teacher_id: int,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    """Statistics snapshot for one teacher.

    Independent sub-queries run concurrently, each on its own session bound to
    the caller's engine. Any failure yields ``empty_dashboard_stats()`` rather
    than a partially filled snapshot.
    """
    try:
        stats = _assemble(_collect(db.get_bind(), int(teacher_id), time_provider))
    except Exception:
        logger.exception('dashboard_stats_failed teacher_id=%s', teacher_id)
        return empty_dashboard_stats()
    logger.info(
        'dashboard_stats_computed teacher_id=%s students=%s courses=%s',
        teacher_id,
        stats['overview']['totalStudents'],
        stats['overview']['totalCourses'],
    )
    return stats
