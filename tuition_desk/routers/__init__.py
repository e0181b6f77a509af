from tuition_desk.routers import assessments, attendance, auth, batches, courses, dashboard, routines, students, subscriptions

__all__ = [
    'assessments',
    'attendance',
    'auth',
    'batches',
    'courses',
    'dashboard',
    'routines',
    'students',
    'subscriptions',
]
