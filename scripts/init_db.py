from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from tuition_desk.db import Base, SessionLocal, engine
from tuition_desk.models import Teacher
from tuition_desk.services.auth_service import signup_teacher
from tuition_desk.services.batch_service import create_batch
from tuition_desk.services.course_service import create_course
from tuition_desk.services.student_service import create_student
from tuition_desk.services.subscription_service import create_subscription


DEMO_EMAIL = 'demo.teacher@example.com'


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    if not db.query(Teacher).filter(Teacher.email == DEMO_EMAIL).first():
        teacher_id = signup_teacher(db, name='Demo Teacher', email=DEMO_EMAIL, password='Password@123')['teacher_id']
        batch = create_batch(db, teacher_id=teacher_id, name='Morning Batch 1', year='2026')
        course = create_course(
            db,
            teacher_id=teacher_id,
            payload={'title': 'Physics', 'course_fee': 1500, 'course_duration': 3, 'course_for': 'SSC'},
        )
        for name, gender in (('Aarav', 'male'), ('Diya', 'female'), ('Ishaan', 'male')):
            student = create_student(
                db,
                teacher_id=teacher_id,
                payload={
                    'name': name,
                    'institution_name': 'City School',
                    'class_name': '10',
                    'gender': gender,
                    'batch_id': batch['id'],
                },
            )
            create_subscription(
                db,
                teacher_id=teacher_id,
                payload={'student_id': student['id'], 'course_id': course['id'], 'amount_paid': 500},
            )
finally:
    db.close()

print('DB initialized with sample data.')
