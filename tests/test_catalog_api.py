import tempfile
import unittest
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tuition_desk.db import Base, get_db
from tuition_desk.models import Batch, Course, CourseSubscription, Routine, Student, StudentIdSequence, Teacher
from tuition_desk.routers import batches, courses, routines, students, subscriptions
from tuition_desk.services.auth_service import issue_session_token


class CatalogApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_catalog_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        for module in (batches, courses, routines, students, subscriptions):
            app.include_router(module.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            db.query(CourseSubscription).delete()
            db.query(Routine).delete()
            db.query(StudentIdSequence).delete()
            db.query(Student).delete()
            db.query(Course).delete()
            db.query(Batch).delete()
            db.query(Teacher).delete()
            teacher = Teacher(name='Rahima', email='rahima@example.com', password_hash='x')
            db.add(teacher)
            db.commit()
            self.headers = {'Authorization': f"Bearer {issue_session_token(teacher)['token']}"}
        finally:
            db.close()

    def _batch(self, name='Morning Batch 1'):
        response = self.client.post('/api/batches', json={'batchName': name, 'batchYear': '2026'}, headers=self.headers)
        self.assertEqual(response.status_code, 201)
        return response.json()

    def _course(self, **overrides):
        payload = {'title': 'Physics', 'courseFee': 1500, 'courseDuration': 3, 'courseFor': 'SSC'}
        payload.update(overrides)
        return self.client.post('/api/courses', json=payload, headers=self.headers)

    def test_batch_crud(self):
        batch = self._batch('  Evening Batch A  ')
        self.assertEqual(batch['batchName'], 'Evening Batch A')

        blank = self.client.post('/api/batches', json={'batchName': '   '}, headers=self.headers)
        self.assertEqual(blank.status_code, 400)

        renamed = self.client.patch(f"/api/batches/{batch['id']}", json={'batchName': 'Evening Batch B'}, headers=self.headers)
        self.assertEqual(renamed.json()['batchName'], 'Evening Batch B')
        self.assertEqual(renamed.json()['batchYear'], '2026')

        deleted = self.client.delete(f"/api/batches/{batch['id']}", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(f"/api/batches/{batch['id']}", headers=self.headers).status_code, 404)

    def test_course_validation(self):
        self.assertEqual(self._course(courseFee=-5).status_code, 400)
        self.assertEqual(self._course(courseDuration=0).status_code, 400)
        self.assertEqual(self._course(title='').status_code, 400)

        created = self._course()
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['courseFee'], 1500)

        inactive = self.client.patch(
            f"/api/courses/{created.json()['id']}",
            json={'isActive': False},
            headers=self.headers,
        )
        self.assertFalse(inactive.json()['isActive'])
        active_only = self.client.get('/api/courses', params={'isActive': 'true'}, headers=self.headers).json()
        self.assertEqual(active_only, [])

    def test_course_with_subscription_cannot_be_deleted(self):
        batch = self._batch()
        course = self._course().json()
        student = self.client.post(
            '/api/students',
            json={'name': 'Nusrat', 'institutionName': 'School', 'class': '10', 'gender': 'female', 'batchId': batch['id']},
            headers=self.headers,
        ).json()
        subscription = self.client.post(
            '/api/subscriptions',
            json={'studentId': student['id'], 'courseId': course['id'], 'amountPaid': 500},
            headers=self.headers,
        )
        self.assertEqual(subscription.status_code, 201)
        self.assertEqual(subscription.json()['paymentStatus'], 'partial')

        duplicate = self.client.post(
            '/api/subscriptions',
            json={'studentId': student['id'], 'courseId': course['id']},
            headers=self.headers,
        )
        self.assertEqual(duplicate.status_code, 409)

        refused = self.client.delete(f"/api/courses/{course['id']}", headers=self.headers)
        self.assertEqual(refused.status_code, 400)

        self.client.delete(f"/api/subscriptions/{subscription.json()['id']}", headers=self.headers)
        allowed = self.client.delete(f"/api/courses/{course['id']}", headers=self.headers)
        self.assertEqual(allowed.status_code, 200)

    def test_routine_schedule_and_options(self):
        batch = self._batch()
        course = self._course().json()

        empty = self.client.post(
            '/api/routines',
            json={'courseId': course['id'], 'batchId': batch['id'], 'schedule': []},
            headers=self.headers,
        )
        self.assertEqual(empty.status_code, 400)

        incomplete = self.client.post(
            '/api/routines',
            json={'courseId': course['id'], 'batchId': batch['id'], 'schedule': [{'day': 'Sunday', 'startTime': '10:00'}]},
            headers=self.headers,
        )
        self.assertEqual(incomplete.status_code, 400)

        created = self.client.post(
            '/api/routines',
            json={
                'courseId': course['id'],
                'batchId': batch['id'],
                'schedule': [{'day': 'Sunday', 'startTime': '10:00', 'endTime': '11:30'}],
            },
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['schedule'], [{'day': 'Sunday', 'startTime': '10:00', 'endTime': '11:30'}])
        self.assertEqual(created.json()['course']['title'], 'Physics')

        replaced = self.client.put(
            f"/api/routines/{created.json()['id']}",
            json={'schedule': [{'day': 'Monday', 'startTime': '09:00', 'endTime': '10:00'}], 'isActive': False},
            headers=self.headers,
        )
        self.assertEqual(replaced.status_code, 200)
        self.assertEqual(replaced.json()['schedule'][0]['day'], 'Monday')
        self.assertFalse(replaced.json()['isActive'])

        options = self.client.get('/api/routines/courses-batches', headers=self.headers).json()
        self.assertEqual(options, [[{'id': course['id'], 'title': 'Physics'}], [{'id': batch['id'], 'batchName': 'Morning Batch 1'}]])

        missing = self.client.post('/api/routines', json={'schedule': []}, headers=self.headers)
        self.assertEqual(missing.status_code, 400)


if __name__ == '__main__':
    unittest.main()
