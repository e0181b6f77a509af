import tempfile
import unittest
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tuition_desk.db import Base, get_db
from tuition_desk.models import Batch, Student, StudentIdSequence, Teacher
from tuition_desk.routers import batches, students
from tuition_desk.services.auth_service import issue_session_token


class StudentsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_students_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(batches.router)
        app.include_router(students.router)

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
            db.query(StudentIdSequence).delete()
            db.query(Student).delete()
            db.query(Batch).delete()
            db.query(Teacher).delete()
            teacher = Teacher(name='Rahima', email='rahima@example.com', password_hash='x')
            other = Teacher(name='Karim', email='karim@example.com', password_hash='x')
            db.add_all([teacher, other])
            db.commit()
            morning = Batch(name='Morning Batch 1', teacher_id=teacher.id)
            foreign = Batch(name='Evening Batch A', teacher_id=other.id)
            db.add_all([morning, foreign])
            db.commit()
            self.teacher_id = teacher.id
            self.batch_id = morning.id
            self.foreign_batch_id = foreign.id
            self.headers = {'Authorization': f"Bearer {issue_session_token(teacher)['token']}"}
            self.other_headers = {'Authorization': f"Bearer {issue_session_token(other)['token']}"}
        finally:
            db.close()

    def _payload(self, **overrides):
        payload = {
            'name': 'Nusrat Jahan',
            'institutionName': 'Dhaka Residential Model College',
            'class': '10',
            'gender': 'female',
            'batchId': self.batch_id,
        }
        payload.update(overrides)
        return payload

    def _student_count(self) -> int:
        db = self._session_factory()
        try:
            return db.query(Student).count()
        finally:
            db.close()

    def test_requires_authentication(self):
        response = self.client.get('/api/students')
        self.assertEqual(response.status_code, 401)

    def test_create_allocates_sequential_ids(self):
        first = self.client.post('/api/students', json=self._payload(), headers=self.headers)
        second = self.client.post('/api/students', json=self._payload(name='Second'), headers=self.headers)
        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 201)
        self.assertEqual(first.json()['studentId'], 'EHA-M1-0001')
        self.assertEqual(second.json()['studentId'], 'EHA-M1-0002')
        self.assertEqual(first.json()['class'], '10')
        self.assertEqual(first.json()['batch']['batchName'], 'Morning Batch 1')

    def test_missing_required_fields_is_bad_request(self):
        response = self.client.post('/api/students', json=self._payload(gender=''), headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'Missing required fields')

    def test_foreign_batch_is_not_found(self):
        response = self.client.post(
            '/api/students',
            json=self._payload(batchId=self.foreign_batch_id),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self._student_count(), 0)

    def test_duplicate_custom_id_is_rejected_without_writing(self):
        created = self.client.post('/api/students', json=self._payload(studentId='CUSTOM-7'), headers=self.headers)
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['studentId'], 'CUSTOM-7')

        duplicate = self.client.post(
            '/api/students',
            json=self._payload(name='Other', studentId='CUSTOM-7'),
            headers=self.headers,
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json()['detail'], 'Student ID already exists')
        self.assertEqual(self._student_count(), 1)

    def test_custom_id_pushes_allocation_forward(self):
        self.client.post('/api/students', json=self._payload(studentId='EHA-M1-0041'), headers=self.headers)
        response = self.client.post('/api/students', json=self._payload(name='Next'), headers=self.headers)
        self.assertEqual(response.json()['studentId'], 'EHA-M1-0042')

    def test_preview_matches_next_allocation(self):
        preview = self.client.post('/api/students/preview-id', json={'batchId': self.batch_id}, headers=self.headers)
        self.assertEqual(preview.status_code, 200)
        self.assertEqual(preview.json(), {'studentId': 'EHA-M1-0001'})

        created = self.client.post('/api/students', json=self._payload(), headers=self.headers)
        self.assertEqual(created.json()['studentId'], 'EHA-M1-0001')

        missing = self.client.post('/api/students/preview-id', json={}, headers=self.headers)
        self.assertEqual(missing.status_code, 400)

    def test_patch_rejects_changed_student_id(self):
        created = self.client.post('/api/students', json=self._payload(), headers=self.headers).json()
        changed = self.client.patch(
            f"/api/students/{created['id']}",
            json={'studentId': 'EHA-M1-9999'},
            headers=self.headers,
        )
        self.assertEqual(changed.status_code, 400)

        same = self.client.patch(
            f"/api/students/{created['id']}",
            json={'studentId': created['studentId'], 'phone': '01700000000'},
            headers=self.headers,
        )
        self.assertEqual(same.status_code, 200)
        self.assertEqual(same.json()['phone'], '01700000000')
        self.assertEqual(same.json()['studentId'], 'EHA-M1-0001')

    def test_students_are_scoped_to_teacher(self):
        created = self.client.post('/api/students', json=self._payload(), headers=self.headers).json()
        self.assertEqual(self.client.get(f"/api/students/{created['id']}", headers=self.other_headers).status_code, 404)
        self.assertEqual(self.client.get('/api/students', headers=self.other_headers).json(), [])

        listing = self.client.get('/api/students', params={'batchId': self.batch_id}, headers=self.headers).json()
        self.assertEqual(len(listing), 1)
        self.assertEqual(listing[0]['_count'], {'courseSubscriptions': 0, 'attendances': 0, 'results': 0})

    def test_delete_student(self):
        created = self.client.post('/api/students', json=self._payload(), headers=self.headers).json()
        response = self.client.delete(f"/api/students/{created['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._student_count(), 0)
        again = self.client.delete(f"/api/students/{created['id']}", headers=self.headers)
        self.assertEqual(again.status_code, 404)

    def test_batch_listing_counts_students(self):
        self.client.post('/api/students', json=self._payload(), headers=self.headers)
        listing = self.client.get('/api/batches', headers=self.headers).json()
        self.assertEqual(len(listing), 1)
        self.assertEqual(listing[0]['batchName'], 'Morning Batch 1')
        self.assertEqual(listing[0]['_count'], {'students': 1, 'routines': 0})


if __name__ == '__main__':
    unittest.main()
