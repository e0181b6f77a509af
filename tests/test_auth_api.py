import tempfile
import unittest
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from freezegun import freeze_time
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tuition_desk.config import settings
from tuition_desk.db import Base, get_db
from tuition_desk.models import Teacher
from tuition_desk.routers import auth, batches
from tuition_desk.services.auth_service import validate_session_token


class AuthApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_auth_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(auth.router)
        app.include_router(batches.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.app = app

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            db.query(Teacher).delete()
            db.commit()
        finally:
            db.close()
        self.client = TestClient(self.app)

    def tearDown(self):
        self.client.close()

    def _signup(self, email='teacher@example.com', password='Password@123'):
        return self.client.post('/api/auth/signup', json={'name': 'Rahima', 'email': email, 'password': password})

    def test_signup_sets_session_cookie(self):
        response = self._signup()
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()['ok'])
        self.assertIn(settings.auth_cookie_name, response.cookies)

        listing = self.client.get('/api/batches')
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(listing.json(), [])

    def test_duplicate_email_and_short_password_are_rejected(self):
        self._signup()
        duplicate = self._signup(email='TEACHER@example.com ')
        self.assertEqual(duplicate.status_code, 400)
        weak = self._signup(email='new@example.com', password='short')
        self.assertEqual(weak.status_code, 400)

    def test_login_and_wrong_password(self):
        self._signup()
        self.client.cookies.clear()
        ok = self.client.post('/api/auth/login', json={'email': 'teacher@example.com', 'password': 'Password@123'})
        self.assertEqual(ok.status_code, 200)
        self.assertIsNotNone(validate_session_token(ok.json()['token']))

        bad = self.client.post('/api/auth/login', json={'email': 'teacher@example.com', 'password': 'nope-nope'})
        self.assertEqual(bad.status_code, 401)

    def test_logout_revokes_token(self):
        token = self._signup().json()['token']
        self.client.cookies.clear()
        headers = {'Authorization': f'Bearer {token}'}
        self.assertEqual(self.client.get('/api/batches', headers=headers).status_code, 200)
        self.client.post('/api/auth/logout', headers=headers)
        self.assertEqual(self.client.get('/api/batches', headers=headers).status_code, 401)

    def test_expired_token_is_rejected(self):
        token = self._signup().json()['token']
        self.assertIsNotNone(validate_session_token(token))
        with freeze_time('2099-01-01 00:00:00'):
            self.assertIsNone(validate_session_token(token))

    def test_garbage_token_is_rejected(self):
        response = self.client.get('/api/batches', headers={'Authorization': 'Bearer not-a-token'})
        self.assertEqual(response.status_code, 401)


if __name__ == '__main__':
    unittest.main()
