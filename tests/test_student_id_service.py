import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tuition_desk.core.errors import DuplicateStudentIdError, StudentIdAllocationError, ValidationFailedError
from tuition_desk.db import Base
from tuition_desk.models import Batch, Student, StudentIdSequence, Teacher
import tuition_desk.services.student_id_service as student_id_module
import tuition_desk.services.student_service as student_service_module
from tuition_desk.services.student_id_service import (
    allocate_student_id,
    build_prefix,
    derive_short_code,
    ensure_student_id_available,
    extract_short_code,
    format_student_id,
    is_valid_student_id_format,
    parse_sequence,
    preview_student_id,
    reserve_next,
)
from tuition_desk.services.student_service import create_student


class ShortCodeTests(unittest.TestCase):
    def test_digit_bearing_word_uses_first_letter_and_digits(self):
        self.assertEqual(derive_short_code('Morning Batch 1'), 'M1')
        self.assertEqual(derive_short_code('HSC-2025 Physics'), 'H2025')
        self.assertEqual(derive_short_code('evening_class_12b'), 'E12')

    def test_multiple_words_use_initials(self):
        self.assertEqual(derive_short_code('Evening Batch A'), 'EA')
        self.assertEqual(derive_short_code('The Science and Arts of Math Group'), 'SAM')

    def test_single_word_is_truncated_by_length(self):
        self.assertEqual(derive_short_code('SSC'), 'SS')
        self.assertEqual(derive_short_code('Physics'), 'PHY')
        self.assertEqual(derive_short_code('Math'), 'MAT')

    def test_only_stopwords_fall_back_to_raw_name(self):
        self.assertEqual(derive_short_code('The Batch'), 'THE')
        self.assertEqual(derive_short_code('of'), 'OF')

    def test_format_pads_and_widens(self):
        self.assertEqual(format_student_id(build_prefix('M1'), 1), 'EHA-M1-0001')
        self.assertEqual(format_student_id('EHA-M1', 9999), 'EHA-M1-9999')
        self.assertEqual(format_student_id('EHA-M1', 10000), 'EHA-M1-10000')

    def test_parse_and_validate(self):
        self.assertEqual(parse_sequence('EHA-EA-0042'), 42)
        self.assertIsNone(parse_sequence('custom'))
        self.assertTrue(is_valid_student_id_format('EHA-M1-0001'))
        self.assertTrue(is_valid_student_id_format('EHA-M1-12345'))
        self.assertFalse(is_valid_student_id_format('EHA-m1-0001'))
        self.assertFalse(is_valid_student_id_format('EHA-M1-001'))
        self.assertEqual(extract_short_code('EHA-SS-0003'), 'SS')
        self.assertIsNone(extract_short_code('ABC-SS-0003'))


class StudentIdAllocationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_student_id_service.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        self.db.query(StudentIdSequence).delete()
        self.db.query(Student).delete()
        self.db.query(Batch).delete()
        self.db.query(Teacher).delete()
        teacher = Teacher(name='T One', email='one@example.com', password_hash='x')
        other = Teacher(name='T Two', email='two@example.com', password_hash='x')
        self.db.add_all([teacher, other])
        self.db.commit()
        batch = Batch(name='Morning Batch 1', teacher_id=teacher.id)
        self.db.add(batch)
        self.db.commit()
        self.teacher_id = teacher.id
        self.other_teacher_id = other.id
        self.batch_id = batch.id

    def tearDown(self):
        self.db.close()

    def _add_student(self, student_id: str, teacher_id: int | None = None):
        teacher_id = teacher_id or self.teacher_id
        batch_id = self.batch_id
        if teacher_id != self.teacher_id:
            batch = Batch(name='Morning Batch 1', teacher_id=teacher_id)
            self.db.add(batch)
            self.db.flush()
            batch_id = batch.id
        self.db.add(
            Student(
                student_id=student_id,
                name='Existing',
                institution_name='School',
                class_name='9',
                gender='female',
                batch_id=batch_id,
                teacher_id=teacher_id,
            )
        )
        self.db.commit()

    def test_sequential_allocation_for_same_batch(self):
        first = allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id)
        self._add_student(first)
        second = allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id)
        self.db.commit()
        self.assertEqual(first, 'EHA-M1-0001')
        self.assertEqual(second, 'EHA-M1-0002')

    def test_counter_is_monotonic_without_inserts(self):
        values = [reserve_next(self.db, teacher_id=self.teacher_id, short_code='EA') for _ in range(3)]
        self.db.commit()
        self.assertEqual(values, [1, 2, 3])
        row = self.db.query(StudentIdSequence).filter(StudentIdSequence.short_code == 'EA').one()
        self.assertEqual(row.last_value, 3)

    def test_existing_custom_ids_seed_the_counter(self):
        self._add_student('EHA-M1-0007')
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), 'EHA-M1-0008')

    def test_sequence_widens_past_four_digits(self):
        self._add_student('EHA-M1-9999')
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), 'EHA-M1-10000')
        self.db.commit()
        self._add_student('EHA-M1-10000')
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), 'EHA-M1-10001')

    def test_longer_short_code_does_not_leak_into_shorter_prefix(self):
        self._add_student('EHA-M12-0005')
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), 'EHA-M1-0001')

    def test_sequences_are_scoped_per_teacher(self):
        self._add_student('EHA-M1-0004', teacher_id=self.other_teacher_id)
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), 'EHA-M1-0001')
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.other_teacher_id), 'EHA-M1-0005')

    def test_evening_and_single_word_batches(self):
        self.assertEqual(allocate_student_id(self.db, 'Evening Batch A', self.teacher_id), 'EHA-EA-0001')
        self.assertEqual(allocate_student_id(self.db, 'SSC', self.teacher_id), 'EHA-SS-0001')

    def test_preview_does_not_reserve(self):
        self._add_student('EHA-M1-0002')
        preview = preview_student_id(self.db, 'Morning Batch 1', self.teacher_id)
        self.assertEqual(preview, 'EHA-M1-0003')
        self.assertEqual(self.db.query(StudentIdSequence).count(), 0)
        self.assertEqual(preview_student_id(self.db, 'Morning Batch 1', self.teacher_id), preview)
        self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), preview)

    def test_collisions_are_bounded(self):
        with patch.object(student_id_module, 'student_id_exists', return_value=True):
            with self.assertRaises(StudentIdAllocationError):
                allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id)
        self.db.rollback()

    def test_collision_skips_to_next_sequence(self):
        calls = iter([True, False])
        with patch.object(student_id_module, 'student_id_exists', side_effect=lambda *args, **kwargs: next(calls)):
            self.assertEqual(allocate_student_id(self.db, 'Morning Batch 1', self.teacher_id), 'EHA-M1-0002')

    def test_empty_batch_name_is_rejected(self):
        with self.assertRaises(ValidationFailedError):
            allocate_student_id(self.db, '', self.teacher_id)

    def test_ensure_available(self):
        self._add_student('CUSTOM-1')
        with self.assertRaises(DuplicateStudentIdError):
            ensure_student_id_available(self.db, self.teacher_id, 'CUSTOM-1')
        ensure_student_id_available(self.db, self.other_teacher_id, 'CUSTOM-1')


class StudentCreateRaceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_student_create_races.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        self.db.query(StudentIdSequence).delete()
        self.db.query(Student).delete()
        self.db.query(Batch).delete()
        self.db.query(Teacher).delete()
        teacher = Teacher(name='T One', email='one@example.com', password_hash='x')
        self.db.add(teacher)
        self.db.commit()
        batch = Batch(name='Morning Batch 1', teacher_id=teacher.id)
        self.db.add(batch)
        self.db.commit()
        self.teacher_id = teacher.id
        self.batch_id = batch.id

    def tearDown(self):
        self.db.close()

    def _payload(self, **overrides):
        payload = {
            'name': 'Nusrat',
            'institution_name': 'School',
            'class_name': '10',
            'gender': 'female',
            'batch_id': self.batch_id,
        }
        payload.update(overrides)
        return payload

    def _other_request_student(self, student_id: str) -> Student:
        return Student(
            student_id=student_id,
            name='Other Request',
            institution_name='School',
            class_name='9',
            gender='male',
            batch_id=self.batch_id,
            teacher_id=self.teacher_id,
        )

    def _commit_from_other_session(self, *rows):
        other = self._session_factory()
        try:
            other.add_all(rows)
            other.commit()
        finally:
            other.close()

    def test_first_allocation_retries_when_counter_row_appears_concurrently(self):
        original = student_id_module._greatest_existing_sequence
        interleaved = []

        def greatest_then_other_request_commits(db, teacher_id, prefix):
            greatest = original(db, teacher_id, prefix)
            if not interleaved:
                interleaved.append(prefix)
                self._commit_from_other_session(
                    StudentIdSequence(teacher_id=self.teacher_id, short_code='M1', last_value=1),
                    self._other_request_student('EHA-M1-0001'),
                )
            return greatest

        with patch.object(student_id_module, '_greatest_existing_sequence', side_effect=greatest_then_other_request_commits):
            with self.assertLogs('tuition_desk.services.student_service', level='WARNING'):
                created = create_student(self.db, teacher_id=self.teacher_id, payload=self._payload())

        self.assertEqual(created['studentId'], 'EHA-M1-0002')
        counter = self.db.query(StudentIdSequence).filter(StudentIdSequence.short_code == 'M1').one()
        self.assertEqual(counter.last_value, 2)
        self.assertEqual(self.db.query(Student).count(), 2)

    def test_auto_id_taken_before_commit_is_retried_with_next_sequence(self):
        original = student_service_module.allocate_student_id
        taken = []

        def allocate_id_taken_by_other_request(db, batch_name, teacher_id):
            if not taken:
                taken.append('EHA-M1-0001')
                self._commit_from_other_session(self._other_request_student('EHA-M1-0001'))
                return 'EHA-M1-0001'
            return original(db, batch_name, teacher_id)

        with patch.object(student_service_module, 'allocate_student_id', side_effect=allocate_id_taken_by_other_request):
            with self.assertLogs('tuition_desk.services.student_service', level='WARNING'):
                created = create_student(self.db, teacher_id=self.teacher_id, payload=self._payload())

        self.assertEqual(created['studentId'], 'EHA-M1-0002')
        self.assertEqual(
            sorted(student_id for (student_id,) in self.db.query(Student.student_id).all()),
            ['EHA-M1-0001', 'EHA-M1-0002'],
        )

    def test_custom_id_taken_before_commit_is_rejected_without_writing(self):
        original = student_service_module.ensure_student_id_available

        def check_then_other_request_commits(db, teacher_id, student_id, **kwargs):
            original(db, teacher_id, student_id, **kwargs)
            self._commit_from_other_session(self._other_request_student(student_id))

        with patch.object(student_service_module, 'ensure_student_id_available', side_effect=check_then_other_request_commits):
            with self.assertRaises(DuplicateStudentIdError):
                create_student(self.db, teacher_id=self.teacher_id, payload=self._payload(student_id='CUSTOM-7'))

        rows = self.db.query(Student).filter(Student.student_id == 'CUSTOM-7').all()
        self.assertEqual([row.name for row in rows], ['Other Request'])
        self.assertEqual(self.db.query(Student).count(), 1)


if __name__ == '__main__':
    unittest.main()
