from datetime import date, datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tuition_desk.db import Base


class Role(str, Enum):
    ADMIN = 'admin'
    TEACHER = 'teacher'


class AttendanceStatus(str, Enum):
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'
    EXCUSED = 'excused'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    PARTIAL = 'partial'
    PAID = 'paid'


class Teacher(Base):
    __tablename__ = 'teachers'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), default='')
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), default='')
    role: Mapped[str] = mapped_column(String(20), default=Role.TEACHER.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    batches: Mapped[list['Batch']] = relationship('Batch', back_populates='teacher', cascade='all, delete-orphan')
    students: Mapped[list['Student']] = relationship('Student', back_populates='teacher')
    courses: Mapped[list['Course']] = relationship('Course', back_populates='teacher', cascade='all, delete-orphan')


class Batch(Base):
    __tablename__ = 'batches'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120))
    year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('teachers.id', ondelete='CASCADE'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    teacher: Mapped['Teacher'] = relationship('Teacher', back_populates='batches')
    students: Mapped[list['Student']] = relationship('Student', back_populates='batch', cascade='all, delete-orphan')
    routines: Mapped[list['Routine']] = relationship('Routine', back_populates='batch', cascade='all, delete-orphan')


class Student(Base):
    __tablename__ = 'students'
    __table_args__ = (
        UniqueConstraint('teacher_id', 'student_id', name='uq_students_teacher_student_id'),
        Index('ix_students_teacher_created', 'teacher_id', 'created_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(40), index=True)
    name: Mapped[str] = mapped_column(String(120))
    institution_name: Mapped[str] = mapped_column(String(180))
    class_name: Mapped[str] = mapped_column(String(40))
    gender: Mapped[str] = mapped_column(String(20))
    batch_id: Mapped[int] = mapped_column(ForeignKey('batches.id', ondelete='CASCADE'), index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('teachers.id', ondelete='CASCADE'), index=True)
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    guardian_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    guardian_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    batch: Mapped['Batch'] = relationship('Batch', back_populates='students')
    teacher: Mapped['Teacher'] = relationship('Teacher', back_populates='students')
    attendances: Mapped[list['Attendance']] = relationship('Attendance', back_populates='student', cascade='all, delete-orphan')
    subscriptions: Mapped[list['CourseSubscription']] = relationship(
        'CourseSubscription',
        back_populates='student',
        cascade='all, delete-orphan',
    )
    results: Mapped[list['Result']] = relationship('Result', back_populates='student', cascade='all, delete-orphan')
    feedbacks: Mapped[list['Feedback']] = relationship('Feedback', back_populates='student', cascade='all, delete-orphan')


class StudentIdSequence(Base):
    __tablename__ = 'student_id_sequences'
    __table_args__ = (
        UniqueConstraint('teacher_id', 'short_code', name='uq_student_id_sequences_teacher_code'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('teachers.id', ondelete='CASCADE'), index=True)
    short_code: Mapped[str] = mapped_column(String(40))
    last_value: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Course(Base):
    __tablename__ = 'courses'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(120))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    course_fee: Mapped[float] = mapped_column(Float, default=0)
    course_duration: Mapped[int] = mapped_column(Integer, default=1)
    course_for: Mapped[str] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('teachers.id', ondelete='CASCADE'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    teacher: Mapped['Teacher'] = relationship('Teacher', back_populates='courses')
    subscriptions: Mapped[list['CourseSubscription']] = relationship('CourseSubscription', back_populates='course')
    routines: Mapped[list['Routine']] = relationship('Routine', back_populates='course', cascade='all, delete-orphan')
    results: Mapped[list['Result']] = relationship('Result', back_populates='course')


class Routine(Base):
    __tablename__ = 'routines'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey('courses.id', ondelete='CASCADE'), index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey('batches.id', ondelete='CASCADE'), index=True)
    schedule: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    course: Mapped['Course'] = relationship('Course', back_populates='routines')
    batch: Mapped['Batch'] = relationship('Batch', back_populates='routines')


class CourseSubscription(Base):
    __tablename__ = 'course_subscriptions'
    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', name='uq_course_subscriptions_student_course'),
        Index('ix_course_subscriptions_status', 'payment_status', 'is_active'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey('courses.id'), index=True)
    enrolled_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    valid_till: Mapped[datetime] = mapped_column(DateTime)
    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value)
    amount_paid: Mapped[float] = mapped_column(Float, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student: Mapped['Student'] = relationship('Student', back_populates='subscriptions')
    course: Mapped['Course'] = relationship('Course', back_populates='subscriptions')


class Attendance(Base):
    __tablename__ = 'attendances'
    __table_args__ = (
        UniqueConstraint('student_id', 'attendance_date', name='uq_attendances_student_date'),
        Index('ix_attendances_date_status', 'attendance_date', 'status'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    attendance_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20))
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student: Mapped['Student'] = relationship('Student', back_populates='attendances')


class Result(Base):
    __tablename__ = 'results'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    course_id: Mapped[int | None] = mapped_column(ForeignKey('courses.id', ondelete='SET NULL'), nullable=True, index=True)
    exam_name: Mapped[str] = mapped_column(String(120))
    marks_obtained: Mapped[float] = mapped_column(Float)
    total_marks: Mapped[float] = mapped_column(Float, default=100)
    exam_date: Mapped[date] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    student: Mapped['Student'] = relationship('Student', back_populates='results')
    course: Mapped['Course | None'] = relationship('Course', back_populates='results')


class Feedback(Base):
    __tablename__ = 'feedbacks'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    feedback: Mapped[str] = mapped_column(Text)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    student: Mapped['Student'] = relationship('Student', back_populates='feedbacks')
