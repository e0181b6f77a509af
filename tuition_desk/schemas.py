from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # Business-required fields stay optional here; services answer 400 for them.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupRequest(CamelModel):
    name: str = ''
    email: str
    password: str


class LoginRequest(CamelModel):
    email: str
    password: str


class BatchCreateRequest(CamelModel):
    batch_name: str | None = None
    batch_year: str | None = None


class BatchUpdateRequest(CamelModel):
    batch_name: str | None = None
    batch_year: str | None = None


class StudentCreateRequest(CamelModel):
    student_id: str | None = None
    name: str | None = None
    institution_name: str | None = None
    class_name: str | None = Field(default=None, validation_alias=AliasChoices('class', 'className', 'class_name'))
    gender: str | None = None
    batch_id: int | None = None
    avatar: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None


class StudentUpdateRequest(StudentCreateRequest):
    pass


class StudentIdPreviewRequest(CamelModel):
    batch_id: int | None = None


class CourseCreateRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    course_fee: float | None = None
    course_duration: int | None = None
    course_for: str | None = None
    is_active: bool = True


class CourseUpdateRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    course_fee: float | None = None
    course_duration: int | None = None
    course_for: str | None = None
    is_active: bool | None = None


class ScheduleSlot(CamelModel):
    day: str = ''
    start_time: str = ''
    end_time: str = ''


class RoutineCreateRequest(CamelModel):
    course_id: int | None = None
    batch_id: int | None = None
    schedule: list[ScheduleSlot] | None = None
    is_active: bool = True


class RoutineUpdateRequest(CamelModel):
    course_id: int | None = None
    batch_id: int | None = None
    schedule: list[ScheduleSlot] | None = None
    is_active: bool | None = None


class SubscriptionCreateRequest(CamelModel):
    student_id: int | None = None
    course_id: int | None = None
    enrolled_date: datetime | None = None
    valid_till: datetime | None = None
    amount_paid: float | None = None
    is_active: bool = True


class SubscriptionUpdateRequest(CamelModel):
    enrolled_date: datetime | None = None
    valid_till: datetime | None = None
    amount_paid: float | None = None
    is_active: bool | None = None


class AttendanceCreateRequest(CamelModel):
    student_id: int | None = None
    attendance_date: date | None = Field(default=None, alias='date')
    status: str | None = None
    remarks: str | None = None


class AttendanceUpdateRequest(CamelModel):
    student_id: int | None = None
    attendance_date: date | None = Field(default=None, alias='date')
    status: str | None = None
    remarks: str | None = None


class BulkAttendanceRequest(CamelModel):
    student_ids: list[int] = Field(default_factory=list)
    attendance_date: date | None = Field(default=None, alias='date')
    status: str | None = None
    remarks: str | None = None


class ResultCreateRequest(CamelModel):
    student_id: int | None = None
    course_id: int | None = None
    exam_name: str | None = None
    marks_obtained: float | None = None
    total_marks: float = 100
    exam_date: date | None = None


class FeedbackCreateRequest(CamelModel):
    student_id: int | None = None
    feedback: str | None = None
    rating: int | None = None
    feedback_date: datetime | None = None
