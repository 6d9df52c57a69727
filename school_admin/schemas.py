# school_admin/schemas.py
from datetime import date, datetime, timezone
from typing import Annotated, ClassVar, List, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from school_admin.enums import (
    Gender, Section, Role, Shift, AttendanceStatus, PaymentStatus, Weekday,
)
from school_admin.formatting import grade_for

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; offsets are converted, not dropped."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


class CamelModel(BaseModel):
    """JSON uses camelCase keys, Python code uses snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PartialUpdate(CamelModel):
    """Base for PATCH payloads: every field optional, only supplied ones apply.

    Columns listed in ``not_nullable`` may be omitted but not set to null.
    """

    not_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in self.model_fields_set:
            if name in self.not_nullable and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} may not be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class RecordOut(CamelModel):
    id: int
    created_at: Optional[datetime] = None


# ---------- Users ----------
class UserCreate(CamelModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    role: str = "staff"
    full_name: str = Field(min_length=1)
    email: Optional[EmailStr] = None


class UserOut(RecordOut):
    username: str
    role: str
    full_name: str
    email: Optional[str] = None


# ---------- Students ----------
class StudentBase(CamelModel):
    student_id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    middle_name: Optional[str] = None
    last_name: str = Field(min_length=1)
    gender: Gender
    date_of_birth: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    section: Section
    class_name: str = Field(alias="class", min_length=1)
    father_name: Optional[str] = None
    father_phone: Optional[str] = None
    father_email: Optional[EmailStr] = None
    mother_name: Optional[str] = None
    mother_phone: Optional[str] = None
    mother_email: Optional[EmailStr] = None
    profile_photo: Optional[str] = None


class StudentCreate(StudentBase):
    pass


class StudentUpdate(PartialUpdate):
    not_nullable = ("student_id", "first_name", "last_name", "gender", "section", "class_name")

    student_id: Optional[str] = Field(default=None, min_length=1)
    first_name: Optional[str] = Field(default=None, min_length=1)
    middle_name: Optional[str] = None
    last_name: Optional[str] = Field(default=None, min_length=1)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    section: Optional[Section] = None
    class_name: Optional[str] = Field(default=None, alias="class", min_length=1)
    father_name: Optional[str] = None
    father_phone: Optional[str] = None
    father_email: Optional[EmailStr] = None
    mother_name: Optional[str] = None
    mother_phone: Optional[str] = None
    mother_email: Optional[EmailStr] = None
    profile_photo: Optional[str] = None


class StudentOut(StudentBase, RecordOut):
    # stored rows are echoed back as-is, even legacy ones with loose emails
    email: Optional[str] = None
    father_email: Optional[str] = None
    mother_email: Optional[str] = None


# ---------- Employees ----------
class EmployeeBase(CamelModel):
    employee_id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    middle_name: Optional[str] = None
    last_name: str = Field(min_length=1)
    gender: Gender
    date_of_birth: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Role
    section: Optional[Section] = None
    salary: int = Field(ge=0)
    shift: Optional[Shift] = None
    subjects: List[str] = Field(default_factory=list)


class EmployeeCreate(EmployeeBase):

    @model_validator(mode="after")
    def _subjects_only_for_teachers(self):
        if self.role is not Role.teacher:
            self.subjects = []
        return self


class EmployeeUpdate(PartialUpdate):
    not_nullable = ("employee_id", "first_name", "last_name", "gender", "role", "salary", "subjects")

    employee_id: Optional[str] = Field(default=None, min_length=1)
    first_name: Optional[str] = Field(default=None, min_length=1)
    middle_name: Optional[str] = None
    last_name: Optional[str] = Field(default=None, min_length=1)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    section: Optional[Section] = None
    salary: Optional[int] = Field(default=None, ge=0)
    shift: Optional[Shift] = None
    subjects: Optional[List[str]] = None


class EmployeeOut(EmployeeBase, RecordOut):
    email: Optional[str] = None


# ---------- Classrooms ----------
class ClassroomBase(CamelModel):
    name: str = Field(min_length=1)
    section: Section
    capacity: int = Field(gt=0)
    teacher_id: Optional[int] = None


class ClassroomCreate(ClassroomBase):
    pass


class ClassroomUpdate(PartialUpdate):
    not_nullable = ("name", "section", "capacity")

    name: Optional[str] = Field(default=None, min_length=1)
    section: Optional[Section] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    teacher_id: Optional[int] = None


class ClassroomOut(ClassroomBase, RecordOut):
    pass


# ---------- Attendance ----------
class AttendanceBase(CamelModel):
    date: Optional[UtcDateTime] = None
    student_id: int
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceCreate(AttendanceBase):
    pass


class AttendanceUpdate(PartialUpdate):
    not_nullable = ("student_id", "status")

    date: Optional[UtcDateTime] = None
    student_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    note: Optional[str] = None


class AttendanceOut(AttendanceBase, RecordOut):
    pass


# ---------- Payments ----------
class PaymentBase(CamelModel):
    student_id: int
    amount: int = Field(ge=0)
    date: Optional[UtcDateTime] = None
    description: Optional[str] = None
    status: PaymentStatus
    paid_amount: Optional[int] = Field(default=None, ge=0)


class PaymentCreate(PaymentBase):

    @model_validator(mode="after")
    def _paid_within_amount(self):
        if self.paid_amount is not None and self.paid_amount > self.amount:
            raise ValueError("paidAmount cannot exceed amount")
        return self


class PaymentUpdate(PartialUpdate):
    not_nullable = ("student_id", "amount", "date", "status")

    student_id: Optional[int] = None
    amount: Optional[int] = Field(default=None, ge=0)
    date: Optional[UtcDateTime] = None
    description: Optional[str] = None
    status: Optional[PaymentStatus] = None
    paid_amount: Optional[int] = Field(default=None, ge=0)


class PaymentOut(PaymentBase, RecordOut):
    pass


# ---------- Exams ----------
class ExamBase(CamelModel):
    name: str = Field(min_length=1)
    section: Section
    class_name: str = Field(alias="class", min_length=1)
    date: UtcDateTime
    subjects: List[str] = Field(default_factory=list)


class ExamCreate(ExamBase):
    pass


class ExamUpdate(PartialUpdate):
    not_nullable = ("name", "section", "class_name", "date", "subjects")

    name: Optional[str] = Field(default=None, min_length=1)
    section: Optional[Section] = None
    class_name: Optional[str] = Field(default=None, alias="class", min_length=1)
    date: Optional[UtcDateTime] = None
    subjects: Optional[List[str]] = None


class ExamOut(ExamBase, RecordOut):
    pass


# ---------- Results ----------
class ResultBase(CamelModel):
    exam_id: int
    student_id: int
    subject: str = Field(min_length=1)
    score: int = Field(ge=0)
    total: int = Field(gt=0)
    grade: Optional[str] = None


class ResultCreate(ResultBase):

    @model_validator(mode="after")
    def _score_and_grade(self):
        if self.score > self.total:
            raise ValueError("score cannot exceed total")
        if not self.grade:
            self.grade = grade_for(self.score, self.total)
        return self


class ResultUpdate(PartialUpdate):
    not_nullable = ("exam_id", "student_id", "subject", "score", "total", "grade")

    exam_id: Optional[int] = None
    student_id: Optional[int] = None
    subject: Optional[str] = Field(default=None, min_length=1)
    score: Optional[int] = Field(default=None, ge=0)
    total: Optional[int] = Field(default=None, gt=0)
    grade: Optional[str] = None


class ResultOut(ResultBase, RecordOut):
    grade: str


# ---------- Schedules ----------
class ScheduleBase(CamelModel):
    day: Weekday
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    subject: str = Field(min_length=1)
    teacher_id: Optional[int] = None
    classroom: str = Field(min_length=1)
    section: Section
    class_name: str = Field(alias="class", min_length=1)


class ScheduleCreate(ScheduleBase):

    @model_validator(mode="after")
    def _starts_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class ScheduleUpdate(PartialUpdate):
    not_nullable = ("day", "start_time", "end_time", "subject", "classroom", "section", "class_name")

    day: Optional[Weekday] = None
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    subject: Optional[str] = Field(default=None, min_length=1)
    teacher_id: Optional[int] = None
    classroom: Optional[str] = Field(default=None, min_length=1)
    section: Optional[Section] = None
    class_name: Optional[str] = Field(default=None, alias="class", min_length=1)


class ScheduleOut(ScheduleBase, RecordOut):
    pass
