from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, JSON
from school_admin.db import Base
from school_admin.enums import (
    Gender, Section, Role, Shift, AttendanceStatus, PaymentStatus, Weekday,
)

# Foreign keys are plain indexed integers: referential integrity is applied
# by the record store according to the configured delete policy.


def _now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default='staff')
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now)


class Student(Base):
    __tablename__ = 'students'
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=False)
    gender = Column(Enum(Gender), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    section = Column(Enum(Section), nullable=False, index=True)
    class_name = Column('class', String, nullable=False)
    father_name = Column(String, nullable=True)
    father_phone = Column(String, nullable=True)
    father_email = Column(String, nullable=True)
    mother_name = Column(String, nullable=True)
    mother_phone = Column(String, nullable=True)
    mother_email = Column(String, nullable=True)
    profile_photo = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now)

    @property
    def full_name(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


class Employee(Base):
    __tablename__ = 'employees'
    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=False)
    gender = Column(Enum(Gender), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    role = Column(Enum(Role), nullable=False, index=True)
    section = Column(Enum(Section), nullable=True)
    salary = Column(Integer, nullable=False, default=0)
    shift = Column(Enum(Shift), nullable=True)
    subjects = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_now)

    @property
    def full_name(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


class Classroom(Base):
    __tablename__ = 'classrooms'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    section = Column(Enum(Section), nullable=False)
    capacity = Column(Integer, nullable=False)
    teacher_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime, default=_now)


class Attendance(Base):
    __tablename__ = 'attendance'
    id = Column(Integer, primary_key=True, index=True)
    # nullable: rows recorded without a date are kept and only appear in
    # unwindowed analytics
    date = Column(DateTime, nullable=True, default=_now)
    student_id = Column(Integer, nullable=False, index=True)
    status = Column(Enum(AttendanceStatus), nullable=False)
    note = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now)


class Payment(Base):
    __tablename__ = 'payments'
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    date = Column(DateTime, nullable=False, default=_now)
    description = Column(String, nullable=True)
    status = Column(Enum(PaymentStatus), nullable=False)
    paid_amount = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_now)


class Exam(Base):
    __tablename__ = 'exams'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    section = Column(Enum(Section), nullable=False)
    class_name = Column('class', String, nullable=False)
    date = Column(DateTime, nullable=False)
    subjects = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_now)


class Result(Base):
    __tablename__ = 'results'
    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    subject = Column(String, nullable=False)
    score = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False)
    grade = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now)


class Schedule(Base):
    __tablename__ = 'schedules'
    id = Column(Integer, primary_key=True, index=True)
    day = Column(Enum(Weekday), nullable=False)
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    teacher_id = Column(Integer, nullable=True, index=True)
    classroom = Column(String, nullable=False)
    section = Column(Enum(Section), nullable=False)
    class_name = Column('class', String, nullable=False)
    created_at = Column(DateTime, default=_now)
