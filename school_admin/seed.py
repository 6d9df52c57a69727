# school_admin/seed.py
import logging
import random
from datetime import datetime, timedelta, timezone

from faker import Faker
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from school_admin import models
from school_admin.enums import (
    AttendanceStatus, Gender, PaymentStatus, Role, Section, Shift, Weekday,
)
from school_admin.formatting import grade_for

LOG = logging.getLogger(__name__)

SECTIONS = [Section.primary, Section.secondary, Section.highschool]
CLASSES = ['One', 'Two', 'Three', 'Four', 'Five', 'Six']
ROLES = [Role.teacher, Role.driver, Role.cleaner, Role.guard, Role.admin, Role.staff]
SHIFTS = [Shift.morning, Shift.afternoon, Shift.evening]
SUBJECTS = ['Math', 'Science', 'English', 'Arabic', 'Islamic', 'Somali', 'History']

# children first so a clear never leaves dangling rows behind
ALL_MODELS = [
    models.Result, models.Attendance, models.Payment, models.Schedule,
    models.Classroom, models.Exam, models.Student, models.Employee, models.User,
]


def _now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clear(db: Session):
    for model in ALL_MODELS:
        db.query(model).delete()
    db.commit()


def is_empty(db: Session) -> bool:
    return db.query(models.Student).count() == 0 and db.query(models.Employee).count() == 0


def seed_demo(db: Session):
    """Small fixed dataset: 10 students, 8 employees, 5 rooms, 3 exams.

    Every third student owes an unpaid 500 fee, every fifth was absent today.
    """
    now = _now()
    db.add(models.User(
        username='admin', password_hash=generate_password_hash('admin123'),
        role='admin', full_name='System Admin', email='admin@school.com',
    ))

    students = []
    for i in range(1, 11):
        student = models.Student(
            student_id=f'1-Qar-Sh-{2023 + i}',
            first_name='Student', middle_name='', last_name=f'{i}',
            gender=Gender.female if i % 3 == 0 else Gender.male,
            date_of_birth=datetime(2010, 1, 1).date(),
            phone=f'12345{i}', email=f'student{i}@school.com',
            address=f'{123 + i} Education Street, School District',
            section=SECTIONS[i % 3], class_name=CLASSES[i % 6],
            father_name=f'Father {i}', father_phone=f'98765{i}', father_email=f'father{i}@email.com',
            mother_name=f'Mother {i}', mother_phone=f'45678{i}', mother_email=f'mother{i}@email.com',
        )
        db.add(student)
        students.append(student)
    db.flush()

    for i, student in enumerate(students, start=1):
        db.add(models.Payment(
            student_id=student.id, amount=500, date=now, description='Monthly Fee',
            status=PaymentStatus.unpaid if i % 3 == 0 else PaymentStatus.paid,
        ))
        db.add(models.Attendance(
            student_id=student.id, date=now, note='',
            status=AttendanceStatus.absent if i % 5 == 0 else AttendanceStatus.present,
        ))

    employees = []
    for i in range(1, 9):
        role = ROLES[i % 6]
        employee = models.Employee(
            employee_id=f'E-{1000 + i}',
            first_name='Employee', middle_name='', last_name=f'{i}',
            gender=Gender.female if i % 4 == 0 else Gender.male,
            date_of_birth=datetime(1990, 1, 1).date(),
            phone=f'987{i}65432', email=f'employee{i}@school.com',
            role=role,
            section=Section.primary if i < 5 else (Section.secondary if i < 8 else Section.highschool),
            salary=300, shift=SHIFTS[i % 3],
            subjects=['Math', 'Science', 'English'] if role is Role.teacher else [],
        )
        db.add(employee)
        employees.append(employee)
    db.flush()

    for i in range(1, 6):
        db.add(models.Classroom(
            name=f'Room {100 + i}',
            section=Section.primary if i <= 2 else (Section.secondary if i <= 4 else Section.highschool),
            capacity=30, teacher_id=employees[i - 1].id,
        ))

    for i in range(1, 4):
        exam = models.Exam(
            name=f'Final Exam {i}', section=SECTIONS[i - 1], class_name=CLASSES[i % 6],
            date=now, subjects=SUBJECTS[:5],
        )
        db.add(exam)
        db.flush()
        for j in range(1, 9, 2):
            for subject in SUBJECTS[:5]:
                db.add(models.Result(
                    exam_id=exam.id, student_id=students[j - 1].id, subject=subject,
                    score=90 + (j % 10), total=100, grade='A',
                ))

    db.commit()
    LOG.info("seeded demo dataset")


def seed_fake(db: Session, num_students: int = 500, num_employees: int = 50, days: int = 120, seed=None):
    """Larger random dataset built with Faker."""
    fake = Faker()
    rng = random.Random(seed)
    if seed is not None:
        Faker.seed(seed)
    now = _now()

    employees = []
    for i in range(num_employees):
        role = Role.teacher if rng.random() < 0.6 else rng.choice(ROLES[1:])
        employee = models.Employee(
            employee_id=f'E-{2000 + i}',
            first_name=fake.first_name(), last_name=fake.last_name(),
            gender=rng.choice(list(Gender)),
            date_of_birth=fake.date_between(start_date='-60y', end_date='-22y'),
            phone=fake.msisdn()[:10], email=f'employee{i}@example.com',
            role=role, section=rng.choice(SECTIONS),
            salary=rng.randrange(200, 2000, 50), shift=rng.choice(SHIFTS),
            subjects=rng.sample(SUBJECTS, k=rng.randint(1, 3)) if role is Role.teacher else [],
        )
        db.add(employee)
        employees.append(employee)
    db.flush()
    teachers = [e for e in employees if e.role is Role.teacher]

    for i, teacher in enumerate(teachers[:20]):
        db.add(models.Classroom(
            name=f'Room {200 + i}', section=teacher.section,
            capacity=rng.choice([25, 30, 35]), teacher_id=teacher.id,
        ))
        db.add(models.Schedule(
            day=rng.choice(list(Weekday)[:5]), start_time=f'{8 + i % 6:02d}:00', end_time=f'{9 + i % 6:02d}:00',
            subject=teacher.subjects[0], teacher_id=teacher.id, classroom=f'Room {200 + i}',
            section=teacher.section, class_name=rng.choice(CLASSES),
        ))

    students = []
    for i in range(num_students):
        student = models.Student(
            student_id=f'S-{10000 + i}',
            first_name=fake.first_name(), last_name=fake.last_name(),
            gender=rng.choice(list(Gender)),
            date_of_birth=fake.date_between(start_date='-18y', end_date='-6y'),
            phone=fake.msisdn()[:10], email=f'student{i}@student.example.com',
            address=fake.address(), section=rng.choice(SECTIONS), class_name=rng.choice(CLASSES),
            father_name=fake.name(), mother_name=fake.name(),
        )
        db.add(student)
        students.append(student)
    db.flush()

    for student in students:
        for _ in range(rng.randint(1, 4)):
            amount = rng.choice([300, 500, 750, 1000])
            status = rng.choices(list(PaymentStatus), weights=[50, 20, 15, 10, 5])[0]
            db.add(models.Payment(
                student_id=student.id, amount=amount,
                date=now - timedelta(days=rng.randint(0, days)),
                description='Tuition', status=status,
                paid_amount=rng.randint(1, amount - 1) if status is PaymentStatus.partial else None,
            ))
        for day in rng.sample(range(days), k=min(days, 20)):
            db.add(models.Attendance(
                student_id=student.id, date=now - timedelta(days=day),
                status=rng.choices(list(AttendanceStatus), weights=[85, 10, 5])[0],
            ))
    db.flush()

    for i in range(6):
        section = SECTIONS[i % 3]
        exam = models.Exam(
            name=f'Term Exam {i + 1}', section=section, class_name=rng.choice(CLASSES),
            date=now - timedelta(days=rng.randint(0, days)), subjects=SUBJECTS[:5],
        )
        db.add(exam)
        db.flush()
        for student in (s for s in students if s.section is section):
            for subject in exam.subjects:
                score = rng.randint(35, 100)
                db.add(models.Result(
                    exam_id=exam.id, student_id=student.id, subject=subject,
                    score=score, total=100, grade=grade_for(score, 100),
                ))

    db.commit()
    LOG.info("seeded %d students and %d employees", num_students, num_employees)
