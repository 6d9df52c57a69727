# school_admin/crud.py
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from school_admin import models, schemas
from school_admin.config import settings
from school_admin.errors import DuplicateRecord, IntegrityViolation, InvalidReference, RecordNotFound

LOG = logging.getLogger(__name__)


# ---------- ENTITY REGISTRY ----------
@dataclass(frozen=True)
class Entity:
    name: str
    collection: str
    model: type
    create_schema: type
    update_schema: type
    out_schema: type


ENTITIES: Dict[str, Entity] = {
    e.collection: e for e in (
        Entity("student", "students", models.Student,
               schemas.StudentCreate, schemas.StudentUpdate, schemas.StudentOut),
        Entity("employee", "employees", models.Employee,
               schemas.EmployeeCreate, schemas.EmployeeUpdate, schemas.EmployeeOut),
        Entity("classroom", "classrooms", models.Classroom,
               schemas.ClassroomCreate, schemas.ClassroomUpdate, schemas.ClassroomOut),
        Entity("attendance record", "attendance", models.Attendance,
               schemas.AttendanceCreate, schemas.AttendanceUpdate, schemas.AttendanceOut),
        Entity("payment record", "payments", models.Payment,
               schemas.PaymentCreate, schemas.PaymentUpdate, schemas.PaymentOut),
        Entity("exam", "exams", models.Exam,
               schemas.ExamCreate, schemas.ExamUpdate, schemas.ExamOut),
        Entity("result", "results", models.Result,
               schemas.ResultCreate, schemas.ResultUpdate, schemas.ResultOut),
        Entity("schedule", "schedules", models.Schedule,
               schemas.ScheduleCreate, schemas.ScheduleUpdate, schemas.ScheduleOut),
    )
}

ENTITY_BY_MODEL = {e.model: e for e in ENTITIES.values()}


# ---------- FOREIGN KEY RELATIONS ----------
@dataclass(frozen=True)
class Relation:
    parent: type
    child: type
    column: str
    # required references block or cascade, optional ones are nulled
    required: bool = True


RELATIONS: Tuple[Relation, ...] = (
    Relation(models.Student, models.Attendance, "student_id"),
    Relation(models.Student, models.Payment, "student_id"),
    Relation(models.Student, models.Result, "student_id"),
    Relation(models.Exam, models.Result, "exam_id"),
    Relation(models.Employee, models.Classroom, "teacher_id", required=False),
    Relation(models.Employee, models.Schedule, "teacher_id", required=False),
)


def children_of(model) -> List[Relation]:
    return [r for r in RELATIONS if r.parent is model]


def parents_of(model) -> List[Relation]:
    return [r for r in RELATIONS if r.child is model]


def check_references(db: Session, model, values: dict, policy: Optional[str] = None):
    """Raise InvalidReference when ``values`` names a parent that does not exist.

    The legacy ``orphan`` policy accepts dangling references.
    """
    policy = policy or settings.delete_policy
    if policy == "orphan":
        return
    for rel in parents_of(model):
        ref = values.get(rel.column)
        if ref is None:
            continue
        if db.get(rel.parent, ref) is None:
            raise InvalidReference(to_camel(rel.column), ref)


# ---------- GENERIC CRUD ----------
def commit(db: Session, entity: str):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateRecord(entity)


def list_records(db: Session, model, skip: int = 0, limit: Optional[int] = None) -> list:
    q = db.query(model).order_by(model.id).offset(skip)
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def get_record(db: Session, model, record_id: int):
    return db.query(model).filter(model.id == record_id).first()


def require_record(db: Session, model, record_id: int):
    row = get_record(db, model, record_id)
    if row is None:
        raise RecordNotFound(ENTITY_BY_MODEL[model].name, record_id)
    return row


def create_record(db: Session, model, payload, policy: Optional[str] = None):
    # unset optionals fall back to column defaults (e.g. dates default to now)
    data = payload.model_dump(exclude_none=True)
    check_references(db, model, data, policy)
    row = model(**data)
    db.add(row)
    commit(db, ENTITY_BY_MODEL[model].name)
    db.refresh(row)
    LOG.info("created %s id=%s", model.__tablename__, row.id)
    return row


def revalidate(schema, merged: dict, updates: dict) -> dict:
    """Validate a merged row with ``schema``.

    Stored values the schema no longer accepts (legacy emails and the like)
    are carried over as they are, unless the update touches them.
    """
    try:
        return schema.model_validate(merged).model_dump()
    except ValidationError as exc:
        names = {field.alias or name: name for name, field in schema.model_fields.items()}
        stale = {names.get(e["loc"][0], e["loc"][0]) for e in exc.errors() if e["loc"]}
        stale -= updates.keys()
        if not stale:
            raise
    kept = {k: v for k, v in merged.items() if k not in stale}
    return {**schema.model_validate(kept).model_dump(), **{k: merged[k] for k in stale}}


def update_record(db: Session, model, record_id: int, updates: dict, policy: Optional[str] = None):
    """Apply a partial update; returns None when the row does not exist.

    The merged row is re-validated against the create schema so cross-field
    rules (score <= total, paidAmount <= amount, start before end) still hold.
    """
    row = get_record(db, model, record_id)
    if not row:
        return None
    if not updates:
        return row
    entity = ENTITY_BY_MODEL[model]
    current = {name: getattr(row, name) for name in entity.create_schema.model_fields}
    merged = {**current, **updates}
    if model is models.Result and "grade" not in updates and ({"score", "total"} & updates.keys()):
        merged["grade"] = None
    validated = revalidate(entity.create_schema, merged, updates)
    changes = {k: validated[k] for k in validated if k in updates or validated[k] != current.get(k)}
    check_references(db, model, changes, policy)
    for k, v in changes.items():
        setattr(row, k, v)
    commit(db, entity.name)
    db.refresh(row)
    LOG.info("updated %s id=%s fields=%s", model.__tablename__, record_id, sorted(changes))
    return row


def delete_record(db: Session, model, record_id: int, policy: Optional[str] = None) -> bool:
    """Delete a row applying the referential-integrity policy.

    orphan   - children are left in place
    restrict - required children block the delete, optional references are nulled
    cascade  - required children are deleted, optional references are nulled
    """
    policy = policy or settings.delete_policy
    row = get_record(db, model, record_id)
    if not row:
        return False
    if policy == "restrict":
        blocked = {}
        for rel in children_of(model):
            if not rel.required:
                continue
            count = db.query(rel.child).filter(getattr(rel.child, rel.column) == record_id).count()
            if count:
                blocked[rel.child.__tablename__] = count
        if blocked:
            raise IntegrityViolation(ENTITY_BY_MODEL[model].name, blocked)
    if policy in ("restrict", "cascade"):
        _release_children(db, model, record_id, cascade=policy == "cascade")
    db.delete(row)
    db.commit()
    LOG.info("deleted %s id=%s policy=%s", model.__tablename__, record_id, policy)
    return True


def _release_children(db: Session, model, record_id: int, cascade: bool):
    for rel in children_of(model):
        column = getattr(rel.child, rel.column)
        rows = db.query(rel.child).filter(column == record_id).all()
        for child in rows:
            if not rel.required:
                setattr(child, rel.column, None)
            elif cascade:
                _release_children(db, rel.child, child.id, cascade=True)
                db.delete(child)
        if rows:
            LOG.info("%s %d %s rows referencing %s id=%s",
                     "cascaded" if cascade else "released", len(rows),
                     rel.child.__tablename__, model.__tablename__, record_id)
    db.flush()


# ---------- FOREIGN-KEY SCOPED LISTS ----------
def attendance_for_student(db: Session, student_id: int) -> List[models.Attendance]:
    return db.query(models.Attendance).filter(models.Attendance.student_id == student_id).order_by(models.Attendance.id).all()


def payments_for_student(db: Session, student_id: int) -> List[models.Payment]:
    return db.query(models.Payment).filter(models.Payment.student_id == student_id).order_by(models.Payment.id).all()


def results_for_student(db: Session, student_id: int) -> List[models.Result]:
    return db.query(models.Result).filter(models.Result.student_id == student_id).order_by(models.Result.id).all()


def results_for_exam(db: Session, exam_id: int) -> List[models.Result]:
    return db.query(models.Result).filter(models.Result.exam_id == exam_id).order_by(models.Result.id).all()


def classrooms_for_teacher(db: Session, teacher_id: int) -> List[models.Classroom]:
    return db.query(models.Classroom).filter(models.Classroom.teacher_id == teacher_id).order_by(models.Classroom.id).all()


def schedules_for_teacher(db: Session, teacher_id: int) -> List[models.Schedule]:
    return db.query(models.Schedule).filter(models.Schedule.teacher_id == teacher_id).order_by(models.Schedule.id).all()


def get_student_by_code(db: Session, code: str) -> Optional[models.Student]:
    return db.query(models.Student).filter(models.Student.student_id == code).first()


def get_employee_by_code(db: Session, code: str) -> Optional[models.Employee]:
    return db.query(models.Employee).filter(models.Employee.employee_id == code).first()


# ---------- USERS ----------
def create_user(db: Session, user: schemas.UserCreate) -> models.User:
    data = user.model_dump()
    password = data.pop("password")
    db_user = models.User(**data, password_hash=generate_password_hash(password))
    db.add(db_user)
    commit(db, "user")
    db.refresh(db_user)
    LOG.info("created user %s", db_user.username)
    return db_user


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.username == username).first()


def verify_user_password(user: models.User, password: str) -> bool:
    return check_password_hash(user.password_hash, password)


# ---------- SNAPSHOT ----------
@dataclass
class Snapshot:
    students: list
    employees: list
    classrooms: list
    attendance: list
    payments: list
    exams: list
    results: list


def load_snapshot(db: Session) -> Snapshot:
    """Read every collection inside one transaction so aggregation sees one view.

    SQLite sessions always run in a real transaction (see ``db.make_engine``);
    server databases are asked for REPEATABLE READ before the first query.
    """
    if db.get_bind().dialect.name != "sqlite":
        db.connection(execution_options={"isolation_level": "REPEATABLE READ"})
    return Snapshot(
        students=list_records(db, models.Student),
        employees=list_records(db, models.Employee),
        classrooms=list_records(db, models.Classroom),
        attendance=list_records(db, models.Attendance),
        payments=list_records(db, models.Payment),
        exams=list_records(db, models.Exam),
        results=list_records(db, models.Result),
    )
