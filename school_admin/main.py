# school_admin/main.py
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_admin import analytics, crud, db, schemas, seed
from school_admin.config import configure_logging, settings
from school_admin.errors import DuplicateRecord, IntegrityViolation, InvalidReference, RecordNotFound

LOG = logging.getLogger(__name__)

app = FastAPI(title="School Administration API")

# path parameters that name a parent entity rather than the route's own rows
PATH_PARAM_LABELS = {
    "student_id": "student",
    "exam_id": "exam",
    "teacher_id": "teacher",
    "user_id": "user",
}


# dependency
def get_db():
    db_session = db.SessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()


@app.on_event("startup")
def startup():
    configure_logging()
    db.init_db()
    if settings.seed_demo:
        with db.session_scope() as session:
            if seed.is_empty(session):
                seed.seed_demo(session)
    LOG.info("school API ready (delete policy: %s)", settings.delete_policy)


# ---------- Error envelopes ----------
def entity_label(request: Request) -> str:
    parts = [p for p in request.url.path.split("/") if p]
    collection = parts[1] if len(parts) > 1 and parts[0] == "api" else ""
    entity = crud.ENTITIES.get(collection)
    if entity is not None:
        return entity.name.replace(" record", "")
    if collection == "users":
        return "user"
    return "request"


def error_list(errors) -> list:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in errors
    ]


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    path_errors = [e for e in errors if e.get("loc", ())[:1] == ("path",)]
    if path_errors:
        param = path_errors[0]["loc"][-1]
        label = PATH_PARAM_LABELS.get(param, entity_label(request))
        return JSONResponse(status_code=400, content={"message": f"Invalid {label} ID"})
    return JSONResponse(
        status_code=400,
        content={"message": f"Invalid {entity_label(request)} data", "errors": error_list(errors)},
    )


@app.exception_handler(ValidationError)
def model_validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": f"Invalid {entity_label(request)} data", "errors": error_list(exc.errors())},
    )


@app.exception_handler(InvalidReference)
def invalid_reference_handler(request: Request, exc: InvalidReference):
    return JSONResponse(
        status_code=400,
        content={
            "message": f"Invalid {entity_label(request)} data",
            "errors": [{"loc": ["body", exc.field], "msg": str(exc), "type": "invalid_reference"}],
        },
    )


@app.exception_handler(RecordNotFound)
def not_found_handler(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.exception_handler(IntegrityViolation)
def integrity_handler(request: Request, exc: IntegrityViolation):
    return JSONResponse(status_code=409, content={"message": str(exc), "blockedBy": exc.blocked_by})


@app.exception_handler(DuplicateRecord)
def duplicate_handler(request: Request, exc: DuplicateRecord):
    return JSONResponse(status_code=409, content={"message": str(exc)})


@app.exception_handler(StarletteHTTPException)
def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


@app.exception_handler(Exception)
def unexpected_error_handler(request: Request, exc: Exception):
    LOG.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ---------- Stats & analytics ----------
@app.get("/api/stats")
def read_stats(database: Session = Depends(get_db)):
    return analytics.build_stats(crud.load_snapshot(database))


@app.get("/api/analytics")
def read_analytics(
    period: Optional[str] = Query(None),
    section: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    database: Session = Depends(get_db),
):
    try:
        snapshot = crud.load_snapshot(database)
        return analytics.build_analytics(snapshot, period=period, section=section, category=category)
    except Exception:
        LOG.exception("analytics failed (period=%s section=%s category=%s)", period, section, category)
        return JSONResponse(status_code=500, content={"message": "Failed to fetch analytics data"})


# ---------- Users ----------
@app.post("/api/users", response_model=schemas.UserOut, status_code=201)
def create_user(user: schemas.UserCreate, database: Session = Depends(get_db)):
    return crud.create_user(database, user)


@app.get("/api/users/{user_id}", response_model=schemas.UserOut)
def read_user(user_id: int, database: Session = Depends(get_db)):
    u = crud.get_user(database, user_id)
    if not u:
        raise RecordNotFound("user", user_id)
    return u


# ---------- Lookups by admission / employee code ----------
@app.get("/api/students/by-code/{code}", response_model=schemas.StudentOut)
def read_student_by_code(code: str, database: Session = Depends(get_db)):
    s = crud.get_student_by_code(database, code)
    if not s:
        raise RecordNotFound("student", code)
    return s


@app.get("/api/employees/by-code/{code}", response_model=schemas.EmployeeOut)
def read_employee_by_code(code: str, database: Session = Depends(get_db)):
    e = crud.get_employee_by_code(database, code)
    if not e:
        raise RecordNotFound("employee", code)
    return e


# ---------- Foreign-key scoped lists ----------
@app.get("/api/attendance/student/{student_id}", response_model=List[schemas.AttendanceOut])
def student_attendance(student_id: int, database: Session = Depends(get_db)):
    return crud.attendance_for_student(database, student_id)


@app.get("/api/payments/student/{student_id}", response_model=List[schemas.PaymentOut])
def student_payments(student_id: int, database: Session = Depends(get_db)):
    return crud.payments_for_student(database, student_id)


@app.get("/api/results/student/{student_id}", response_model=List[schemas.ResultOut])
def student_results(student_id: int, database: Session = Depends(get_db)):
    return crud.results_for_student(database, student_id)


@app.get("/api/results/exam/{exam_id}", response_model=List[schemas.ResultOut])
def exam_results(exam_id: int, database: Session = Depends(get_db)):
    return crud.results_for_exam(database, exam_id)


@app.get("/api/classrooms/teacher/{teacher_id}", response_model=List[schemas.ClassroomOut])
def teacher_classrooms(teacher_id: int, database: Session = Depends(get_db)):
    return crud.classrooms_for_teacher(database, teacher_id)


@app.get("/api/schedules/teacher/{teacher_id}", response_model=List[schemas.ScheduleOut])
def teacher_schedules(teacher_id: int, database: Session = Depends(get_db)):
    return crud.schedules_for_teacher(database, teacher_id)


# ---------- Entity CRUD ----------
def register_entity_routes(entity: crud.Entity):
    base = f"/api/{entity.collection}"
    model = entity.model
    create_schema = entity.create_schema
    update_schema = entity.update_schema
    out_schema = entity.out_schema

    @app.get(base, response_model=List[out_schema], name=f"list_{entity.collection}")
    def list_items(skip: int = 0, limit: Optional[int] = None, database: Session = Depends(get_db)):
        return crud.list_records(database, model, skip, limit)

    @app.get(base + "/{record_id}", response_model=out_schema, name=f"read_{entity.collection}")
    def read_item(record_id: int, database: Session = Depends(get_db)):
        return crud.require_record(database, model, record_id)

    @app.post(base, response_model=out_schema, status_code=201, name=f"create_{entity.collection}")
    def create_item(payload: create_schema, database: Session = Depends(get_db)):
        return crud.create_record(database, model, payload)

    @app.patch(base + "/{record_id}", response_model=out_schema, name=f"update_{entity.collection}")
    def patch_item(record_id: int, updates: update_schema, database: Session = Depends(get_db)):
        row = crud.update_record(database, model, record_id, updates.changes())
        if not row:
            raise RecordNotFound(entity.name, record_id)
        return row

    @app.delete(base + "/{record_id}", status_code=204, name=f"delete_{entity.collection}")
    def remove_item(record_id: int, database: Session = Depends(get_db)):
        ok = crud.delete_record(database, model, record_id)
        if not ok:
            raise RecordNotFound(entity.name, record_id)
        return Response(status_code=204)


for _entity in crud.ENTITIES.values():
    register_entity_routes(_entity)
