from school_admin import analytics, crud
from school_admin.config import Settings

STUDENT = {
    "studentId": "ADM-2025-001",
    "firstName": "Amina",
    "middleName": "Hassan",
    "lastName": "Yusuf",
    "gender": "female",
    "dateOfBirth": "2011-04-02",
    "phone": "0612345678",
    "email": "amina@example.com",
    "address": "12 Market Road",
    "section": "secondary",
    "class": "Seven",
    "fatherName": "Hassan Yusuf",
    "fatherPhone": "0611111111",
    "fatherEmail": "hassan@example.com",
    "motherName": "Fadumo Ali",
    "motherPhone": "0622222222",
    "motherEmail": "fadumo@example.com",
    "profilePhoto": None,
}

EMPLOYEE = {
    "employeeId": "E-9001",
    "firstName": "Omar",
    "lastName": "Farah",
    "gender": "male",
    "role": "teacher",
    "section": "primary",
    "salary": 450,
    "shift": "morning",
    "subjects": ["Math", "Science"],
}


def create_student(client, **overrides):
    r = client.post("/api/students", json={**STUDENT, **overrides})
    assert r.status_code == 201, r.text
    return r.json()


# ---------- Students ----------
def test_create_then_fetch_student_round_trip(client):
    created = create_student(client)
    fetched = client.get(f"/api/students/{created['id']}")
    assert fetched.status_code == 200
    body = fetched.json()
    assert body == created
    assert set(body) == set(STUDENT) | {"id", "createdAt"}
    for key, value in STUDENT.items():
        assert body[key] == value
    assert body["createdAt"]


def test_patch_with_empty_body_returns_unchanged_student(client):
    created = create_student(client)
    r = client.patch(f"/api/students/{created['id']}", json={})
    assert r.status_code == 200
    assert r.json() == created


def test_patch_changes_only_supplied_fields(client):
    created = create_student(client)
    r = client.patch(f"/api/students/{created['id']}", json={"section": "highschool", "phone": None})
    assert r.status_code == 200
    body = r.json()
    assert body["section"] == "highschool"
    assert body["phone"] is None
    assert body["firstName"] == created["firstName"]


def test_patch_rejects_null_required_field(client):
    created = create_student(client)
    r = client.patch(f"/api/students/{created['id']}", json={"firstName": None})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid student data"


def test_create_student_validation_errors(client):
    payload = {k: v for k, v in STUDENT.items() if k != "firstName"}
    payload["gender"] = "other"
    r = client.post("/api/students", json=payload)
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == "Invalid student data"
    fields = {tuple(e["loc"])[-1] for e in body["errors"]}
    assert {"firstName", "gender"} <= fields


def test_duplicate_admission_code_conflicts(client):
    create_student(client)
    r = client.post("/api/students", json=STUDENT)
    assert r.status_code == 409
    assert r.json() == {"message": "Student already exists"}


def test_student_lookup_errors(client):
    r = client.get("/api/students/abc")
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid student ID"}

    r = client.get("/api/students/999")
    assert r.status_code == 404
    assert r.json() == {"message": "Student not found"}

    r = client.delete("/api/students/999")
    assert r.status_code == 404


def test_student_by_admission_code(client):
    created = create_student(client)
    r = client.get(f"/api/students/by-code/{STUDENT['studentId']}")
    assert r.status_code == 200
    assert r.json()["id"] == created["id"]


def test_list_students_paginates(client):
    for i in range(3):
        create_student(client, studentId=f"ADM-{i}", email=f"s{i}@example.com")
    r = client.get("/api/students?skip=1&limit=1")
    assert [s["studentId"] for s in r.json()] == ["ADM-1"]


def test_delete_student(client):
    created = create_student(client)
    r = client.delete(f"/api/students/{created['id']}")
    assert r.status_code == 204
    assert client.get(f"/api/students/{created['id']}").status_code == 404


# ---------- Employees ----------
def test_non_teacher_subjects_are_cleared(client):
    r = client.post("/api/employees", json={**EMPLOYEE, "role": "driver"})
    assert r.status_code == 201
    assert r.json()["subjects"] == []

    r = client.post("/api/employees", json={**EMPLOYEE, "employeeId": "E-9002"})
    assert r.json()["subjects"] == ["Math", "Science"]


def test_employee_role_change_clears_subjects(client):
    created = client.post("/api/employees", json=EMPLOYEE).json()
    r = client.patch(f"/api/employees/{created['id']}", json={"role": "guard"})
    assert r.status_code == 200
    assert r.json()["subjects"] == []


# ---------- Payments, results, schedules ----------
def test_payment_defaults_date_and_checks_paid_amount(client):
    student = create_student(client)
    r = client.post("/api/payments", json={"studentId": student["id"], "amount": 500, "status": "partial", "paidAmount": 200})
    assert r.status_code == 201
    payment = r.json()
    assert payment["date"]
    assert payment["paidAmount"] == 200

    r = client.post("/api/payments", json={"studentId": student["id"], "amount": 500, "status": "partial", "paidAmount": 700})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid payment data"

    r = client.patch(f"/api/payments/{payment['id']}", json={"amount": 100})
    assert r.status_code == 400

    r = client.get(f"/api/payments/student/{student['id']}")
    assert [p["id"] for p in r.json()] == [payment["id"]]


def test_dates_with_offsets_are_stored_as_utc(client):
    student = create_student(client)
    r = client.post("/api/payments", json={
        "studentId": student["id"], "amount": 500, "status": "paid", "date": "2025-06-01T23:30:00+05:00",
    })
    assert r.status_code == 201
    assert r.json()["date"] == "2025-06-01T18:30:00"

    record = client.post("/api/attendance", json={"studentId": student["id"], "status": "present"}).json()
    r = client.patch(f"/api/attendance/{record['id']}", json={"date": "2025-01-01T01:00:00-03:00"})
    assert r.json()["date"] == "2025-01-01T04:00:00"

    r = client.post("/api/exams", json={
        "name": "Final", "section": "secondary", "class": "Seven",
        "date": "2025-07-01T02:00:00+03:00", "subjects": ["Math"],
    })
    assert r.json()["date"] == "2025-06-30T23:00:00"


def test_payment_status_must_be_known(client):
    student = create_student(client)
    r = client.post("/api/payments", json={"studentId": student["id"], "amount": 500, "status": "waived"})
    assert r.status_code == 400


def test_result_grade_is_derived(client):
    student = create_student(client)
    exam = client.post("/api/exams", json={
        "name": "Midterm", "section": "secondary", "class": "Seven",
        "date": "2025-03-01T09:00:00", "subjects": ["Math"],
    }).json()
    r = client.post("/api/results", json={
        "examId": exam["id"], "studentId": student["id"], "subject": "Math", "score": 85, "total": 100,
    })
    assert r.status_code == 201
    result = r.json()
    assert result["grade"] == "B"

    r = client.patch(f"/api/results/{result['id']}", json={"score": 55})
    assert r.json()["grade"] == "F"

    r = client.get(f"/api/results/exam/{exam['id']}")
    assert [x["id"] for x in r.json()] == [result["id"]]

    r = client.post("/api/results", json={
        "examId": exam["id"], "studentId": student["id"], "subject": "Math", "score": 120, "total": 100,
    })
    assert r.status_code == 400


def test_schedule_times(client):
    teacher = client.post("/api/employees", json=EMPLOYEE).json()
    entry = {
        "day": "Monday", "startTime": "08:00", "endTime": "09:00", "subject": "Math",
        "teacherId": teacher["id"], "classroom": "Room 101", "section": "primary", "class": "Three",
    }
    r = client.post("/api/schedules", json=entry)
    assert r.status_code == 201
    assert r.json()["day"] == "Monday"

    r = client.post("/api/schedules", json={**entry, "startTime": "10:00"})
    assert r.status_code == 400

    r = client.post("/api/schedules", json={**entry, "endTime": "25:00"})
    assert r.status_code == 400

    r = client.get(f"/api/schedules/teacher/{teacher['id']}")
    assert len(r.json()) == 1


def test_attendance_scoped_list_and_update(client):
    student = create_student(client)
    r = client.post("/api/attendance", json={"studentId": student["id"], "status": "late"})
    assert r.status_code == 201
    record = r.json()
    assert record["date"]

    r = client.patch(f"/api/attendance/{record['id']}", json={"status": "present", "note": "bus delay"})
    assert r.json()["status"] == "present"

    r = client.get(f"/api/attendance/student/{student['id']}")
    assert [a["note"] for a in r.json()] == ["bus delay"]

    r = client.get("/api/attendance/student/abc")
    assert r.json() == {"message": "Invalid student ID"}


def test_classroom_capacity_must_be_positive(client):
    r = client.post("/api/classrooms", json={"name": "Room 1", "section": "primary", "capacity": 0})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid classroom data"


# ---------- Users ----------
def test_user_password_is_never_returned(client):
    r = client.post("/api/users", json={
        "username": "registrar", "password": "s3cret-pass", "fullName": "Registrar", "email": "reg@example.com",
    })
    assert r.status_code == 201
    body = r.json()
    assert "password" not in body and "passwordHash" not in body
    assert body["role"] == "staff"

    r = client.get(f"/api/users/{body['id']}")
    assert r.json()["username"] == "registrar"


# ---------- Stats & analytics ----------
def test_unpaid_fees_for_demo_school(demo_client):
    r = demo_client.get("/api/analytics")
    assert r.status_code == 200
    fees = r.json()["financial"]["feeCollection"]
    # students 3, 6 and 9 each owe 500
    assert fees["unpaid"] == 1500
    assert fees["paid"] == 3500
    assert fees["total"] == 5000


def test_demo_school_analytics_sections(demo_client):
    body = demo_client.get("/api/analytics", params={"period": "month"}).json()
    assert body["filters"]["period"] == "month"
    assert body["demographics"]["totalStudents"] == 10
    assert body["attendance"]["overall"] == {"present": 8, "absent": 2, "late": 0}
    assert body["academic"]["averageScores"]["overall"] == 94.0
    assert body["academic"]["averageScores"]["bySection"] == {
        "primary": 93.0, "secondary": 94.0, "highschool": 95.0,
    }
    assert [p["studentId"] for p in body["academic"]["topPerformers"]] == [7, 5, 3, 1]
    assert body["teacherPerformance"]["totalTeachers"] == 1
    assert body["teacherPerformance"]["topTeachers"][0]["averageScore"] == 94.0


def test_analytics_section_filter(demo_client):
    body = demo_client.get("/api/analytics", params={"section": "primary"}).json()
    assert body["demographics"]["totalStudents"] == 3
    assert body["financial"]["feeCollection"]["unpaid"] == 1500
    assert body["financial"]["feeCollection"]["paid"] == 0


def test_analytics_ignores_unknown_filters(demo_client):
    r = demo_client.get("/api/analytics", params={"period": "fortnight", "section": "college"})
    assert r.status_code == 200
    filters = r.json()["filters"]
    assert filters["period"] == "all"
    assert filters["section"] == "all"


def test_analytics_failure_returns_500(demo_client, monkeypatch):
    def boom(*args, **kwargs):
        raise ValueError("bad date")

    monkeypatch.setattr(analytics, "build_analytics", boom)
    r = demo_client.get("/api/analytics")
    assert r.status_code == 500
    assert r.json() == {"message": "Failed to fetch analytics data"}


def test_deleting_student_keeps_payments(demo_client):
    # default policy: children stay behind as orphans
    assert demo_client.delete("/api/students/3").status_code == 204
    r = demo_client.get("/api/payments/student/3")
    assert len(r.json()) == 1
    assert len(demo_client.get("/api/payments").json()) == 10

    fees = demo_client.get("/api/analytics").json()["financial"]["feeCollection"]
    assert fees["unpaid"] == 1000


def test_stats(demo_client):
    stats = demo_client.get("/api/stats").json()
    assert stats["students"]["total"] == 10
    assert stats["employees"] == {"total": 8, "teachers": 1, "others": 7}
    assert stats["classrooms"]["total"] == 5
    assert stats["payments"]["paid"] == 7
    assert stats["payments"]["totalUnpaidAmount"] == 1500


def test_unknown_route_uses_message_envelope(client):
    r = client.get("/api/nothing-here")
    assert r.status_code == 404
    assert "message" in r.json()


def test_restrict_policy_reports_blocking_rows(demo_client, monkeypatch):
    monkeypatch.setattr(crud, "settings", Settings(delete_policy="restrict"))
    r = demo_client.delete("/api/students/3")
    assert r.status_code == 409
    assert r.json() == {"message": "Student is still referenced", "blockedBy": {"attendance": 1, "payments": 1, "results": 5 * 3}}
