# school_admin/analytics.py
"""Reporting aggregation over a snapshot of the record store.

Everything here is a pure function of its inputs: the route handler loads a
snapshot (see ``crud.load_snapshot``) and passes it in together with the
requested filters. Rows only need the attributes the models expose, so plain
objects work as well as ORM instances.

Policies:

* period windows are relative to ``now``; a record is kept when its date is
  on or after the cutoff. Undated records are dropped from every windowed
  view and kept only for ``period=all``.
* the section filter selects students; attendance, payments and results
  follow through their ``student_id``. Rows whose student (or, for results,
  exam) cannot be resolved never contribute to a total.
* means over empty groups are 0.
* trend series are never padded; ``insufficientData`` tells the consumer the
  series is shorter than the minimum sample size.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from school_admin.enums import (
    AttendanceStatus, Gender, PaymentStatus, Period, Role, Section, Shift, parse_enum,
)
from school_admin.formatting import PASS_MARK, grade_for, percentage, performance_band

LOG = logging.getLogger(__name__)

PERIOD_WINDOWS = {
    Period.week: timedelta(days=7),
    Period.month: timedelta(days=30),
    Period.quarter: timedelta(days=90),
    Period.year: timedelta(days=365),
    Period.all: None,
}

TOP_N = 5
MIN_TREND_DAYS = 7
MIN_SERIES_POINTS = 3
GRADES = ("A", "B", "C", "D", "F")


def _exhaustive(table, enum_cls):
    missing = set(enum_cls) - set(table)
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} table missing {sorted(m.value for m in missing)}")
    return table


# amount still owed on a payment, by status
PENDING_AMOUNT = _exhaustive({
    PaymentStatus.paid: lambda p: 0,
    PaymentStatus.unpaid: lambda p: p.amount,
    PaymentStatus.partial: lambda p: max(p.amount - (p.paid_amount or 0), 0),
    PaymentStatus.overdue: lambda p: p.amount,
    PaymentStatus.refunded: lambda p: 0,
}, PaymentStatus)

# amount actually received on a payment, by status
COLLECTED_AMOUNT = _exhaustive({
    PaymentStatus.paid: lambda p: p.amount,
    PaymentStatus.unpaid: lambda p: 0,
    PaymentStatus.partial: lambda p: min(p.paid_amount or 0, p.amount),
    PaymentStatus.overdue: lambda p: 0,
    PaymentStatus.refunded: lambda p: 0,
}, PaymentStatus)

_exhaustive(PERIOD_WINDOWS, Period)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------- helpers ----------
def mean(values) -> float:
    values = list(values)
    if not values:
        return 0
    return round(sum(values) / len(values), 2)


def rate(part, whole) -> float:
    if not whole:
        return 0
    return round(part / whole * 100, 2)


def top_n(rows, metric, id_key, n=TOP_N):
    """Highest ``metric`` first, ties broken by ascending id."""
    return sorted(rows, key=lambda r: (-r[metric], r[id_key]))[:n]


def as_datetime(value):
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise TypeError(f"unsupported date value {value!r}")


def within_window(value, cutoff) -> bool:
    if cutoff is None:
        return True
    value = as_datetime(value)
    if value is None:
        return False
    return value >= cutoff


def display_name(person) -> str:
    name = getattr(person, "full_name", None)
    if name:
        return name
    return " ".join(p for p in (person.first_name, person.last_name) if p)


def _value(member):
    return member.value if member is not None else None


# ---------- filters ----------
def resolve_filters(period=None, section=None, category=None):
    """Map raw query values to (Period, Section or None).

    Unknown values mean "all". ``category`` is read as a section only when
    ``section`` is not given.
    """
    resolved_period = parse_enum(Period, period, Period.all)
    raw_section = section if section is not None else category
    resolved_section = parse_enum(Section, raw_section, None)
    return resolved_period, resolved_section


def window_start(period: Period, now: datetime):
    span = PERIOD_WINDOWS[period]
    return None if span is None else now - span


@dataclass
class FilteredView:
    students: list
    attendance: list
    payments: list
    exams: dict
    results: list
    section: Section = None

    def __post_init__(self):
        self.students_by_id = {s.id: s for s in self.students}

    def section_of(self, student_id):
        return parse_enum(Section, self.students_by_id[student_id].section, None)


def apply_filters(snapshot, period: Period = Period.all, section: Section = None, now: datetime = None) -> FilteredView:
    cutoff = window_start(period, now or utcnow())
    students = [
        s for s in snapshot.students
        if section is None or parse_enum(Section, s.section, None) is section
    ]
    ids = {s.id for s in students}
    exams = {e.id: e for e in snapshot.exams if within_window(e.date, cutoff)}
    return FilteredView(
        students=students,
        attendance=[a for a in snapshot.attendance if a.student_id in ids and within_window(a.date, cutoff)],
        payments=[p for p in snapshot.payments if p.student_id in ids and within_window(p.date, cutoff)],
        exams=exams,
        results=[r for r in snapshot.results if r.student_id in ids and r.exam_id in exams],
        section=section,
    )


# ---------- sub-reports ----------
def demographics_report(view: FilteredView) -> dict:
    genders = {g.value: 0 for g in Gender}
    sections = {s.value: 0 for s in Section}
    classes = defaultdict(int)
    for student in view.students:
        gender = parse_enum(Gender, student.gender, None)
        if gender is not None:
            genders[gender.value] += 1
        section = parse_enum(Section, student.section, None)
        if section is not None:
            sections[section.value] += 1
        classes[student.class_name] += 1
    return {
        "totalStudents": len(view.students),
        "genderDistribution": genders,
        "sectionDistribution": sections,
        "classDistribution": dict(sorted(classes.items())),
    }


def _status_counts():
    return {s.value: 0 for s in AttendanceStatus}


def attendance_report(view: FilteredView) -> dict:
    overall = _status_counts()
    by_section = {s.value: _status_counts() for s in Section}
    by_day = defaultdict(_status_counts)
    absences = defaultdict(int)

    for record in view.attendance:
        status = parse_enum(AttendanceStatus, record.status, None)
        if status is None:
            continue
        overall[status.value] += 1
        section = view.section_of(record.student_id)
        if section is not None:
            by_section[section.value][status.value] += 1
        day = as_datetime(record.date)
        if day is not None:
            by_day[day.date().isoformat()][status.value] += 1
        if status is AttendanceStatus.absent:
            absences[record.student_id] += 1

    for counts in by_section.values():
        counts["rate"] = rate(counts["present"], sum(counts[s.value] for s in AttendanceStatus))

    days = sorted(by_day)[-MIN_TREND_DAYS:]
    series = []
    for day in days:
        counts = by_day[day]
        series.append({
            "date": day,
            **counts,
            "rate": rate(counts["present"], sum(counts.values())),
        })

    absentees = []
    for student_id, count in absences.items():
        student = view.students_by_id[student_id]
        absentees.append({
            "studentId": student_id,
            "name": display_name(student),
            "section": _value(view.section_of(student_id)),
            "absences": count,
        })

    return {
        "overall": overall,
        "attendanceRate": rate(overall["present"], len(view.attendance)),
        "bySection": by_section,
        "trends": {
            "series": series,
            "insufficientData": len(series) < MIN_TREND_DAYS,
        },
        "topAbsentees": top_n(absentees, "absences", "studentId"),
    }


def academic_report(view: FilteredView) -> dict:
    scores = []
    by_section = defaultdict(list)
    by_subject = defaultdict(list)
    by_month = defaultdict(list)
    by_student = defaultdict(list)
    grades = {g: 0 for g in GRADES}

    for result in view.results:
        pct = percentage(result.score, result.total)
        scores.append(pct)
        section = view.section_of(result.student_id)
        if section is not None:
            by_section[section.value].append(pct)
        by_subject[result.subject].append(pct)
        by_student[result.student_id].append(pct)
        grades[grade_for(result.score, result.total)] += 1
        exam_date = as_datetime(view.exams[result.exam_id].date)
        if exam_date is not None:
            by_month[exam_date.strftime("%Y-%m")].append(pct)

    subjects = [
        {
            "subject": subject,
            "average": mean(values),
            "highest": round(max(values), 2),
            "lowest": round(min(values), 2),
            "count": len(values),
        }
        for subject, values in sorted(by_subject.items())
    ]
    terms = [
        {"term": month, "averageScore": mean(values)}
        for month, values in sorted(by_month.items())
    ]
    performers = []
    for student_id, values in by_student.items():
        average = mean(values)
        performers.append({
            "studentId": student_id,
            "name": display_name(view.students_by_id[student_id]),
            "section": _value(view.section_of(student_id)),
            "averageScore": average,
            "band": performance_band(average),
        })

    return {
        "averageScores": {
            "overall": mean(scores),
            "bySection": {s.value: mean(by_section[s.value]) for s in Section},
        },
        "passRate": rate(sum(1 for s in scores if s >= PASS_MARK), len(scores)),
        "gradeDistribution": grades,
        "subjectPerformance": subjects,
        "performanceTrends": {
            "series": terms,
            "insufficientData": len(terms) < MIN_SERIES_POINTS,
        },
        "topPerformers": top_n(performers, "averageScore", "studentId"),
    }


def financial_report(view: FilteredView) -> dict:
    fees = {s.value: 0 for s in PaymentStatus}
    total = collected = outstanding = 0
    by_section = {s.value: 0 for s in Section}
    by_month = defaultdict(int)
    pending_by_student = defaultdict(int)

    for payment in view.payments:
        status = parse_enum(PaymentStatus, payment.status, None)
        if status is None:
            continue
        fees[status.value] += payment.amount
        total += payment.amount
        received = COLLECTED_AMOUNT[status](payment)
        pending = PENDING_AMOUNT[status](payment)
        collected += received
        outstanding += pending
        section = view.section_of(payment.student_id)
        if section is not None:
            by_section[section.value] += payment.amount
        paid_on = as_datetime(payment.date)
        if paid_on is not None and received:
            by_month[paid_on.strftime("%Y-%m")] += received
        if pending:
            pending_by_student[payment.student_id] += pending

    months = [{"month": m, "amount": amount} for m, amount in sorted(by_month.items())]
    pending_rows = [
        {
            "studentId": student_id,
            "name": display_name(view.students_by_id[student_id]),
            "section": _value(view.section_of(student_id)),
            "pendingAmount": amount,
        }
        for student_id, amount in pending_by_student.items()
    ]

    return {
        "feeCollection": {
            "total": total,
            **fees,
            "collected": collected,
            "outstanding": outstanding,
        },
        "collectionRate": rate(collected, total),
        "collectionBySection": by_section,
        "monthlyCollection": {
            "series": months,
            "insufficientData": len(months) < MIN_SERIES_POINTS,
        },
        "pendingPayments": top_n(pending_rows, "pendingAmount", "studentId"),
    }


def teacher_performance_report(view: FilteredView, employees, classrooms) -> dict:
    teachers = []
    for employee in employees:
        if parse_enum(Role, employee.role, None) is not Role.teacher:
            continue
        section = parse_enum(Section, employee.section, None)
        if view.section is not None and section is not view.section:
            continue
        teachers.append(employee)

    shifts = {s.value: 0 for s in Shift}
    shifts["unassigned"] = 0
    rooms = defaultdict(int)
    for room in classrooms:
        if room.teacher_id is not None:
            rooms[room.teacher_id] += 1

    rows = []
    for teacher in teachers:
        shift = parse_enum(Shift, teacher.shift, None)
        shifts[shift.value if shift else "unassigned"] += 1
        subjects = {s.lower() for s in (teacher.subjects or [])}
        section = parse_enum(Section, teacher.section, None)
        scores = [
            percentage(r.score, r.total)
            for r in view.results
            if r.subject.lower() in subjects
            and (section is None or view.section_of(r.student_id) is section)
        ]
        if not scores:
            continue
        average = mean(scores)
        rows.append({
            "employeeId": teacher.id,
            "name": display_name(teacher),
            "section": _value(section),
            "subjects": list(teacher.subjects or []),
            "classrooms": rooms[teacher.id],
            "averageScore": average,
            "resultCount": len(scores),
            "band": performance_band(average),
        })

    return {
        "totalTeachers": len(teachers),
        "studentTeacherRatio": round(len(view.students) / len(teachers), 2) if teachers else 0,
        "byShift": shifts,
        "topTeachers": top_n(rows, "averageScore", "employeeId"),
    }


def build_analytics(snapshot, period=None, section=None, category=None, now: datetime = None) -> dict:
    """Compute the full analytics object for the requested filters."""
    now = now or utcnow()
    resolved_period, resolved_section = resolve_filters(period, section, category)
    view = apply_filters(snapshot, resolved_period, resolved_section, now)
    LOG.debug(
        "analytics period=%s section=%s students=%d attendance=%d payments=%d results=%d",
        resolved_period.value, _value(resolved_section) or "all", len(view.students),
        len(view.attendance), len(view.payments), len(view.results),
    )
    return {
        "filters": {
            "period": resolved_period.value,
            "section": _value(resolved_section) or "all",
            "generatedAt": now.isoformat(),
        },
        "demographics": demographics_report(view),
        "attendance": attendance_report(view),
        "academic": academic_report(view),
        "financial": financial_report(view),
        "teacherPerformance": teacher_performance_report(view, snapshot.employees, snapshot.classrooms),
    }


# ---------- dashboard counts ----------
def build_stats(snapshot) -> dict:
    """Unfiltered counts for the dashboard cards."""
    students = {"total": len(snapshot.students), **{g.value: 0 for g in Gender}, **{s.value: 0 for s in Section}}
    for student in snapshot.students:
        gender = parse_enum(Gender, student.gender, None)
        section = parse_enum(Section, student.section, None)
        if gender is not None:
            students[gender.value] += 1
        if section is not None:
            students[section.value] += 1

    teachers = sum(1 for e in snapshot.employees if parse_enum(Role, e.role, None) is Role.teacher)

    attendance = _status_counts()
    for record in snapshot.attendance:
        status = parse_enum(AttendanceStatus, record.status, None)
        if status is not None:
            attendance[status.value] += 1

    payments = {s.value: 0 for s in PaymentStatus}
    paid_amount = unpaid_amount = 0
    for payment in snapshot.payments:
        status = parse_enum(PaymentStatus, payment.status, None)
        if status is None:
            continue
        payments[status.value] += 1
        paid_amount += COLLECTED_AMOUNT[status](payment)
        unpaid_amount += PENDING_AMOUNT[status](payment)
    payments["totalPaidAmount"] = paid_amount
    payments["totalUnpaidAmount"] = unpaid_amount

    scores_by_exam = defaultdict(list)
    for result in snapshot.results:
        scores_by_exam[result.exam_id].append(percentage(result.score, result.total))
    exams = []
    for exam in snapshot.exams:
        scores = scores_by_exam.get(exam.id, [])
        exams.append({
            "examId": exam.id,
            "name": exam.name,
            "avgScore": mean(scores),
            "passRate": rate(sum(1 for s in scores if s >= PASS_MARK), len(scores)),
        })
    all_scores = [s for scores in scores_by_exam.values() for s in scores]

    return {
        "students": students,
        "employees": {
            "total": len(snapshot.employees),
            "teachers": teachers,
            "others": len(snapshot.employees) - teachers,
        },
        "classrooms": {
            "total": len(snapshot.classrooms),
            "sections": len({_value(parse_enum(Section, c.section, None)) for c in snapshot.classrooms}),
        },
        "attendance": attendance,
        "payments": payments,
        "academics": {
            "averageScore": mean(all_scores),
            "totalExams": len(snapshot.exams),
            "totalResults": len(snapshot.results),
            "examPerformance": exams,
        },
        "overview": {
            "studentTeacherRatio": round(len(snapshot.students) / teachers, 2) if teachers else 0,
            "attendanceRate": rate(attendance["present"], len(snapshot.attendance)),
            "paymentCompletionRate": rate(payments["paid"], len(snapshot.payments)),
        },
    }
