# school_admin/enums.py
import enum


class Gender(str, enum.Enum):
    male = "male"
    female = "female"


class Section(str, enum.Enum):
    primary = "primary"
    secondary = "secondary"
    highschool = "highschool"


class Role(str, enum.Enum):
    teacher = "teacher"
    driver = "driver"
    cleaner = "cleaner"
    guard = "guard"
    admin = "admin"
    staff = "staff"


class Shift(str, enum.Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"


class PaymentStatus(str, enum.Enum):
    paid = "paid"
    unpaid = "unpaid"
    partial = "partial"
    overdue = "overdue"
    refunded = "refunded"


class Weekday(str, enum.Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"
    sunday = "Sunday"


class Period(str, enum.Enum):
    week = "week"
    month = "month"
    quarter = "quarter"
    year = "year"
    all = "all"


def parse_enum(enum_cls, value, default):
    """Return the member of ``enum_cls`` named by ``value`` or ``default``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default
