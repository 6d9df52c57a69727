# school_admin/formatting.py
from datetime import date, datetime

# (minimum percentage, letter) in descending order
GRADE_BOUNDARIES = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))
PASS_MARK = 60

PERFORMANCE_BANDS = ((85, "excellent"), (70, "good"), (50, "average"))


def percentage(score, total) -> float:
    if not total:
        return 0.0
    return score / total * 100


def grade_for(score, total) -> str:
    """Letter grade for a raw score out of ``total``."""
    pct = percentage(score, total)
    for minimum, letter in GRADE_BOUNDARIES:
        if pct >= minimum:
            return letter
    return "F"


def performance_band(value) -> str:
    for minimum, band in PERFORMANCE_BANDS:
        if value >= minimum:
            return band
    return "poor"


def format_currency(amount, symbol: str = "$") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percentage(value, digits: int = 1) -> str:
    return f"{value:.{digits}f}%"


def format_date(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%d %b %Y")
    return str(value)
