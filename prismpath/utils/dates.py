from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from dateutil import parser as date_parser

# (field on the student record, label shown on the dashboard)
PLAN_DATE_FIELDS = [
    ("next_iep_date", "IEP"),
    ("next_eval_date", "Evaluation"),
    ("next_504_date", "504 Plan"),
]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_date(value) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.parse(str(value)).date()
    except (ValueError, OverflowError):
        return None


def compliance_status(date_string, today: Optional[date] = None) -> Dict:
    """
    Classify a plan due date by how close it is.

    Returns a dict with ``status`` (none, overdue, critical, warning, notice,
    compliant), a display ``label`` and ``days_remaining`` (None when there is
    no usable date).
    """
    target = parse_date(date_string)
    if target is None:
        return {"status": "none", "label": "No Date", "days_remaining": None}

    today = today or datetime.now(timezone.utc).date()
    days = (target - today).days

    if days < 0:
        status, label = "overdue", "OVERDUE"
    elif days <= 30:
        status, label = "critical", "< 1 Month"
    elif days <= 90:
        status, label = "warning", "< 3 Months"
    elif days <= 180:
        status, label = "notice", "< 6 Months"
    else:
        status, label = "compliant", "Compliant"

    return {"status": status, "label": label, "days_remaining": days}


def upcoming_deadlines(students: Iterable[Dict], within_days: int = 30, today: Optional[date] = None) -> List[Dict]:
    """List plan dates due within ``within_days`` (overdue included), soonest first."""
    deadlines = []
    for student in students:
        for field, label in PLAN_DATE_FIELDS:
            status = compliance_status(student.get(field), today=today)
            days = status["days_remaining"]
            if days is None or days > within_days:
                continue
            deadlines.append({
                "student_id": student.get("id"),
                "student_name": student.get("name"),
                "plan": label,
                "due_date": student.get(field),
                **status,
            })

    deadlines.sort(key=lambda d: d["days_remaining"])
    return deadlines
