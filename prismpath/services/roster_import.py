import csv
import io
import logging
from typing import Any, Dict, List, Optional

from prismpath.schemas.auth import UserProfile
from prismpath.schemas.student import StudentCreate
from prismpath.utils.access import AccessDeniedError, can_create_student

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ["Student Name", "Grade", "Diagnosis", "IEP Goals", "Accommodations"]

TEMPLATE_ROW = [
    "Alex Johnson",
    "5",
    "ADHD",
    "Improve focus during independent work; Complete assignments on time",
    "Extended time; Chunking; Movement breaks",
]


def _normalize_header(header: str) -> str:
    return (header or "").strip().lower()


def parse_semicolon_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(";") if item.strip()]


def parse_roster_csv(text: str) -> Dict[str, List[Any]]:
    """
    Parse a roster CSV into student rows.

    Headers are matched case-insensitively. Returns ``{"students", "errors",
    "warnings"}``; any entry in ``errors`` means nothing should be imported.
    """
    result = {"students": [], "errors": [], "warnings": []}

    reader = csv.DictReader(io.StringIO((text or "").lstrip("\ufeff")))
    try:
        fields = [f for f in (reader.fieldnames or []) if f is not None]
    except csv.Error as e:
        result["errors"].append(f"CSV parsing error: {str(e)}")
        return result

    if not fields:
        result["errors"].append("CSV file appears to be empty or has no headers")
        return result

    columns = {_normalize_header(f): f for f in fields}
    missing = [h for h in REQUIRED_HEADERS if _normalize_header(h) not in columns]
    if missing:
        result["errors"].append(f"Missing required columns: {', '.join(missing)}")
        result["errors"].append(f"Required columns: {', '.join(REQUIRED_HEADERS)}")
        return result

    def cell(row, header):
        return (row.get(columns[_normalize_header(header)]) or "").strip()

    try:
        for row_number, row in enumerate(reader, start=2):
            if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
                continue

            name = cell(row, "Student Name")
            if not name:
                result["warnings"].append(f"Row {row_number}: Missing student name, skipping")
                continue

            grade = cell(row, "Grade")
            diagnosis = cell(row, "Diagnosis")
            if not grade:
                result["warnings"].append(f"Row {row_number}: Missing grade for {name}")
            if not diagnosis:
                result["warnings"].append(f"Row {row_number}: Missing diagnosis for {name}")

            result["students"].append({
                "name": name,
                "grade": grade,
                "diagnosis": diagnosis,
                "iep_goals": parse_semicolon_list(cell(row, "IEP Goals")),
                "accommodations": parse_semicolon_list(cell(row, "Accommodations")),
            })
    except csv.Error as e:
        result["errors"].append(f"CSV parsing error: {str(e)}")
        return result

    if not result["students"]:
        result["errors"].append("No valid student records found in CSV file")

    return result


def generate_csv_template() -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(REQUIRED_HEADERS)
    writer.writerow(TEMPLATE_ROW)
    return buffer.getvalue()


def import_students(
    service,
    rows: List[Dict[str, Any]],
    user: UserProfile,
    school_id: Optional[str] = None,
) -> Dict[str, List[Any]]:
    """
    Create each parsed row as a student, with one goal per IEP goal.

    A row whose student cannot be created is reported in ``errors`` and skipped.
    Once the student exists it counts as imported; goals that fail to save are
    reported in ``warnings``.
    """
    if not can_create_student(user.role):
        raise AccessDeniedError("Unauthorized: Only SPED teachers, admins, and parents can create student records")

    imported, errors, warnings = [], [], []

    for row in rows:
        try:
            student = service.create_student(
                StudentCreate(
                    name=row["name"],
                    grade=row.get("grade") or "",
                    diagnosis=row.get("diagnosis") or None,
                    accommodations=row.get("accommodations") or [],
                    school_id=school_id,
                ),
                user,
            )
        except Exception as e:
            logger.warning(f"Failed to import {row.get('name')}: {str(e)}")
            errors.append(f"Failed to import {row.get('name')}: {str(e)}")
            continue

        imported.append(student)
        for goal in row.get("iep_goals") or []:
            try:
                service.save_goal(student["id"], {"title": goal, "source": "roster_import"}, user)
            except Exception as e:
                logger.warning(f"Failed to add goal for {student['name']}: {str(e)}")
                warnings.append(f"Imported {student['name']} without goal '{goal}': {str(e)}")

    logger.info(f"Imported {len(imported)} of {len(rows)} roster rows for user {user.uid}")
    return {"imported": imported, "errors": errors, "warnings": warnings}
