from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from prismpath.dependencies.auth import user_context
from prismpath.schemas.records import ImportedRoster, RosterUpload
from prismpath.schemas.student import AssignTeacher, StudentCreate, StudentUpdate
from prismpath.services.roster_import import generate_csv_template, import_students, parse_roster_csv
from prismpath.services.student_summarizer import generate_student_summary
from prismpath.utils.access_code import format_access_code
from prismpath.utils.dates import PLAN_DATE_FIELDS, compliance_status, upcoming_deadlines

router = APIRouter()


def with_compliance(student: dict) -> dict:
    return {
        **student,
        "access_code_display": format_access_code(student.get("access_code")),
        "compliance": {field: compliance_status(student.get(field)) for field, _ in PLAN_DATE_FIELDS},
    }


# Get all students visible to the caller
@router.get("/students")
def get_all_students(context=Depends(user_context)):
    service = context["service"]
    return [with_compliance(s) for s in service.get_students_for_user(context["user"])]


# Plan dates coming due across the caller's caseload
@router.get("/deadlines")
def get_deadlines(within_days: int = Query(30, ge=0, le=365), context=Depends(user_context)):
    service = context["service"]
    students = service.get_students_for_user(context["user"])
    return upcoming_deadlines(students, within_days=within_days)


@router.get("/import/template", response_class=PlainTextResponse)
def get_roster_template():
    return PlainTextResponse(
        generate_csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=student_roster_template.csv"},
    )


@router.post("/import", response_model=ImportedRoster)
def import_roster(upload: RosterUpload, context=Depends(user_context)):
    parsed = parse_roster_csv(upload.csv_text)
    if parsed["errors"]:
        return {"imported": [], "errors": parsed["errors"], "warnings": parsed["warnings"]}

    result = import_students(context["service"], parsed["students"], context["user"], school_id=upload.school_id)
    return {**result, "warnings": parsed["warnings"] + result["warnings"]}


# Get single student by id
@router.get("/student/{student_id}")
def get_student_by_id(student_id: str, context=Depends(user_context)):
    return with_compliance(context["service"].get_student(student_id, context["user"]))


# Create student
@router.post("/student", status_code=201)
def create_student(student: StudentCreate, context=Depends(user_context)):
    return context["service"].create_student(student, context["user"])


# Edit student
@router.put("/student/{student_id}")
def update_student(student_id: str, student: StudentUpdate, context=Depends(user_context)):
    return context["service"].update_student(student_id, student.changes(), context["user"])


# Remove student (soft delete)
@router.delete("/student/{student_id}")
def delete_student(student_id: str, context=Depends(user_context)):
    context["service"].remove_student(student_id, context["user"])
    return {"message": "Deleted"}


@router.post("/student/{student_id}/teachers")
def assign_teacher(student_id: str, body: AssignTeacher, context=Depends(user_context)):
    return context["service"].assign_teacher(student_id, body.teacher_id, context["user"])


@router.post("/student/{student_id}/tracking-token")
def create_tracking_token(student_id: str, context=Depends(user_context)):
    token = context["service"].generate_tracking_token(student_id, context["user"])
    return {"tracking_token": token, "tracking_path": f"/public/track/{token}"}


@router.post("/student/{student_id}/access-code")
def regenerate_access_code(student_id: str, context=Depends(user_context)):
    code = context["service"].regenerate_access_code(student_id, context["user"])
    return {"access_code": code, "display": format_access_code(code)}


@router.get("/student/{student_id}/summary")
def get_progress_summary(student_id: str, context=Depends(user_context)):
    service = context["service"]
    user = context["user"]

    student = service.get_student(student_id, user)
    goals = service.get_goals(student_id, user)
    behavior_logs = service.get_behavior_logs(student_id, user)
    progress = [p for goal in goals for p in service.get_goal_progress(student_id, goal["id"], user)]
    progress.sort(key=lambda p: p.get("date") or "", reverse=True)

    return {"summary": generate_student_summary(student, goals, behavior_logs, progress)}
