"""
Role-based visibility rules for student records.

The same rules run in two places: as query predicates against the remote
store, and as in-process checks against single records or mock-store rows.
A predicate is an ``(op, column, value)`` tuple where ``op`` is one of
``eq`` or ``contains``.
"""
from typing import Any, Dict, Iterable, List, Tuple

from prismpath.schemas.auth import Role, UserProfile

Predicate = Tuple[str, str, Any]

CREATE_ROLES = {Role.ADMIN.value, Role.SPED.value, Role.PARENT.value}
ASSIGN_ROLES = {Role.ADMIN.value}
STUDENT_AUDIT_ROLES = {Role.ADMIN.value, Role.SPED.value}
USER_AUDIT_ROLES = {Role.ADMIN.value}


class AccessDeniedError(PermissionError):
    pass


class RecordNotFoundError(LookupError):
    pass


class StudentNotFoundError(RecordNotFoundError):
    pass


def visibility_predicates(user: UserProfile) -> List[Predicate]:
    """Predicates selecting the students ``user`` may list. An empty list means no rows."""
    active = ("eq", "is_active", True)

    if user.role == Role.ADMIN.value:
        if user.school_id:
            return [active, ("eq", "school_id", user.school_id)]
        return [active]
    if user.role == Role.SPED.value:
        return [active, ("eq", "is_sped_student", True)]
    if user.role == Role.PARENT.value:
        return [active, ("eq", "parent_id", user.uid)]
    if user.role == Role.REGULAR_ED.value:
        return [active, ("contains", "assigned_teachers", [user.uid])]
    return []


def matches(record: Dict[str, Any], predicates: Iterable[Predicate]) -> bool:
    for op, column, value in predicates:
        current = record.get(column)
        if op == "eq":
            if current != value:
                return False
        elif op == "contains":
            if not isinstance(current, list) or not all(v in current for v in value):
                return False
        else:
            raise ValueError(f"Unsupported predicate operator: {op}")
    return True


def can_view_student(user: UserProfile, student: Dict[str, Any]) -> bool:
    if not user or not student or student.get("is_active") is False:
        return False

    if user.role == Role.ADMIN.value:
        return not user.school_id or user.school_id == student.get("school_id")
    if user.role == Role.SPED.value and student.get("is_sped_student"):
        return True
    if user.uid in (student.get("assigned_teachers") or []):
        return True
    if user.role == Role.PARENT.value and student.get("parent_id") == user.uid:
        return True
    return False


def can_create_student(role: str) -> bool:
    return role in CREATE_ROLES


def can_assign_teachers(role: str) -> bool:
    return role in ASSIGN_ROLES


def ensure_can_view(user: UserProfile, student: Dict[str, Any]) -> None:
    if not can_view_student(user, student):
        raise AccessDeniedError("Unauthorized: You do not have access to this student")
