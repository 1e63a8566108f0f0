"""
Unified student service.

Every call goes to the remote Supabase store when it is reachable and falls
back to the mock store otherwise, or when the remote call itself fails.
Reachability is checked at most once per TTL window. Access checks and record
construction happen here, once, for both backends.
"""
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from prismpath.config import get_settings
from prismpath.schemas.auth import UserProfile
from prismpath.schemas.student import StudentCreate
from prismpath.services import audit_log
from prismpath.services.mock_store import MockStore
from prismpath.services.student_data import SupabaseStore
from prismpath.services.supabase import get_supabase_client
from prismpath.utils.access import (
    AccessDeniedError,
    RecordNotFoundError,
    StudentNotFoundError,
    can_assign_teachers,
    can_create_student,
    ensure_can_view,
    visibility_predicates,
)
from prismpath.utils.access_code import generate_access_code, is_valid_access_code_format, normalize_access_code
from prismpath.utils.dates import now_iso
from prismpath.utils.text import generate_strategy_id

logger = logging.getLogger(__name__)

# Fields only changed through dedicated operations (assign, remove, token/code generation)
PROTECTED_FIELDS = {
    "id",
    "created_at",
    "created_by",
    "assigned_teachers",
    "is_sped_student",
    "school_id",
    "is_active",
    "access_code",
    "tracking_token",
}

_health_check_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="backend-health-check")


class BackendAvailability:
    """Memoised "is the remote backend reachable" flag."""

    def __init__(
        self,
        health_check: Optional[Callable[[], Any]],
        ttl: float = 30.0,
        timeout: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.health_check = health_check
        self.ttl = ttl
        self.timeout = timeout
        self.clock = clock
        self._cached: Optional[bool] = None
        self._checked_at = 0.0
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        with self._lock:
            now = self.clock()
            if self._cached is not None and (now - self._checked_at) < self.ttl:
                return self._cached

            self._cached = self._check()
            self._checked_at = now
            return self._cached

    def invalidate(self):
        with self._lock:
            self._cached = None

    def _check(self) -> bool:
        if self.health_check is None:
            return False
        start_time = time.time()
        future = _health_check_executor.submit(self.health_check)
        try:
            future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning(f"Remote backend health check timed out after {self.timeout:.1f}s")
            return False
        except Exception as e:
            logger.warning(f"Remote backend health check failed: {str(e)}")
            return False
        logger.info(f"Remote backend reachable ({time.time() - start_time:.2f}s)")
        return True


class StudentService:
    def __init__(self, remote: Optional[SupabaseStore], mock: MockStore, availability: BackendAvailability):
        self.remote = remote
        self.mock = mock
        self.availability = availability

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def active_store(self):
        if self.remote is not None and self.availability.is_available():
            return self.remote
        return self.mock

    def _dispatch(self, operation: str, fn: Callable[[Any], Any]):
        if self.remote is not None and self.availability.is_available():
            try:
                return fn(self.remote)
            except (AccessDeniedError, RecordNotFoundError):
                raise
            except Exception as e:
                logger.warning(f"Remote {operation} failed, using mock store: {str(e)}")
        return fn(self.mock)

    def _audit(self, user_id: str, action: str, resource_type: str, **kwargs):
        audit_log.log_event(self.active_store(), user_id, action, resource_type, **kwargs)

    def backend_status(self) -> Dict[str, Any]:
        available = self.remote is not None and self.availability.is_available()
        return {
            "backend": "supabase" if available else "mock",
            "remote_configured": self.remote is not None,
            "remote_available": available,
            "cache_ttl_seconds": self.availability.ttl,
        }

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    def create_student(self, data: StudentCreate, user: UserProfile) -> Dict[str, Any]:
        if not can_create_student(user.role):
            raise AccessDeniedError(
                "Unauthorized: Only SPED teachers, admins, and parents can create student records"
            )

        record = data.to_record(user)
        student = self._dispatch("create_student", lambda store: store.insert_student(record))
        logger.info(f"Created student {student['id']} for user {user.uid}")

        self._audit(
            user.uid, "CREATE_STUDENT", "student",
            resource_id=student["id"],
            details={"name": student["name"], "grade": student.get("grade")},
        )
        return student

    def get_students_for_user(self, user: UserProfile) -> List[Dict[str, Any]]:
        predicates = visibility_predicates(user)
        students = self._dispatch("get_students", lambda store: store.students_matching(predicates))

        self._audit(user.uid, "VIEW_STUDENTS_LIST", "students", details={"count": len(students)})
        return students

    def get_student(self, student_id: str, user: UserProfile, audit: bool = True) -> Dict[str, Any]:
        student = self._dispatch("get_student", lambda store: store.fetch_student(student_id))
        if not student or student.get("is_active") is False:
            raise StudentNotFoundError("Student not found")

        ensure_can_view(user, student)

        if audit:
            self._audit(user.uid, "VIEW_STUDENT", "student", resource_id=student_id)
        return student

    def update_student(self, student_id: str, updates: Dict[str, Any], user: UserProfile) -> Dict[str, Any]:
        self.get_student(student_id, user, audit=False)

        blocked = sorted(PROTECTED_FIELDS.intersection(updates))
        if blocked:
            raise ValueError(f"Field(s) cannot be updated directly: {', '.join(blocked)}")

        changes = {**updates, "updated_at": now_iso(), "updated_by": user.uid}
        student = self._patch(student_id, changes, "update_student")

        self._audit(
            user.uid, "UPDATE_STUDENT", "student",
            resource_id=student_id,
            details={"fields": sorted(updates.keys())},
        )
        return student

    def remove_student(self, student_id: str, user: UserProfile) -> bool:
        student = self.get_student(student_id, user, audit=False)
        now = now_iso()
        self._patch(student_id, {
            "is_active": False,
            "removed_at": now,
            "removed_by": user.uid,
            "updated_at": now,
        }, "remove_student")

        self._audit(user.uid, "REMOVE_STUDENT", "student", resource_id=student_id, details={"name": student["name"]})
        return True

    def assign_teacher(self, student_id: str, teacher_id: str, user: UserProfile) -> Dict[str, Any]:
        if not can_assign_teachers(user.role):
            raise AccessDeniedError("Unauthorized: Only admins can assign teachers to students")

        student = self.get_student(student_id, user, audit=False)
        teachers = list(student.get("assigned_teachers") or [])
        if teacher_id not in teachers:
            teachers.append(teacher_id)

        updated = self._patch(student_id, {"assigned_teachers": teachers, "updated_at": now_iso()}, "assign_teacher")
        self._audit(
            user.uid, "ASSIGN_TEACHER", "student",
            resource_id=student_id,
            details={"teacher_id": teacher_id},
        )
        return updated

    def _patch(self, student_id: str, changes: Dict[str, Any], operation: str) -> Dict[str, Any]:
        student = self._dispatch(operation, lambda store: store.patch_student(student_id, changes))
        if not student:
            raise StudentNotFoundError("Student not found")
        return student

    # ------------------------------------------------------------------
    # Child records
    # ------------------------------------------------------------------

    def _save_child(self, table: str, student_id: str, data: Dict[str, Any], user_id: str, **extra) -> Dict[str, Any]:
        now = now_iso()
        record = {
            **data,
            "id": str(uuid.uuid4()),
            "student_id": student_id,
            "created_by": user_id,
            "created_at": now,
            **extra,
        }
        return self._dispatch(f"save_{table}", lambda store: store.insert_record(table, record))

    def _list_children(self, table: str, filters: Dict[str, Any], order_by: str = "created_at"):
        return self._dispatch(f"get_{table}", lambda store: store.list_records(table, filters, order_by=order_by))

    def save_goal(self, student_id: str, goal: Dict[str, Any], user: UserProfile) -> Dict[str, Any]:
        self.get_student(student_id, user, audit=False)
        saved = self._save_child("goals", student_id, goal, user.uid, updated_at=now_iso())

        self._audit(user.uid, "CREATE_GOAL", "goal", resource_id=saved["id"], resource_parent_id=student_id)
        return saved

    def get_goals(self, student_id: str, user: UserProfile) -> List[Dict[str, Any]]:
        self.get_student(student_id, user, audit=False)
        goals = self._list_children("goals", {"student_id": student_id})

        self._audit(user.uid, "VIEW_GOALS", "goals", resource_parent_id=student_id)
        return goals

    def save_behavior_log(self, student_id: str, entry: Dict[str, Any], user: UserProfile) -> Dict[str, Any]:
        self.get_student(student_id, user, audit=False)
        saved = self._save_child("behavior_logs", student_id, entry, user.uid, timestamp=now_iso())

        self._audit(
            user.uid, "CREATE_BEHAVIOR_LOG", "behaviorLog",
            resource_id=saved["id"],
            resource_parent_id=student_id,
        )
        return saved

    def get_behavior_logs(self, student_id: str, user: UserProfile) -> List[Dict[str, Any]]:
        self.get_student(student_id, user, audit=False)
        return self._list_children("behavior_logs", {"student_id": student_id}, order_by="timestamp")

    def save_document(self, student_id: str, document: Dict[str, Any], user: UserProfile) -> Dict[str, Any]:
        self.get_student(student_id, user, audit=False)
        saved = self._save_child("documents", student_id, document, user.uid)

        self._audit(
            user.uid, "CREATE_DOCUMENT", "document",
            resource_id=saved["id"],
            resource_parent_id=student_id,
            details={"filename": document.get("filename")},
        )
        return saved

    def get_documents(self, student_id: str, user: UserProfile) -> List[Dict[str, Any]]:
        self.get_student(student_id, user, audit=False)
        return self._list_children("documents", {"student_id": student_id})

    def save_progress(
        self,
        student_id: str,
        goal_id: str,
        value: float,
        user_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Store a progress data point. Callers must have resolved the student already."""
        goals = self._list_children("goals", {"student_id": student_id, "id": goal_id})
        if not goals:
            raise RecordNotFoundError("Goal not found for this student")

        now = now_iso()
        return self._save_child(
            "progress", student_id, metadata or {}, user_id,
            goal_id=goal_id, value=value, date=now,
        )

    def save_progress_for_user(self, student_id: str, goal_id: str, value: float, user: UserProfile,
                               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.get_student(student_id, user, audit=False)
        return self.save_progress(student_id, goal_id, value, user.uid, metadata)

    def get_goal_progress(self, student_id: str, goal_id: str, user: UserProfile) -> List[Dict[str, Any]]:
        self.get_student(student_id, user, audit=False)
        return self._list_children("progress", {"student_id": student_id, "goal_id": goal_id}, order_by="date")

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def save_504_accommodations(self, student_id: str, accommodations: str, user: UserProfile) -> bool:
        self.get_student(student_id, user, audit=False)
        now = now_iso()
        self._patch(student_id, {
            "accommodations_504": accommodations,
            "accommodations_504_updated_at": now,
            "accommodations_504_updated_by": user.uid,
            "updated_at": now,
        }, "save_504_accommodations")

        self._audit(user.uid, "UPDATE_504_ACCOMMODATIONS", "504plan", resource_id=student_id)
        return True

    def get_504_accommodations(self, student_id: str, user: UserProfile) -> str:
        return self.get_student(student_id, user, audit=False).get("accommodations_504") or ""

    def save_iep_summary(self, student_id: str, summary: str, user: UserProfile) -> bool:
        self.get_student(student_id, user, audit=False)
        now = now_iso()
        self._patch(student_id, {
            "iep_summary": summary,
            "iep_updated_at": now,
            "iep_updated_by": user.uid,
            "updated_at": now,
        }, "save_iep_summary")

        self._audit(user.uid, "UPDATE_IEP_SUMMARY", "iep", resource_id=student_id)
        return True

    def get_iep_summary(self, student_id: str, user: UserProfile) -> str:
        return self.get_student(student_id, user, audit=False).get("iep_summary") or ""

    # ------------------------------------------------------------------
    # Tokens and access codes
    # ------------------------------------------------------------------

    def generate_tracking_token(self, student_id: str, user: UserProfile) -> str:
        self.get_student(student_id, user, audit=False)
        token = str(uuid.uuid4())
        now = now_iso()
        self._patch(student_id, {
            "tracking_token": token,
            "token_generated_at": now,
            "token_generated_by": user.uid,
            "updated_at": now,
        }, "generate_tracking_token")

        self._audit(user.uid, "GENERATE_TRACKING_TOKEN", "student", resource_id=student_id)
        return token

    def get_student_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        return self._dispatch("get_student_by_token", lambda store: store.find_active_student("tracking_token", token))

    def get_tracking_goals(self, token: str) -> Optional[Dict[str, Any]]:
        """Student and goals behind a tracking link, for progress entry without an account."""
        student = self.get_student_by_token(token)
        if not student:
            return None
        goals = self._list_children("goals", {"student_id": student["id"]})
        return {"student": student, "goals": goals}

    def save_progress_by_token(self, token: str, goal_id: str, value: float,
                               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        student = self.get_student_by_token(token)
        if not student:
            raise StudentNotFoundError("Invalid or expired tracking link")
        return self.save_progress(student["id"], goal_id, value, f"tracking:{student['id']}", metadata)

    def get_student_by_access_code(self, code: str) -> Optional[Dict[str, Any]]:
        normalized = normalize_access_code(code)
        if not is_valid_access_code_format(normalized):
            return None
        return self._dispatch(
            "get_student_by_access_code",
            lambda store: store.find_active_student("access_code", normalized),
        )

    def regenerate_access_code(self, student_id: str, user: UserProfile) -> str:
        self.get_student(student_id, user, audit=False)
        code = generate_access_code()
        self._patch(student_id, {"access_code": code, "updated_at": now_iso()}, "regenerate_access_code")

        self._audit(user.uid, "REGENERATE_ACCESS_CODE", "student", resource_id=student_id)
        return code

    # ------------------------------------------------------------------
    # Strategy usage and anonymous AI usage
    # ------------------------------------------------------------------

    def increment_strategy_usage(self, strategy_text: str) -> Dict[str, Any]:
        strategy_id = generate_strategy_id(strategy_text)
        count = self._dispatch(
            "increment_strategy_usage",
            lambda store: store.increment_counter("strategy_usage", strategy_id),
        )
        return {"strategy_id": strategy_id, "count": count}

    def get_strategy_usage(self, strategy_id: str) -> int:
        if not strategy_id:
            return 0
        return self._dispatch("get_strategy_usage", lambda store: store.get_counter("strategy_usage", strategy_id))

    def get_all_strategy_usage(self) -> Dict[str, int]:
        return self._dispatch("get_all_strategy_usage", lambda store: store.get_counters("strategy_usage"))

    def anonymous_ai_uses(self, client_ip: str) -> int:
        return self._dispatch("anonymous_ai_uses", lambda store: store.get_counter("gem_usage", client_ip))

    def record_anonymous_ai_use(self, client_ip: str) -> int:
        return self._dispatch("record_anonymous_ai_use", lambda store: store.increment_counter("gem_usage", client_ip))

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def get_student_audit_logs(self, student_id: str, user: UserProfile) -> List[Dict[str, Any]]:
        return self._dispatch(
            "get_student_audit_logs",
            lambda store: audit_log.get_student_audit_logs(store, student_id, user),
        )

    def get_user_audit_logs(self, target_user_id: str, user: UserProfile) -> List[Dict[str, Any]]:
        return self._dispatch(
            "get_user_audit_logs",
            lambda store: audit_log.get_user_audit_logs(store, target_user_id, user),
        )


def build_student_service(settings=None) -> StudentService:
    settings = settings or get_settings()
    client = get_supabase_client(settings)
    remote = SupabaseStore(client) if client is not None else None

    availability = BackendAvailability(
        health_check=remote.ping if remote is not None else None,
        ttl=settings.backend_check_ttl,
        timeout=settings.backend_check_timeout,
    )
    mock = MockStore(path=settings.mock_store_path)
    logger.info(f"Student service ready (remote configured: {remote is not None})")
    return StudentService(remote=remote, mock=mock, availability=availability)


@lru_cache(maxsize=1)
def get_student_service() -> StudentService:
    return build_student_service()
