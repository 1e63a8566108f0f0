"""
In-memory stand-in for the remote document store.

Used whenever the remote backend is unreachable (offline/demo mode). Exposes
the same surface as ``SupabaseStore`` so the service shim can swap one for
the other. When a path is given, the whole store is mirrored to a JSON file
after every write.
"""
import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from prismpath.utils.access import Predicate, matches
from prismpath.utils.dates import now_iso

logger = logging.getLogger(__name__)

TABLES = [
    "schools",
    "users",
    "students",
    "goals",
    "behavior_logs",
    "documents",
    "progress",
    "audit_logs",
]
COUNTERS = ["strategy_usage", "gem_usage"]


class MockStore:
    name = "mock"

    def __init__(self, path: Optional[str] = None, seed: bool = True):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._tables: Dict[str, List[Dict[str, Any]]] = {t: [] for t in TABLES}
        self._counters: Dict[str, Dict[str, int]] = {c: {} for c in COUNTERS}
        self._load()
        if seed:
            self.seed_demo_data()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self):
        if not self.path or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read mock store at {self.path}, starting empty: {e}")
            return

        for table in TABLES:
            self._tables[table] = list(data.get("tables", {}).get(table, []))
        for counter in COUNTERS:
            self._counters[counter] = dict(data.get("counters", {}).get(counter, {}))
        logger.info(f"Loaded mock store from {self.path}")

    def _persist(self):
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps({"tables": self._tables, "counters": self._counters}, default=str),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"Failed to persist mock store to {self.path}: {e}")

    def clear(self):
        with self._lock:
            self._tables = {t: [] for t in TABLES}
            self._counters = {c: {} for c in COUNTERS}
            self._persist()

    def seed_demo_data(self):
        with self._lock:
            if self._tables["schools"]:
                return
            now = now_iso()
            self._tables["schools"].append({"id": "school-1", "name": "Demo School", "admin_ids": ["admin-1"]})
            self._tables["users"].extend([
                {
                    "uid": "admin-1", "role": "admin", "school_id": "school-1", "school": "Demo School",
                    "name": "Admin User", "email": "admin@demo.school",
                    "is_active": True, "created_at": now, "last_login": now,
                },
                {
                    "uid": "teacher-1", "role": "regular_ed", "school_id": "school-1", "school": "Demo School",
                    "name": "Jane Teacher", "email": "teacher@demo.school",
                    "is_active": True, "created_at": now, "last_login": now,
                },
                {
                    "uid": "sped-1", "role": "sped", "school_id": "school-1", "school": "Demo School",
                    "name": "Sam Specialist", "email": "sped@demo.school",
                    "is_active": True, "created_at": now, "last_login": now,
                },
            ])
            self._tables["students"].append({
                "id": "student-1",
                "name": "Alex",
                "grade": "5",
                "primary_need": "ADHD",
                "next_iep_date": "",
                "next_eval_date": "",
                "next_504_date": "",
                "has_iep": False,
                "has_504": False,
                "accommodations": ["Extended time", "Chunking", "Movement breaks"],
                "learner_profile": None,
                "created_by": "admin-1",
                "assigned_teachers": ["teacher-1"],
                "is_sped_student": False,
                "school_id": "school-1",
                "parent_id": "",
                "access_code": "ALX234",
                "tracking_token": None,
                "accommodations_504": "",
                "iep_summary": "",
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            })
            self._persist()

    # ------------------------------------------------------------------
    # Store surface (mirrors SupabaseStore)
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        return True

    def insert_student(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self.insert_record("students", record)

    def fetch_student(self, student_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for student in self._tables["students"]:
                if student.get("id") == student_id:
                    return copy.deepcopy(student)
        return None

    def students_matching(self, predicates: Iterable[Predicate]) -> List[Dict[str, Any]]:
        predicates = list(predicates)
        if not predicates:
            return []
        with self._lock:
            rows = [copy.deepcopy(s) for s in self._tables["students"] if matches(s, predicates)]
        rows.sort(key=lambda s: s.get("created_at") or "", reverse=True)
        return rows

    def patch_student(self, student_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            for index, student in enumerate(self._tables["students"]):
                if student.get("id") == student_id:
                    merged = {**student, **updates, "id": student_id}
                    self._tables["students"][index] = merged
                    self._persist()
                    return copy.deepcopy(merged)
        return None

    def find_active_student(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            for student in self._tables["students"]:
                if student.get(field) == value and student.get("is_active") is not False:
                    return copy.deepcopy(student)
        return None

    def insert_record(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            stored = copy.deepcopy(record)
            self._tables[table].append(stored)
            self._persist()
            return copy.deepcopy(stored)

    def list_records(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        filters = filters or {}
        with self._lock:
            rows = [
                copy.deepcopy(r) for r in self._tables[table]
                if all(r.get(k) == v for k, v in filters.items())
            ]
        rows.sort(key=lambda r: r.get(order_by) or "", reverse=True)
        return rows[:limit] if limit else rows

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for user in self._tables["users"]:
                if user.get("uid") == uid:
                    return copy.deepcopy(user)
        return None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        email = (email or "").strip().lower()
        with self._lock:
            for user in self._tables["users"]:
                if (user.get("email") or "").lower() == email:
                    return copy.deepcopy(user)
        return None

    def upsert_user(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            users = self._tables["users"]
            for index, user in enumerate(users):
                if user.get("uid") == profile["uid"]:
                    users[index] = {**user, **profile}
                    self._persist()
                    return copy.deepcopy(users[index])

            users.append(copy.deepcopy(profile))
            if profile.get("role") == "admin" and profile.get("school_id"):
                for school in self._tables["schools"]:
                    if school["id"] == profile["school_id"] and profile["uid"] not in school["admin_ids"]:
                        school["admin_ids"].append(profile["uid"])
            self._persist()
            return copy.deepcopy(profile)

    def increment_counter(self, counter: str, key: str) -> int:
        with self._lock:
            values = self._counters[counter]
            values[key] = values.get(key, 0) + 1
            self._persist()
            return values[key]

    def get_counter(self, counter: str, key: str) -> int:
        with self._lock:
            return self._counters[counter].get(key, 0)

    def get_counters(self, counter: str) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters[counter])

