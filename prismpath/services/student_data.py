"""
Remote student data access over Supabase tables.

Each method is a thin pass-through to a PostgREST call. Role-based read
filters arrive as predicates (see ``prismpath.utils.access``) and are turned
into query-builder calls here.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from prismpath.utils.access import Predicate

logger = logging.getLogger(__name__)


class SupabaseStore:
    name = "supabase"

    def __init__(self, supabase):
        self.supabase = supabase

    def ping(self) -> bool:
        self.supabase.table("students").select("id").limit(1).execute()
        return True

    def insert_student(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self.insert_record("students", record)

    def fetch_student(self, student_id: str) -> Optional[Dict[str, Any]]:
        response = self.supabase.table("students").select("*").eq("id", student_id).execute()
        return response.data[0] if response.data else None

    def students_matching(self, predicates: Iterable[Predicate]) -> List[Dict[str, Any]]:
        predicates = list(predicates)
        if not predicates:
            return []

        query = self.supabase.table("students").select("*")
        for op, column, value in predicates:
            if op == "eq":
                query = query.eq(column, value)
            elif op == "contains":
                query = query.contains(column, value)
            else:
                raise ValueError(f"Unsupported predicate operator: {op}")

        return query.order("created_at", desc=True).execute().data

    def patch_student(self, student_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = self.supabase.table("students").update(updates).eq("id", student_id).execute()
        return response.data[0] if response.data else None

    def find_active_student(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        response = self.supabase \
            .table("students") \
            .select("*") \
            .eq(field, value) \
            .eq("is_active", True) \
            .limit(1) \
            .execute()
        return response.data[0] if response.data else None

    def insert_record(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        response = self.supabase.table(table).insert(record).execute()
        if not response.data:
            raise RuntimeError(f"Insert into {table} returned no data")
        return response.data[0]

    def list_records(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = self.supabase.table(table).select("*")
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        query = query.order(order_by, desc=True)
        if limit:
            query = query.limit(limit)
        return query.execute().data

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        response = self.supabase.table("users").select("*").eq("uid", uid).execute()
        return response.data[0] if response.data else None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        response = self.supabase.table("users").select("*").ilike("email", email.strip()).execute()
        return response.data[0] if response.data else None

    def upsert_user(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        response = self.supabase.table("users").upsert(profile, on_conflict="uid").execute()
        return response.data[0] if response.data else profile

    def increment_counter(self, counter: str, key: str) -> int:
        # Read-then-write; concurrent increments may be lost
        current = self.get_counter(counter, key)
        self.supabase.table(counter).upsert({"key": key, "count": current + 1}, on_conflict="key").execute()
        return current + 1

    def get_counter(self, counter: str, key: str) -> int:
        response = self.supabase.table(counter).select("count").eq("key", key).execute()
        return int(response.data[0]["count"]) if response.data else 0

    def get_counters(self, counter: str) -> Dict[str, int]:
        response = self.supabase.table(counter).select("key, count").execute()
        return {row["key"]: int(row["count"]) for row in response.data}
