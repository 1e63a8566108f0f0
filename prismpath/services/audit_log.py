import logging
import uuid
from typing import Any, Dict, List, Optional

from prismpath.schemas.auth import UserProfile
from prismpath.utils.access import STUDENT_AUDIT_ROLES, USER_AUDIT_ROLES, AccessDeniedError
from prismpath.utils.dates import now_iso

logger = logging.getLogger(__name__)

AUDIT_TABLE = "audit_logs"
MAX_AUDIT_ROWS = 100


def log_event(
    store,
    user_id: str,
    action: str,
    resource_type: str,
    resource_id: str = "",
    resource_parent_id: str = "",
    details: Optional[Dict[str, Any]] = None,
    ip_address: str = "",
    user_agent: str = "",
) -> None:
    """Record an access/modification event. Failures are logged, never raised."""
    event = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id or "",
        "resource_parent_id": resource_parent_id or "",
        "details": details or {},
        "ip_address": ip_address,
        "user_agent": user_agent,
        "timestamp": now_iso(),
    }
    try:
        store.insert_record(AUDIT_TABLE, event)
    except Exception as e:
        logger.error(f"Error logging audit event {action} for {resource_type} {resource_id}: {str(e)}")


def get_student_audit_logs(store, student_id: str, user: UserProfile) -> List[Dict[str, Any]]:
    if user.role not in STUDENT_AUDIT_ROLES:
        raise AccessDeniedError("Unauthorized: Only admins and SPED teachers can view audit logs")

    by_parent = store.list_records(AUDIT_TABLE, {"resource_parent_id": student_id}, order_by="timestamp")
    by_resource = store.list_records(AUDIT_TABLE, {"resource_id": student_id}, order_by="timestamp")

    events = {e["id"]: e for e in by_parent + by_resource}.values()
    return sorted(events, key=lambda e: e.get("timestamp") or "", reverse=True)[:MAX_AUDIT_ROWS]


def get_user_audit_logs(store, target_user_id: str, user: UserProfile) -> List[Dict[str, Any]]:
    if user.role not in USER_AUDIT_ROLES:
        raise AccessDeniedError("Unauthorized: Only admins can view user audit logs")

    return store.list_records(AUDIT_TABLE, {"user_id": target_user_id}, order_by="timestamp", limit=MAX_AUDIT_ROWS)
