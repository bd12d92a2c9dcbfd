"""Database operations for user_profiles."""

from typing import Any, Optional

from app.db.supabase_client import get_supabase

PROFILE_COLUMNS = "id, full_name, role, active, preferences, status_updated_by, status_updated_at"


def get_user_profile(user_id: str) -> Optional[dict[str, Any]]:
    """Get a profile row by auth user id."""
    supabase = get_supabase()
    result = (
        supabase.table("user_profiles")
        .select(PROFILE_COLUMNS)
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def upsert_user_profile(record: dict[str, Any]) -> dict[str, Any]:
    """Insert or update a profile row keyed by id."""
    supabase = get_supabase()
    result = (
        supabase.table("user_profiles")
        .upsert(record, on_conflict="id")
        .execute()
    )
    return result.data[0] if result.data else record
