"""
Relational mirror of identity-provider users.

The Supabase `users` table holds a copy of each user's email and
app_metadata keyed by auth0_user_id. It is best-effort: the identity
provider stays the source of truth.
"""

from typing import Any, Optional

from supabase import Client

from .models import MirroredUser

TABLE = "users"


class UserMirrorRepository:
    """Data access for the users mirror table."""

    def __init__(self, db: Client) -> None:
        self._db = db

    def get_by_auth0_id(self, user_id: str) -> Optional[MirroredUser]:
        result = (
            self._db.table(TABLE)
            .select("auth0_user_id, email, app_metadata")
            .eq("auth0_user_id", user_id)
            .execute()
        )
        if not result.data:
            return None
        return MirroredUser.model_validate(result.data[0])

    def get_by_email(self, email: str) -> Optional[MirroredUser]:
        result = (
            self._db.table(TABLE)
            .select("auth0_user_id, email, app_metadata")
            .eq("email", email)
            .execute()
        )
        if not result.data:
            return None
        return MirroredUser.model_validate(result.data[0])

    def insert(self, user_id: str, email: str, app_metadata: dict[str, Any]) -> None:
        self._db.table(TABLE).insert(
            {
                "auth0_user_id": user_id,
                "email": email,
                "app_metadata": app_metadata,
            }
        ).execute()

    def merge_app_metadata(self, user_id: str, patch: dict[str, Any]) -> None:
        """
        Apply a metadata patch the same way the identity provider does.

        None values delete the field. A missing row is left missing; it
        shows up as a mismatch on the next read instead.
        """
        current = self.get_by_auth0_id(user_id)
        if current is None:
            return

        merged = dict(current.app_metadata)
        for key, value in patch.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value

        self._db.table(TABLE).update({"app_metadata": merged}).eq(
            "auth0_user_id", user_id
        ).execute()
