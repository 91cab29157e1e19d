"""Directory of catalog users who authorized publishing for a source key."""

import logging

from ddex_ingest.util import lower_ascii
from schemas.rows import UserRow

from .database import Database, utc_now

logger = logging.getLogger(__name__)


class UserRepo:
    def __init__(self, db: Database):
        self.db = db

    def upsert(self, user: UserRow) -> None:
        self.db.execute(
            """
            INSERT INTO users (api_key, id, handle, name, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (api_key, id) DO UPDATE SET
                handle = excluded.handle,
                name = excluded.name
            """,
            (user.api_key, user.id, user.handle, user.name, user.created_at or utc_now()),
        )

    def all(self, api_key: str | None = None) -> list[UserRow]:
        if api_key is None:
            rows = self.db.query("SELECT * FROM users ORDER BY created_at")
        else:
            rows = self.db.query(
                "SELECT * FROM users WHERE api_key = ? ORDER BY created_at", (api_key,)
            )
        return [UserRow(**dict(row)) for row in rows]

    def find_by_id(self, user_id: str) -> UserRow | None:
        row = self.db.query_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return UserRow(**dict(row)) if row else None

    def match(self, api_key: str, names: list[str]) -> str | None:
        """Find the user whose name or handle matches one of the artist names.

        Names are compared lowercased with punctuation and spaces removed.
        Only users who authorized api_key are considered.

        Args:
            api_key: Authorization key of the delivering source
            names: Artist display names from the release

        Returns:
            Matching user id, or None
        """
        wanted = {lower_ascii(name) for name in names} - {""}
        if not wanted:
            return None

        for user in self.all(api_key):
            if lower_ascii(user.name) in wanted or lower_ascii(user.handle) in wanted:
                logger.debug(f"Matched artist to user {user.id} ({user.handle})")
                return user.id
        return None
