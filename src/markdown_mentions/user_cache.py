"""Display name cache with optional Parquet persistence

Keeps two views of the directory for the current account:
- known users: username -> display name
- known missing users: usernames the directory answered with HTTP 404

Only known users are persisted, to ``{base_path}/users.parquet``.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Set

import pyarrow as pa
import pyarrow.parquet as pq

logger = logging.getLogger(__name__)


class DisplayNameCache:
    """In-memory username -> display name cache

    Example:
        >>> cache = DisplayNameCache()
        >>> cache.put("foo", "Foo Bidoo")
        >>> cache.get("foo")
        'Foo Bidoo'
        >>> cache.mark_missing("qux")
        >>> cache.is_missing("qux")
        True
    """

    def __init__(self) -> None:
        self.user_cache: Dict[str, str] = {}
        self.no_user_cache: Set[str] = set()

    def get(self, username: str) -> Optional[str]:
        return self.user_cache.get(username)

    def put(self, username: str, display_name: str) -> None:
        """Remember a display name, the first one stored for a username wins"""
        self.user_cache.setdefault(username, display_name)

    def mark_missing(self, username: str) -> None:
        self.no_user_cache.add(username)

    def is_missing(self, username: str) -> bool:
        return username in self.no_user_cache

    def clear(self) -> None:
        self.user_cache.clear()
        self.no_user_cache.clear()

    def __len__(self) -> int:
        return len(self.user_cache)

    @staticmethod
    def users_file(base_path: str) -> Path:
        return Path(base_path) / "users.parquet"

    def load(self, base_path: str) -> int:
        """Merge display names from ``{base_path}/users.parquet`` into the cache

        Args:
            base_path: Cache directory

        Returns:
            Number of users read. 0 if the file is missing or unreadable.
        """
        users_file = self.users_file(base_path)
        if not users_file.exists():
            return 0

        try:
            data = pq.read_table(str(users_file)).to_pydict()
        except Exception as e:
            # A broken cache must not block resolution
            logger.warning(f"Could not read user cache {users_file}: {e}")
            return 0

        user_names = data.get("user_name", [])
        display_names = data.get("display_name", [None] * len(user_names))
        count = 0
        for user_name, display_name in zip(user_names, display_names):
            if user_name and display_name:
                self.put(user_name, display_name)
                count += 1

        logger.debug(f"Loaded {count} users from {users_file}")
        return count

    def save(self, base_path: str) -> Path:
        """Write known users to ``{base_path}/users.parquet``, upserting existing rows

        Args:
            base_path: Cache directory, created if needed

        Returns:
            Path of the written file
        """
        users_file = self.users_file(base_path)

        existing: Dict[str, Dict[str, Optional[str]]] = {}
        if users_file.exists():
            try:
                data = pq.read_table(str(users_file)).to_pylist()
                existing = {row["user_name"]: row for row in data if row.get("user_name")}
            except Exception as e:
                logger.warning(f"Could not load existing user cache {users_file}: {e}")

        cached_at = datetime.now().isoformat()
        for user_name, display_name in self.user_cache.items():
            existing[user_name] = {
                "user_name": user_name,
                "display_name": display_name,
                "cached_at": cached_at,
            }

        schema = pa.schema(
            [
                ("user_name", pa.string()),
                ("display_name", pa.string()),
                ("cached_at", pa.string()),
            ]
        )
        table = pa.Table.from_pylist(list(existing.values()), schema=schema)

        users_file.parent.mkdir(parents=True, exist_ok=True)
        pq.write_table(table, str(users_file))
        logger.debug(f"Saved {len(existing)} users to {users_file}")
        return users_file
