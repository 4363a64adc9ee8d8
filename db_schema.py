# db_schema.py
from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

import aiosqlite

# The tables mirror the snapshot layout: one row per user, the queue with its
# order, and the ban list. Every save rewrites them all in one transaction.
CREATE_SQL_BASE = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS users(
  tg_id INTEGER PRIMARY KEY,
  gender TEXT NOT NULL DEFAULT 'unknown',
  interests TEXT NOT NULL DEFAULT '[]',   -- JSON array of tokens
  partner_id INTEGER,
  premium_girls_until INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS waiting(
  pos INTEGER PRIMARY KEY,
  tg_id INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS banned(
  tg_id INTEGER PRIMARY KEY
);
"""


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)


def _load_interests(raw: Any) -> Any:
    # malformed JSON becomes None so the state loader falls back to no interests
    try:
        return json.loads(raw) if isinstance(raw, str) else None
    except ValueError:
        return None


class SqliteSnapshotStore:
    """Keeps the full state snapshot in a small SQLite file via aiosqlite."""

    def __init__(self, path: str):
        self.path = path

    def db(self) -> aiosqlite.Connection:
        """Use as: `async with store.db() as conn: ...`"""
        return aiosqlite.connect(self.path)

    async def init_db(self) -> None:
        _ensure_parent(self.path)
        async with self.db() as conn:
            await conn.executescript(CREATE_SQL_BASE)
            await conn.commit()

    async def load(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        await self.init_db()
        async with self.db() as conn:
            cur = await conn.execute(
                "SELECT tg_id, gender, interests, partner_id, premium_girls_until FROM users"
            )
            users = {
                str(tg_id): {
                    "gender": gender,
                    "interests": _load_interests(interests),
                    "partnerId": partner_id,
                    "premiumGirlsUntil": until,
                }
                for tg_id, gender, interests, partner_id, until in await cur.fetchall()
            }
            cur = await conn.execute("SELECT tg_id FROM waiting ORDER BY pos ASC")
            waiting = [row[0] for row in await cur.fetchall()]
            cur = await conn.execute("SELECT tg_id FROM banned")
            banned = [row[0] for row in await cur.fetchall()]

        if not users and not waiting and not banned:
            return None
        return {"users": users, "waiting": waiting, "banned": banned}

    async def save(self, snapshot: Dict[str, Any]) -> None:
        await self.init_db()
        users = [
            (
                int(uid),
                u["gender"],
                json.dumps(u["interests"], ensure_ascii=False),
                u["partnerId"],
                u["premiumGirlsUntil"],
            )
            for uid, u in snapshot["users"].items()
        ]
        async with self.db() as conn:
            await conn.execute("DELETE FROM users")
            await conn.execute("DELETE FROM waiting")
            await conn.execute("DELETE FROM banned")
            await conn.executemany(
                "INSERT INTO users(tg_id, gender, interests, partner_id, premium_girls_until) VALUES(?,?,?,?,?)",
                users,
            )
            await conn.executemany(
                "INSERT INTO waiting(pos, tg_id) VALUES(?,?)",
                list(enumerate(snapshot["waiting"])),
            )
            await conn.executemany(
                "INSERT INTO banned(tg_id) VALUES(?)",
                [(uid,) for uid in snapshot["banned"]],
            )
            await conn.commit()

    def __repr__(self) -> str:
        return f"SqliteSnapshotStore({self.path!r})"


__all__ = [
    "CREATE_SQL_BASE",
    "SqliteSnapshotStore",
]
