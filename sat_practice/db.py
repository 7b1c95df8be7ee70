from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from sat_practice.models import ParsedQuestion, PromptRecord, QuestionCategory

SCHEMA = """
CREATE TABLE IF NOT EXISTS prompts (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    content TEXT NOT NULL,
    is_default INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS admin_users (
    user_id TEXT PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS responses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    question_type TEXT NOT NULL,
    passage TEXT,
    questions TEXT NOT NULL,
    user_id TEXT,
    created_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _prompt_from_row(row: sqlite3.Row) -> PromptRecord:
    return PromptRecord(
        id=row["id"],
        type=QuestionCategory(row["type"]),
        content=row["content"],
        is_default=bool(row["is_default"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Prompts ───────────────────────────────────────────────────────────

    def insert_prompt(
        self, category: QuestionCategory, content: str, is_default: bool = False
    ) -> PromptRecord:
        now = _now()
        prompt_id = str(uuid.uuid4())
        self.conn.execute(
            "INSERT INTO prompts (id, type, content, is_default, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (prompt_id, QuestionCategory(category).value, content, int(is_default), now, now),
        )
        self.conn.commit()
        return PromptRecord(prompt_id, QuestionCategory(category), content, is_default, now, now)

    def get_prompt(self, category: QuestionCategory) -> PromptRecord | None:
        """Prompt for *category*; custom rows win over seeded defaults, newest first."""
        row = self.conn.execute(
            "SELECT * FROM prompts WHERE type = ? "
            "ORDER BY is_default ASC, updated_at DESC LIMIT 1",
            (QuestionCategory(category).value,),
        ).fetchone()
        return _prompt_from_row(row) if row else None

    def get_prompt_by_id(self, prompt_id: str) -> PromptRecord | None:
        row = self.conn.execute(
            "SELECT * FROM prompts WHERE id = ?", (prompt_id,)
        ).fetchone()
        return _prompt_from_row(row) if row else None

    def list_prompts(self) -> list[PromptRecord]:
        rows = self.conn.execute(
            "SELECT * FROM prompts ORDER BY type, created_at"
        ).fetchall()
        return [_prompt_from_row(r) for r in rows]

    def update_prompt(self, prompt_id: str, content: str) -> PromptRecord | None:
        cur = self.conn.execute(
            "UPDATE prompts SET content = ?, updated_at = ? WHERE id = ?",
            (content, _now(), prompt_id),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            return None
        return self.get_prompt_by_id(prompt_id)

    def seed_prompts(self, defaults: dict[QuestionCategory, str]) -> int:
        """Insert a default prompt for every category that has none."""
        count = 0
        for category, content in defaults.items():
            if self.get_prompt(category) is None:
                self.insert_prompt(category, content, is_default=True)
                count += 1
        return count

    # ── Admin allow-list ──────────────────────────────────────────────────

    def add_admin(self, user_id: str) -> None:
        self.conn.execute(
            "INSERT OR IGNORE INTO admin_users (user_id) VALUES (?)", (user_id,)
        )
        self.conn.commit()

    def is_admin(self, user_id: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM admin_users WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row is not None

    # ── Response log ──────────────────────────────────────────────────────

    def log_response(
        self,
        category: QuestionCategory,
        question: ParsedQuestion,
        user_id: str | None = None,
    ) -> None:
        payload = question.to_dict()
        self.conn.execute(
            "INSERT INTO responses (question_type, passage, questions, user_id, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                QuestionCategory(category).value,
                payload["passage"],
                json.dumps(payload["questions"]),
                user_id,
                _now(),
            ),
        )
        self.conn.commit()

    def get_response_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM responses").fetchone()
        return row[0]

    def get_recent_responses(self, limit: int = 10) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM responses ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
        result = []
        for r in rows:
            d = dict(r)
            d["questions"] = json.loads(d["questions"])
            result.append(d)
        return result
