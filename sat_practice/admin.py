"""Prompt management for allow-listed admins."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sat_practice.models import PromptRecord
from sat_practice.prompts import DEFAULT_PROMPTS

if TYPE_CHECKING:
    from sat_practice.db import Database

_log = logging.getLogger("sat_practice.admin")


class NotAuthenticated(PermissionError):
    pass


class AccessDenied(PermissionError):
    pass


class AdminConsole:
    def __init__(self, db: Database):
        self.db = db

    def ensure_admin(self, user_id: str | None) -> str:
        if not user_id:
            raise NotAuthenticated("Sign in to manage prompts.")
        if not self.db.is_admin(user_id):
            _log.info("Rejected non-admin user %s", user_id)
            raise AccessDenied("You don't have permission to access this page.")
        return user_id

    def list_prompts(self, user_id: str | None) -> list[PromptRecord]:
        self.ensure_admin(user_id)
        return self.db.list_prompts()

    def edit_prompt(self, user_id: str | None, prompt_id: str, content: str) -> PromptRecord:
        self.ensure_admin(user_id)
        if not content.strip():
            raise ValueError("Prompt content must not be empty")
        record = self.db.update_prompt(prompt_id, content)
        if record is None:
            raise KeyError(prompt_id)
        _log.info("User %s updated %s prompt %s", user_id, record.type.value, prompt_id)
        return record

    def seed_defaults(self, user_id: str | None) -> int:
        self.ensure_admin(user_id)
        n = self.db.seed_prompts(DEFAULT_PROMPTS)
        _log.info("User %s seeded %d default prompt(s)", user_id, n)
        return n
