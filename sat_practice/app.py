"""FastAPI application with all routes."""
from __future__ import annotations

import logging
import sqlite3

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from sat_practice.admin import AccessDenied, AdminConsole, NotAuthenticated
from sat_practice.config import Settings, load_settings, save_settings
from sat_practice.db import Database
from sat_practice.models import AnswerOutcome, QuestionCategory
from sat_practice.prompts import DEFAULT_PROMPTS
from sat_practice.providers.base import NetworkFailure
from sat_practice.session import PracticeController
from sat_practice.sources import PromptNotFound, QuestionSource, build_source

app = FastAPI(title="SAT Practice")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None
_active_sessions: dict[str, PracticeController] = {}  # least recently used first
_MAX_SESSIONS = 256

_log = logging.getLogger("sat_practice.api")


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_source() -> QuestionSource:
    return build_source(get_settings(), get_db())


def _current_user(request: Request) -> str | None:
    """User id forwarded by the auth proxy; None when anonymous."""
    return request.headers.get("x-user-id") or None


def _get_session(session_id: str) -> PracticeController:
    controller = _active_sessions.pop(session_id, None)
    if controller is None:
        raise HTTPException(404, "Session not found")
    _active_sessions[session_id] = controller
    return controller


@app.on_event("startup")
async def startup():
    global _db, _settings
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    if _settings.seed_prompts_on_startup:
        n = _db.seed_prompts(DEFAULT_PROMPTS)
        if n:
            _log.info("Seeded %d default prompt(s)", n)


@app.on_event("shutdown")
async def shutdown():
    if _db:
        _db.close()


# ── API: Categories ───────────────────────────────────────────────────────

@app.get("/api/categories")
async def api_categories():
    return {"categories": [c.value for c in QuestionCategory]}


# ── API: Practice session ─────────────────────────────────────────────────

@app.post("/api/session/start")
async def api_session_start():
    controller = PracticeController(_get_source())
    while len(_active_sessions) >= _MAX_SESSIONS:
        evicted = next(iter(_active_sessions))
        del _active_sessions[evicted]
        _log.info("Evicted idle session %s", evicted)
    _active_sessions[controller.session.id] = controller
    return controller.snapshot()


@app.get("/api/session/{session_id}")
async def api_session_get(session_id: str):
    return _get_session(session_id).snapshot()


@app.delete("/api/session/{session_id}")
async def api_session_end(session_id: str):
    controller = _get_session(session_id)
    del _active_sessions[session_id]
    s = controller.session
    return {
        "session_id": session_id,
        "answered": s.answered,
        "correct": s.correct,
        "accuracy": round(s.correct / max(s.answered, 1) * 100, 1),
    }


@app.post("/api/session/{session_id}/category")
async def api_session_category(session_id: str, request: Request):
    controller = _get_session(session_id)
    body = await request.json()
    try:
        category = QuestionCategory(body.get("category", ""))
    except ValueError:
        raise HTTPException(422, f"Invalid question type: {body.get('category')!r}")

    try:
        result = await controller.request_category(category)
    except (NetworkFailure, PromptNotFound) as e:
        _log.warning("Question request failed (%s): %s", category.value, e)
        raise HTTPException(502, str(e))

    snapshot = controller.snapshot()
    if result is None:
        snapshot["superseded"] = True
        return snapshot

    s = get_settings()
    if s.log_responses and result.ok:
        try:
            get_db().log_response(category, result.question, _current_user(request))
        except sqlite3.Error as e:
            _log.warning("Could not log response: %s", e)
    return snapshot


@app.post("/api/session/{session_id}/select")
async def api_session_select(session_id: str, request: Request):
    controller = _get_session(session_id)
    body = await request.json()
    answer = str(body.get("answer", "")).strip()
    if not answer:
        raise HTTPException(400, "No answer provided")
    controller.select_answer(answer)
    return controller.snapshot()


@app.post("/api/session/{session_id}/check")
async def api_session_check(session_id: str):
    controller = _get_session(session_id)
    item = controller.current_item
    try:
        outcome = controller.check_answer()
    except ValueError as e:
        raise HTTPException(400, str(e))

    if outcome is AnswerOutcome.CORRECT:
        message = "Great job! Try another question."
    elif outcome is AnswerOutcome.INCORRECT:
        message = f"The correct answer was {item.correct_answer}"
    else:
        message = "The correct answer for this question could not be determined."
    return {
        "outcome": outcome.value,
        "correct_answer": item.answer_letter,
        "message": message,
        "session": controller.snapshot(),
    }


@app.post("/api/session/{session_id}/next")
async def api_session_next(session_id: str):
    controller = _get_session(session_id)
    controller.next()
    return controller.snapshot()


@app.post("/api/session/{session_id}/previous")
async def api_session_previous(session_id: str):
    controller = _get_session(session_id)
    controller.previous()
    return controller.snapshot()


# ── API: Admin ────────────────────────────────────────────────────────────

def _admin_call(fn, *args):
    try:
        return fn(*args)
    except NotAuthenticated as e:
        raise HTTPException(401, str(e))
    except AccessDenied as e:
        raise HTTPException(403, str(e))


@app.get("/api/admin/prompts")
async def api_admin_prompts(request: Request):
    console = AdminConsole(get_db())
    prompts = _admin_call(console.list_prompts, _current_user(request))
    return {"prompts": [p.to_dict() for p in prompts]}


@app.put("/api/admin/prompts/{prompt_id}")
async def api_admin_update_prompt(prompt_id: str, request: Request):
    console = AdminConsole(get_db())
    body = await request.json()
    try:
        record = _admin_call(
            console.edit_prompt, _current_user(request), prompt_id, body.get("content", ""),
        )
    except KeyError:
        raise HTTPException(404, "Prompt not found")
    except ValueError as e:
        raise HTTPException(400, str(e))
    return record.to_dict()


@app.post("/api/admin/prompts/seed")
async def api_admin_seed(request: Request):
    console = AdminConsole(get_db())
    n = _admin_call(console.seed_defaults, _current_user(request))
    return {"seeded": n}


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    candidate = Settings(**{**s.to_dict(), **{k: v for k, v in body.items() if k in known}})
    try:
        candidate.validate()
    except ValueError as e:
        raise HTTPException(400, str(e))
    for k, v in candidate.to_dict().items():
        setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
