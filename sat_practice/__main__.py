"""CLI entry point for sat-practice.

Usage:
  python -m sat_practice serve [--port PORT] [--host HOST]
  python -m sat_practice stop
  python -m sat_practice status
  python -m sat_practice seed
  python -m sat_practice add-admin USER_ID
  python -m sat_practice prompts
  python -m sat_practice ask CATEGORY
  python -m sat_practice parse CATEGORY FILE
"""
from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
from contextlib import contextmanager, suppress
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"

COMMANDS = "serve, stop, status, seed, add-admin, prompts, ask, parse"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "status":
        _status()
    elif command == "seed":
        _seed()
    elif command == "add-admin":
        _add_admin(args[1:])
    elif command == "prompts":
        _prompts()
    elif command == "ask":
        _ask(args[1:])
    elif command == "parse":
        _parse(args[1:])
    else:
        print(f"Unknown command: {command}")
        print(f"Commands: {COMMANDS}")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _category_arg(args: list[str], usage: str):
    from sat_practice.models import QuestionCategory

    if not args:
        print(f"Usage: python -m sat_practice {usage}")
        sys.exit(1)
    try:
        return QuestionCategory(args[0])
    except ValueError:
        print(f"Unknown category: {args[0]}")
        print("Categories: " + ", ".join(c.value for c in QuestionCategory))
        sys.exit(1)


def _open_db():
    from sat_practice.config import load_settings
    from sat_practice.db import Database

    settings = load_settings()
    return settings, Database(settings.db_full_path)


# ── Server lifecycle ──────────────────────────────────────────────────────

def _running_pid() -> int | None:
    """PID of the server recorded in PID_FILE, if that process is alive.

    A file naming a dead process or holding garbage is removed.
    """
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
    except FileNotFoundError:
        return None
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None
    return pid


@contextmanager
def _pid_file():
    PID_FILE.write_text(str(os.getpid()))
    try:
        yield
    finally:
        PID_FILE.unlink(missing_ok=True)


def _stop() -> bool:
    pid = _running_pid()
    if pid is not None:
        with suppress(ProcessLookupError):
            os.kill(pid, signal.SIGTERM)
        PID_FILE.unlink(missing_ok=True)
    print(f"Stopped server (PID {pid})." if pid else "Server is not running.")
    return pid is not None


def _status():
    pid = _running_pid()
    print(f"Server is running (PID {pid})." if pid else "Server is not running.")


def _serve(args: list[str]):
    import uvicorn

    pid = _running_pid()
    if pid is not None:
        print(f"Server already running (PID {pid}). Use 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8000"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    print(f"Starting SAT Practice on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    with _pid_file():
        uvicorn.run("sat_practice.app:app", host=host, port=port, timeout_graceful_shutdown=5)


# ── Prompt store ──────────────────────────────────────────────────────────

def _seed():
    from sat_practice.prompts import DEFAULT_PROMPTS

    _, db = _open_db()
    n = db.seed_prompts(DEFAULT_PROMPTS)
    print(f"Seeded {n} default prompt(s); {len(db.list_prompts())} in store")
    db.close()


def _add_admin(args: list[str]):
    if not args:
        print("Usage: python -m sat_practice add-admin USER_ID")
        sys.exit(1)
    _, db = _open_db()
    db.add_admin(args[0])
    print(f"Added admin: {args[0]}")
    db.close()


def _prompts():
    _, db = _open_db()
    prompts = db.list_prompts()
    if not prompts:
        print("No prompts stored. Run 'seed' first.")
    for p in prompts:
        first_line = p.content.strip().splitlines()[0] if p.content.strip() else ""
        marker = "default" if p.is_default else "custom"
        print(f"{p.type.value:22s} {marker:8s} {p.id}  {first_line[:60]}")
    db.close()


# ── Questions ─────────────────────────────────────────────────────────────

def _print_result(result) -> None:
    print(f"Tier: {result.tier}")
    print(json.dumps(result.question.to_dict(), indent=2, ensure_ascii=False))


def _ask(args: list[str]):
    from sat_practice.completion_parser import parse_completion
    from sat_practice.providers.base import NetworkFailure
    from sat_practice.sources import PromptNotFound, build_source

    category = _category_arg(args, "ask CATEGORY")
    settings, db = _open_db()
    try:
        source = build_source(settings, db)
        print(f"Fetching {category.value} from {source.name()}...")
        raw = asyncio.run(source.fetch(category))
    except (NetworkFailure, PromptNotFound, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
    _print_result(parse_completion(category, raw))


def _parse(args: list[str]):
    from sat_practice.completion_parser import parse_completion

    category = _category_arg(args, "parse CATEGORY FILE")
    if len(args) < 2:
        print("Usage: python -m sat_practice parse CATEGORY FILE")
        sys.exit(1)
    path = Path(args[1])
    if not path.exists():
        print(f"File not found: {path}")
        sys.exit(1)
    _print_result(parse_completion(category, path.read_text()))


if __name__ == "__main__":
    main()
