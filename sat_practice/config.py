from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "question_source": "generate",
    "question_api_url": "https://sat.techrealm.pk",
    "llm_provider": "together",
    "llm_model": "meta-llama/Meta-Llama-3.1-405B-Instruct-Turbo",
    "llm_temperature": 0.7,
    "llm_timeout": 120.0,
    "together_url": "https://api.together.xyz/v1",
    "ollama_url": "http://localhost:11434",
    "db_path": "sat_practice.db",
    "log_responses": True,
    "seed_prompts_on_startup": True,
}

QUESTION_SOURCES = ("generate", "api")
LLM_PROVIDERS = ("together", "ollama", "openai", "anthropic")


@dataclass
class Settings:
    question_source: str = DEFAULTS["question_source"]  # generate | api
    question_api_url: str = DEFAULTS["question_api_url"]
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    llm_temperature: float = DEFAULTS["llm_temperature"]
    llm_timeout: float = DEFAULTS["llm_timeout"]
    together_url: str = DEFAULTS["together_url"]
    ollama_url: str = DEFAULTS["ollama_url"]
    db_path: str = DEFAULTS["db_path"]
    log_responses: bool = DEFAULTS["log_responses"]
    seed_prompts_on_startup: bool = DEFAULTS["seed_prompts_on_startup"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def validate(self) -> None:
        if self.question_source not in QUESTION_SOURCES:
            raise ValueError(f"Unknown question source: {self.question_source}")
        if self.llm_provider not in LLM_PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {self.llm_provider}")

    def to_dict(self) -> dict:
        return asdict(self)


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
