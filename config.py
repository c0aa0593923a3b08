from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ANSWER_BACKENDS = ("canned", "openai")

DEFAULT_SYSTEM_PROMPT = (
    "You are a dermatology assistant. Answer using the provided knowledge base"
    " context, be concise, and recommend seeing a dermatologist when a diagnosis"
    " requires examination. Answers are informational and not medical advice."
)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _path_env(name: str, base_dir: Path, default: Path) -> Path:
    raw = os.getenv(name)
    if not raw:
        return default
    path = Path(raw).expanduser()
    return path if path.is_absolute() else base_dir / path


@dataclass(frozen=True)
class Config:
    knowledge_base_path: Path
    question_log_path: Path
    related_limit: int
    faq_limit: int
    min_question_length: int
    answer_backend: str
    openai_api_key: str
    openai_model: str
    system_prompt: str
    log_level: str

    @classmethod
    def load(cls, *, allow_missing: bool = False) -> "Config":
        base_dir = Path(__file__).resolve().parent

        load_dotenv(dotenv_path=base_dir / ".env", override=False)

        data_dir = base_dir / "data"
        knowledge_base_path = _path_env(
            "KNOWLEDGE_BASE_PATH", base_dir, data_dir / "knowledge.json"
        )
        question_log_path = _path_env(
            "QUESTION_LOG_PATH", base_dir, data_dir / "questions.csv"
        )
        question_log_path.parent.mkdir(parents=True, exist_ok=True)

        related_limit = _int_env("RELATED_LIMIT", 3)
        faq_limit = _int_env("FAQ_LIMIT", 10)
        min_question_length = _int_env("MIN_QUESTION_LENGTH", 10)

        answer_backend = os.getenv("ANSWER_BACKEND", "canned").strip().lower()
        if answer_backend not in ANSWER_BACKENDS:
            raise RuntimeError(
                f"ANSWER_BACKEND must be one of {', '.join(ANSWER_BACKENDS)}, got {answer_backend!r}"
            )

        openai_api_key = os.getenv("OPENAI_API_KEY")
        openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        if answer_backend == "openai" and not openai_api_key and not allow_missing:
            raise RuntimeError("OPENAI_API_KEY is not set")

        system_prompt_path = base_dir / "prompt_system.txt"
        if system_prompt_path.exists():
            system_prompt = system_prompt_path.read_text(encoding="utf-8").strip()
        else:
            system_prompt = DEFAULT_SYSTEM_PROMPT

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        return cls(
            knowledge_base_path=knowledge_base_path,
            question_log_path=question_log_path,
            related_limit=related_limit,
            faq_limit=faq_limit,
            min_question_length=min_question_length,
            answer_backend=answer_backend,
            openai_api_key=openai_api_key or "",
            openai_model=openai_model,
            system_prompt=system_prompt,
            log_level=log_level,
        )

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=self.log_level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
