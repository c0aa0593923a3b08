from __future__ import annotations

import csv
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

import tiktoken


class QuestionLogger:
    """Appends answered questions to a CSV file and reads a user's history back."""

    HEADER = [
        "timestamp",
        "user_id",
        "question",
        "category",
        "answer_preview",
        "confidence",
        "tokens",
        "status",
    ]

    def __init__(self, log_path: Path, *, token_model: str = "gpt-4o-mini") -> None:
        self._log_path = log_path
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._token_model = token_model
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def log(
        self,
        *,
        user_id: str,
        question: str,
        category: str,
        answer: str,
        confidence: float,
        status: str = "ok",
        timestamp: datetime | None = None,
    ) -> None:
        row = {
            "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(),
            "user_id": user_id,
            "question": question,
            "category": category,
            "answer_preview": self._answer_preview(answer),
            "confidence": confidence,
            "tokens": self._count_tokens(answer, self._token_model),
            "status": status,
        }

        with self._lock:
            file_exists = self._log_path.exists()
            with self._log_path.open("a", newline="", encoding="utf-8") as file:
                writer = csv.DictWriter(file, fieldnames=self.HEADER)
                if not file_exists:
                    writer.writeheader()
                writer.writerow(row)
        self._logger.debug("Logged question for user %s", user_id)

    def history(self, user_id: str) -> List[Dict[str, str]]:
        """Entries logged for ``user_id``, newest first."""
        if not self._log_path.exists():
            return []
        with self._lock:
            with self._log_path.open(newline="", encoding="utf-8") as file:
                rows = [row for row in csv.DictReader(file) if row.get("user_id") == user_id]
        rows.reverse()
        return rows

    @staticmethod
    def _count_tokens(text: str, model: str) -> int:
        try:
            encoding = tiktoken.encoding_for_model(model)
            return len(encoding.encode(text))
        except Exception:  # pragma: no cover - fallback when encoding missing
            return len(text.split())

    @staticmethod
    def _answer_preview(answer: str, limit: int = 150) -> str:
        if len(answer) > limit:
            return f"{answer[:limit]}..."
        return answer
