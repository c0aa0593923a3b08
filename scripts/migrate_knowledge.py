"""Convert a legacy Q&A CSV export into the JSON seed corpus format."""
from __future__ import annotations

import argparse
import csv
import json
import re
from pathlib import Path
from typing import Iterable, List

from models.knowledge import KnowledgeRecord, RecordKind, build_record, normalize_record_id

DEFAULT_CATEGORY = "General"


def read_csv(path: Path) -> List[dict]:
    with path.open(encoding="utf-8-sig") as fh:
        reader = csv.DictReader(fh)
        return [dict(row) for row in reader]


def split_list(value: str | None) -> List[str]:
    if not value:
        return []
    parts = re.split(r"[;|\n]+", value)
    cleaned = []
    for part in parts:
        normalized = re.sub(r"\s+", " ", part).strip()
        if normalized:
            cleaned.append(normalized)
    return cleaned


def parse_confidence(raw_value: str | None) -> float:
    if not raw_value or not raw_value.strip():
        return 100.0
    value = float(raw_value.strip().rstrip("%"))
    # exports store either a percentage or a 0..1 ratio
    if 0 < value <= 1:
        value *= 100
    return value


def convert_records(rows: Iterable[dict]) -> List[KnowledgeRecord]:
    records: List[KnowledgeRecord] = []
    for index, row in enumerate(rows, start=1):
        record_id = normalize_record_id(row.get("id") or "", index)
        category = (row.get("category") or "").strip() or DEFAULT_CATEGORY
        payload = {
            "id": record_id,
            "kind": RecordKind.QA,
            "question": row.get("question"),
            "answer": row.get("answer"),
            "category": category,
            "tags": split_list(row.get("tags")),
            "sources": split_list(row.get("sources")),
            "confidence": parse_confidence(row.get("confidence")),
        }
        created_at = (row.get("createdAt") or row.get("created_at") or "").strip()
        if created_at:
            payload["created_at"] = created_at
        records.append(build_record(payload))
    return records


def write_json(records: List[KnowledgeRecord], path: Path) -> None:
    payload = [record.model_dump_for_storage() for record in records]
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def migrate(csv_path: Path, json_path: Path) -> None:
    rows = read_csv(csv_path)
    records = convert_records(rows)
    write_json(records, json_path)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("csv_path", type=Path, help="Path to the legacy CSV export")
    parser.add_argument("json_path", type=Path, help="Target knowledge.json file")
    args = parser.parse_args()

    migrate(args.csv_path, args.json_path)


if __name__ == "__main__":  # pragma: no cover - CLI
    main()
