import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


SAMPLE_RECORDS = [
    {
        "id": "1",
        "kind": "qa",
        "question": "What causes eczema flare-ups?",
        "answer": (
            "Flare-ups can be triggered by stress, allergens, harsh soaps and weather"
            " changes. Identifying your personal triggers is key."
        ),
        "category": "Eczema",
        "tags": ["triggers", "flare-ups", "management"],
        "confidence": 95,
        "sources": ["American Academy of Dermatology"],
        "created_at": "2024-01-15T10:00:00Z",
    },
    {
        "id": "2",
        "kind": "qa",
        "question": "How long does it take for acne treatments to work?",
        "answer": (
            "Most acne treatments require 6-12 weeks to show improvement. If nothing"
            " changes after 12 weeks, consult your dermatologist."
        ),
        "category": "Acne",
        "tags": ["treatment", "timeline"],
        "confidence": 92,
        "sources": ["Clinical studies"],
        "created_at": "2024-01-14T14:30:00Z",
    },
    {
        "id": "3",
        "kind": "qa",
        "question": "Is psoriasis contagious?",
        "answer": "No. Psoriasis is an autoimmune condition and cannot be caught from others.",
        "category": "Psoriasis",
        "tags": ["contagious", "autoimmune"],
        "confidence": 98,
        "sources": ["National Psoriasis Foundation"],
        "created_at": "2024-01-13T09:15:00Z",
    },
    {
        "id": "4",
        "kind": "qa",
        "question": "Why does sweat make my skin itch?",
        "answer": "Sweat left on the skin irritates it. Shower and change clothes after exercise.",
        "category": "General",
        "tags": ["Triggers", "sweat"],
        "confidence": 80,
        "sources": [],
        "created_at": "2024-01-12T08:00:00Z",
    },
]


@pytest.fixture
def sample_records():
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def knowledge_base(sample_records):
    from rag import KnowledgeBase

    return KnowledgeBase(sample_records)
