"""Structured field extraction from record text.

Each extractor is a pure function of text returning a mapping of fields.
Confidence values are fixed per extractor; swapping in a model-backed
extractor only needs :meth:`ExtractionEngine.register`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

from errors import InvalidExtractionTypeError
from models.knowledge import ExtractionResult, FieldValue
from services.record_store import RecordStore
from services.tokenizer import normalize

Extractor = Callable[[str], Dict[str, FieldValue]]

GENERIC_EXTRACTION = "generic"
SUMMARY_SENTENCES = 3

_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+|\n+")

FINDING_CUES = (
    "found",
    "finding",
    "shows",
    "indicates",
    "indicated",
    "diagnosed",
    "diagnosis",
    "observed",
    "consistent with",
    "revealed",
    "present",
)

RECOMMENDATION_CUES = (
    "recommend",
    "should",
    "advise",
    "avoid",
    "consult",
    "apply",
    "use ",
    "follow up",
    "follow-up",
)

CONDITIONS = (
    "acne",
    "actinic keratosis",
    "atopic dermatitis",
    "basal cell carcinoma",
    "contact dermatitis",
    "dermatitis",
    "eczema",
    "hives",
    "impetigo",
    "melanoma",
    "psoriasis",
    "rosacea",
    "seborrheic dermatitis",
    "shingles",
    "squamous cell carcinoma",
    "urticaria",
    "vitiligo",
    "warts",
)

TREATMENTS = (
    "antibiotics",
    "antihistamines",
    "benzoyl peroxide",
    "biologics",
    "corticosteroids",
    "cryotherapy",
    "emollients",
    "isotretinoin",
    "moisturizer",
    "phototherapy",
    "retinoids",
    "salicylic acid",
    "sunscreen",
    "topical steroids",
)

BODY_SITES = (
    "arms",
    "back",
    "chest",
    "elbows",
    "face",
    "feet",
    "hands",
    "knees",
    "legs",
    "neck",
    "scalp",
    "trunk",
)


def split_sentences(text: str) -> List[str]:
    return [part.strip() for part in _SENTENCE_RE.split(text) if part and part.strip()]


def _sentences_with(text: str, cues: Iterable[str]) -> List[str]:
    cues = tuple(cues)
    selected = []
    for sentence in split_sentences(text):
        lowered = f"{sentence.lower()} "
        if any(cue in lowered for cue in cues):
            selected.append(sentence)
    return selected


def _dictionary_hits(text: str, vocabulary: Iterable[str]) -> List[str]:
    lowered = normalize(text)
    hits = []
    for term in vocabulary:
        if re.search(rf"\b{re.escape(term)}\b", lowered):
            hits.append(term)
    return hits


def extract_summary(text: str) -> Dict[str, FieldValue]:
    return {"summary": " ".join(split_sentences(text)[:SUMMARY_SENTENCES])}


def extract_key_findings(text: str) -> Dict[str, FieldValue]:
    return {"key_findings": _sentences_with(text, FINDING_CUES)}


def extract_recommendations(text: str) -> Dict[str, FieldValue]:
    return {"recommendations": _sentences_with(text, RECOMMENDATION_CUES)}


def extract_entities(text: str) -> Dict[str, FieldValue]:
    return {
        "conditions": _dictionary_hits(text, CONDITIONS),
        "treatments": _dictionary_hits(text, TREATMENTS),
        "body_sites": _dictionary_hits(text, BODY_SITES),
    }


def extract_generic(text: str) -> Dict[str, FieldValue]:
    return {"text": normalize(text)}


@dataclass(frozen=True)
class _RegisteredExtractor:
    extractor: Extractor
    confidence: float


class ExtractionEngine:
    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._logger = logging.getLogger(__name__)
        self._extractors: Dict[str, _RegisteredExtractor] = {}
        self.register("summary", extract_summary, 85)
        self.register("key_findings", extract_key_findings, 80)
        self.register("recommendations", extract_recommendations, 82)
        self.register("entities", extract_entities, 78)
        self.register(GENERIC_EXTRACTION, extract_generic, 60)

    def register(self, name: str, extractor: Extractor, confidence: float) -> None:
        key = name.strip().lower()
        if not key:
            raise InvalidExtractionTypeError("Extraction type required")
        self._extractors[key] = _RegisteredExtractor(extractor, float(confidence))

    @property
    def extraction_types(self) -> List[str]:
        return list(self._extractors)

    def extract(self, record_id: str, extraction_type: str | None) -> ExtractionResult:
        if not extraction_type or not extraction_type.strip():
            raise InvalidExtractionTypeError("Extraction type required")
        label = extraction_type.strip()
        record = self._store.get(record_id)

        registered = self._extractors.get(label.lower())
        if registered is None:
            self._logger.debug("No extractor for %r, using generic", label)
            registered = self._extractors[GENERIC_EXTRACTION]

        fields = registered.extractor(record.content_text)
        return ExtractionResult(
            source_record_id=record.id,
            extraction_type=label,
            fields=fields,
            confidence=registered.confidence,
        )
