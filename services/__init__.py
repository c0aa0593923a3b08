from .answer_service import (
    AnswerGenerator,
    CannedAnswerGenerator,
    GeneratedAnswer,
    OpenAIAnswerGenerator,
)
from .extraction import ExtractionEngine
from .index import InvertedIndex
from .query_engine import QueryEngine
from .question_logger import QuestionLogger
from .record_store import ReadWriteLock, RecordStore
from .relation_finder import RelationFinder
from .tokenizer import normalize, tokenize

__all__ = [
    "AnswerGenerator",
    "CannedAnswerGenerator",
    "ExtractionEngine",
    "GeneratedAnswer",
    "InvertedIndex",
    "OpenAIAnswerGenerator",
    "QueryEngine",
    "QuestionLogger",
    "ReadWriteLock",
    "RecordStore",
    "RelationFinder",
    "normalize",
    "tokenize",
]
