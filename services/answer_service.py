from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Protocol

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from rag import KnowledgeBase


@dataclass
class GeneratedAnswer:
    answer: str
    confidence: float
    sources: List[str] = field(default_factory=list)
    status: str = "ok"


class AnswerGenerator(Protocol):
    async def generate_answer(self, question: str, category: str) -> GeneratedAnswer:
        ...


CANNED_RESPONSES = (
    GeneratedAnswer(
        answer=(
            "Based on current dermatological research, this condition typically responds"
            " well to topical treatments combined with lifestyle modifications. I recommend"
            " consulting with a dermatologist for a personalized treatment plan."
        ),
        confidence=87,
        sources=["Dermatology journals", "Clinical guidelines"],
    ),
    GeneratedAnswer(
        answer=(
            "This is a common concern in dermatology. The symptoms you're describing could be"
            " related to several factors including environmental triggers, genetic"
            " predisposition, or underlying skin barrier dysfunction. Proper diagnosis"
            " requires professional evaluation."
        ),
        confidence=92,
        sources=["Medical literature", "Expert consensus"],
    ),
    GeneratedAnswer(
        answer=(
            "Treatment effectiveness varies among individuals, but most patients see"
            " improvement within 4-8 weeks of consistent treatment. It's important to follow"
            " the prescribed regimen and avoid common triggers during the healing process."
        ),
        confidence=89,
        sources=["Clinical studies", "Patient outcomes data"],
    ),
)


class CannedAnswerGenerator:
    """Picks one of a fixed set of responses, optionally after a simulated delay."""

    def __init__(
        self,
        *,
        rng: Optional[random.Random] = None,
        delay_seconds: float = 0.0,
        responses: tuple[GeneratedAnswer, ...] = CANNED_RESPONSES,
    ) -> None:
        if not responses:
            raise ValueError("at least one canned response is required")
        self._rng = rng or random.Random()
        self._delay_seconds = delay_seconds
        self._responses = responses

    async def generate_answer(self, question: str, category: str) -> GeneratedAnswer:
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)
        chosen = self._rng.choice(self._responses)
        return GeneratedAnswer(
            answer=chosen.answer,
            confidence=chosen.confidence,
            sources=list(chosen.sources),
        )


class OpenAIAnswerGenerator:
    def __init__(
        self,
        knowledge_base: "KnowledgeBase",
        openai_client: AsyncOpenAI,
        *,
        model: str,
        system_prompt: str,
        context_top_k: int = 3,
    ) -> None:
        self._knowledge_base = knowledge_base
        self._openai_client = openai_client
        self._model = model
        self._system_prompt = system_prompt
        self._context_top_k = context_top_k
        self._logger = logging.getLogger(__name__)

    async def generate_answer(self, question: str, category: str) -> GeneratedAnswer:
        hits = self._knowledge_base.similar_questions(question, limit=self._context_top_k)
        top_score = hits[0].score if hits else 0.0
        context_text = (
            self._knowledge_base.build_context_snippets([hit.record for hit in hits])
            if hits
            else "No matching knowledge base entries."
        )
        sources: List[str] = []
        for hit in hits:
            for source in hit.record.sources:
                if source not in sources:
                    sources.append(source)

        messages = [
            {"role": "system", "content": self._system_prompt},
            {
                "role": "user",
                "content": (
                    f"Category: {category}\n"
                    f"Patient question:\n{question}\n\n"
                    f"Context (from the knowledge base):\n{context_text}"
                ),
            },
        ]

        try:
            response = await self._openai_client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=0.2,
            )
            text = response.choices[0].message.content.strip()
        except Exception as exc:
            self._logger.warning("Answer generation failed: %s", exc)
            return GeneratedAnswer(
                answer=(
                    "Sorry, an answer could not be generated right now.\n"
                    f"Technical error: {exc}"
                ),
                confidence=0,
                status="error",
            )

        return GeneratedAnswer(
            answer=self._strip_markdown(text),
            confidence=round(top_score, 1),
            sources=sources,
        )

    @staticmethod
    def _strip_markdown(text: str) -> str:
        text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
        text = re.sub(r"#+\s*", "", text)
        text = re.sub(r"(?<!\w)_(?!\s)([^_]+?)(?<!\s)_(?!\w)", r"\1", text)
        return text

    @property
    def model(self) -> str:
        return self._model
