# app/services/question_source.py - Picks the next question: bank first, LLM generation as fallback

import random
from datetime import datetime
from typing import Iterable, List, Optional

import structlog

from app.core.exceptions import QuestionSourceError
from app.models.admin import QuestionBankEntry
from app.models.interview import Difficulty, Question, normalize_question_text
from app.services.ai import QuestionGenerator
from app.services.repository import QUESTIONS, FirestoreRepository

logger = structlog.get_logger()


class QuestionBank:
    """Cached, read-only view of the ``interviewQuestions`` collection"""

    def __init__(self, repository: Optional[FirestoreRepository] = None):
        self.repository = repository or FirestoreRepository(QUESTIONS)
        self._entries: List[QuestionBankEntry] = []
        self.loaded = False

    def load(self) -> List[QuestionBankEntry]:
        entries = []
        for doc in self.repository.list_all():
            try:
                entries.append(QuestionBankEntry.model_validate(doc))
            except ValueError as e:
                logger.warning("Skipping malformed bank question", doc_id=doc.get("id"), error=str(e))
        self._entries = entries
        self.loaded = True
        logger.info("Question bank loaded", count=len(entries))
        return entries

    @property
    def entries(self) -> List[QuestionBankEntry]:
        if not self.loaded:
            self.load()
        return list(self._entries)

    def add(self, question: str, difficulty: Difficulty) -> QuestionBankEntry:
        created_at = datetime.utcnow()
        doc_id = self.repository.add({
            "question": question,
            "difficulty": difficulty.value,
            "type": "text",
            "createdAt": created_at,
        })
        entry = QuestionBankEntry(id=doc_id, question=question, difficulty=difficulty, created_at=created_at)
        self._entries.append(entry)
        return entry

    def remove(self, question_id: str) -> None:
        self.repository.delete(question_id)
        self._entries = [e for e in self._entries if e.id != question_id]


class QuestionSource:
    """Supplies a question of the requested difficulty that has not been asked yet"""

    def __init__(
        self,
        bank: QuestionBank,
        generator: QuestionGenerator,
        topic: str = "full stack",
        generation_attempts: int = 3,
        rng: Optional[random.Random] = None,
    ):
        self.bank = bank
        self.generator = generator
        self.topic = topic
        self.generation_attempts = generation_attempts
        self.rng = rng or random.Random()

    def eligible(self, difficulty: Difficulty, asked: Iterable[Question]) -> List[QuestionBankEntry]:
        asked = list(asked)
        asked_ids = {q.id for q in asked}
        asked_texts = {normalize_question_text(q.question) for q in asked}
        return [
            entry for entry in self.bank.entries
            if entry.difficulty == difficulty
            and entry.id not in asked_ids
            and normalize_question_text(entry.question) not in asked_texts
        ]

    async def next_question(self, difficulty: Difficulty, asked: Iterable[Question]) -> Question:
        asked = list(asked)
        candidates = self.eligible(difficulty, asked)
        if candidates:
            entry = self.rng.choice(candidates)
            logger.info("Question drawn from bank", difficulty=difficulty.value, question_id=entry.id)
            return Question(id=entry.id, question=entry.question, difficulty=entry.difficulty)

        asked_texts = {normalize_question_text(q.question) for q in asked}
        for attempt in range(1, self.generation_attempts + 1):
            try:
                text = await self.generator.generate_question(difficulty, self.topic)
            except QuestionSourceError:
                raise
            except Exception as e:
                raise QuestionSourceError(f"Question generation failed: {e}") from e

            if normalize_question_text(text) not in asked_texts:
                logger.info("Question generated", difficulty=difficulty.value, attempt=attempt)
                return Question(question=text, difficulty=difficulty)
            logger.warning("Generated question repeats an asked one", attempt=attempt)

        raise QuestionSourceError("Could not produce a question that has not been asked yet")
