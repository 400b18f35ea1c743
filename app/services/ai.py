# app/services/ai.py - LLM flows: question generation, performance summary, resume parsing

import json
import re
from typing import Any, Dict, List, Optional, Protocol, Sequence

import structlog
from openai import AsyncOpenAI
from pydantic import ValidationError
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from app.core.config import get_settings
from app.core.exceptions import QuestionSourceError, SummaryError
from app.models.interview import (
    Difficulty,
    PerformanceSummary,
    Question,
    ResumeDetails,
    ScheduleSlot,
)

logger = structlog.get_logger()


class QuestionGenerator(Protocol):
    async def generate_question(self, difficulty: Difficulty, topic: str) -> str: ...


class PerformanceSummarizer(Protocol):
    async def summarize_performance(self, transcript: str) -> PerformanceSummary: ...


def extract_json_object(text: str) -> str:
    """Extracts the first JSON object from an LLM response"""
    match = re.search(r"\{.*\}", text, flags=re.DOTALL)
    if not match:
        raise ValueError("No JSON object found in LLM response")
    return match.group(0)


QUESTION_SYSTEM_PROMPT = (
    "You are a senior engineer interviewing candidates for a full stack developer role "
    "using React and Node.js. You write one clear, technical interview question at a time."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an AI assistant that evaluates candidate performance in technical interviews."
)


class InterviewAI:
    """OpenAI-backed implementation of every generative flow the interview needs"""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.settings = get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY)
        return self._client

    async def _complete_json(
        self,
        system: str,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 400,
    ) -> Dict[str, Any]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.LLM_MAX_ATTEMPTS),
            wait=wait_exponential(multiplier=0.5, max=4),
            reraise=True,
        ):
            with attempt:
                response = await self.client.chat.completions.create(
                    model=model or self.settings.OPENAI_MODEL,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                    max_tokens=max_tokens,
                    response_format={"type": "json_object"},
                )
                content = response.choices[0].message.content or ""
                return json.loads(extract_json_object(content))

    async def generate_question(self, difficulty: Difficulty, topic: str) -> str:
        prompt = (
            f"Generate one interview question about {topic} with {difficulty.value} difficulty. "
            "The question should be technical and relevant to a full stack developer role "
            "using React and Node.js.\n"
            'Respond with JSON: {"question": "..."}'
        )
        try:
            data = await self._complete_json(QUESTION_SYSTEM_PROMPT, prompt, temperature=0.9)
        except Exception as e:
            logger.error("Question generation failed", difficulty=difficulty.value, error=str(e))
            raise QuestionSourceError(f"Could not generate a {difficulty.value} question") from e

        text = str(data.get("question", "")).strip()
        if not text:
            raise QuestionSourceError("LLM returned an empty question")
        return text

    async def generate_all_questions(self, schedule: Sequence[ScheduleSlot], topic: str) -> List[Question]:
        """One question per schedule slot, used to seed the question bank"""
        difficulties = "\n".join(f"- {slot.difficulty.value}" for slot in schedule)
        prompt = (
            "Your task is to generate a series of interview questions based on the provided "
            f"schedule of difficulties.\nThe topic for all questions is: {topic}.\n"
            f"Generate one question for each of the following difficulties:\n{difficulties}\n\n"
            "Instructions:\n"
            "- The questions should be technically challenging and relevant to modern full stack "
            "development practices, focusing on React and Node.js.\n"
            "- Ensure the questions are clear, concise, and appropriate for the specified difficulty level.\n"
            '- Respond with JSON: {"questions": [{"question": "...", "difficulty": "Easy|Medium|Hard"}]}'
        )
        try:
            data = await self._complete_json(QUESTION_SYSTEM_PROMPT, prompt, max_tokens=1500)
            return [Question.model_validate(item) for item in data.get("questions", [])]
        except (ValidationError, ValueError) as e:
            logger.error("Bulk question generation returned invalid data", error=str(e))
            return []

    async def summarize_performance(self, transcript: str) -> PerformanceSummary:
        prompt = (
            "Based on the following chat history, provide a final score (out of 100) and a short "
            "summary of the candidate's performance.\n\n"
            f"Chat History:\n{transcript}\n\n"
            'Respond with JSON: {"finalScore": <0-100>, "summary": "..."}'
        )
        try:
            data = await self._complete_json(
                SUMMARY_SYSTEM_PROMPT,
                prompt,
                model=self.settings.OPENAI_SUMMARY_MODEL,
                temperature=0.3,
                max_tokens=600,
            )
            return PerformanceSummary.model_validate(data)
        except Exception as e:
            logger.error("Performance summary failed", error=str(e))
            raise SummaryError("Could not generate summary") from e

    async def parse_resume(self, resume_text: str) -> ResumeDetails:
        prompt = (
            "You are an expert resume parser. Extract the candidate's full name, email address, "
            "and phone number from the resume below.\n"
            "If a field cannot be found you MUST return null for it. Do not invent information.\n"
            'Respond with JSON: {"name": ..., "email": ..., "phone": ...}\n\n'
            f"Resume:\n{resume_text[:12000]}"
        )
        try:
            data = await self._complete_json("You extract contact details from resumes.", prompt, temperature=0.0)
            return ResumeDetails.model_validate(data)
        except Exception as e:
            logger.warning("Resume parsing failed", error=str(e))
            return ResumeDetails()

    async def missing_info_prompt(self, details: ResumeDetails) -> str:
        missing = [field for field in ("name", "email", "phone") if not getattr(details, field)]
        if not missing:
            return ""
        prompt = (
            "You help collect missing information from a candidate before an interview starts.\n"
            f"Name: {details.name or ''}\nEmail: {details.email or ''}\nPhone: {details.phone or ''}\n"
            f"The missing fields are: {', '.join(missing)}.\n"
            "Write one friendly, concise message asking for them.\n"
            'Respond with JSON: {"missingFieldsPrompt": "..."}'
        )
        try:
            data = await self._complete_json("You are a helpful interview assistant.", prompt, max_tokens=150)
            return str(data.get("missingFieldsPrompt", "")).strip()
        except Exception as e:
            logger.warning("Missing-info prompt failed", error=str(e))
            return f"Before we start the interview, could you please provide your {' and '.join(missing)}?"
