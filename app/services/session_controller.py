# app/services/session_controller.py - Sequences questions, countdown, answers and finalization

import asyncio
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

import structlog

from app.core.exceptions import InvalidTransition
from app.models.interview import (
    FINALIZING_MESSAGE,
    INTERVIEW_SCHEDULE,
    SUMMARY_FALLBACK,
    TIMEOUT_ANSWER,
    InterviewRecord,
    InterviewStatus,
    ScheduleSlot,
    SessionSnapshot,
)
from app.services.ai import PerformanceSummarizer
from app.services.question_source import QuestionSource
from app.services.session_store import SessionStore
from app.services.tokens import TokenService

logger = structlog.get_logger()

QUESTION_FAILED_NOTICE = "Failed to generate question. Please click 'Next Question' to try again."
SUBMIT_FAILED_NOTICE = "Submission failed, please try again."


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class SessionPhase(str, Enum):
    IDLE = "idle"
    FETCHING_QUESTION = "fetching_question"
    WAITING_FOR_ANSWER = "waiting_for_answer"
    SUBMITTING = "submitting"
    FINALIZING = "finalizing"


class SessionController:
    """Drives one candidate's interview from the first question to the summary.

    Exactly one question is in flight at a time. Every public operation checks and
    sets ``phase`` before its first ``await``, so on a single event loop two
    overlapping calls (a countdown expiry and a manual submit, say) cannot both
    pass the guard.

    Expected failures never escape: a question that cannot be fetched leaves
    ``question_error`` set for a retry, and a summary that cannot be generated
    completes the interview with a fallback summary and a zero score.

    Once ``close()`` has been called the controller is inert: the countdown and
    any expiry work it started are cancelled, and operations still in flight stop
    at their next ``await`` without touching the record.
    """

    def __init__(
        self,
        store: SessionStore,
        candidate_id: str,
        question_source: QuestionSource,
        summarizer: PerformanceSummarizer,
        tokens: Optional[TokenService] = None,
        *,
        token: Optional[str] = None,
        schedule: Sequence[ScheduleSlot] = INTERVIEW_SCHEDULE,
        tick_seconds: float = 1.0,
        autostart_countdown: bool = True,
    ):
        self.store = store
        self.candidate_id = candidate_id
        self.question_source = question_source
        self.summarizer = summarizer
        self.tokens = tokens
        self.token = token
        self.schedule = tuple(schedule)
        self.tick_seconds = tick_seconds
        self.autostart_countdown = autostart_countdown

        self.phase = SessionPhase.IDLE
        self.time_remaining = 0
        self.question_error: Optional[str] = None
        self.notice: Optional[str] = None
        self._countdown: Optional[asyncio.Task] = None
        self._expiry: Optional[asyncio.Task] = None
        self._closed = False
        self.log = logger.bind(candidate_id=candidate_id)

    @property
    def record(self) -> InterviewRecord:
        return self.store.require(self.candidate_id).interview

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def countdown_running(self) -> bool:
        return self._countdown is not None and not self._countdown.done()

    @property
    def expiry_running(self) -> bool:
        return self._expiry is not None and not self._expiry.done()

    # Countdown

    def _start_countdown(self) -> None:
        self._cancel_countdown()
        if self.autostart_countdown and not self._closed:
            self._countdown = asyncio.get_running_loop().create_task(self._run_countdown())

    def _cancel_countdown(self) -> None:
        task, self._countdown = self._countdown, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def _run_countdown(self) -> None:
        me = asyncio.current_task()
        while self._countdown is me and self.phase is SessionPhase.WAITING_FOR_ANSWER:
            await asyncio.sleep(self.tick_seconds)
            if self._countdown is not me:
                break
            await self.tick()

    async def tick(self) -> None:
        """One second passed while the current question is unanswered"""
        if self._closed or self.phase is not SessionPhase.WAITING_FOR_ANSWER:
            return
        if self.time_remaining > 0:
            self.time_remaining -= 1
        if self.time_remaining <= 0:
            self._cancel_countdown()
            self.log.info("Answer time expired", slot=len(self.record.answers))
            # Tracked separately so close() can still cancel it once the countdown has detached
            self._expiry = asyncio.get_running_loop().create_task(self.submit_answer(None))
            await self._expiry

    # Operations

    async def begin(self) -> bool:
        """Start the interview (READY_TO_START -> IN_PROGRESS) and ask the first question"""
        if self._closed or self.phase is not SessionPhase.IDLE:
            return False
        status = self.record.status
        if status == InterviewStatus.READY_TO_START:
            await self.store.start_interview(self.candidate_id)
            self.log.info("Interview started")
        elif status != InterviewStatus.IN_PROGRESS:
            raise InvalidTransition(f"Cannot begin an interview that is {status.value}")
        return await self.request_next_question()

    async def request_next_question(self) -> bool:
        if self._closed or self.phase is not SessionPhase.IDLE:
            self.log.debug("Question request ignored", phase=self.phase.value, closed=self._closed)
            return False
        record = self.record
        answered = len(record.answers)
        if (
            record.status != InterviewStatus.IN_PROGRESS
            or len(record.questions) != answered
            or answered >= len(self.schedule)
        ):
            return False

        slot = self.schedule[answered]
        self.phase = SessionPhase.FETCHING_QUESTION
        self.question_error = None
        try:
            question = await self.question_source.next_question(slot.difficulty, record.questions)
        except Exception as e:
            self.log.warning("Question fetch failed", slot=answered, difficulty=slot.difficulty.value, error=str(e))
            self.question_error = QUESTION_FAILED_NOTICE
            self.phase = SessionPhase.IDLE
            return False

        if self._closed:
            self.log.info("Controller closed during question fetch", slot=answered)
            return False

        # The record may have been reset or advanced while the fetch was in flight
        record = self.record
        if (
            record.status != InterviewStatus.IN_PROGRESS
            or len(record.answers) != answered
            or len(record.questions) != answered
        ):
            self.log.info("Discarding stale question", slot=answered)
            self.phase = SessionPhase.IDLE
            return False

        try:
            await self.store.add_question(self.candidate_id, question)
            await self.store.add_chat_message(self.candidate_id, "assistant", question.question)
        except Exception as e:
            self.log.error("Could not record question", slot=answered, error=str(e))
            self.question_error = QUESTION_FAILED_NOTICE
            self.phase = SessionPhase.IDLE
            return False

        if self._closed:
            return False
        self.time_remaining = slot.duration
        self.phase = SessionPhase.WAITING_FOR_ANSWER
        self._start_countdown()
        self.log.info("Question asked", slot=answered, difficulty=slot.difficulty.value, question_id=question.id)
        return True

    async def retry_question(self) -> bool:
        self.question_error = None
        return await self.request_next_question()

    async def submit_answer(self, text: Optional[str]) -> bool:
        """Record the answer for the outstanding question; None means the timer ran out"""
        if self._closed or self.phase is not SessionPhase.WAITING_FOR_ANSWER:
            self.log.debug("Submit ignored", phase=self.phase.value, closed=self._closed)
            return False
        self.phase = SessionPhase.SUBMITTING
        self.notice = None
        self._cancel_countdown()

        answer = (text or "").strip() or TIMEOUT_ANSWER
        try:
            await self.store.submit_answer(self.candidate_id, answer)
            await self.store.add_chat_message(self.candidate_id, "user", answer)
        except Exception:
            if self._closed:
                return False
            self.log.exception("Answer submission failed")
            self.notice = SUBMIT_FAILED_NOTICE
            candidate = self.store.get_candidate(self.candidate_id)
            if candidate is not None and candidate.interview.pending_question is not None:
                self.phase = SessionPhase.WAITING_FOR_ANSWER
                if self.time_remaining > 0:
                    self._start_countdown()
                return False

        if self._closed:
            return True
        self.phase = SessionPhase.IDLE
        answered = len(self.record.answers)
        self.log.info("Answer recorded", slot=answered - 1, timed_out=answer == TIMEOUT_ANSWER)
        if answered >= len(self.schedule):
            await self.finalize()
        else:
            await self.request_next_question()
        return True

    async def finalize(self) -> bool:
        """Score the transcript and complete the interview; applied at most once"""
        if self._closed or self.phase is not SessionPhase.IDLE:
            return False
        record = self.record
        if record.status != InterviewStatus.IN_PROGRESS or len(record.answers) < len(self.schedule):
            return False

        self.phase = SessionPhase.FINALIZING
        self._cancel_countdown()
        completed = False
        try:
            if not any(m.content == FINALIZING_MESSAGE for m in record.chat_history):
                await self.store.add_chat_message(self.candidate_id, "assistant", FINALIZING_MESSAGE)
            if self._closed:
                return False

            try:
                result = await self.summarizer.summarize_performance(self.record.transcript())
                summary, score = result.summary, result.final_score
            except Exception as e:
                self.log.warning("Summary generation failed, using fallback", error=str(e))
                summary, score = SUMMARY_FALLBACK, 0
            if self._closed:
                # resume() finalizes again on the next controller
                return False

            completed = await self.store.complete_interview(self.candidate_id, summary, score)
            if completed and self.token and self.tokens is not None:
                try:
                    await asyncio.to_thread(self.tokens.invalidate, self.token)
                except Exception as e:
                    self.log.error("Error invalidating token", error=str(e))
        finally:
            self.phase = SessionPhase.IDLE
        return completed

    async def resume(self) -> bool:
        """Pick an in-progress interview back up after a reload or restart"""
        if self._closed or self.phase is not SessionPhase.IDLE:
            return False
        record = self.record
        if record.status != InterviewStatus.IN_PROGRESS:
            return False
        if record.pending_question is not None:
            self.time_remaining = self.schedule[len(record.answers)].duration
            self.phase = SessionPhase.WAITING_FOR_ANSWER
            self._start_countdown()
            return True
        if len(record.answers) >= len(self.schedule):
            return await self.finalize()
        return await self.request_next_question()

    async def start_over(self) -> bool:
        if self._closed or self.phase not in (SessionPhase.IDLE, SessionPhase.WAITING_FOR_ANSWER):
            return False
        self._cancel_countdown()
        self.phase = SessionPhase.IDLE
        self.time_remaining = 0
        self.question_error = None
        self.notice = None
        await self.store.start_over(self.candidate_id)
        return True

    def close(self) -> None:
        """Stop the countdown and any expiry work it started; the controller is not reused"""
        self._closed = True
        self._cancel_countdown()
        expiry, self._expiry = self._expiry, None
        if expiry is not None and not expiry.done() and expiry is not _current_task():
            expiry.cancel()

    def snapshot(self) -> SessionSnapshot:
        record = self.record
        index = len(record.answers)
        slot = self.schedule[index] if index < len(self.schedule) else None
        return SessionSnapshot(
            candidate_id=self.candidate_id,
            phase=self.phase.value,
            status=record.status,
            time_remaining=self.time_remaining,
            slot_index=index,
            total_slots=len(self.schedule),
            slot_difficulty=slot.difficulty if slot else None,
            slot_duration=slot.duration if slot else None,
            current_question=record.pending_question,
            question_error=self.question_error,
            notice=self.notice,
            score=record.score,
            summary=record.summary,
            chat_history=list(record.chat_history),
        )


class SessionRegistry:
    """One live controller per candidate for the lifetime of the process"""

    def __init__(self, factory: Callable[[str], SessionController]):
        self.factory = factory
        self._controllers: Dict[str, SessionController] = {}

    def get(self, candidate_id: str) -> Optional[SessionController]:
        return self._controllers.get(candidate_id)

    def get_or_create(self, candidate_id: str, token: Optional[str] = None) -> SessionController:
        controller = self._controllers.get(candidate_id)
        if controller is None:
            controller = self.factory(candidate_id)
            self._controllers[candidate_id] = controller
        if token:
            controller.token = token
        return controller

    def discard(self, candidate_id: str) -> None:
        controller = self._controllers.pop(candidate_id, None)
        if controller is not None:
            controller.close()

    def close_all(self) -> None:
        for candidate_id in list(self._controllers):
            self.discard(candidate_id)
