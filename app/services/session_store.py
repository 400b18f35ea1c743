# app/services/session_store.py - Authoritative in-memory candidate records with write-through persistence

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from app.core.exceptions import CandidateNotFound, InvalidTransition
from app.models.interview import (
    Candidate,
    ChatMessage,
    InterviewRecord,
    InterviewStatus,
    Question,
    ResumeFile,
)
from app.services.repository import CANDIDATES, FirestoreRepository

logger = structlog.get_logger()

_STATUS_ORDER = [
    InterviewStatus.NOT_STARTED,
    InterviewStatus.COLLECTING_INFO,
    InterviewStatus.READY_TO_START,
    InterviewStatus.IN_PROGRESS,
    InterviewStatus.COMPLETED,
]


class LocalStateFile:
    """Small JSON file that remembers the active candidate and token across restarts"""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable local session state", path=str(self.path), error=str(e))
            return {}

    def save(self, state: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(state), encoding="utf-8")


class SessionStore:
    """Holds every known candidate record.

    Each mutation updates the in-memory record first and then persists the whole
    document (merge write) before returning, so readers always see the latest value.
    A failed remote write is kept in an outbox keyed by candidate id and retried on
    the next persist or on ``flush_outbox()``.
    """

    def __init__(self, repository: Optional[FirestoreRepository] = None, local_state: Optional[LocalStateFile] = None):
        self.repository = repository or FirestoreRepository(CANDIDATES)
        self.local_state = local_state
        self.candidates: Dict[str, Candidate] = {}
        self.active_candidate_id: Optional[str] = None
        self.active_token: Optional[str] = None
        self._outbox: Dict[str, Dict[str, Any]] = {}

    # Reads

    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        return self.candidates.get(candidate_id)

    def require(self, candidate_id: str) -> Candidate:
        candidate = self.candidates.get(candidate_id)
        if candidate is None:
            raise CandidateNotFound(candidate_id)
        return candidate

    def get_active_candidate(self) -> Optional[Candidate]:
        if self.active_candidate_id is None:
            return None
        return self.candidates.get(self.active_candidate_id)

    async def load_candidate(self, candidate_id: str) -> Optional[Candidate]:
        """Return the cached record, fetching it from Firestore on a cache miss"""
        if candidate_id in self.candidates:
            return self.candidates[candidate_id]
        try:
            doc = await asyncio.to_thread(self.repository.get, candidate_id)
        except Exception as e:
            logger.error("Error fetching candidate", candidate_id=candidate_id, error=str(e))
            return None
        if doc is None:
            return None
        return self._cache_document(doc)

    async def load_all(self) -> List[Candidate]:
        try:
            docs = await asyncio.to_thread(self.repository.list_all)
        except Exception as e:
            logger.error("Error fetching all candidates", error=str(e))
            return list(self.candidates.values())
        for doc in docs:
            self._cache_document(doc)
        return list(self.candidates.values())

    async def find_by_email(self, email: str) -> Optional[Candidate]:
        """Candidate registered under ``email``, preferring one whose interview is not finished"""
        try:
            docs = await asyncio.to_thread(self.repository.query, email=email)
        except Exception as e:
            logger.error("Error querying candidates by email", error=str(e))
            docs = []
        for doc in docs:
            self._cache_document(doc)
        matches = [c for c in self.candidates.values() if c.email == email]
        if not matches:
            return None
        return next((c for c in matches if c.interview.status != InterviewStatus.COMPLETED), matches[0])

    def _cache_document(self, doc: Dict[str, Any]) -> Optional[Candidate]:
        # Records owned by a live session stay authoritative in memory
        if doc.get("id") in self.candidates:
            return self.candidates[doc["id"]]
        try:
            candidate = Candidate.from_document(doc)
        except ValueError as e:
            logger.warning("Skipping malformed candidate document", doc_id=doc.get("id"), error=str(e))
            return None
        self.candidates[candidate.id] = candidate
        return candidate

    # Active pointer, mirrored to local storage

    def set_active(self, candidate_id: str, token: Optional[str] = None) -> None:
        self.active_candidate_id = candidate_id
        self.active_token = token
        self._save_local()

    def reset_active(self) -> None:
        self.active_candidate_id = None
        self.active_token = None
        self._save_local()

    def hydrate(self) -> bool:
        """Restore the active candidate id and token from local storage"""
        if self.local_state is None:
            return False
        state = self.local_state.load()
        self.active_candidate_id = state.get("activeCandidateId")
        self.active_token = state.get("activeToken")
        return self.active_candidate_id is not None

    def _save_local(self) -> None:
        if self.local_state is None:
            return
        try:
            self.local_state.save({
                "activeCandidateId": self.active_candidate_id,
                "activeToken": self.active_token,
            })
        except OSError as e:
            logger.error("Error saving local session state", error=str(e))

    # Mutations

    async def create_candidate(
        self,
        *,
        name: str = "",
        email: str = "",
        phone: str = "",
        resume_file: Optional[ResumeFile] = None,
        company_domain: Optional[str] = None,
        status: InterviewStatus = InterviewStatus.READY_TO_START,
    ) -> Candidate:
        candidate = Candidate(
            name=name,
            email=email,
            phone=phone,
            resume_file=resume_file,
            company_domain=company_domain,
            interview=InterviewRecord(status=status),
        )
        self.candidates[candidate.id] = candidate
        await self._persist(candidate)
        logger.info("Candidate created", candidate_id=candidate.id, status=status.value)
        return candidate

    async def update_candidate_info(
        self,
        candidate_id: str,
        *,
        name: str,
        email: str,
        phone: str,
        resume_file: Optional[ResumeFile] = None,
    ) -> Candidate:
        candidate = self.require(candidate_id)
        if candidate.interview.status not in (InterviewStatus.COLLECTING_INFO, InterviewStatus.READY_TO_START):
            raise InvalidTransition(f"Cannot edit details while {candidate.interview.status.value}")
        candidate.name = name
        candidate.email = email
        candidate.phone = phone
        candidate.resume_file = resume_file
        return await self.set_interview_status(candidate_id, InterviewStatus.READY_TO_START)

    async def delete_candidate(self, candidate_id: str) -> None:
        self.candidates.pop(candidate_id, None)
        self._outbox.pop(candidate_id, None)
        if self.active_candidate_id == candidate_id:
            self.reset_active()
        await asyncio.to_thread(self.repository.delete, candidate_id)

    async def set_interview_status(self, candidate_id: str, status: InterviewStatus) -> Candidate:
        candidate = self.require(candidate_id)
        current = candidate.interview.status
        if _STATUS_ORDER.index(status) < _STATUS_ORDER.index(current):
            raise InvalidTransition(f"{current.value} -> {status.value} goes backwards")
        candidate.interview.status = status
        await self._persist(candidate)
        return candidate

    async def start_interview(self, candidate_id: str) -> Candidate:
        candidate = self.require(candidate_id)
        if candidate.interview.status != InterviewStatus.READY_TO_START:
            raise InvalidTransition(f"Cannot start an interview that is {candidate.interview.status.value}")
        candidate.interview.status = InterviewStatus.IN_PROGRESS
        candidate.interview.start_time = datetime.utcnow()
        await self._persist(candidate)
        return candidate

    async def add_chat_message(self, candidate_id: str, role: str, content: str) -> None:
        candidate = self.require(candidate_id)
        candidate.interview.chat_history.append(ChatMessage(role=role, content=content))
        await self._persist(candidate)

    async def add_question(self, candidate_id: str, question: Question) -> None:
        candidate = self.require(candidate_id)
        record = candidate.interview
        if len(record.questions) != len(record.answers):
            raise InvalidTransition("Previous question has not been answered yet")
        record.questions.append(question)
        await self._persist(candidate)

    async def submit_answer(self, candidate_id: str, answer: str) -> None:
        candidate = self.require(candidate_id)
        record = candidate.interview
        if record.pending_question is None:
            raise InvalidTransition("There is no question waiting for an answer")
        record.answers.append(answer)
        record.current_question_index = len(record.answers)
        await self._persist(candidate)

    async def complete_interview(self, candidate_id: str, summary: str, score: int) -> bool:
        """Apply the terminal transition; returns False if it already happened"""
        candidate = self.require(candidate_id)
        record = candidate.interview
        if record.status == InterviewStatus.COMPLETED:
            return False
        record.status = InterviewStatus.COMPLETED
        record.summary = summary
        record.score = score
        record.end_time = datetime.utcnow()
        await self._persist(candidate)
        logger.info("Interview completed", candidate_id=candidate_id, score=score)
        return True

    async def start_over(self, candidate_id: str) -> Candidate:
        candidate = self.require(candidate_id)
        candidate.name = ""
        candidate.phone = ""
        candidate.resume_file = None
        candidate.interview = InterviewRecord(status=InterviewStatus.COLLECTING_INFO)
        await self._persist(candidate)
        logger.info("Interview reset", candidate_id=candidate_id)
        return candidate

    # Persistence

    @property
    def pending_writes(self) -> List[str]:
        return list(self._outbox)

    async def _persist(self, candidate: Candidate) -> None:
        self._outbox[candidate.id] = candidate.to_document()
        await self.flush_outbox()

    async def flush_outbox(self) -> int:
        """Retry queued writes; returns how many are still pending"""
        for candidate_id, document in list(self._outbox.items()):
            try:
                await asyncio.to_thread(self.repository.upsert, candidate_id, document)
            except Exception as e:
                logger.error("Error updating Firestore candidate", candidate_id=candidate_id, error=str(e))
                continue
            # A newer snapshot may have been queued while this one was in flight
            if self._outbox.get(candidate_id) is document:
                del self._outbox[candidate_id]
        return len(self._outbox)
