# app/services/runtime.py - Process-wide service wiring

from typing import Optional

from app.core.config import Settings, get_settings
from app.services.ai import InterviewAI
from app.services.question_source import QuestionBank, QuestionSource
from app.services.repository import CANDIDATES, DOMAINS, QUESTIONS, TOKENS, USERS, FirestoreRepository
from app.services.session_controller import SessionController, SessionRegistry
from app.services.session_store import LocalStateFile, SessionStore
from app.services.tokens import TokenService


class Runtime:
    """Owns the services shared by all requests in this process"""

    def __init__(self, db=None, ai=None, settings: Optional[Settings] = None, autostart_countdown: bool = True):
        self.settings = settings or get_settings()
        self.ai = ai or InterviewAI()
        self.autostart_countdown = autostart_countdown

        self.store = SessionStore(
            FirestoreRepository(CANDIDATES, db),
            LocalStateFile(self.settings.LOCAL_STATE_PATH),
        )
        self.tokens = TokenService(FirestoreRepository(TOKENS, db))
        self.bank = QuestionBank(FirestoreRepository(QUESTIONS, db))
        self.domains = FirestoreRepository(DOMAINS, db)
        self.users = FirestoreRepository(USERS, db)
        self.question_source = QuestionSource(self.bank, self.ai, topic=self.settings.INTERVIEW_TOPIC)
        self.sessions = SessionRegistry(self._new_controller)

    def _new_controller(self, candidate_id: str) -> SessionController:
        return SessionController(
            self.store,
            candidate_id,
            self.question_source,
            self.ai,
            self.tokens,
            tick_seconds=self.settings.QUESTION_TICK_SECONDS,
            autostart_countdown=self.autostart_countdown,
        )


_runtime: Optional[Runtime] = None

def get_runtime() -> Runtime:
    """Get runtime instance (singleton pattern)"""
    global _runtime
    if _runtime is None:
        _runtime = Runtime()
    return _runtime

def shutdown_runtime() -> None:
    global _runtime
    if _runtime is not None:
        _runtime.sessions.close_all()
        _runtime = None
