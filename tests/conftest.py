import copy
import random
import sys
import uuid
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core import config
from app.core.exceptions import QuestionSourceError, SummaryError
from app.models.interview import PerformanceSummary, Question, ResumeDetails
from app.services.question_source import QuestionBank, QuestionSource
from app.services.repository import CANDIDATES, QUESTIONS, TOKENS, FirestoreRepository
from app.services.session_store import LocalStateFile, SessionStore
from app.services.tokens import TokenService


# In-memory stand-in for the parts of the Firestore client the repositories use

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocument:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._docs = db.data.setdefault(collection, {})
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self.id, self._docs.get(self.id))

    def set(self, data, merge=False):
        if self._db.fail_writes:
            raise RuntimeError("firestore unavailable")
        if merge and self.id in self._docs:
            self._docs[self.id].update(copy.deepcopy(data))
        else:
            self._docs[self.id] = copy.deepcopy(data)

    def update(self, fields):
        if self._db.fail_writes:
            raise RuntimeError("firestore unavailable")
        if self.id not in self._docs:
            raise KeyError(self.id)
        self._docs[self.id].update(copy.deepcopy(fields))

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=()):
        self._db = db
        self._collection = collection
        self._filters = filters

    def where(self, field, op, value):
        assert op == "=="
        return FakeQuery(self._db, self._collection, self._filters + ((field, value),))

    def stream(self):
        docs = self._db.data.get(self._collection, {})
        for doc_id, data in list(docs.items()):
            if all(data.get(field) == value for field, value in self._filters):
                yield FakeSnapshot(doc_id, data)


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocument(self._db, self._collection, doc_id or uuid.uuid4().hex)


class FakeFirestore:
    def __init__(self):
        self.data = {}
        self.fail_writes = False

    def collection(self, name):
        return FakeCollection(self, name)


class StubAI:
    """Deterministic replacement for InterviewAI"""

    def __init__(self):
        self.generated = 0
        self.fail_questions = 0
        self.fail_summary = False
        self.transcripts = []

    async def generate_question(self, difficulty, topic):
        if self.fail_questions:
            self.fail_questions -= 1
            raise QuestionSourceError("model unavailable")
        self.generated += 1
        return f"{difficulty.value} question number {self.generated} about {topic}?"

    async def summarize_performance(self, transcript):
        self.transcripts.append(transcript)
        if self.fail_summary:
            raise SummaryError("model unavailable")
        return PerformanceSummary(final_score=72, summary="Solid fundamentals, shallow on scaling.")

    async def generate_all_questions(self, schedule, topic):
        return [
            Question(question=f"Seeded {slot.difficulty.value} question {index} on {topic}", difficulty=slot.difficulty)
            for index, slot in enumerate(schedule)
        ]

    async def parse_resume(self, resume_text):
        return ResumeDetails(name="Ada Lovelace", email=None, phone=None)

    async def missing_info_prompt(self, details):
        return "Could you please share your email and phone?"


@pytest.fixture
def settings(tmp_path, monkeypatch):
    s = config.Settings(
        SECRET_KEY="test-secret",
        LOCAL_STATE_PATH=str(tmp_path / "session_state.json"),
        QUESTION_TICK_SECONDS=0.01,
        LLM_MAX_ATTEMPTS=1,
        ADMIN_EMAILS="boss@acme.io",
    )
    monkeypatch.setattr(config, "_settings", s)
    return s


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def ai():
    return StubAI()


@pytest.fixture
def store(db, tmp_path):
    return SessionStore(FirestoreRepository(CANDIDATES, db), LocalStateFile(tmp_path / "state.json"))


@pytest.fixture
def tokens(db):
    return TokenService(FirestoreRepository(TOKENS, db))


@pytest.fixture
def bank(db):
    return QuestionBank(FirestoreRepository(QUESTIONS, db))


@pytest.fixture
def question_source(bank, ai):
    return QuestionSource(bank, ai, topic="full stack", rng=random.Random(7))


@pytest.fixture
def runtime(settings, db, ai):
    from app.services.runtime import Runtime
    rt = Runtime(db=db, ai=ai, settings=settings, autostart_countdown=False)
    yield rt
    rt.sessions.close_all()


@pytest.fixture
def client(runtime):
    from fastapi.testclient import TestClient
    from app.main import app
    from app.services.runtime import get_runtime

    app.dependency_overrides[get_runtime] = lambda: runtime
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
