import uuid
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class InterviewStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    COLLECTING_INFO = "COLLECTING_INFO"
    READY_TO_START = "READY_TO_START"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ScheduleSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    difficulty: Difficulty
    duration: int = Field(gt=0, description="Seconds allowed for the answer")
    type: Literal["text"] = "text"


INTERVIEW_SCHEDULE: Tuple[ScheduleSlot, ...] = (
    ScheduleSlot(difficulty=Difficulty.EASY, duration=20),
    ScheduleSlot(difficulty=Difficulty.EASY, duration=20),
    ScheduleSlot(difficulty=Difficulty.MEDIUM, duration=60),
    ScheduleSlot(difficulty=Difficulty.MEDIUM, duration=60),
    ScheduleSlot(difficulty=Difficulty.HARD, duration=120),
    ScheduleSlot(difficulty=Difficulty.HARD, duration=120),
)

TIMEOUT_ANSWER = "Time's up! No answer provided."
FINALIZING_MESSAGE = (
    "Thank you for completing the interview. "
    "I am now generating your performance summary..."
)
SUMMARY_FALLBACK = "Could not generate summary."


def normalize_question_text(text: str) -> str:
    """Collapse whitespace and case so formatting differences do not defeat duplicate checks"""
    return " ".join(text.split()).lower()


class Question(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    question: str
    difficulty: Difficulty
    type: Literal["text"] = "text"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class InterviewRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: InterviewStatus = InterviewStatus.COLLECTING_INFO
    questions: List[Question] = Field(default_factory=list)
    answers: List[str] = Field(default_factory=list)
    current_question_index: int = Field(default=0, alias="currentQuestionIndex")
    score: Optional[int] = None
    summary: Optional[str] = None
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    chat_history: List[ChatMessage] = Field(default_factory=list, alias="chatHistory")

    @property
    def pending_question(self) -> Optional[Question]:
        """The asked question still waiting for its answer, if any"""
        if len(self.questions) > len(self.answers):
            return self.questions[len(self.answers)]
        return None

    def transcript(self) -> str:
        return "\n".join(f"{m.role}: {m.content}" for m in self.chat_history)


class ResumeFile(BaseModel):
    name: str
    size: int


class Candidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    email: str = ""
    phone: str = ""
    resume_file: Optional[ResumeFile] = Field(default=None, alias="resumeFile")
    interview: InterviewRecord = Field(default_factory=InterviewRecord)
    company_domain: Optional[str] = Field(default=None, alias="companyDomain")

    def to_document(self) -> dict:
        """Firestore representation (camelCase field names, JSON-safe values)"""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, data: dict) -> "Candidate":
        return cls.model_validate(data)


# Request / response payloads

class CandidateInfoUpdate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    resume_file: Optional[ResumeFile] = None


class AnswerSubmission(BaseModel):
    answer: Optional[str] = None


class ResumeDetails(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ResumeParseResponse(BaseModel):
    details: ResumeDetails
    resume_file: ResumeFile
    missing_fields_prompt: str = ""


class PerformanceSummary(BaseModel):
    final_score: int = Field(ge=0, le=100, alias="finalScore")
    summary: str

    model_config = ConfigDict(populate_by_name=True)


class SessionSnapshot(BaseModel):
    """What the interview screen renders"""
    candidate_id: str
    phase: str
    status: InterviewStatus
    time_remaining: int
    slot_index: int
    total_slots: int
    slot_difficulty: Optional[Difficulty] = None
    slot_duration: Optional[int] = None
    current_question: Optional[Question] = None
    question_error: Optional[str] = None
    notice: Optional[str] = None
    score: Optional[int] = None
    summary: Optional[str] = None
    chat_history: List[ChatMessage] = Field(default_factory=list)
