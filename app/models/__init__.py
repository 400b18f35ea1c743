"""Pydantic models package"""

from .user import UserCreate, UserResponse, TokenResponse, CandidateTokenResponse, CurrentUser
from .interview import (
    Candidate, ChatMessage, Difficulty, InterviewRecord, InterviewStatus,
    Question, ScheduleSlot, SessionSnapshot, INTERVIEW_SCHEDULE,
)
from .admin import AllowedDomain, InterviewToken, QuestionBankEntry, TokenInfo
from .common import ErrorResponse

__all__ = [
    "UserCreate", "UserResponse", "TokenResponse", "CandidateTokenResponse", "CurrentUser",
    "Candidate", "ChatMessage", "Difficulty", "InterviewRecord", "InterviewStatus",
    "Question", "ScheduleSlot", "SessionSnapshot", "INTERVIEW_SCHEDULE",
    "AllowedDomain", "InterviewToken", "QuestionBankEntry", "TokenInfo",
    "ErrorResponse"
]
