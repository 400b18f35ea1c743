from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.interview import Difficulty


class TokenInfo(BaseModel):
    """Result of a successful token validation"""
    token: str
    email: str
    company_domain: Optional[str] = None


class InterviewToken(BaseModel):
    token: str
    email: str
    company_domain: Optional[str] = Field(default=None, alias="companyDomain")
    is_valid: bool = Field(default=True, alias="isValid")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True}


class TokenValidationRequest(BaseModel):
    token: str = Field(min_length=1)


class TokenIssueRequest(BaseModel):
    email: str = Field(min_length=3)

    @field_validator("email")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return value.strip().lower()


class IssuedToken(BaseModel):
    email: str
    token: str


class TokenBatchResponse(BaseModel):
    issued: List[IssuedToken]
    skipped: List[str] = Field(default_factory=list)


class QuestionBankEntry(BaseModel):
    id: str
    question: str
    difficulty: Difficulty
    type: str = "text"
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True}


class QuestionCreateRequest(BaseModel):
    question: str = Field(min_length=10)
    difficulty: Difficulty = Difficulty.MEDIUM


class QuestionGenerateRequest(BaseModel):
    topic: Optional[str] = None
    rounds: int = Field(default=1, ge=1, le=5)


class AllowedDomain(BaseModel):
    id: str
    domain: str


class DomainCreateRequest(BaseModel):
    domain: str = Field(min_length=3)

    @field_validator("domain")
    @classmethod
    def _must_look_like_domain(cls, value: str) -> str:
        value = value.strip().lower()
        if "." not in value:
            raise ValueError("Please enter a valid domain.")
        return value
