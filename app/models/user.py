from pydantic import BaseModel, EmailStr
from typing import Literal, Optional
from datetime import datetime

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    display_name: Optional[str] = None

class UserResponse(BaseModel):
    user_id: str
    email: EmailStr
    display_name: Optional[str] = None
    role: Literal["interviewer", "admin"] = "interviewer"
    company_domain: Optional[str] = None
    created_at: datetime

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class CandidateTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    candidate_id: str
    status: str

class CurrentUser(BaseModel):
    """Identity decoded from a bearer token"""
    subject: str
    role: Literal["candidate", "interviewer", "admin"]
    company_domain: Optional[str] = None
    interview_token: Optional[str] = None
