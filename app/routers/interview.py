# app/routers/interview.py - Candidate-facing interview endpoints

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import BaseModel
from typing import Optional
import structlog

from app.core.security import get_current_candidate
from app.models.interview import (
    AnswerSubmission,
    CandidateInfoUpdate,
    ResumeFile,
    ResumeParseResponse,
    SessionSnapshot,
)
from app.models.user import CurrentUser
from app.services.documents import RESUME_EXTENSIONS, extract_resume_text
from app.services.runtime import Runtime, get_runtime
from app.services.session_controller import SessionController

router = APIRouter()
logger = structlog.get_logger()


class CandidateProfile(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    resume_file: Optional[ResumeFile] = None


class SessionStateResponse(BaseModel):
    candidate: CandidateProfile
    session: SessionSnapshot


async def get_controller(
    current_user: CurrentUser = Depends(get_current_candidate),
    rt: Runtime = Depends(get_runtime),
) -> SessionController:
    candidate = await rt.store.load_candidate(current_user.subject)
    if candidate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")
    return rt.sessions.get_or_create(candidate.id, token=current_user.interview_token)


def _state(controller: SessionController) -> SessionStateResponse:
    candidate = controller.store.require(controller.candidate_id)
    return SessionStateResponse(
        candidate=CandidateProfile(
            id=candidate.id,
            name=candidate.name,
            email=candidate.email,
            phone=candidate.phone,
            resume_file=candidate.resume_file,
        ),
        session=controller.snapshot(),
    )


@router.get("/state", response_model=SessionStateResponse)
async def get_state(controller: SessionController = Depends(get_controller)):
    return _state(controller)


@router.post("/resume-upload", response_model=ResumeParseResponse)
async def upload_resume(
    file: UploadFile = File(...),
    controller: SessionController = Depends(get_controller),
    rt: Runtime = Depends(get_runtime),
):
    """Parse an uploaded resume and report which contact details are still missing"""
    filename = file.filename or ""
    if filename.rsplit(".", 1)[-1].lower() not in RESUME_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only PDF, DOCX or TXT resumes are allowed")

    content = await file.read()
    try:
        text = extract_resume_text(filename, content)
    except Exception as e:
        logger.warning("Resume extraction failed", candidate_id=controller.candidate_id, error=str(e))
        raise HTTPException(status_code=400, detail=f"Could not read resume: {str(e)}")

    details = await rt.ai.parse_resume(text)
    prompt = await rt.ai.missing_info_prompt(details)
    return ResumeParseResponse(
        details=details,
        resume_file=ResumeFile(name=filename, size=len(content)),
        missing_fields_prompt=prompt,
    )


@router.put("/info", response_model=SessionStateResponse)
async def update_info(
    info: CandidateInfoUpdate,
    controller: SessionController = Depends(get_controller),
    rt: Runtime = Depends(get_runtime),
):
    await rt.store.update_candidate_info(
        controller.candidate_id,
        name=info.name.strip(),
        email=info.email.strip(),
        phone=info.phone.strip(),
        resume_file=info.resume_file,
    )
    return _state(controller)


@router.post("/start", response_model=SessionStateResponse)
async def start_interview(controller: SessionController = Depends(get_controller)):
    await controller.begin()
    return _state(controller)


@router.post("/answer", response_model=SessionStateResponse)
async def submit_answer(
    submission: AnswerSubmission,
    controller: SessionController = Depends(get_controller),
):
    accepted = await controller.submit_answer(submission.answer)
    if not accepted and controller.record.pending_question is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No question is waiting for an answer")
    return _state(controller)


@router.post("/retry", response_model=SessionStateResponse)
async def retry_question(controller: SessionController = Depends(get_controller)):
    """Retry fetching the question for the current slot after a failure"""
    await controller.retry_question()
    return _state(controller)


@router.post("/resume", response_model=SessionStateResponse)
async def resume_interview(controller: SessionController = Depends(get_controller)):
    """Continue an in-progress interview after a reload"""
    await controller.resume()
    return _state(controller)


@router.post("/start-over", response_model=SessionStateResponse)
async def start_over(controller: SessionController = Depends(get_controller)):
    if not await controller.start_over():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Please wait for the current step to finish")
    return _state(controller)
