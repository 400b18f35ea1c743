# app/routers/candidates.py - Interviewer dashboard: candidates, results and access tokens

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel
from typing import List, Literal, Optional
from datetime import datetime
import structlog

from app.core.exceptions import TokenAlreadyIssued
from app.core.security import get_current_interviewer
from app.models.admin import IssuedToken, TokenBatchResponse, TokenIssueRequest
from app.models.interview import Candidate
from app.models.user import CurrentUser
from app.services.documents import export_candidates, read_emails
from app.services.runtime import Runtime, get_runtime

router = APIRouter()
logger = structlog.get_logger()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class CandidateSummary(BaseModel):
    id: str
    name: str
    email: str
    status: str
    score: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    company_domain: Optional[str] = None


def _visible(candidate: Candidate, user: CurrentUser) -> bool:
    """Admins see everyone; interviewers only candidates tagged with their company domain"""
    return user.role == "admin" or candidate.company_domain == user.company_domain


async def _visible_candidates(user: CurrentUser, rt: Runtime) -> List[Candidate]:
    return [c for c in await rt.store.load_all() if _visible(c, user)]


@router.get("", response_model=List[CandidateSummary])
async def list_candidates(
    search: Optional[str] = Query(None, description="Match against name or email"),
    sort: Literal["score", "name", "date"] = Query("score"),
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    candidates = await _visible_candidates(current_user, rt)
    if search:
        needle = search.lower()
        candidates = [c for c in candidates if needle in c.name.lower() or needle in c.email.lower()]

    if sort == "score":
        candidates.sort(key=lambda c: c.interview.score if c.interview.score is not None else -1, reverse=True)
    elif sort == "name":
        candidates.sort(key=lambda c: c.name.lower())
    else:
        candidates.sort(key=lambda c: c.interview.start_time.timestamp() if c.interview.start_time else 0.0, reverse=True)

    return [
        CandidateSummary(
            id=c.id,
            name=c.name,
            email=c.email,
            status=c.interview.status.value,
            score=c.interview.score,
            start_time=c.interview.start_time,
            end_time=c.interview.end_time,
            company_domain=c.company_domain,
        )
        for c in candidates
    ]


@router.get("/export")
async def export_results(
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    """Download visible candidates and their results as an XLSX workbook"""
    content = export_candidates(await _visible_candidates(current_user, rt))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="candidates.xlsx"'},
    )


@router.post("/tokens", response_model=IssuedToken)
async def issue_token(
    request: TokenIssueRequest,
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    try:
        return rt.tokens.issue(request.email, current_user.company_domain)
    except TokenAlreadyIssued as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/tokens/upload", response_model=TokenBatchResponse)
async def upload_token_emails(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    """Issue a token for every address in the ``email`` column of an XLSX sheet"""
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Only XLSX files are allowed")
    try:
        emails = read_emails(await file.read())
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid XLSX file: {str(e)}")

    issued, skipped = rt.tokens.issue_many(emails, current_user.company_domain)
    logger.info("XLSX processed", issued=len(issued), skipped=len(skipped))
    return TokenBatchResponse(issued=issued, skipped=skipped)


@router.get("/{candidate_id}")
async def get_candidate(
    candidate_id: str,
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    candidate = await rt.store.load_candidate(candidate_id)
    if candidate is None or not _visible(candidate, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")
    return candidate.model_dump(by_alias=True, mode="json")


@router.delete("/{candidate_id}")
async def delete_candidate(
    candidate_id: str,
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    candidate = await rt.store.load_candidate(candidate_id)
    if candidate is None or not _visible(candidate, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")
    try:
        rt.sessions.discard(candidate_id)
        await rt.store.delete_candidate(candidate_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete candidate: {str(e)}")
    return {"success": True, "message": "Candidate deleted", "candidate_id": candidate_id}
