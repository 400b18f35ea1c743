# app/routers/questions.py - Admin management of the interview question bank

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from typing import List
import structlog

from app.core.security import get_current_admin
from app.models.admin import QuestionBankEntry, QuestionCreateRequest, QuestionGenerateRequest
from app.models.interview import INTERVIEW_SCHEDULE, normalize_question_text
from app.models.user import CurrentUser
from app.services.documents import read_questions
from app.services.runtime import Runtime, get_runtime

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[QuestionBankEntry])
async def list_questions(
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    """All bank questions, newest first"""
    try:
        entries = rt.bank.load()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list questions: {str(e)}")
    return sorted(entries, key=lambda e: (e.created_at is not None, e.created_at), reverse=True)


@router.post("", response_model=QuestionBankEntry)
async def add_question(
    request: QuestionCreateRequest,
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    existing = {normalize_question_text(e.question) for e in rt.bank.entries}
    if normalize_question_text(request.question) in existing:
        raise HTTPException(status_code=409, detail="This question is already in the bank")
    return rt.bank.add(request.question.strip(), request.difficulty)


@router.post("/upload")
async def upload_questions(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    """Import ``question`` / ``difficulty`` rows from an XLSX sheet"""
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Only XLSX files are allowed")
    try:
        rows, rejected = read_questions(await file.read())
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid XLSX file: {str(e)}")

    existing = {normalize_question_text(e.question) for e in rt.bank.entries}
    added = 0
    for text, difficulty in rows:
        key = normalize_question_text(text)
        if key in existing:
            continue
        rt.bank.add(text, difficulty)
        existing.add(key)
        added += 1

    logger.info("Question import finished", added=added, rejected=len(rejected))
    return {"success": True, "added": added, "rejected_rows": rejected}


@router.post("/generate", response_model=List[QuestionBankEntry])
async def generate_questions(
    request: QuestionGenerateRequest,
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    """Seed the bank with LLM questions, one per schedule slot per round"""
    topic = request.topic or rt.settings.INTERVIEW_TOPIC
    existing = {normalize_question_text(e.question) for e in rt.bank.entries}
    added: List[QuestionBankEntry] = []
    for _ in range(request.rounds):
        for question in await rt.ai.generate_all_questions(INTERVIEW_SCHEDULE, topic):
            key = normalize_question_text(question.question)
            if key in existing:
                continue
            existing.add(key)
            added.append(rt.bank.add(question.question, question.difficulty))
    return added


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    try:
        rt.bank.remove(question_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete question: {str(e)}")
    return {"success": True, "message": "Question deleted", "question_id": question_id}
