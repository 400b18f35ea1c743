# app/services/documents.py - Resume text extraction and XLSX import/export

import io
from typing import Dict, Iterable, List, Tuple

import docx
from openpyxl import Workbook, load_workbook
from pypdf import PdfReader

from app.models.interview import Candidate, Difficulty

RESUME_EXTENSIONS = {"pdf", "docx", "txt"}


def extract_resume_text(filename: str, content: bytes) -> str:
    """Plain text of an uploaded resume (PDF, DOCX or TXT)"""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext == "pdf":
        reader = PdfReader(io.BytesIO(content))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    if ext == "docx":
        document = docx.Document(io.BytesIO(content))
        return "\n".join(p.text for p in document.paragraphs)
    if ext == "txt":
        return content.decode("utf-8", errors="ignore")
    raise ValueError(f"Unsupported resume type '{ext or filename}'")


def read_rows(content: bytes) -> List[Dict[str, str]]:
    """Rows of the first worksheet keyed by the lower-cased header row"""
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    sheet = workbook.worksheets[0]
    rows = sheet.iter_rows(values_only=True)
    try:
        header = [str(cell).strip().lower() if cell is not None else "" for cell in next(rows)]
    except StopIteration:
        return []
    result = []
    for row in rows:
        values = {key: ("" if cell is None else str(cell).strip()) for key, cell in zip(header, row) if key}
        if any(values.values()):
            result.append(values)
    workbook.close()
    return result


def read_emails(content: bytes) -> List[str]:
    return [row["email"] for row in read_rows(content) if row.get("email")]


def read_questions(content: bytes) -> Tuple[List[Tuple[str, Difficulty]], List[int]]:
    """(question, difficulty) pairs plus the 1-based data row numbers that were rejected"""
    accepted: List[Tuple[str, Difficulty]] = []
    rejected: List[int] = []
    for number, row in enumerate(read_rows(content), start=1):
        text = row.get("question", "")
        try:
            difficulty = Difficulty(row.get("difficulty", "").capitalize())
        except ValueError:
            rejected.append(number)
            continue
        if len(text) < 10:
            rejected.append(number)
            continue
        accepted.append((text, difficulty))
    return accepted, rejected


def export_candidates(candidates: Iterable[Candidate]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Candidates"
    sheet.append(["Name", "Email", "Phone", "Status", "Score", "Summary", "Company Domain"])
    for candidate in candidates:
        record = candidate.interview
        sheet.append([
            candidate.name,
            candidate.email,
            candidate.phone,
            record.status.value,
            record.score,
            record.summary or "",
            candidate.company_domain or "",
        ])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
