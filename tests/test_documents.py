import io

import pytest
from openpyxl import Workbook, load_workbook

from app.models.interview import Candidate, Difficulty, InterviewRecord, InterviewStatus
from app.services.documents import export_candidates, extract_resume_text, read_emails, read_questions


def _xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_read_emails_uses_header_column():
    content = _xlsx([["Name", "Email"], ["Ada", "ada@acme.io"], ["Bob", None], [None, "bob@acme.io"]])
    assert read_emails(content) == ["ada@acme.io", "bob@acme.io"]


def test_read_questions_reports_rejected_rows():
    content = _xlsx([
        ["Question", "Difficulty"],
        ["Explain the React reconciliation algorithm.", "hard"],
        ["Too short", "Easy"],
        ["What is middleware in Express?", "Impossible"],
    ])

    accepted, rejected = read_questions(content)

    assert accepted == [("Explain the React reconciliation algorithm.", Difficulty.HARD)]
    assert rejected == [2, 3]


def test_extract_plain_text_resume():
    assert extract_resume_text("cv.TXT", "Ada Lovelace\nada@acme.io".encode()) == "Ada Lovelace\nada@acme.io"


def test_unsupported_resume_type():
    with pytest.raises(ValueError):
        extract_resume_text("cv.png", b"...")


def test_export_candidates():
    candidate = Candidate(
        name="Ada", email="ada@acme.io", phone="1", company_domain="acme.io",
        interview=InterviewRecord(status=InterviewStatus.COMPLETED, score=81, summary="Strong"),
    )

    sheet = load_workbook(io.BytesIO(export_candidates([candidate]))).active
    rows = list(sheet.iter_rows(values_only=True))

    assert rows[0][:5] == ("Name", "Email", "Phone", "Status", "Score")
    assert rows[1] == ("Ada", "ada@acme.io", "1", "COMPLETED", 81, "Strong", "acme.io")
