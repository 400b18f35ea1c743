import io

from openpyxl import Workbook

from app.core.security import create_access_token
from app.models.interview import FINALIZING_MESSAGE, INTERVIEW_SCHEDULE, Difficulty, InterviewStatus
from app.services.repository import CANDIDATES


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _staff(role="interviewer", domain="acme.io", subject="user-1"):
    return _bearer(create_access_token({"sub": subject, "role": role, "domain": domain}))


def _sign_in(client, runtime, email="cand@acme.io", domain="acme.io"):
    issued = runtime.tokens.issue(email, domain)
    response = client.post("/api/auth/candidate/token", json={"token": issued.token})
    assert response.status_code == 200
    return issued.token, response.json()


def _xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_root_and_health(client):
    assert client.get("/").json()["endpoints"]["interview"] == "/api/interview"
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["pending_writes"] == 0


def test_candidate_token_sign_in_creates_candidate(client, runtime):
    token, body = _sign_in(client, runtime)

    assert body["status"] == InterviewStatus.COLLECTING_INFO.value
    candidate = runtime.store.get_candidate(body["candidate_id"])
    assert candidate.email == "cand@acme.io"
    assert candidate.company_domain == "acme.io"
    assert runtime.store.active_candidate_id == candidate.id
    assert runtime.sessions.get(candidate.id).token == token


def test_unknown_token_is_rejected(client):
    response = client.post("/api/auth/candidate/token", json={"token": "nope"})
    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "InvalidTokenError"
    assert body["detail"] == "The token is either incorrect or has already been used."


def test_interview_endpoints_require_candidate(client):
    assert client.get("/api/interview/state").status_code == 401
    assert client.get("/api/interview/state", headers=_staff()).status_code == 403


def test_full_interview_over_http(client, runtime):
    token, body = _sign_in(client, runtime)
    headers = _bearer(body["access_token"])

    response = client.put(
        "/api/interview/info",
        json={"name": "Ada", "email": "cand@acme.io", "phone": "555-0100"},
        headers=headers,
    )
    assert response.json()["session"]["status"] == "READY_TO_START"

    state = client.post("/api/interview/start", headers=headers).json()
    for index in range(len(INTERVIEW_SCHEDULE)):
        session = state["session"]
        assert session["phase"] == "waiting_for_answer"
        assert session["slot_index"] == index
        assert session["current_question"]["difficulty"] == INTERVIEW_SCHEDULE[index].difficulty.value
        state = client.post("/api/interview/answer", json={"answer": f"answer {index}"}, headers=headers).json()

    session = state["session"]
    assert session["status"] == "COMPLETED"
    assert session["score"] == 72
    assert session["current_question"] is None
    assert session["chat_history"][-1]["content"] == FINALIZING_MESSAGE

    # Token is spent; the same token can no longer open a session
    again = client.post("/api/auth/candidate/token", json={"token": token})
    assert again.status_code == 401


def test_answer_without_question_is_conflict(client, runtime):
    _, body = _sign_in(client, runtime)
    response = client.post("/api/interview/answer", json={"answer": "hi"}, headers=_bearer(body["access_token"]))
    assert response.status_code == 409


def test_start_before_info_is_conflict(client, runtime):
    _, body = _sign_in(client, runtime)
    response = client.post("/api/interview/start", headers=_bearer(body["access_token"]))
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidTransition"


def test_question_failure_then_retry(client, runtime, ai):
    _, body = _sign_in(client, runtime)
    headers = _bearer(body["access_token"])
    client.put("/api/interview/info", json={"name": "Ada", "email": "cand@acme.io", "phone": "1"}, headers=headers)

    ai.fail_questions = 1
    session = client.post("/api/interview/start", headers=headers).json()["session"]
    assert session["status"] == "IN_PROGRESS"
    assert session["question_error"]
    assert session["current_question"] is None

    session = client.post("/api/interview/retry", headers=headers).json()["session"]
    assert session["question_error"] is None
    assert session["current_question"] is not None


def test_start_over_returns_to_info_collection(client, runtime):
    _, body = _sign_in(client, runtime)
    headers = _bearer(body["access_token"])
    client.put("/api/interview/info", json={"name": "Ada", "email": "cand@acme.io", "phone": "1"}, headers=headers)
    client.post("/api/interview/start", headers=headers)

    state = client.post("/api/interview/start-over", headers=headers).json()

    assert state["session"]["status"] == "COLLECTING_INFO"
    assert state["session"]["chat_history"] == []
    assert state["candidate"]["email"] == "cand@acme.io"


def test_resume_upload_reports_missing_fields(client, runtime):
    _, body = _sign_in(client, runtime)
    response = client.post(
        "/api/interview/resume-upload",
        files={"file": ("cv.txt", b"Ada Lovelace, analytical engines", "text/plain")},
        headers=_bearer(body["access_token"]),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["details"]["name"] == "Ada Lovelace"
    assert data["resume_file"] == {"name": "cv.txt", "size": 32}
    assert data["missing_fields_prompt"]


def test_resume_upload_rejects_unknown_types(client, runtime):
    _, body = _sign_in(client, runtime)
    response = client.post(
        "/api/interview/resume-upload",
        files={"file": ("cv.png", b"...", "image/png")},
        headers=_bearer(body["access_token"]),
    )
    assert response.status_code == 400


def test_candidates_are_scoped_to_company_domain(client, runtime):
    _sign_in(client, runtime, email="ada@acme.io", domain="acme.io")
    _sign_in(client, runtime, email="eve@other.io", domain="other.io")

    mine = client.get("/api/candidates", headers=_staff(domain="acme.io")).json()
    assert [c["email"] for c in mine] == ["ada@acme.io"]

    everyone = client.get("/api/candidates", params={"sort": "name"}, headers=_staff(role="admin", domain=None)).json()
    assert {c["email"] for c in everyone} == {"ada@acme.io", "eve@other.io"}

    other_id = [c["id"] for c in everyone if c["email"] == "eve@other.io"][0]
    assert client.get(f"/api/candidates/{other_id}", headers=_staff(domain="acme.io")).status_code == 404


def test_dashboard_skips_unreadable_candidate_documents(client, runtime, db):
    _sign_in(client, runtime, email="ada@acme.io")
    db.collection(CANDIDATES).document("legacy").set({
        "id": "legacy",
        "email": "old@acme.io",
        "companyDomain": "acme.io",
        "interview": {
            "status": "COMPLETED",
            "questions": [{"id": "q1", "question": "Pick one", "difficulty": "Easy", "type": "multiple-choice"}],
        },
    })
    headers = _staff()

    listing = client.get("/api/candidates", headers=headers)
    assert listing.status_code == 200
    assert [c["email"] for c in listing.json()] == ["ada@acme.io"]
    assert client.get("/api/candidates/export", headers=headers).status_code == 200
    assert client.get("/api/candidates/legacy", headers=headers).status_code == 404


def test_sign_in_resumes_unfinished_interview_over_completed_one(client, runtime):
    _, first = _sign_in(client, runtime, email="ada@acme.io")
    runtime.store.require(first["candidate_id"]).interview.status = InterviewStatus.COMPLETED
    _, retake = _sign_in(client, runtime, email="ada@acme.io")
    assert retake["candidate_id"] != first["candidate_id"]

    _, again = _sign_in(client, runtime, email="ada@acme.io")
    assert again["candidate_id"] == retake["candidate_id"]
    assert again["status"] == InterviewStatus.COLLECTING_INFO.value


def test_candidate_detail_delete_and_export(client, runtime):
    _, body = _sign_in(client, runtime, email="ada@acme.io")
    candidate_id = body["candidate_id"]
    headers = _staff()

    detail = client.get(f"/api/candidates/{candidate_id}", headers=headers).json()
    assert detail["email"] == "ada@acme.io"
    assert detail["interview"]["status"] == "COLLECTING_INFO"

    export = client.get("/api/candidates/export", headers=headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("application/vnd.openxmlformats")

    assert client.delete(f"/api/candidates/{candidate_id}", headers=headers).json()["success"]
    assert runtime.store.get_candidate(candidate_id) is None
    assert runtime.sessions.get(candidate_id) is None


def test_issue_tokens(client, runtime):
    headers = _staff()
    issued = client.post("/api/candidates/tokens", json={"email": "New@Acme.io"}, headers=headers)
    assert issued.status_code == 200
    assert issued.json()["email"] == "new@acme.io"

    duplicate = client.post("/api/candidates/tokens", json={"email": "new@acme.io"}, headers=headers)
    assert duplicate.status_code == 409

    upload = client.post(
        "/api/candidates/tokens/upload",
        files={"file": ("emails.xlsx", _xlsx([["email"], ["new@acme.io"], ["bob@acme.io"]]), "application/octet-stream")},
        headers=headers,
    ).json()
    assert [t["email"] for t in upload["issued"]] == ["bob@acme.io"]
    assert upload["skipped"] == ["new@acme.io"]

    token = runtime.tokens.validate(upload["issued"][0]["token"])
    assert token.company_domain == "acme.io"


def test_candidate_token_cannot_reach_dashboard(client, runtime):
    _, body = _sign_in(client, runtime)
    assert client.get("/api/candidates", headers=_bearer(body["access_token"])).status_code == 403


def test_question_bank_admin(client, runtime):
    headers = _staff(role="admin", domain=None)

    created = client.post(
        "/api/questions", json={"question": "What is the virtual DOM?", "difficulty": "Easy"}, headers=headers,
    )
    assert created.status_code == 200
    question_id = created.json()["id"]

    duplicate = client.post(
        "/api/questions", json={"question": "what is the  virtual DOM?", "difficulty": "Hard"}, headers=headers,
    )
    assert duplicate.status_code == 409

    upload = client.post(
        "/api/questions/upload",
        files={"file": ("bank.xlsx", _xlsx([
            ["question", "difficulty"],
            ["How do React hooks manage state?", "medium"],
            ["short", "easy"],
        ]), "application/octet-stream")},
        headers=headers,
    ).json()
    assert upload["added"] == 1
    assert upload["rejected_rows"] == [2]

    generated = client.post("/api/questions/generate", json={"rounds": 1}, headers=headers).json()
    assert len(generated) == len(INTERVIEW_SCHEDULE)

    listed = client.get("/api/questions", headers=headers).json()
    assert len(listed) == 2 + len(INTERVIEW_SCHEDULE)

    assert client.delete(f"/api/questions/{question_id}", headers=headers).json()["success"]
    assert all(e.id != question_id for e in runtime.bank.entries)


def test_question_bank_requires_admin(client):
    assert client.get("/api/questions", headers=_staff()).status_code == 403


def test_bank_questions_feed_interviews(client, runtime, ai):
    for slot_index, slot in enumerate(INTERVIEW_SCHEDULE):
        runtime.bank.add(f"Bank question {slot_index} for the {slot.difficulty.value} slot", slot.difficulty)

    _, body = _sign_in(client, runtime)
    headers = _bearer(body["access_token"])
    client.put("/api/interview/info", json={"name": "Ada", "email": "cand@acme.io", "phone": "1"}, headers=headers)
    session = client.post("/api/interview/start", headers=headers).json()["session"]

    assert session["current_question"]["question"].startswith("Bank question")
    assert session["current_question"]["difficulty"] == Difficulty.EASY.value
    assert ai.generated == 0


def test_allowed_domains(client):
    headers = _staff(role="admin", domain=None)

    created = client.post("/api/domains", json={"domain": "Acme.io"}, headers=headers)
    assert created.json()["domain"] == "acme.io"
    assert client.post("/api/domains", json={"domain": "acme.io"}, headers=headers).status_code == 409
    assert client.post("/api/domains", json={"domain": "localhost"}, headers=headers).status_code == 422

    listed = client.get("/api/domains", headers=headers).json()
    assert [d["domain"] for d in listed] == ["acme.io"]

    domain_id = created.json()["id"]
    assert client.delete(f"/api/domains/{domain_id}", headers=headers).status_code == 200
    assert client.delete(f"/api/domains/{domain_id}", headers=headers).status_code == 404


def test_register_and_login(client, runtime):
    refused = client.post("/api/auth/register", json={"email": "ann@acme.io", "password": "s3cret-pass"})
    assert refused.status_code == 403
    assert refused.json()["error"] == "DomainNotAllowed"
    assert "acme.io" in refused.json()["detail"]

    runtime.domains.add({"domain": "acme.io"})
    registered = client.post("/api/auth/register", json={"email": "ann@acme.io", "password": "s3cret-pass"})
    assert registered.status_code == 200
    assert registered.json()["role"] == "interviewer"
    assert registered.json()["company_domain"] == "acme.io"

    again = client.post("/api/auth/register", json={"email": "ann@acme.io", "password": "other"})
    assert again.status_code == 400

    bad = client.post("/api/auth/login", data={"username": "ann@acme.io", "password": "wrong"})
    assert bad.status_code == 401

    login = client.post("/api/auth/login", data={"username": "ann@acme.io", "password": "s3cret-pass"})
    assert login.status_code == 200
    me = client.get("/api/auth/me", headers=_bearer(login.json()["access_token"])).json()
    assert me["email"] == "ann@acme.io"


def test_admin_emails_register_as_admin(client):
    registered = client.post("/api/auth/register", json={"email": "boss@acme.io", "password": "s3cret-pass"})
    assert registered.json()["role"] == "admin"
