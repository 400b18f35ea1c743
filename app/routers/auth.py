# app/routers/auth.py - Candidate token sign-in and interviewer accounts

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from datetime import datetime, timedelta
import structlog

from app.core.config import get_settings
from app.core.exceptions import DomainNotAllowed, InvalidTokenError
from app.core.security import (
    create_access_token,
    create_candidate_token,
    get_current_interviewer,
    get_password_hash,
    verify_password,
)
from app.models.admin import TokenValidationRequest
from app.models.interview import InterviewStatus
from app.models.user import CandidateTokenResponse, CurrentUser, TokenResponse, UserCreate, UserResponse
from app.services.runtime import Runtime, get_runtime

router = APIRouter()
logger = structlog.get_logger()


def _user_response(user_id: str, data: dict) -> UserResponse:
    return UserResponse(
        user_id=user_id,
        email=data.get("email"),
        display_name=data.get("display_name"),
        role=data.get("role", "interviewer"),
        company_domain=data.get("companyDomain"),
        created_at=data.get("created_at") or datetime.utcnow(),
    )


@router.post("/candidate/token", response_model=CandidateTokenResponse)
async def sign_in_with_token(request: TokenValidationRequest, rt: Runtime = Depends(get_runtime)):
    """Validate a one-time interview token and open (or resume) the candidate's session"""
    info = rt.tokens.validate(request.token.strip())
    if info is None:
        raise InvalidTokenError("The token is either incorrect or has already been used.")

    candidate = await rt.store.find_by_email(info.email)
    if candidate is None or candidate.interview.status == InterviewStatus.COMPLETED:
        candidate = await rt.store.create_candidate(
            email=info.email,
            company_domain=info.company_domain,
            status=InterviewStatus.COLLECTING_INFO,
        )

    rt.store.set_active(candidate.id, info.token)
    rt.sessions.get_or_create(candidate.id, token=info.token)
    logger.info("Candidate signed in with token", candidate_id=candidate.id)

    return CandidateTokenResponse(
        access_token=create_candidate_token(candidate.id, info.token),
        candidate_id=candidate.id,
        status=candidate.interview.status.value,
    )


@router.post("/register", response_model=UserResponse)
async def register_user(user_data: UserCreate, rt: Runtime = Depends(get_runtime)):
    """Register an interviewer whose email domain is on the allow-list"""
    settings = get_settings()
    email = user_data.email.lower()
    domain = email.split("@", 1)[1]
    role = "admin" if email in settings.admin_emails else "interviewer"

    if role != "admin" and not rt.domains.query(domain=domain):
        raise DomainNotAllowed(f"Email domain '{domain}' is not allowed to register as an interviewer")

    try:
        if rt.users.query(email=email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

        user_doc = {
            "email": email,
            "hashed_password": get_password_hash(user_data.password),
            "display_name": user_data.display_name or email.split("@")[0],
            "role": role,
            "companyDomain": domain,
            "created_at": datetime.utcnow(),
        }
        user_id = rt.users.add(user_doc)
        logger.info("Interviewer registered", user_id=user_id, role=role)
        return _user_response(user_id, user_doc)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to register user: {str(e)}"
        )


@router.post("/login", response_model=TokenResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), rt: Runtime = Depends(get_runtime)):
    """Authenticate an interviewer and return a JWT access token"""
    try:
        results = rt.users.query(email=form_data.username.lower())
        user_data = results[0] if results else None
        hashed_password = user_data.get("hashed_password") if user_data else None

        if not hashed_password or not verify_password(form_data.password, hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        settings = get_settings()
        access_token = create_access_token(
            data={
                "sub": user_data["id"],
                "role": user_data.get("role", "interviewer"),
                "domain": user_data.get("companyDomain"),
            },
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        return TokenResponse(access_token=access_token, user=_user_response(user_data["id"], user_data))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Login failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not log in user",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: CurrentUser = Depends(get_current_interviewer),
    rt: Runtime = Depends(get_runtime),
):
    """Retrieve the authenticated interviewer's profile"""
    user_data = rt.users.get(current_user.subject)
    if user_data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _user_response(current_user.subject, user_data)
