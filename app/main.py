from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
import structlog
import time

# Import routers
from app.routers import auth, interview, candidates, questions, domains
from app.core.config import get_settings
from app.core.exceptions import (
    CandidateNotFound,
    DomainNotAllowed,
    InterviewError,
    InvalidTokenError,
    InvalidTransition,
    QuestionSourceError,
    SummaryError,
    TokenAlreadyIssued,
)
from app.core.firebase import close_firestore_client, initialize_firebase
from app.core.logging_config import configure_logging
from app.models.common import ErrorResponse
from app.services.runtime import Runtime, get_runtime, shutdown_runtime

# Initialize settings
settings = get_settings()
configure_logging()
logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.VERSION
)

# Add CORS middleware with proper configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=round(time.time() - start_time, 4),
    )
    return response

_ERROR_STATUS = {
    CandidateNotFound: 404,
    InvalidTokenError: 401,
    DomainNotAllowed: 403,
    TokenAlreadyIssued: 409,
    InvalidTransition: 409,
    QuestionSourceError: 503,
    SummaryError: 503,
}

@app.exception_handler(InterviewError)
async def interview_error_handler(request: Request, exc: InterviewError):
    status_code = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(mode="json"),
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", error=str(exc), method=request.method, url=str(request.url))
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error").model_dump(mode="json"),
    )

@app.on_event("startup")
async def startup_event():
    initialize_firebase()
    if get_runtime().store.hydrate():
        logger.info("Restored active session from local state")
    if not settings.OPENAI_API_KEY:
        logger.warning("OpenAI API key not configured - question generation and summaries will fail")

@app.on_event("shutdown")
async def shutdown_event():
    shutdown_runtime()
    close_firestore_client()

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(interview.router, prefix="/api/interview", tags=["Interview"])
app.include_router(candidates.router, prefix="/api/candidates", tags=["Candidates"])
app.include_router(questions.router, prefix="/api/questions", tags=["Question Bank"])
app.include_router(domains.router, prefix="/api/domains", tags=["Allowed Domains"])

@app.get("/")
async def root():
    return {
        "message": "Welcome to Interview Ace API",
        "version": settings.VERSION,
        "description": settings.DESCRIPTION,
        "endpoints": {
            "auth": "/api/auth",
            "interview": "/api/interview",
            "candidates": "/api/candidates",
            "questions": "/api/questions",
            "domains": "/api/domains",
            "docs": "/docs",
            "health": "/health"
        }
    }

@app.get("/health")
async def health_check(rt: Runtime = Depends(get_runtime)):
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "debug": settings.DEBUG,
        "pending_writes": len(rt.store.pending_writes),
    }

handler = Mangum(app)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
