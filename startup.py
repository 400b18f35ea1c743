#!/usr/bin/env python3
"""
Interview Ace Startup Script
Main entry point for running the API locally
"""
import uvicorn
import structlog

from app.core.firebase import initialize_firebase
from app.core.logging_config import configure_logging

logger = structlog.get_logger()

def start_server():
    """Start the FastAPI server with Firebase initialization"""
    configure_logging()
    try:
        initialize_firebase()
    except Exception as e:
        logger.error("Failed to start server", error=str(e))
        raise

    logger.info("Starting Interview Ace API server", docs="http://localhost:8000/docs", health="http://localhost:8000/health")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Set to False in production
        log_level="info"
    )

if __name__ == "__main__":
    start_server()
