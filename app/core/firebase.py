# app/core/firebase.py
import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from app.core.config import get_settings
from typing import Optional

logger = structlog.get_logger()

# Global Firestore client shared by every repository
_firestore_client: Optional[firestore.Client] = None

def _firebase_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        settings = get_settings()
        if not settings.FIREBASE_CONFIG__project_id:
            raise RuntimeError("FIREBASE_CONFIG__project_id is not set; cannot reach Firestore")
        return firebase_admin.initialize_app(credentials.Certificate(settings.firebase_credentials))

def get_firestore_client() -> firestore.Client:
    """Firestore client for the configured service account (created once)"""
    global _firestore_client
    if _firestore_client is None:
        _firestore_client = firestore.client(app=_firebase_app())
    return _firestore_client

def initialize_firebase():
    """Connect to Firestore at app startup"""
    client = get_firestore_client()
    logger.info("Firebase initialized", project_id=client.project)

def close_firestore_client():
    """Drop the cached client and the Firebase app on shutdown"""
    global _firestore_client
    _firestore_client = None
    try:
        firebase_admin.delete_app(firebase_admin.get_app())
    except ValueError:
        pass
