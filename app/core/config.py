# app/core/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List, Union

class Settings(BaseSettings):
    # API Settings
    PROJECT_NAME: str = "Interview Ace API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Timed AI interview practice with candidate, question bank and token management"

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_SUMMARY_MODEL: str = "gpt-4o"
    LLM_MAX_ATTEMPTS: int = 3

    # JWT Configuration
    SECRET_KEY: str = "your-secret-key-here"  # Change in production
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days
    CANDIDATE_TOKEN_EXPIRE_MINUTES: int = 720

    # Firebase Configuration
    FIREBASE_CONFIG__type: str = "service_account"
    FIREBASE_CONFIG__project_id: str = ""
    FIREBASE_CONFIG__private_key_id: str = ""
    FIREBASE_CONFIG__private_key: str = ""
    FIREBASE_CONFIG__client_email: str = ""
    FIREBASE_CONFIG__client_id: str = ""
    FIREBASE_CONFIG__auth_uri: str = "https://accounts.google.com/o/oauth2/auth"
    FIREBASE_CONFIG__token_uri: str = "https://oauth2.googleapis.com/token"
    FIREBASE_CONFIG__auth_provider_x509_cert_url: str = "https://www.googleapis.com/oauth2/v1/certs"
    FIREBASE_CONFIG__client_x509_cert_url: str = ""

    # CORS Settings
    BACKEND_CORS_ORIGINS: Union[str, List[str]] = ["*"]

    # Interview Settings
    INTERVIEW_TOPIC: str = "full stack"
    QUESTION_TICK_SECONDS: float = 1.0
    LOCAL_STATE_PATH: str = "data/session_state.json"

    # Comma separated list of emails that are made admins on registration
    ADMIN_EMAILS: str = ""

    # Application Settings
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def firebase_credentials(self) -> dict:
        """Get Firebase credentials as a dictionary"""
        return {
            "type": self.FIREBASE_CONFIG__type,
            "project_id": self.FIREBASE_CONFIG__project_id,
            "private_key_id": self.FIREBASE_CONFIG__private_key_id,
            "private_key": self.FIREBASE_CONFIG__private_key.replace("\\n", "\n"),
            "client_email": self.FIREBASE_CONFIG__client_email,
            "client_id": self.FIREBASE_CONFIG__client_id,
            "auth_uri": self.FIREBASE_CONFIG__auth_uri,
            "token_uri": self.FIREBASE_CONFIG__token_uri,
            "auth_provider_x509_cert_url": self.FIREBASE_CONFIG__auth_provider_x509_cert_url,
            "client_x509_cert_url": self.FIREBASE_CONFIG__client_x509_cert_url
        }

    @property
    def cors_origins(self) -> List[str]:
        """Get CORS origins as a list"""
        if isinstance(self.BACKEND_CORS_ORIGINS, str):
            if self.BACKEND_CORS_ORIGINS == "*":
                return ["*"]
            return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",")]
        return self.BACKEND_CORS_ORIGINS

    @property
    def admin_emails(self) -> List[str]:
        return [e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()]

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"

# Global settings instance
_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """Get settings instance (singleton pattern)"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
