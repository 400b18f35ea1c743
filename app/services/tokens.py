# app/services/tokens.py - One-time interview access tokens

import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

import structlog

from app.core.exceptions import TokenAlreadyIssued
from app.models.admin import InterviewToken, IssuedToken, TokenInfo
from app.services.repository import TOKENS, FirestoreRepository

logger = structlog.get_logger()


class TokenService:
    def __init__(self, repository: Optional[FirestoreRepository] = None):
        self.repository = repository or FirestoreRepository(TOKENS)

    def validate(self, token: str) -> Optional[TokenInfo]:
        """Return the token's owner if it exists and has not been used"""
        docs = self.repository.query(token=token, isValid=True)
        if not docs:
            return None
        record = InterviewToken.model_validate(docs[0])
        return TokenInfo(token=record.token, email=record.email, company_domain=record.company_domain)

    def invalidate(self, token: str) -> bool:
        docs = self.repository.query(token=token)
        if not docs:
            logger.warning("Tried to invalidate unknown token")
            return False
        self.repository.update(docs[0]["id"], {"isValid": False})
        logger.info("Token invalidated", email=docs[0].get("email"))
        return True

    def issue(self, email: str, company_domain: Optional[str] = None) -> IssuedToken:
        email = email.strip().lower()
        if self.repository.query(email=email):
            raise TokenAlreadyIssued(f"A token already exists for {email}.")
        token = str(uuid.uuid4())
        self.repository.add({
            "email": email,
            "token": token,
            "companyDomain": company_domain,
            "createdAt": datetime.utcnow(),
            "isValid": True,
        })
        logger.info("Token issued", email=email, company_domain=company_domain)
        return IssuedToken(email=email, token=token)

    def issue_many(self, emails: Iterable[str], company_domain: Optional[str] = None) -> Tuple[List[IssuedToken], List[str]]:
        issued: List[IssuedToken] = []
        skipped: List[str] = []
        for email in emails:
            email = email.strip().lower()
            if not email:
                continue
            try:
                issued.append(self.issue(email, company_domain))
            except TokenAlreadyIssued:
                skipped.append(email)
        return issued, skipped
