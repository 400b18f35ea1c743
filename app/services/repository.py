# app/services/repository.py - Thin collection wrapper over the Firestore client

from typing import Any, Dict, List, Optional

from app.core.firebase import get_firestore_client

CANDIDATES = "candidates"
TOKENS = "interviewTokens"
QUESTIONS = "interviewQuestions"
DOMAINS = "allowedDomains"
USERS = "users"


class FirestoreRepository:
    """CRUD helpers for a single top-level collection.

    Documents are returned as plain dicts with the document id under ``id``.
    Writes use merge semantics so partial updates never clobber other fields.
    """

    def __init__(self, collection: str, db=None):
        self.collection_name = collection
        self._db = db

    @property
    def db(self):
        return self._db if self._db is not None else get_firestore_client()

    @property
    def collection(self):
        return self.db.collection(self.collection_name)

    @staticmethod
    def _to_dict(snapshot) -> Dict[str, Any]:
        data = snapshot.to_dict() or {}
        data.setdefault("id", snapshot.id)
        return data

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self.collection.document(doc_id).get()
        if not snapshot.exists:
            return None
        return self._to_dict(snapshot)

    def upsert(self, doc_id: str, data: Dict[str, Any]) -> None:
        self.collection.document(doc_id).set(data, merge=True)

    def add(self, data: Dict[str, Any]) -> str:
        ref = self.collection.document()
        ref.set(data)
        return ref.id

    def update(self, doc_id: str, fields: Dict[str, Any]) -> None:
        self.collection.document(doc_id).update(fields)

    def delete(self, doc_id: str) -> None:
        self.collection.document(doc_id).delete()

    def list_all(self) -> List[Dict[str, Any]]:
        return [self._to_dict(doc) for doc in self.collection.stream()]

    def query(self, **equals: Any) -> List[Dict[str, Any]]:
        """Documents whose fields equal every given value"""
        query = self.collection
        for field, value in equals.items():
            query = query.where(field, "==", value)
        return [self._to_dict(doc) for doc in query.stream()]
