# verity/store.py
"""
Firestore-backed stores: the credential store for users and the
append-only audit log of past verifications.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote
from uuid import uuid4

from google.api_core.exceptions import AlreadyExists, GoogleAPIError
from google.cloud import firestore as gcf

from .errors import ConflictError, PersistenceError
from .models import InputKind, TextVerdict

USERS = "users"
USER_EMAILS = "user_emails"
VERIFICATIONS = "verifications"

STORED_CONTENT_LIMIT = 5000


def _email_key(email: str) -> str:
    # document ids cannot contain "/"
    return quote(email, safe="@")


class UserStore:
    def __init__(self, db):
        self.db = db

    def create(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        user_id = uuid4().hex
        user = {
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        # both documents land together or not at all; the email index
        # create() is the uniqueness guard
        batch = self.db.batch()
        batch.create(self.db.collection(USER_EMAILS).document(_email_key(email)), {"user_id": user_id})
        batch.set(self.db.collection(USERS).document(user_id), user)
        try:
            batch.commit()
        except AlreadyExists:
            raise ConflictError("Email already registered")
        except GoogleAPIError as e:
            raise PersistenceError("Registration failed") from e
        user["id"] = user_id
        return user

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(USERS).document(user_id).get()
        if not snap.exists:
            return None
        user = snap.to_dict()
        user["id"] = snap.id
        return user

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        idx = self.db.collection(USER_EMAILS).document(_email_key(email)).get()
        if not idx.exists:
            return None
        return self.get(idx.to_dict()["user_id"])


class AuditLog:
    """Append-only log of verification requests.

    The Firestore client is resolved on every call through ``client_factory``
    so a missing database only costs the audit trail, not the request.
    """

    def __init__(self, client_factory: Callable[[], Any]):
        self.client_factory = client_factory

    def _collection(self):
        try:
            return self.client_factory().collection(VERIFICATIONS)
        except Exception as e:
            raise PersistenceError("Audit log unavailable") from e

    def record(self, input_kind: InputKind, content: str, result: TextVerdict,
               created_at: Optional[datetime] = None) -> str:
        doc = {
            "input_type": input_kind.value,
            "content": content[:STORED_CONTENT_LIMIT],
            "score": result.score,
            "verdict": result.verdict.value,
            "reasoning": result.reasoning,
            "created_at": created_at or datetime.now(timezone.utc),
        }
        coll = self._collection()
        try:
            _, ref = coll.add(doc)
        except GoogleAPIError as e:
            raise PersistenceError("Audit write failed") from e
        return ref.id

    def list_recent(self, limit: int) -> List[Dict[str, Any]]:
        coll = self._collection()
        try:
            docs = (
                coll.order_by("created_at", direction=gcf.Query.DESCENDING)
                .limit(limit)
                .stream()
            )
            items = []
            for d in docs:
                it = d.to_dict()
                items.append({
                    "id": d.id,
                    "inputType": it.get("input_type"),
                    "score": it.get("score"),
                    "verdict": it.get("verdict"),
                    "reasoning": it.get("reasoning"),
                    "createdAt": it.get("created_at"),
                })
        except GoogleAPIError as e:
            raise PersistenceError("Failed to fetch history") from e
        return items
