# verity/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from .config import Settings
from .errors import AuthError, NotFoundError, ValidationError
from .models import AuthResult, PublicUser
from .store import UserStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything past this


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    pw = password.encode("utf-8")
    if len(pw) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(pw, password_hash.encode("utf-8"))
    except ValueError:
        # corrupt stored hash
        return False


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _public(user: Dict[str, Any]) -> PublicUser:
    return PublicUser(id=user["id"], name=user["name"], email=user["email"])


class AuthService:
    def __init__(self, settings: Settings, users: UserStore):
        self.settings = settings
        self.users = users

    def issue_token(self, user_id: str, issued_at: Optional[datetime] = None) -> str:
        iat = issued_at or datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "iat": iat,
            "exp": iat + timedelta(days=self.settings.JWT_EXPIRE_DAYS),
        }
        return jwt.encode(claims, self.settings.JWT_SECRET, algorithm=self.settings.JWT_ALGORITHM)

    def verify_token(self, token: Optional[str]) -> str:
        if not token:
            raise AuthError("Access denied. No token provided.")
        try:
            claims = jwt.decode(
                token,
                self.settings.JWT_SECRET,
                algorithms=[self.settings.JWT_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.info("Token verification failed: %s", e)
            raise AuthError("Invalid or expired token")
        return claims["sub"]

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> AuthResult:
        if not name or not email or not password:
            raise ValidationError("Please provide name, email and password")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("Password must be at least 6 characters")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError("Password must be at most 72 bytes")

        user = self.users.create(name.strip(), _normalize_email(email), hash_password(password))
        logger.info("Registered user %s", user["id"])
        return AuthResult(token=self.issue_token(user["id"]), user=_public(user))

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = self.users.find_by_email(_normalize_email(email))
        # same answer for unknown email and wrong password
        if user is None or not check_password(password, user.get("password_hash", "")):
            raise AuthError("Invalid credentials")
        return AuthResult(token=self.issue_token(user["id"]), user=_public(user))

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return {
            "id": user["id"],
            "name": user["name"],
            "email": user["email"],
            "createdAt": user.get("created_at"),
        }
