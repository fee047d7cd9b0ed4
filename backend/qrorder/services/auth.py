"""
Staff identities, admin membership and profiles.

A user is an email/password identity. Admin rights come from a row in
admin_users; AdminStatusCache answers "is this user an admin" with at
most one membership query per user until the cache is cleared.
"""

import logging
import threading
from typing import Any, Dict, Optional

from passlib.context import CryptContext

from qrorder.errors import AuthError, ConflictError, NotFoundError, StorageError, ValidationError
from qrorder.storage.base import Storage, eq
from qrorder.utils.time_utils import now_utc_naive

logger = logging.getLogger(__name__)

USERS = "users"
ADMIN_USERS = "admin_users"

MIN_PASSWORD_LENGTH = 6
PROFILE_FIELDS = ("username", "phone_number", "company_name")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plain text password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _public(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password_hash"}


def sign_up(
    storage: Storage,
    email: str,
    password: str,
    confirm_password: str,
    username: Optional[str] = None,
    phone_number: Optional[str] = None,
    company_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Register a staff identity and its admin membership row.

    Input is validated before anything is written.
    """
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

    profile = {
        "username": username,
        "phone_number": phone_number,
        "company_name": company_name,
    }
    with storage.transaction():
        if storage.select_one(USERS, [eq("email", email)]) is not None:
            raise ConflictError("User already registered")
        user = storage.insert(USERS, {
            "email": email,
            "password_hash": hash_password(password),
            "user_metadata": profile,
            "created_at": now_utc_naive(),
        })
        storage.insert(ADMIN_USERS, {
            "user_id": user["id"],
            "email": email,
            **profile,
            "created_at": now_utc_naive(),
        })
    logger.info("Registered admin %s", email)
    return _public(user)


def sign_in(storage: Storage, email: str, password: str) -> Dict[str, Any]:
    """Check credentials and return the user (without the password hash)."""
    user = storage.select_one(USERS, [eq("email", (email or "").strip().lower())])
    if user is None or not verify_password(password or "", user["password_hash"]):
        raise AuthError("Invalid login credentials")
    return _public(user)


def get_user(storage: Storage, user_id: str) -> Optional[Dict[str, Any]]:
    user = storage.select_one(USERS, [eq("id", user_id)])
    return _public(user) if user else None


def get_admin_profile(storage: Storage, user_id: str) -> Dict[str, Any]:
    row = storage.select_one(ADMIN_USERS, [eq("user_id", user_id)])
    if row is None:
        raise NotFoundError("Admin profile not found")
    return row


def update_admin_profile(storage: Storage, user_id: str, **fields: Any) -> Dict[str, Any]:
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
    if not fields:
        return get_admin_profile(storage, user_id)
    rows = storage.update(ADMIN_USERS, fields, [eq("user_id", user_id)])
    if not rows:
        raise NotFoundError("Admin profile not found")
    return rows[0]


class AdminStatusCache:
    """
    Per-user admin flag, looked up once and remembered.

    Negative answers are cached too. A failed lookup answers False but is
    not cached, so the next call asks the store again.
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self._cache: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def is_admin(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        with self._lock:
            if user_id in self._cache:
                return self._cache[user_id]

        try:
            row = self.storage.select_one(ADMIN_USERS, [eq("user_id", user_id)])
        except StorageError as e:
            logger.error("Error checking admin status for %s: %s", user_id, e)
            return False

        result = row is not None
        with self._lock:
            self._cache[user_id] = result
        return result

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._cache.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._cache

    def __len__(self) -> int:
        return len(self._cache)
