"""FastAPI dependencies for storage injection and auth."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from qrorder import config
from qrorder.context import AuthContext, CartStore
from qrorder.services import auth as auth_service
from qrorder.storage import Storage

ALGORITHM = "HS256"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_storage(request: Request) -> Storage:
    """Storage configured on the application at startup."""
    return request.app.state.storage


def get_auth_context(request: Request) -> AuthContext:
    return request.app.state.auth


def get_cart_store(storage: Storage = Depends(get_storage)) -> CartStore:
    return CartStore(storage)


# ---------- Auth helpers ----------

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.get_token_expire_minutes())
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.get_jwt_secret(), algorithm=ALGORITHM)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    storage: Storage = Depends(get_storage),
) -> Dict[str, Any]:
    """Get the current user from the bearer token."""
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, config.get_jwt_secret(), algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = auth_service.get_user(storage, user_id)
    if user is None:
        raise credentials_exception
    return user


def require_admin(
    current_user: Dict[str, Any] = Depends(get_current_user),
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    """Require a signed-in admin."""
    if not auth.is_admin(current_user["id"]):
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return current_user
