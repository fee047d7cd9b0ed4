"""Auth endpoints: admin sign-up, login, logout and profile."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from qrorder.context import AuthContext
from qrorder.db.dependencies import (
    create_access_token,
    get_auth_context,
    get_current_user,
    get_storage,
    require_admin,
)
from qrorder.services import auth as auth_service
from qrorder.storage import Storage


router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignupRequest(BaseModel):
    email: str
    password: str
    confirm_password: str
    username: Optional[str] = None
    phone_number: Optional[str] = None
    company_name: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str
    is_admin: bool = False


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse


class ProfileResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    username: Optional[str] = None
    phone_number: Optional[str] = None
    company_name: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    username: Optional[str] = None
    phone_number: Optional[str] = None
    company_name: Optional[str] = None


@router.post("/signup", response_model=UserResponse, summary="Register an admin account")
async def signup(
    request: SignupRequest,
    storage: Storage = Depends(get_storage),
    auth: AuthContext = Depends(get_auth_context),
):
    user = auth_service.sign_up(
        storage,
        email=request.email,
        password=request.password,
        confirm_password=request.confirm_password,
        username=request.username,
        phone_number=request.phone_number,
        company_name=request.company_name,
    )
    return UserResponse(id=user["id"], email=user["email"], is_admin=auth.is_admin(user["id"]))


@router.post("/login", response_model=TokenResponse, summary="Login and get JWT token")
async def login(request: LoginRequest, auth: AuthContext = Depends(get_auth_context)):
    """Authenticate with email/password and return a bearer token."""
    result = auth.sign_in(request.email, request.password)
    user = result["user"]
    token = create_access_token(data={"sub": user["id"], "email": user["email"]})
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        user=UserResponse(id=user["id"], email=user["email"], is_admin=result["is_admin"]),
    )


@router.post("/logout", summary="Sign out and drop cached admin flags")
async def logout(
    current_user: dict = Depends(get_current_user),
    auth: AuthContext = Depends(get_auth_context),
):
    auth.sign_out()
    return {"status": "ok"}


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: dict = Depends(get_current_user),
    auth: AuthContext = Depends(get_auth_context),
):
    return UserResponse(
        id=current_user["id"],
        email=current_user["email"],
        is_admin=auth.is_admin(current_user["id"]),
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    admin: dict = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    return ProfileResponse(**_profile_fields(auth_service.get_admin_profile(storage, admin["id"])))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    admin: dict = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    fields = request.model_dump(exclude_unset=True)
    profile = auth_service.update_admin_profile(storage, admin["id"], **fields)
    return ProfileResponse(**_profile_fields(profile))


def _profile_fields(row: dict) -> dict:
    return {key: row.get(key) for key in ProfileResponse.model_fields}
