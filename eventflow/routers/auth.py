import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

import requests
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from ..config import GOOGLE_CLIENT_ID, GOOGLE_TOKEN_INFO_URL, FRONTEND_RESET_URL
from ..dynamodb_service import (
    DatabaseError,
    ItemNotFoundError,
    save_user,
    get_user_by_email,
    get_user_by_id,
    update_user,
)
from ..enums.auth_provider import AuthProvider
from ..security import (
    RESET_TOKEN_TYPE,
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    verify_password,
)
from ..ses_service import EmailDeliveryError, send_password_reset_email
from ..validation import is_blank, is_valid_email, is_password_too_long, is_weak_password

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_DISPLAY_NAME = "Usuario"
PASSWORD_TOO_LONG = "Password is too long. Use at most 72 bytes."


class SignUpRequest(BaseModel):
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    display_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class Token(BaseModel):
    token: str


class RecoverPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = ""


class UserProfile(BaseModel):
    user_id: str
    email: str
    display_name: str
    provider: str


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


def to_profile(user: dict) -> UserProfile:
    return UserProfile(
        user_id=user["user_id"],
        email=user["email"],
        display_name=user.get("display_name") or DEFAULT_DISPLAY_NAME,
        provider=user.get("provider", AuthProvider.PASSWORD.value),
    )


def issue_token(user: dict) -> AuthResponse:
    return AuthResponse(
        access_token=create_access_token(user["user_id"], user["email"]),
        user=to_profile(user),
    )


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def sign_up(request: SignUpRequest):
    """
    Register a new account with email and password.
    """
    if is_blank(request.email) or not request.password:
        raise HTTPException(status_code=400, detail="Please fill in all fields")

    if request.password != request.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")

    email = request.email.strip().lower()
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="That email address is invalid!")

    if is_weak_password(request.password):
        raise HTTPException(status_code=400, detail="Please use a stronger password!")

    if is_password_too_long(request.password):
        raise HTTPException(status_code=400, detail=PASSWORD_TOO_LONG)

    try:
        if get_user_by_email(email):
            raise HTTPException(status_code=409, detail="That email address is already in use!")

        user_item = {
            "user_id": str(uuid.uuid4()),
            "email": email,
            "display_name": (request.display_name or "").strip() or None,
            "password_hash": hash_password(request.password),
            "provider": AuthProvider.PASSWORD.value,
            "push_tokens": [],
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        save_user(user_item)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="An error occurred during sign up")

    return {"message": "User created. Please log in.", "user_id": user_item["user_id"]}


@router.post("/login", response_model=AuthResponse)
def log_in(request: LoginRequest):
    """
    Log in with email and password and receive a bearer token.
    """
    if is_blank(request.email) or not request.password:
        raise HTTPException(status_code=400, detail="Please fill in all fields")

    try:
        user = get_user_by_email(request.email.strip())
    except DatabaseError:
        raise HTTPException(status_code=500, detail="An error occurred during log in")

    # Google accounts have no password hash
    if not user or not user.get("password_hash") or not verify_password(request.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    logger.info("User %s logged in", user["user_id"])
    return issue_token(user)


def verify_google_id_token(id_token: str) -> dict:
    """
    Validate a Google ID token using Google's public tokeninfo endpoint.

    Returns:
        dict: The token claims (email, name, picture, ...).
    """
    try:
        response = requests.get(f"{GOOGLE_TOKEN_INFO_URL}{id_token}", timeout=10)
    except requests.RequestException as e:
        logger.error("Could not reach Google tokeninfo: %s", e)
        raise HTTPException(status_code=401, detail=f"Token validation failed: {str(e)}")

    if response.status_code != 200:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_info = response.json()

    # Ensure the token audience matches the backend client ID
    if user_info.get("aud") != GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=401, detail="Invalid audience")

    if not user_info.get("email"):
        raise HTTPException(status_code=401, detail="Token has no email claim")

    # tokeninfo returns the claim as a string
    if user_info.get("email_verified") not in ("true", True):
        raise HTTPException(status_code=401, detail="Google email address is not verified")

    return user_info


@router.post("/google", response_model=AuthResponse)
def google_sign_in(data: Token):
    """
    Verifies the Google ID token sent from the app, creating the account on first sign in.
    """
    user_info = verify_google_id_token(data.token)
    email = user_info["email"].lower()

    try:
        user = get_user_by_email(email)
        if not user:
            user = {
                "user_id": str(uuid.uuid4()),
                "email": email,
                "display_name": user_info.get("name"),
                "provider": AuthProvider.GOOGLE.value,
                "push_tokens": [],
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            save_user(user)
            logger.info("Created account %s from Google sign in", user["user_id"])
    except DatabaseError:
        raise HTTPException(status_code=500, detail="An error occurred during sign in")

    return issue_token(user)


@router.post("/recover-password")
def recover_password(request: RecoverPasswordRequest):
    """
    Email a password reset link to a registered user.
    """
    email = request.email.strip()
    if not email:
        raise HTTPException(status_code=400, detail="Please enter an email address.")

    if not is_valid_email(email):
        raise HTTPException(
            status_code=400,
            detail="Please enter a valid email address. Example: usuario@dominio.com",
        )

    try:
        user = get_user_by_email(email)
        if not user:
            raise HTTPException(status_code=404, detail="No account is registered with this email address.")

        nonce = uuid.uuid4().hex
        update_user(user["user_id"], {"reset_nonce": nonce})
        reset_link = f"{FRONTEND_RESET_URL}?token={create_reset_token(user['user_id'], nonce)}"
        send_password_reset_email(user["email"], reset_link)
    except (DatabaseError, EmailDeliveryError):
        raise HTTPException(status_code=500, detail="An error occurred. Please try again.")

    return {"message": f"A recovery link has been sent to {email}. Please check your inbox."}


@router.post("/reset-password")
def reset_password(request: ResetPasswordRequest):
    payload = decode_token(request.token, expected_type=RESET_TOKEN_TYPE)
    if payload is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset link")

    if is_weak_password(request.new_password):
        raise HTTPException(status_code=400, detail="Please use a stronger password!")

    if is_password_too_long(request.new_password):
        raise HTTPException(status_code=400, detail=PASSWORD_TOO_LONG)

    try:
        user = get_user_by_id(payload["sub"])
        # The nonce is cleared below, so a link only works once
        if not user or not user.get("reset_nonce") or user["reset_nonce"] != payload.get("nonce"):
            raise HTTPException(status_code=400, detail="Invalid or expired reset link")

        update_user(user["user_id"], {
            "password_hash": hash_password(request.new_password),
            "provider": AuthProvider.PASSWORD.value,
            "reset_nonce": None,
        })
    except ItemNotFoundError:
        raise HTTPException(status_code=400, detail="Invalid or expired reset link")
    except DatabaseError:
        raise HTTPException(status_code=500, detail="An error occurred. Please try again.")

    return {"message": "Password updated. Please log in."}


# Initialize OAuth2PasswordBearer to extract token from the Authorization header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def get_current_user(token: str = Depends(oauth2_scheme)) -> dict:
    """
    Validates the bearer token sent by the app and loads the user it belongs to.
    """
    payload = decode_token(token)
    if payload is None:
        raise HTTPException(
            status_code=401,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = get_user_by_id(payload["sub"])
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not load the current user")

    if not user:
        raise HTTPException(
            status_code=401,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


@router.post("/logout")
def log_out(current_user: dict = Depends(get_current_user)):
    """
    Tokens are stateless, the app discards its copy after this call.
    """
    logger.info("User %s logged out", current_user["user_id"])
    return {"message": "Signed out"}
