# PURPOSE: /auth: OTP-confirmed registration, login, profile and password reset.

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import authenticate, create_access_token, get_current_user, hash_password
from ..config import settings
from ..db_models import UserDB
from ..mailer import Mailer, get_mailer
from ..models import (
    AuthResponse,
    ForgotPasswordRequest,
    OTPIssueResponse,
    OTPRequest,
    OTPVerifyRequest,
    OTPVerifyResponse,
    PasswordResetRequest,
    ProfileUpdate,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserPublic,
    VerifyRegistrationRequest,
)
from ..otp import issue_otp, normalize_email, verify_otp
from ..rate_limit import limiter
from ..security import create_reset_token, read_reset_token
from ..store_db import get_db
from ..welcome import seed_welcome_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_OTP = "Invalid or expired OTP"


def _find_user(db: Session, email: str) -> UserDB | None:
    return db.query(UserDB).filter(UserDB.email == email).one_or_none()


def _ensure_available(db: Session, email: str, username: str) -> None:
    existing = (
        db.query(UserDB)
        .filter(or_(UserDB.email == email, UserDB.username == username))
        .first()
    )
    if existing:
        detail = "Email already registered" if existing.email == email else "Username already taken"
        raise HTTPException(status_code=400, detail=detail)


def _send_code(db: Session, mailer: Mailer, email: str, purpose: str) -> bool:
    code = issue_otp(db, email, purpose)
    # the code is valid once stored; delivery is best effort
    return mailer.send_otp(email, code, purpose)


@router.post("/register", response_model=RegisterResponse)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
def register_user(
    request: Request,
    response: Response,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Start registration: mail a confirmation code. The account is created on verification."""
    email = normalize_email(payload.email)
    _ensure_available(db, email, payload.username)
    delivered = _send_code(db, mailer, email, "registration")
    return RegisterResponse(email=email, delivered=delivered)


@router.post("/verify-registration", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def verify_registration(
    payload: VerifyRegistrationRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    email = normalize_email(payload.email)
    _ensure_available(db, email, payload.username)
    if not verify_otp(db, email, payload.otp, "registration"):
        raise HTTPException(status_code=400, detail=INVALID_OTP)

    user = UserDB(
        name=payload.name,
        username=payload.username,
        email=email,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent registration took the email or username after the check above
        db.rollback()
        logger.info("registration lost race email=%s", email)
        _ensure_available(db, email, payload.username)
        raise HTTPException(status_code=400, detail="Email already registered")
    db.refresh(user)
    logger.info("user registered id=%s", user.id)

    if settings.SEED_WELCOME_DATA:
        seed_welcome_data(db, user.id)
    mailer.send_welcome(user.email, user.name)

    return AuthResponse(
        access_token=create_access_token(user.email),
        user=UserPublic.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    response: Response,
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    # OAuth2PasswordRequestForm fields: username (email or username), password
    user = authenticate(db, form.username, form.password)
    if not user:
        raise HTTPException(status_code=401, detail="Incorrect email or password")
    # subject is the email, as get_current_user looks users up by email
    return TokenResponse(access_token=create_access_token(user.email))


@router.get("/me", response_model=UserPublic)
def me(user: UserPublic = Depends(get_current_user)):
    return user


@router.put("/profile", response_model=UserPublic)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    row = db.get(UserDB, user.id)
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")
    row.name = payload.name
    db.commit()
    db.refresh(row)
    return UserPublic.model_validate(row)


@router.post("/forgot-password", response_model=OTPIssueResponse)
@limiter.limit(settings.RATE_LIMIT_OTP)
def forgot_password(
    request: Request,
    response: Response,
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Mail a password-reset code. Unknown addresses get the same answer, minus the mail."""
    email = normalize_email(payload.email)
    if _find_user(db, email) is None:
        logger.info("password reset requested for unknown email")
        return OTPIssueResponse(delivered=False)
    return OTPIssueResponse(delivered=_send_code(db, mailer, email, "password_reset"))


@router.post("/otp", response_model=OTPIssueResponse)
@limiter.limit(settings.RATE_LIMIT_OTP)
def resend_otp(
    request: Request,
    response: Response,
    payload: OTPRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Issue another code. Earlier codes stay valid until they expire."""
    email = normalize_email(payload.email)
    registered = _find_user(db, email) is not None
    if registered != (payload.type == "password_reset"):
        return OTPIssueResponse(delivered=False)
    return OTPIssueResponse(delivered=_send_code(db, mailer, email, payload.type))


@router.post("/verify-otp", response_model=OTPVerifyResponse)
def verify_code(payload: OTPVerifyRequest, db: Session = Depends(get_db)):
    """Consume a code. A verified password_reset code is exchanged for a reset token."""
    email = normalize_email(payload.email)
    if not verify_otp(db, email, payload.otp, payload.type):
        return OTPVerifyResponse(valid=False)
    token = None
    if payload.type == "password_reset":
        user = _find_user(db, email)
        if user is not None:
            token = create_reset_token(user.email, user.password_hash)
    return OTPVerifyResponse(valid=True, reset_token=token)


@router.post("/verify-password-reset")
def reset_password(payload: PasswordResetRequest, db: Session = Depends(get_db)):
    email = normalize_email(payload.email)
    user = _find_user(db, email)
    if payload.otp is not None:
        ok = verify_otp(db, email, payload.otp, "password_reset")
    else:
        ok = user is not None and read_reset_token(payload.reset_token, user.password_hash) == email
    if not ok or user is None:
        raise HTTPException(status_code=400, detail=INVALID_OTP)

    user.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info("password reset user_id=%s", user.id)
    return {"message": "Password reset successfully"}
