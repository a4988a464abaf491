import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.crud import user as user_crud
from tutorlink.database import get_db
from tutorlink.exceptions import AuthError, ValidationError
from tutorlink.schemas import LoginRequest, RegisterRequest, Token, UserMe, envelope
from tutorlink.utils.security import authenticate_user, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

SELF_SERVICE_ROLES = ("student", "mentor")


def _issue_token(user: models.User) -> Token:
    access_token = create_access_token(data={"sub": user.email, "role": user.role})
    return Token(access_token=access_token, token_type="bearer", role=user.role)


def _login(db: Session, email: str, password: str) -> Token:
    user = authenticate_user(db, email.strip().lower(), password)
    if not user:
        raise AuthError("Invalid email or password")
    if not user.is_active:
        raise AuthError("Account is deactivated")
    return _issue_token(user)


# ===== REGISTER ENDPOINT =====

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    """Create a pending account; an admin has to approve it before booking."""
    role = (user_data.role or "student").strip().lower()
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("Role must be one of: student, mentor")

    if user_crud.get_user_by_email(db, user_data.email):
        raise ValidationError("Email already registered")

    user = user_crud.create_user(
        db,
        name=user_data.name.strip(),
        email=user_data.email,
        password=user_data.password,
        role=role,
        bio=user_data.bio,
    )
    db.commit()
    db.refresh(user)
    logger.info("Registered %s %s", role, user.id)

    return envelope(
        {"user": UserMe.model_validate(user), "token": _issue_token(user)},
        "Registration successful. Your account is pending approval.",
    )


# ===== LOGIN ENDPOINTS =====

@router.post("/login")
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Verify credentials and return access token"""
    return envelope(_login(db, credentials.email, credentials.password), "Login successful")


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """OAuth2 password flow used by the interactive API docs."""
    return _login(db, form_data.username, form_data.password)
