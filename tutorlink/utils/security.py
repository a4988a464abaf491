from datetime import timedelta
from typing import Callable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from tutorlink import models, schemas
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.exceptions import AuthError, AuthorizationError
from tutorlink.utils.clock import utcnow


# ==========================
# AUTH CONFIG
# ==========================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto"
)


# ==========================
# PASSWORD UTILS
# ==========================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Bcrypt max input length = 72 bytes
    Truncate safely to avoid crash
    """
    password_bytes = password.encode("utf-8")

    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
        password = password_bytes.decode("utf-8", errors="ignore")

    return pwd_context.hash(password)


# ==========================
# JWT TOKEN
# ==========================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


# ==========================
# AUTH HELPERS
# ==========================

def authenticate_user(db: Session, email: str, password: str):
    user = db.query(models.User).filter(
        models.User.email == email
    ).first()

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> models.User:
    if not token:
        raise AuthError("Not authorized, no token")

    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        email: str = payload.get("sub")
        if email is None:
            raise AuthError("Not authorized, invalid token")
        token_data = schemas.TokenData(email=email, role=payload.get("role"))
    except JWTError:
        raise AuthError("Not authorized, invalid token")

    user = db.query(models.User).filter(
        models.User.email == token_data.email
    ).first()

    if user is None:
        raise AuthError("User not found")
    if not user.is_active:
        raise AuthError("Account is deactivated")

    return user


def require_approved(current_user: models.User = Depends(get_current_user)) -> models.User:
    """Admins pass through; everyone else needs an approved account."""
    if not current_user.is_admin and not current_user.is_approved:
        raise AuthorizationError(
            "Account pending approval. Please contact an administrator for account activation."
        )
    return current_user


def require_role(*roles: str) -> Callable[..., models.User]:
    """Dependency factory: approved user whose role is one of ``roles``."""
    allowed = set(roles)

    def _checker(current_user: models.User = Depends(require_approved)) -> models.User:
        if current_user.role not in allowed:
            raise AuthorizationError(
                f"Access denied. Requires role: {', '.join(sorted(allowed))}"
            )
        return current_user

    return _checker


require_admin = require_role("admin")
