"""
Create the first TutorLink admin from environment variables.

    ENABLE_ADMIN_BOOTSTRAP=true \
    ADMIN_BOOTSTRAP_CONFIRM=CREATE-FIRST-ADMIN \
    ADMIN_NAME="Site Admin" ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=... \
    python -m tutorlink.scripts.bootstrap_admin

Refuses to run once any admin account exists.
"""

import logging
import os
import re
from typing import Dict

from tutorlink import models
from tutorlink.crud import user as user_crud
from tutorlink.database import Base, SessionLocal, engine

logger = logging.getLogger(__name__)

CONFIRM_PHRASE = "CREATE-FIRST-ADMIN"
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PASSWORD_RULES = (
    (lambda p: len(p) >= 8, "at least 8 characters"),
    (lambda p: len(p.encode("utf-8")) <= 72, "at most 72 bytes"),
    (lambda p: re.search(r"[A-Z]", p), "an uppercase letter"),
    (lambda p: re.search(r"[a-z]", p), "a lowercase letter"),
    (lambda p: re.search(r"\d", p), "a digit"),
)


def _validate_password(password: str) -> None:
    missing = [label for check, label in PASSWORD_RULES if not check(password)]
    if missing:
        raise ValueError(f"ADMIN_PASSWORD needs {', '.join(missing)}")


def _read_env() -> Dict[str, str]:
    if os.getenv("ENABLE_ADMIN_BOOTSTRAP", "").strip().lower() not in {"1", "true", "yes", "on"}:
        raise ValueError("Bootstrap disabled; set ENABLE_ADMIN_BOOTSTRAP=true")

    values = {}
    for key in ("ADMIN_BOOTSTRAP_CONFIRM", "ADMIN_NAME", "ADMIN_EMAIL", "ADMIN_PASSWORD"):
        values[key] = os.getenv(key, "").strip()
        if not values[key]:
            raise ValueError(f"{key} is not set")

    if values["ADMIN_BOOTSTRAP_CONFIRM"] != CONFIRM_PHRASE:
        raise ValueError(f"ADMIN_BOOTSTRAP_CONFIRM must be exactly {CONFIRM_PHRASE}")
    if not EMAIL_RE.match(values["ADMIN_EMAIL"]):
        raise ValueError("ADMIN_EMAIL is not a valid address")
    _validate_password(values["ADMIN_PASSWORD"])
    return values


def create_first_admin(db, *, name: str, email: str, password: str) -> models.User:
    """Insert an approved, verified admin. Only allowed while no admin exists."""
    if db.query(models.User.id).filter(models.User.role == "admin").first():
        raise ValueError("An admin already exists; use the admin endpoints instead")
    if user_crud.get_user_by_email(db, email):
        raise ValueError(f"{email.strip().lower()} is already registered")

    user = user_crud.create_user(
        db,
        name=name,
        email=email,
        password=password,
        role="admin",
        is_approved=True,
    )
    user.documents_verified = True
    db.commit()
    db.refresh(user)
    return user


def bootstrap_admin() -> int:
    """CLI entry point; returns a process exit code."""
    try:
        env = _read_env()
    except ValueError as exc:
        logger.error("Admin bootstrap refused: %s", exc)
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = create_first_admin(
            db,
            name=env["ADMIN_NAME"],
            email=env["ADMIN_EMAIL"],
            password=env["ADMIN_PASSWORD"],
        )
    except ValueError as exc:
        db.rollback()
        logger.error("Admin bootstrap failed: %s", exc)
        return 1
    finally:
        db.close()

    logger.info("Admin %s created (id=%s)", user.email, user.id)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    raise SystemExit(bootstrap_admin())
