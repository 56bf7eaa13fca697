"""Staff authentication: account table, JWT tokens and FastAPI dependencies.

The pipeline itself only ever sees a ``Role``; how the role was established
is up to whichever ``Authenticator`` the composition root injects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from leadflow.config import Config
from leadflow.schemas import Role

log = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

_bearer_scheme = HTTPBearer()


class AuthFailure(Exception):
    """Unknown user or wrong password."""


class Authenticator(Protocol):
    def authenticate(self, username: str, password: str) -> Role: ...


# ── Password helpers ──────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ── Account table ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Account:
    username: str
    password_hash: str
    role: Role


class StaticAccountAuthenticator:
    """Fixed set of staff accounts, one per role by default."""

    def __init__(self, accounts: list[Account]) -> None:
        self.accounts = {a.username: a for a in accounts}

    @classmethod
    def from_passwords(cls, passwords: dict[str, tuple[str, Role]]) -> StaticAccountAuthenticator:
        """Build from ``{username: (plain_password, role)}``; blank passwords are skipped."""
        return cls([
            Account(username, hash_password(password), role)
            for username, (password, role) in passwords.items()
            if password
        ])

    def authenticate(self, username: str, password: str) -> Role:
        account = self.accounts.get(username)
        if account is None or not verify_password(password, account.password_hash):
            raise AuthFailure("Invalid username or password")
        return account.role


def build_authenticator(config: Config) -> StaticAccountAuthenticator:
    auth = StaticAccountAuthenticator.from_passwords({
        "recruiter": (config.recruiter_password, Role.RECRUITER),
        "worker": (config.worker_password, Role.WORKER),
        "manager": (config.manager_password, Role.MANAGER),
    })
    if not auth.accounts:
        log.warning("No staff passwords configured; sign-in is disabled")
    return auth


# ── JWT helpers ───────────────────────────────────────────────────────────

def create_token(username: str, role: Role, secret: str, expire_hours: int = 12) -> str:
    payload = {
        "sub": username,
        "role": role.value,
        "exp": datetime.now(timezone.utc) + timedelta(hours=expire_hours),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])


# ── FastAPI dependencies ──────────────────────────────────────────────────

def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
) -> dict:
    """Decode the bearer token and return ``{"username", "role"}``."""
    config: Config = request.app.state.config
    try:
        payload = decode_token(credentials.credentials, config.jwt_secret)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return {"username": payload.get("sub", ""), "role": role}


def get_current_role(current_user: dict = Depends(get_current_user)) -> Role:
    return current_user["role"]


def require_roles(*roles: Role) -> Callable[..., Role]:
    """Dependency factory rejecting any role not listed with 403."""

    def _check(role: Role = Depends(get_current_role)) -> Role:
        if role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.title()} accounts cannot do this",
            )
        return role

    return _check
