"""Credential verification for the dashboard API.

Routes depend on a :class:`CredentialVerifier`, so the env-backed store here
can be swapped for a real identity provider through
``app.dependency_overrides[get_verifier]``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Protocol

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

CREDENTIALS_ENV_VAR = "DASHBOARD_CREDENTIALS"
ADMIN_ROLE = "admin"
VIEWER_ROLE = "viewer"

logger = logging.getLogger(__name__)

security = HTTPBasic()


@dataclass(frozen=True)
class Principal:
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class CredentialVerifier(Protocol):
    def verify(self, username: str, password: str) -> Principal | None:
        ...


@dataclass(frozen=True)
class _StoredCredential:
    role: str
    digest: str


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class HashedCredentialStore:
    """Fixed lookup of username -> (role, sha256 digest)."""

    def __init__(self, entries: Mapping[str, tuple[str, str]] | None = None) -> None:
        self._entries = {
            username: _StoredCredential(role=role, digest=digest.lower())
            for username, (role, digest) in (entries or {}).items()
        }

    @classmethod
    def from_env(cls, raw: str | None = None) -> "HashedCredentialStore":
        """Parse ``user:role:sha256hex`` entries separated by ``;``."""

        raw = raw if raw is not None else os.getenv(CREDENTIALS_ENV_VAR, "")
        entries: dict[str, tuple[str, str]] = {}
        for chunk in raw.split(";"):
            chunk = chunk.strip()
            if not chunk:
                continue
            try:
                username, role, digest = (part.strip() for part in chunk.split(":", 2))
            except ValueError as exc:
                raise ValueError(
                    f"{CREDENTIALS_ENV_VAR} entries must use 'user:role:sha256hex'."
                ) from exc
            entries[username] = (role, digest)
        if not entries:
            logger.warning("%s is empty; every authenticated request will be rejected.", CREDENTIALS_ENV_VAR)
        return cls(entries)

    def verify(self, username: str, password: str) -> Principal | None:
        stored = self._entries.get(username)
        candidate = hash_password(password)
        if stored is None:
            return None
        if not hmac.compare_digest(candidate, stored.digest):
            return None
        return Principal(username=username, role=stored.role)


def get_verifier() -> CredentialVerifier:
    return HashedCredentialStore.from_env()


def require_user(
    credentials: HTTPBasicCredentials = Depends(security),
    verifier: CredentialVerifier = Depends(get_verifier),
) -> Principal:
    principal = verifier.verify(credentials.username, credentials.password)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return principal


def require_admin(principal: Principal = Depends(require_user)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return principal


__all__ = [
    "ADMIN_ROLE",
    "CredentialVerifier",
    "HashedCredentialStore",
    "Principal",
    "VIEWER_ROLE",
    "get_verifier",
    "hash_password",
    "require_admin",
    "require_user",
]
