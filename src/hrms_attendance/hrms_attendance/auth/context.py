"""Resolve who is logged in from the token and the side-channel stores.

Lookup order follows the login flow of the web client: JWT claims first,
then the cookie store, then the local-storage fallback. Nothing is cached;
every call re-reads so a new login is picked up immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import jwt

from ..core import constants
from ..core.enums import Role
from .store import KeyValueStore

logger = logging.getLogger(__name__)

_ORG_CLAIMS: Sequence[tuple[str, ...]] = (
    ("orgId",),
    ("organizationId",),
    ("employee", "organizationId"),
    ("employee", "organization", "orgId"),
    ("employee", "orgId"),
    ("organization", "orgId"),
    ("employee", "organization", "id"),
    ("organization", "id"),
)
_SUBJECT_CLAIMS: Sequence[tuple[str, ...]] = (
    ("sub",),
    ("employeeId",),
    ("employee", "id"),
    ("id",),
)


class _Incomplete:
    """Sentinel returned when the login context cannot be used for requests."""

    _instance: Optional["_Incomplete"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "INCOMPLETE"


INCOMPLETE = _Incomplete()


@dataclass(frozen=True)
class AuthContext:
    token: str
    org_id: str
    subject_id: str
    role: Optional[str] = None


def _usable(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == "undefined":
        return None
    return text


def decode_claims(token: Optional[str]) -> dict:
    """Read JWT claims without verifying the signature.

    The backend owns verification; the client only needs the identifiers.
    """
    if not token:
        return {}
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        logger.debug("auth token is not a decodable JWT")
        return {}
    return claims if isinstance(claims, dict) else {}


def _claim(claims: dict, paths: Sequence[tuple[str, ...]]) -> Optional[str]:
    for path in paths:
        node: Any = claims
        for key in path:
            node = node.get(key) if isinstance(node, dict) else None
        found = _usable(node)
        if found:
            return found
    return None


class ContextReader:
    def __init__(self, cookies: KeyValueStore, local: Optional[KeyValueStore] = None):
        self._cookies = cookies
        self._local = local

    def _stored(self, key: str) -> Optional[str]:
        found = _usable(self._cookies.get(key))
        if found is None and self._local is not None:
            found = _usable(self._local.get(key))
        return found

    def token(self) -> Optional[str]:
        return self._stored(constants.AUTH_TOKEN_KEY)

    def resolve_context(self) -> Union[AuthContext, _Incomplete]:
        token = self.token()
        claims = decode_claims(token)
        org_id = _claim(claims, _ORG_CLAIMS) or self._stored(constants.ORG_ID_KEY)
        subject_id = _claim(claims, _SUBJECT_CLAIMS) or self._stored(constants.EMPLOYEE_ID_KEY)
        if not token or not org_id or not subject_id:
            return INCOMPLETE
        role = _claim(claims, [("role",)]) or self._stored(constants.ROLE_KEY)
        return AuthContext(token=token, org_id=org_id, subject_id=subject_id, role=role)

    def setup_completed(self) -> bool:
        claims = decode_claims(self.token())
        if claims.get("setupCompleted") or claims.get("isSetupCompleted") or claims.get("organizationSetup"):
            return True
        return self._stored(constants.SETUP_COMPLETED_KEY) == "true"

    def employee_setup_completed(self) -> bool:
        claims = decode_claims(self.token())
        if claims.get("onboardingStatus") == "completed" or claims.get("employeeSetupCompleted"):
            return True
        return self._stored(constants.EMPLOYEE_SETUP_COMPLETED_KEY) == "true"

    def requires_setup(self, role: Optional[str]) -> bool:
        """Admins must finish organization setup, employees their profile."""
        if role == Role.ADMIN.value:
            return not self.setup_completed()
        if role == Role.EMPLOYEE.value:
            return not self.employee_setup_completed()
        return False

    def store_login(
        self,
        *,
        token: str,
        org_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        role: Optional[str] = None,
    ) -> None:
        pairs = {
            constants.AUTH_TOKEN_KEY: token,
            constants.ORG_ID_KEY: org_id,
            constants.EMPLOYEE_ID_KEY: subject_id,
            constants.ROLE_KEY: role,
        }
        for key, value in pairs.items():
            if value is None:
                continue
            self._cookies.set(key, value)
            if self._local is not None:
                self._local.set(key, value)

    def clear(self) -> None:
        for store in (self._cookies, self._local):
            if store is None:
                continue
            for key in constants.AUTH_KEYS:
                store.delete(key)
