"""Email/password sign-in against the hosted auth provider (Identity Toolkit REST API)."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .. import config
from ..errors import DirectoryClientError

logger = logging.getLogger(__name__)

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{action}"

FRIENDLY_ERRORS = {
    "EMAIL_EXISTS": "The email address is already in use",
    "EMAIL_NOT_FOUND": "Invalid email or password",
    "INVALID_PASSWORD": "Invalid email or password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "INVALID_EMAIL": "The email address is badly formatted",
    "USER_DISABLED": "This account has been disabled",
}


@dataclass
class AuthUser:
    uid: str
    email: Optional[str]
    display_name: Optional[str]
    photo_url: Optional[str]
    id_token: str
    refresh_token: Optional[str] = None


class AuthSession:
    """Holds the signed-in user for the life of the process."""

    def __init__(self, api_key: Optional[str] = None, session=None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else config.FIREBASE_API_KEY
        self.session = session or requests.Session()
        self.timeout = timeout or config.REQUEST_TIMEOUT_SEC
        self.current_user: Optional[AuthUser] = None

    @property
    def id_token(self) -> Optional[str]:
        return self.current_user.id_token if self.current_user else None

    def _call(self, action: str, payload: Dict[str, Any], fallback: str) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                IDENTITY_URL.format(action=action),
                params={"key": self.api_key}, json=payload, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DirectoryClientError(f"{fallback}: {e}") from e

        if resp.status_code >= 400:
            try:
                code = resp.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                raise DirectoryClientError(fallback, resp.status_code)
            # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
            name, _, detail = code.partition(" : ")
            raise DirectoryClientError(FRIENDLY_ERRORS.get(name, detail or name), resp.status_code)
        return resp.json()

    def _user_from(self, data: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName") or None,
            photo_url=data.get("photoUrl") or None,
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
        )

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> AuthUser:
        data = self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
            "Failed to register",
        )
        user = self._user_from(data)
        if display_name:
            profile = self._call(
                "update",
                {"idToken": user.id_token, "displayName": display_name, "returnSecureToken": True},
                "Failed to update profile",
            )
            user.display_name = profile.get("displayName") or display_name
            user.id_token = profile.get("idToken") or user.id_token
            user.refresh_token = profile.get("refreshToken") or user.refresh_token
        self.current_user = user
        logger.info("Signed up %s", user.email)
        return user

    def sign_in(self, email: str, password: str) -> AuthUser:
        data = self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
            "Failed to sign in",
        )
        self.current_user = self._user_from(data)
        logger.info("Signed in %s", self.current_user.email)
        return self.current_user

    def sign_out(self) -> bool:
        self.current_user = None
        return True
