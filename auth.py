"""
Operator sign-in.

`FirebaseAuthenticator` checks an email/password pair against the hosted
auth service's REST API. `AuthGate` holds the signed-in user of one admin
session and tells subscribers whenever that changes.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from config import settings
from errors import AuthError

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

INVALID_CREDENTIAL_CODES = {
    "INVALID_PASSWORD",
    "EMAIL_NOT_FOUND",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
}
RATE_LIMITED_CODES = {"TOO_MANY_ATTEMPTS_TRY_LATER"}


@dataclass
class User:
    uid: str
    email: str
    id_token: Optional[str] = None


def auth_error_for(code: Optional[str]) -> AuthError:
    """Map an auth service error code to the operator-facing error kind."""
    # Codes sometimes carry a suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access ..."
    base = (code or "").split(":")[0].strip()
    if base in INVALID_CREDENTIAL_CODES:
        return AuthError(AuthError.INVALID_CREDENTIALS, code)
    if base in RATE_LIMITED_CODES:
        return AuthError(AuthError.RATE_LIMITED, code)
    return AuthError(AuthError.OTHER, code)


class FirebaseAuthenticator:
    def __init__(self, api_key: Optional[str] = None, timeout: Optional[int] = None):
        self.api_key = api_key or settings.AUTH_API_KEY
        self.timeout = timeout or settings.AUTH_TIMEOUT

    def sign_in(self, email: str, password: str) -> User:
        if not self.api_key:
            logger.error("AUTH_API_KEY not set, cannot sign in")
            raise AuthError(AuthError.OTHER, "NOT_CONFIGURED")
        try:
            response = requests.post(
                SIGN_IN_URL,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Auth service unreachable: {e}")
            raise AuthError(AuthError.OTHER, "NETWORK_ERROR") from e

        if response.status_code != 200:
            try:
                code = response.json().get("error", {}).get("message")
            except ValueError:
                code = None
            logger.info(f"Sign in rejected for {email}: {code}")
            raise auth_error_for(code)

        body = response.json()
        return User(uid=body.get("localId", ""), email=body.get("email", email), id_token=body.get("idToken"))


class AuthGate:
    """Current-user holder with change notifications."""

    def __init__(self, authenticator):
        self.authenticator = authenticator
        self.current_user: Optional[User] = None
        self._listeners: List[Callable[[Optional[User]], None]] = []

    @property
    def signed_in(self) -> bool:
        return self.current_user is not None

    def subscribe(self, callback: Callable[[Optional[User]], None]) -> Callable[[], None]:
        """Register `callback`; it is called at once with the current user and on every change."""
        self._listeners.append(callback)
        callback(self.current_user)
        return lambda: self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self.current_user)

    def sign_in(self, email: str, password: str) -> User:
        user = self.authenticator.sign_in(email.strip(), password)
        self.current_user = user
        logger.info(f"Operator signed in: {user.email}")
        self._notify()
        return user

    def sign_out(self) -> None:
        if self.current_user is None:
            return
        logger.info(f"Operator signed out: {self.current_user.email}")
        self.current_user = None
        self._notify()
