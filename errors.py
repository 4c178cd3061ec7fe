"""
Error taxonomy shared by the store client, the public renderer and the admin editor.
"""
from typing import List, Optional


class ClubSiteError(Exception):
    """Base class for every error raised by this service."""


class AuthError(ClubSiteError):
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    OTHER = "other"

    MESSAGES = {
        INVALID_CREDENTIALS: "Incorrect email or password. Please try again.",
        RATE_LIMITED: "Too many failed attempts. Please wait a few minutes.",
        OTHER: "Sign in failed. Check your credentials and try again.",
    }

    def __init__(self, kind: str = OTHER, code: Optional[str] = None):
        if kind not in self.MESSAGES:
            kind = self.OTHER
        self.kind = kind
        self.code = code
        super().__init__(self.MESSAGES[kind])

    @property
    def message(self) -> str:
        return self.MESSAGES[self.kind]


class StoreUnavailableError(ClubSiteError):
    """The document store could not be reached or refused the operation."""


# Short alias used by the store client contract
UnavailableError = StoreUnavailableError


class NotFoundError(ClubSiteError):
    def __init__(self, collection: str, doc_id: Optional[str] = None):
        self.collection = collection
        self.doc_id = doc_id
        where = f"{collection}/{doc_id}" if doc_id else collection
        super().__init__(f"Document not found: {where}")


class ValidationError(ClubSiteError):
    def __init__(self, collection: str, problems: List[str]):
        self.collection = collection
        self.problems = list(problems)
        super().__init__(f"Invalid {collection} document: " + "; ".join(self.problems))


class EditorStateError(ClubSiteError):
    """An admin action does not fit the editor's current state (no open form, request in flight)."""
