"""Error taxonomy shared by the access core and the HTTP layer.

Every error carries a stable ``code`` the API returns verbatim so clients can
tell, for example, a revoked link from an unknown one, or a missing password
from a wrong one. Messages never include password hashes or token material.
"""

from __future__ import annotations

from slate.domain.types import LinkState


class SlateError(Exception):
    code = "error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class ValidationError(SlateError):
    """Malformed input."""

    code = "validation_error"


class NotFound(SlateError):
    """Resource does not exist or is not visible to the caller."""

    code = "not_found"


class PermissionDenied(SlateError):
    """Caller lacks the required access level."""

    code = "permission_denied"


class SelfShareRejected(SlateError):
    """Cannot share a presentation with yourself."""

    code = "self_share_rejected"


class LinkStateError(SlateError):
    """Share link exists but cannot be used."""

    code = "link_unusable"

    _messages = {
        LinkState.REVOKED: "This link has been deactivated",
        LinkState.EXPIRED: "This link has expired",
        LinkState.VIEW_LIMIT_EXCEEDED: "This link has reached its maximum view limit",
    }

    def __init__(self, reason: LinkState) -> None:
        if reason is LinkState.ACTIVE:
            raise ValueError("an active link is not an error state")
        self.reason = reason
        self.code = f"link_{reason.value}"
        super().__init__(self._messages[reason])


class PasswordRequired(SlateError):
    """Password required."""

    code = "password_required"


class PasswordIncorrect(SlateError):
    """Incorrect password."""

    code = "password_incorrect"


class TransientStorageError(SlateError):
    """Storage temporarily unavailable, retry the request."""

    code = "storage_unavailable"


class TokenCollision(SlateError):
    """Generated share token already exists."""

    code = "token_collision"
