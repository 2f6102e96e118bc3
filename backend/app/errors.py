"""
Error taxonomy shared by stores, services and routes.

Every failure that reaches a caller carries a stable ``kind`` and a
human-readable message. Routes never build error bodies themselves; the
handler registered in ``app.app`` renders these.
"""


class VisitlogError(Exception):
    """Base class for errors surfaced to callers."""

    kind = "error"
    status_code = 500
    retryable = False
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class Unauthorized(VisitlogError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class InvalidInput(VisitlogError):
    kind = "invalid_input"
    status_code = 400
    default_message = "Invalid input"


class NotFound(VisitlogError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class NoPendingRequest(NotFound):
    kind = "no_pending_request"
    default_message = "No pending request"


class UnknownUser(NotFound):
    kind = "unknown_user"
    default_message = "No such user"


class Forbidden(VisitlogError):
    kind = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class NotFriends(Forbidden):
    kind = "not_friends"
    default_message = "Not friends"


class Conflict(VisitlogError):
    """A precondition failed; re-read and retry the whole decide-then-act sequence."""
    kind = "conflict"
    status_code = 409
    retryable = True
    default_message = "Conflict, please retry"


class AlreadyFriends(Conflict):
    kind = "already_friends"
    retryable = False
    default_message = "Already friends"


class ReciprocalRequestExists(Conflict):
    kind = "reciprocal_request_exists"
    retryable = False
    default_message = "They already requested you. Accept it instead."


class TransactionConflict(Conflict):
    kind = "transaction_conflict"


class UpstreamUnavailable(VisitlogError):
    kind = "upstream_unavailable"
    status_code = 503
    retryable = True
    default_message = "Upstream service unavailable, please retry"


class TooManyRequests(VisitlogError):
    kind = "too_many_requests"
    status_code = 429
    retryable = True
    default_message = "Too many lookups, slow down"


class TransactionCanceled(Exception):
    """Raised by the store layer when a multi-item write unit is rolled back."""

    def __init__(self, reasons: list[str | None]):
        self.reasons = reasons
        super().__init__("; ".join(r for r in reasons if r) or "transaction canceled")

    def failed(self, index: int) -> bool:
        """Whether the item at ``index`` of the canceled unit failed its condition."""
        return index < len(self.reasons) and self.reasons[index] is not None
