"""
Walk service errors

Every error the booking engine and the state machines raise derives from
WalkServiceError. They are all recoverable by the caller; the API layer maps
each kind to an HTTP status and surfaces the kind verbatim.
"""


class WalkServiceError(Exception):
    """Base exception for booking, ledger and lifecycle operations"""

    kind = "WalkServiceError"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.kind}


class NotFound(WalkServiceError):
    """Raised when a referenced dog, walker, subscription, walk or assessment is absent"""

    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class PermissionDenied(WalkServiceError):
    kind = "PermissionDenied"
    status_code = 403


class DogNotEligible(WalkServiceError):
    """Raised when a dog has not passed (or been exempted from) assessment"""

    kind = "DogNotEligible"
    status_code = 409


class NoActiveSubscription(WalkServiceError):
    """Raised when the subscription is not usable for the dog's owner"""

    kind = "NoActiveSubscription"
    status_code = 409


class NoCreditsRemaining(WalkServiceError):
    """Raised when the ledger cannot reserve a credit"""

    kind = "NoCreditsRemaining"
    status_code = 409


class SlotFull(WalkServiceError):
    """Raised when a walker's slot is at capacity. Retryable after re-querying availability."""

    kind = "SlotFull"
    status_code = 409


class WalkerUnavailable(WalkServiceError):
    """Raised when the slot is outside the walker's weekly availability"""

    kind = "WalkerUnavailable"
    status_code = 409


class InvalidStateTransition(WalkServiceError):
    """Raised when a lifecycle guard is violated. Nothing is changed."""

    kind = "InvalidStateTransition"
    status_code = 409


class InvalidCreditRelease(InvalidStateTransition):
    """Raised on double release or release of a consumed credit"""

    kind = "InvalidCreditRelease"
