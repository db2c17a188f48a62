"""
Notification processing errors.

Each class maps to one way a notification can fail; the processor turns
them into outcomes and the transport decides whether to acknowledge.
"""

from typing import Optional


class NotificationError(Exception):
    """Base class for notification processing failures."""


class SignatureInvalid(NotificationError):
    """Signature header missing or not matching any configured key."""


class CredentialsNotConfigured(SignatureInvalid):
    """No second key is configured for the store and environment."""

    def __init__(self, store_scope: int, environment: str):
        self.store_scope = store_scope
        self.environment = environment
        super().__init__(
            f"No signature key configured for store {store_scope} ({environment})"
        )


class ClassificationError(NotificationError):
    """Verified body could not be mapped to a notification variant."""


class MalformedPayload(ClassificationError):
    """Verified body is not parseable JSON."""


class UnknownVariant(ClassificationError):
    """Verified body parses but matches no known notification shape."""


class DecodeError(NotificationError):
    """A required field is missing or invalid inside a known variant."""

    def __init__(self, field: str, reason: str = "missing"):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class CollaboratorError(NotificationError):
    """Order collaborator could not apply an update."""


class CollaboratorTransientFailure(CollaboratorError):
    """Update failed for a reason a redelivery may fix."""


class CollaboratorPermanentFailure(CollaboratorError):
    """Update can never succeed for this notification."""


class OrderNotFound(CollaboratorPermanentFailure):
    """No local order carries the external order id."""

    def __init__(self, ext_order_id: str, detail: Optional[str] = None):
        self.ext_order_id = ext_order_id
        super().__init__(detail or f"Order {ext_order_id} not found")
