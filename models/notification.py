"""
PayU notification data models.

Represents inbound notifications as they move through verification,
classification and decoding, plus the records handed to the order side.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .settings import Environment


class NotificationVariant(str, Enum):
    """Known notification shapes."""
    PAYMENT_STATUS = "payment_status"
    REFUND = "refund"


class OrderStatus(str, Enum):
    """Order statuses reported by PayU."""
    NEW = "NEW"
    PENDING = "PENDING"
    WAITING_FOR_CONFIRMATION = "WAITING_FOR_CONFIRMATION"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    def is_terminal(self) -> bool:
        """Check if no further payment transition is expected."""
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELED)

    @property
    def rank(self) -> int:
        """Position in the payment lifecycle; both terminal statuses rank last."""
        if self.is_terminal():
            return 3
        return (OrderStatus.NEW, OrderStatus.PENDING, OrderStatus.WAITING_FOR_CONFIRMATION).index(self)

    def replaces(self) -> List['OrderStatus']:
        """Get the stored statuses this status may overwrite."""
        return [status for status in OrderStatus if status.rank < self.rank]


class RefundStatus(str, Enum):
    """Refund statuses reported by PayU."""
    PENDING = "PENDING"
    CANCELED = "CANCELED"
    FINALIZED = "FINALIZED"
    FINISHED = "FINISHED"


@dataclass(frozen=True)
class RawNotification:
    """
    Notification exactly as received from the transport.

    The body is kept byte-for-byte; signatures are computed by PayU
    over these bytes and any re-serialization breaks verification.
    """

    body: bytes
    signature_header: Optional[str] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    def body_for_log(self, limit: int = 4096) -> str:
        """Get the body as text for forensic log lines."""
        text = self.body[:limit].decode('utf-8', errors='replace')
        if len(self.body) > limit:
            text += f"... ({len(self.body)} bytes)"
        return text


@dataclass(frozen=True)
class VerifiedPayload:
    """
    A RawNotification whose signature matched a configured second key.

    Attributes:
        raw: The verified notification
        environment: Environment whose keys were used
        key_index: Which of the environment's keys matched (0 = current)
    """

    raw: RawNotification
    environment: Environment
    key_index: int = 0

    @property
    def body(self) -> bytes:
        return self.raw.body


@dataclass(frozen=True)
class ClassifiedNotification:
    """Verified payload with its parsed document and detected variant."""

    variant: NotificationVariant
    document: Dict[str, Any]
    verified: VerifiedPayload


@dataclass(frozen=True)
class PaymentStatusRecord:
    """
    Decoded order status notification.

    Optional fields are None when PayU did not send them.
    """

    ext_order_id: str
    status: OrderStatus
    order_id: Optional[str] = None
    total_amount: Optional[int] = None
    currency_code: Optional[str] = None
    payment_id: Optional[str] = None
    local_receipt_datetime: Optional[str] = None

    @property
    def variant(self) -> NotificationVariant:
        return NotificationVariant.PAYMENT_STATUS

    def details(self) -> Dict[str, Any]:
        """Get the fields passed along with the status update."""
        return {
            'order_id': self.order_id,
            'total_amount': self.total_amount,
            'currency_code': self.currency_code,
            'payment_id': self.payment_id,
            'local_receipt_datetime': self.local_receipt_datetime
        }


@dataclass(frozen=True)
class RefundRecord:
    """Decoded refund notification."""

    ext_order_id: str
    status: RefundStatus
    refund_id: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[int] = None
    currency_code: Optional[str] = None
    reason: Optional[str] = None
    reason_description: Optional[str] = None
    status_datetime: Optional[str] = None

    @property
    def variant(self) -> NotificationVariant:
        return NotificationVariant.REFUND


@dataclass(frozen=True)
class DispatchResult:
    """
    Result of delivering one record to the order collaborator.

    Attributes:
        variant: Which operation was invoked
        ext_order_id: Order the update was applied to
        status: Status value delivered
        changed: False when the collaborator treated it as a repeat
    """

    variant: NotificationVariant
    ext_order_id: str
    status: str
    changed: bool


class OutcomeKind(str, Enum):
    """How processing of one notification ended."""
    PROCESSED = "processed"
    SIGNATURE_INVALID = "signature_invalid"
    MALFORMED_PAYLOAD = "malformed_payload"
    UNKNOWN_VARIANT = "unknown_variant"
    DECODE_ERROR = "decode_error"
    PERMANENT_FAILURE = "permanent_failure"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class ProcessingOutcome:
    """
    Typed result of processing one notification.

    Attributes:
        kind: How processing ended
        raw: The notification as received
        store_scope: Store whose keys were used
        environment: Environment the store is configured for, once known
        record: Decoded record, once decoding succeeded
        result: Dispatch result, for processed notifications
        error: The failure, for every other kind
    """

    kind: OutcomeKind
    raw: RawNotification
    store_scope: int
    environment: Optional[Environment] = None
    record: Optional[Union[PaymentStatusRecord, RefundRecord]] = None
    result: Optional[DispatchResult] = None
    error: Optional[Exception] = None

    @property
    def acknowledge(self) -> bool:
        """Whether PayU should be told the notification was received."""
        return self.kind != OutcomeKind.TRANSIENT_FAILURE

    @property
    def http_status(self) -> int:
        return 200 if self.acknowledge else 503
