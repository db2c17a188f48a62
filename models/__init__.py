"""Data models for the PayU notification service."""

from .notification import (
    ClassifiedNotification,
    DispatchResult,
    NotificationVariant,
    OrderStatus,
    OutcomeKind,
    PaymentStatusRecord,
    ProcessingOutcome,
    RawNotification,
    RefundRecord,
    RefundStatus,
    VerifiedPayload,
)
from .settings import DEFAULT_STORE_SCOPE, Environment, PayUSettings

__all__ = [
    'ClassifiedNotification',
    'DispatchResult',
    'NotificationVariant',
    'OrderStatus',
    'OutcomeKind',
    'PaymentStatusRecord',
    'ProcessingOutcome',
    'RawNotification',
    'RefundRecord',
    'RefundStatus',
    'VerifiedPayload',
    'DEFAULT_STORE_SCOPE',
    'Environment',
    'PayUSettings',
]
