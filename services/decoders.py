"""
Notification Decoders.

Turn a classified document into a typed record. Required fields must be
present and valid; optional fields that PayU left out come back as None.

Payment status notification:

    {"order": {"orderId": "...", "extOrderId": "...", "totalAmount": "21000",
               "currencyCode": "PLN", "status": "COMPLETED"},
     "localReceiptDateTime": "...",
     "properties": [{"name": "PAYMENT_ID", "value": "..."}]}

Refund notification:

    {"orderId": "...", "extOrderId": "...",
     "refund": {"refundId": "...", "amount": "1000", "currencyCode": "PLN",
                "status": "FINALIZED", "statusDateTime": "...",
                "reason": "...", "reasonDescription": "..."}}
"""

import re
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar, Union

from models.notification import (
    ClassifiedNotification,
    NotificationVariant,
    OrderStatus,
    PaymentStatusRecord,
    RefundRecord,
    RefundStatus,
)
from .errors import DecodeError, UnknownVariant

E = TypeVar('E', bound=Enum)

AMOUNT_PATTERN = re.compile(r'-?[0-9]+')

# Amounts are stored as signed 64-bit integers
AMOUNT_MIN = -2 ** 63
AMOUNT_MAX = 2 ** 63 - 1


def _object(document: Dict[str, Any], key: str, path: str) -> Dict[str, Any]:
    value = document.get(key)
    if value is None:
        raise DecodeError(path)
    if not isinstance(value, dict):
        raise DecodeError(path, "expected an object")
    return value


def _required_str(document: Dict[str, Any], key: str, path: str) -> str:
    value = document.get(key)
    if value is None:
        raise DecodeError(path)
    if not isinstance(value, str):
        raise DecodeError(path, "expected a string")
    if not value.strip():
        raise DecodeError(path, "blank")
    return value


def _optional_str(document: Dict[str, Any], key: str, path: str) -> Optional[str]:
    value = document.get(key)
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise DecodeError(path, "expected a string")
    return value


def _optional_amount(document: Dict[str, Any], key: str, path: str) -> Optional[int]:
    """Amounts arrive in minor units, as a number or a digit string."""
    value = document.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise DecodeError(path, "expected an amount")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and AMOUNT_PATTERN.fullmatch(value.strip()):
        try:
            amount = int(value.strip())
        except ValueError:
            raise DecodeError(path, "expected an amount") from None
    else:
        raise DecodeError(path, "expected an amount")

    if not AMOUNT_MIN <= amount <= AMOUNT_MAX:
        raise DecodeError(path, "amount out of range")
    return amount


def _status(document: Dict[str, Any], key: str, path: str, enum_cls: Type[E]) -> E:
    value = _required_str(document, key, path)
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        raise DecodeError(path, f"unknown status '{value}'") from None


def _payment_id(document: Dict[str, Any]) -> Optional[str]:
    properties = document.get('properties')
    if not isinstance(properties, list):
        return None
    for prop in properties:
        if isinstance(prop, dict) and prop.get('name') == 'PAYMENT_ID':
            value = prop.get('value')
            return str(value) if value is not None else None
    return None


def decode_payment_status(document: Dict[str, Any]) -> PaymentStatusRecord:
    """
    Decode an order status notification.

    Args:
        document: Parsed notification body

    Returns:
        PaymentStatusRecord

    Raises:
        DecodeError: If order, order.extOrderId or order.status is missing/invalid
    """
    order = _object(document, 'order', 'order')

    return PaymentStatusRecord(
        ext_order_id=_required_str(order, 'extOrderId', 'order.extOrderId'),
        status=_status(order, 'status', 'order.status', OrderStatus),
        order_id=_optional_str(order, 'orderId', 'order.orderId'),
        total_amount=_optional_amount(order, 'totalAmount', 'order.totalAmount'),
        currency_code=_optional_str(order, 'currencyCode', 'order.currencyCode'),
        payment_id=_payment_id(document),
        local_receipt_datetime=_optional_str(
            document, 'localReceiptDateTime', 'localReceiptDateTime'
        )
    )


def decode_refund(document: Dict[str, Any]) -> RefundRecord:
    """
    Decode a refund notification.

    Args:
        document: Parsed notification body

    Returns:
        RefundRecord

    Raises:
        DecodeError: If extOrderId, refund or refund.status is missing/invalid
    """
    ext_order_id = _required_str(document, 'extOrderId', 'extOrderId')
    refund = _object(document, 'refund', 'refund')

    return RefundRecord(
        ext_order_id=ext_order_id,
        status=_status(refund, 'status', 'refund.status', RefundStatus),
        refund_id=_optional_str(refund, 'refundId', 'refund.refundId'),
        order_id=_optional_str(document, 'orderId', 'orderId'),
        amount=_optional_amount(refund, 'amount', 'refund.amount'),
        currency_code=_optional_str(refund, 'currencyCode', 'refund.currencyCode'),
        reason=_optional_str(refund, 'reason', 'refund.reason'),
        reason_description=_optional_str(
            refund, 'reasonDescription', 'refund.reasonDescription'
        ),
        status_datetime=_optional_str(refund, 'statusDateTime', 'refund.statusDateTime')
    )


def decode(classified: ClassifiedNotification) -> Union[PaymentStatusRecord, RefundRecord]:
    """Decode a classified notification with the decoder for its variant."""
    if classified.variant == NotificationVariant.PAYMENT_STATUS:
        return decode_payment_status(classified.document)
    if classified.variant == NotificationVariant.REFUND:
        return decode_refund(classified.document)
    raise UnknownVariant(f"No decoder for variant {classified.variant}")
