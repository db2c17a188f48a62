"""
Notification Payload Classifier.

Determines which notification shape a verified body carries before any
shape-specific decoding happens.
"""

import json
import logging

from models.notification import ClassifiedNotification, NotificationVariant, VerifiedPayload
from .errors import MalformedPayload, UnknownVariant

logger = logging.getLogger(__name__)


# Top-level key that marks a refund notification
REFUND_DISCRIMINATOR = 'refund'


def classify(verified: VerifiedPayload) -> ClassifiedNotification:
    """
    Parse a verified body and detect its variant.

    Args:
        verified: Payload that passed signature verification

    Returns:
        ClassifiedNotification with the parsed document

    Raises:
        TypeError: If given anything other than a VerifiedPayload
        MalformedPayload: If the body is not UTF-8 JSON
        UnknownVariant: If the JSON document is not an object
    """
    if not isinstance(verified, VerifiedPayload):
        raise TypeError("Only verified payloads can be classified")

    try:
        document = json.loads(verified.body.decode('utf-8'))
    except UnicodeDecodeError as e:
        raise MalformedPayload(f"Body is not UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedPayload(f"Body is not valid JSON: {e}") from e
    except ValueError as e:
        # e.g. integer literals beyond the int conversion digit limit
        raise MalformedPayload(f"Body has an unreadable value: {e}") from e
    except RecursionError as e:
        raise MalformedPayload("Body is nested too deeply") from e

    if not isinstance(document, dict):
        raise UnknownVariant(
            f"Expected a JSON object, got {type(document).__name__}"
        )

    if REFUND_DISCRIMINATOR in document:
        variant = NotificationVariant.REFUND
    else:
        variant = NotificationVariant.PAYMENT_STATUS

    logger.debug(f"Classified notification as {variant.value}")

    return ClassifiedNotification(
        variant=variant,
        document=document,
        verified=verified
    )
