"""
Outcome logging observer.

Register with NotificationProcessor.on_outcome(log_outcome).
"""

import logging

from models.notification import OutcomeKind, ProcessingOutcome

logger = logging.getLogger(__name__)


async def log_outcome(outcome: ProcessingOutcome) -> None:
    """Write one log line per processed notification."""
    kind = outcome.kind
    store = outcome.store_scope

    if kind == OutcomeKind.PROCESSED:
        result = outcome.result
        logger.info(
            f"PayU {result.variant.value} notification, order extId: {result.ext_order_id}, "
            f"status: {result.status}, changed: {result.changed}, store: {store}"
        )

    elif kind == OutcomeKind.SIGNATURE_INVALID:
        logger.error(
            f"PayU signature error ({outcome.error}). Store {store}. "
            f"Body {outcome.raw.body_for_log()}. "
            f"OpenPayU-Signature: {outcome.raw.signature_header}"
        )

    elif kind == OutcomeKind.MALFORMED_PAYLOAD:
        logger.critical(
            f"PayU sent a correctly signed but unparseable notification, "
            f"check for API contract changes ({outcome.error}). Store {store}. "
            f"Body {outcome.raw.body_for_log()}"
        )

    elif kind == OutcomeKind.UNKNOWN_VARIANT:
        logger.warning(
            f"Unrecognized PayU notification ({outcome.error}). Store {store}. "
            f"Body {outcome.raw.body_for_log()}"
        )

    elif kind == OutcomeKind.DECODE_ERROR:
        logger.error(
            f"PayU notification field error: {outcome.error}. Store {store}. "
            f"Body {outcome.raw.body_for_log()}"
        )

    elif kind == OutcomeKind.PERMANENT_FAILURE:
        logger.error(
            f"PayU notification dropped, order extId: {outcome.record.ext_order_id}: "
            f"{outcome.error}"
        )

    elif kind == OutcomeKind.TRANSIENT_FAILURE:
        ext_order_id = outcome.record.ext_order_id if outcome.record else '-'
        logger.warning(
            f"PayU notification not acknowledged, order extId: {ext_order_id}, "
            f"PayU will redeliver: {outcome.error}",
            exc_info=outcome.error
        )
