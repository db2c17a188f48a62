"""
Notification Dispatcher.

Delivers decoded notification records to the order collaborator. The
dispatcher keeps no record of what it has delivered; repeated delivery is
made harmless by the collaborator.
"""

import logging
from typing import Union

from models.notification import (
    DispatchResult,
    NotificationVariant,
    PaymentStatusRecord,
    RefundRecord,
)
from .errors import CollaboratorPermanentFailure, CollaboratorTransientFailure
from .orders import OrderCollaborator

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Routes decoded records to the matching collaborator operation.

    Collaborator failures come back as one of two exceptions:
    CollaboratorPermanentFailure (retrying cannot help) or
    CollaboratorTransientFailure (anything else; redelivery may succeed).
    """

    def __init__(self, orders: OrderCollaborator):
        """
        Initialize the dispatcher.

        Args:
            orders: Collaborator owning order state
        """
        self.orders = orders

    async def dispatch(
        self,
        record: Union[PaymentStatusRecord, RefundRecord]
    ) -> DispatchResult:
        """
        Deliver one record to the order collaborator.

        Args:
            record: Decoded payment status or refund record

        Returns:
            DispatchResult describing the delivered update

        Raises:
            CollaboratorPermanentFailure: e.g. the order does not exist
            CollaboratorTransientFailure: any other collaborator error
        """
        if not isinstance(record, (PaymentStatusRecord, RefundRecord)):
            raise TypeError(f"Cannot dispatch {type(record).__name__}")

        try:
            if record.variant == NotificationVariant.PAYMENT_STATUS:
                changed = await self.orders.apply_payment_status(
                    record.ext_order_id,
                    record.status,
                    record.details()
                )
            else:
                changed = await self.orders.apply_refund_status(
                    record.ext_order_id,
                    record.status,
                    record.refund_id
                )
        except (CollaboratorPermanentFailure, CollaboratorTransientFailure):
            raise
        except Exception as e:
            raise CollaboratorTransientFailure(
                f"Order update for {record.ext_order_id} failed: {e}"
            ) from e

        return DispatchResult(
            variant=record.variant,
            ext_order_id=record.ext_order_id,
            status=record.status.value,
            changed=bool(changed)
        )
