"""
Order Collaborators.

The order side owns durable order state. It receives decoded status updates
keyed by PayU's external order id and must treat a repeated identical update
as a no-op.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from database.db import Database
from models.notification import OrderStatus, RefundStatus
from .errors import OrderNotFound

logger = logging.getLogger(__name__)


class OrderCollaborator(ABC):
    """Interface the dispatcher delivers order updates to."""

    @abstractmethod
    async def apply_payment_status(
        self,
        ext_order_id: str,
        status: OrderStatus,
        details: Dict[str, Any]
    ) -> bool:
        """
        Apply a payment status to an order.

        Args:
            ext_order_id: External order id from the notification
            status: Reported order status
            details: Optional fields (amount, currency, payment id, ...)

        Returns:
            True if order state changed, False for a repeat

        Raises:
            OrderNotFound: If no order carries the id
        """

    @abstractmethod
    async def apply_refund_status(
        self,
        ext_order_id: str,
        status: RefundStatus,
        refund_id: Optional[str]
    ) -> bool:
        """
        Apply a refund status to an order.

        Args:
            ext_order_id: External order id from the notification
            status: Reported refund status
            refund_id: PayU refund id, if sent

        Returns:
            True if order state changed, False for a repeat

        Raises:
            OrderNotFound: If no order carries the id
        """


class DatabaseOrderCollaborator(OrderCollaborator):
    """
    Order collaborator backed by the orders tables.

    Every update is a single compare-and-set statement, so concurrent
    notifications for the same order cannot interleave partial writes.
    """

    def __init__(self, db: Database):
        self.db = db

    async def apply_payment_status(
        self,
        ext_order_id: str,
        status: OrderStatus,
        details: Dict[str, Any]
    ) -> bool:
        changed = await self.db.update_payment_status(
            ext_order_id=ext_order_id,
            status=status.value,
            replaceable_statuses=[s.value for s in status.replaces()],
            payu_order_id=details.get('order_id'),
            payment_id=details.get('payment_id'),
            total_amount=details.get('total_amount'),
            currency_code=details.get('currency_code')
        )

        if changed:
            logger.info(f"Order {ext_order_id} payment status set to {status.value}")
            return True

        order = await self.db.get_order(ext_order_id)
        if not order:
            raise OrderNotFound(ext_order_id)

        logger.debug(
            f"Order {ext_order_id} payment status unchanged "
            f"(stored {order.get('payment_status')}, reported {status.value})"
        )
        return False

    async def apply_refund_status(
        self,
        ext_order_id: str,
        status: RefundStatus,
        refund_id: Optional[str]
    ) -> bool:
        order = await self.db.get_order(ext_order_id)
        if not order:
            raise OrderNotFound(ext_order_id)

        changed = await self.db.update_refund_status(
            ext_order_id=ext_order_id,
            refund_key=refund_id or '',
            status=status.value
        )

        if changed:
            logger.info(
                f"Order {ext_order_id} refund {refund_id or '-'} status set to {status.value}"
            )
        return changed > 0
