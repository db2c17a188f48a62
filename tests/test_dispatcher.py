"""
Unit tests for the notification dispatcher.

Run with: pytest tests/test_dispatcher.py -v
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from models.notification import (
    DispatchResult,
    NotificationVariant,
    OrderStatus,
    PaymentStatusRecord,
    RefundRecord,
    RefundStatus,
)
from services.dispatcher import NotificationDispatcher
from services.errors import (
    CollaboratorPermanentFailure,
    CollaboratorTransientFailure,
    OrderNotFound,
)


PAYMENT = PaymentStatusRecord(
    ext_order_id='ORD1',
    status=OrderStatus.COMPLETED,
    total_amount=21000,
    currency_code='PLN'
)

REFUND = RefundRecord(
    ext_order_id='ORD2',
    status=RefundStatus.FINALIZED,
    refund_id='912128'
)


class TestDispatch:
    """Tests for delivery to the order collaborator."""

    async def test_payment_status_is_delivered(self, orders):
        """Test that a payment record calls apply_payment_status once."""
        result = await NotificationDispatcher(orders).dispatch(PAYMENT)

        assert result == DispatchResult(
            variant=NotificationVariant.PAYMENT_STATUS,
            ext_order_id='ORD1',
            status='COMPLETED',
            changed=True
        )
        assert orders.payment_calls == [('ORD1', OrderStatus.COMPLETED, PAYMENT.details())]
        assert orders.refund_calls == []

    async def test_refund_is_delivered(self, orders):
        """Test that a refund record calls apply_refund_status once."""
        result = await NotificationDispatcher(orders).dispatch(REFUND)

        assert result.variant == NotificationVariant.REFUND
        assert result.changed
        assert orders.refund_calls == [('ORD2', RefundStatus.FINALIZED, '912128')]
        assert orders.payment_calls == []

    async def test_repeated_dispatch_changes_state_once(self, orders):
        """Test that delivering the same record twice is one transition."""
        dispatcher = NotificationDispatcher(orders)

        first = await dispatcher.dispatch(PAYMENT)
        second = await dispatcher.dispatch(PAYMENT)

        assert first.changed
        assert not second.changed
        assert len(orders.payment_calls) == 2
        assert orders.transitions == [('ORD1', 'COMPLETED')]

    async def test_concurrent_duplicates_change_state_once(self, orders):
        """Test duplicates dispatched concurrently still give one transition."""
        dispatcher = NotificationDispatcher(orders)

        results = await asyncio.gather(*(dispatcher.dispatch(PAYMENT) for _ in range(5)))

        assert sum(result.changed for result in results) == 1
        assert orders.transitions == [('ORD1', 'COMPLETED')]

    async def test_unknown_order_is_permanent(self, orders):
        """Test that OrderNotFound passes through as a permanent failure."""
        record = PaymentStatusRecord(ext_order_id='MISSING', status=OrderStatus.COMPLETED)

        with pytest.raises(OrderNotFound):
            await NotificationDispatcher(orders).dispatch(record)

    async def test_permanent_failure_passes_through(self):
        """Test that collaborator permanent failures are not rewrapped."""
        collaborator = AsyncMock()
        collaborator.apply_payment_status.side_effect = CollaboratorPermanentFailure("order archived")

        with pytest.raises(CollaboratorPermanentFailure, match='order archived'):
            await NotificationDispatcher(collaborator).dispatch(PAYMENT)

    @pytest.mark.parametrize('error', [
        ConnectionError("database unreachable"),
        asyncio.TimeoutError(),
        RuntimeError("deadlock detected"),
        CollaboratorTransientFailure("busy"),
    ])
    async def test_other_failures_are_transient(self, orders, error):
        """Test that any other collaborator error is transient."""
        orders.fail_with = error

        with pytest.raises(CollaboratorTransientFailure) as exc_info:
            await NotificationDispatcher(orders).dispatch(REFUND)

        if not isinstance(error, CollaboratorTransientFailure):
            assert exc_info.value.__cause__ is error

    async def test_unknown_record_type_is_rejected(self, orders):
        """Test that only decoded records can be dispatched."""
        with pytest.raises(TypeError):
            await NotificationDispatcher(orders).dispatch({'extOrderId': 'ORD1'})

        assert orders.payment_calls == []
