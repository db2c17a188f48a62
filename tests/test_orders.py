"""
Unit tests for the database order collaborator.

Run with: pytest tests/test_orders.py -v
"""

import pytest

from models.notification import OrderStatus, OutcomeKind, RawNotification, RefundStatus
from services.credentials import EnvCredentialProvider
from services.dispatcher import NotificationDispatcher
from services.errors import OrderNotFound
from services.notification_processor import NotificationProcessor
from services.orders import DatabaseOrderCollaborator
from services.signature import sign


DETAILS = {
    'order_id': 'LDLW5N7MF4140324GUEST000P01',
    'total_amount': 21000,
    'currency_code': 'PLN',
    'payment_id': '151471228',
    'local_receipt_datetime': None
}


@pytest.fixture
async def collaborator(db):
    await db.create_order('ORD1')
    return DatabaseOrderCollaborator(db)


class TestPaymentStatus:
    """Tests for payment status updates."""

    async def test_status_is_stored(self, db, collaborator):
        """Test that a status update writes the order row."""
        changed = await collaborator.apply_payment_status('ORD1', OrderStatus.PENDING, DETAILS)

        order = await db.get_order('ORD1')
        assert changed is True
        assert order['payment_status'] == 'PENDING'
        assert order['payu_order_id'] == 'LDLW5N7MF4140324GUEST000P01'
        assert order['total_amount'] == 21000
        assert order['currency_code'] == 'PLN'
        assert order['payment_id'] == '151471228'

    async def test_timestamps_are_utc(self, db, collaborator):
        """Test that update times are stored as timezone-aware UTC."""
        await collaborator.apply_payment_status('ORD1', OrderStatus.PENDING, {})

        order = await db.get_order('ORD1')
        assert order['updated_at'].endswith('+00:00')

    async def test_repeat_is_noop(self, collaborator):
        """Test that the same status twice changes state once."""
        first = await collaborator.apply_payment_status('ORD1', OrderStatus.COMPLETED, DETAILS)
        second = await collaborator.apply_payment_status('ORD1', OrderStatus.COMPLETED, DETAILS)

        assert first is True
        assert second is False

    async def test_progression(self, db, collaborator):
        """Test normal NEW -> PENDING -> COMPLETED progression."""
        for status in (OrderStatus.NEW, OrderStatus.PENDING, OrderStatus.COMPLETED):
            assert await collaborator.apply_payment_status('ORD1', status, {})

        order = await db.get_order('ORD1')
        assert order['payment_status'] == 'COMPLETED'

    async def test_terminal_status_is_final(self, db, collaborator):
        """Test that a late PENDING cannot undo COMPLETED."""
        await collaborator.apply_payment_status('ORD1', OrderStatus.COMPLETED, DETAILS)

        changed = await collaborator.apply_payment_status('ORD1', OrderStatus.PENDING, {})

        order = await db.get_order('ORD1')
        assert changed is False
        assert order['payment_status'] == 'COMPLETED'

    @pytest.mark.parametrize('stored,late', [
        (OrderStatus.PENDING, OrderStatus.NEW),
        (OrderStatus.WAITING_FOR_CONFIRMATION, OrderStatus.PENDING),
        (OrderStatus.WAITING_FOR_CONFIRMATION, OrderStatus.NEW),
        (OrderStatus.CANCELED, OrderStatus.COMPLETED),
    ])
    async def test_out_of_order_status_does_not_regress(self, db, collaborator, stored, late):
        """Test that an earlier lifecycle status arriving late is a no-op."""
        await collaborator.apply_payment_status('ORD1', stored, {})

        changed = await collaborator.apply_payment_status('ORD1', late, {})

        order = await db.get_order('ORD1')
        assert changed is False
        assert order['payment_status'] == stored.value

    async def test_cancel_from_pending(self, db, collaborator):
        """Test that PENDING can still move to CANCELED."""
        await collaborator.apply_payment_status('ORD1', OrderStatus.PENDING, {})

        assert await collaborator.apply_payment_status('ORD1', OrderStatus.CANCELED, {})

        order = await db.get_order('ORD1')
        assert order['payment_status'] == 'CANCELED'

    async def test_missing_details_keep_stored_values(self, db, collaborator):
        """Test that None details do not erase earlier values."""
        await collaborator.apply_payment_status('ORD1', OrderStatus.PENDING, DETAILS)
        await collaborator.apply_payment_status('ORD1', OrderStatus.COMPLETED, {})

        order = await db.get_order('ORD1')
        assert order['total_amount'] == 21000
        assert order['payment_id'] == '151471228'

    async def test_unknown_order(self, collaborator):
        """Test that an unknown external id raises OrderNotFound."""
        with pytest.raises(OrderNotFound) as exc_info:
            await collaborator.apply_payment_status('NOPE', OrderStatus.COMPLETED, {})

        assert exc_info.value.ext_order_id == 'NOPE'


class TestRefundStatus:
    """Tests for refund status updates."""

    async def test_refund_is_recorded(self, db, collaborator):
        """Test that a refund notification creates a refund row."""
        changed = await collaborator.apply_refund_status('ORD1', RefundStatus.PENDING, '912128')

        refunds = await db.get_refunds('ORD1')
        assert changed is True
        assert [(r['refund_key'], r['status']) for r in refunds] == [('912128', 'PENDING')]

    async def test_refund_repeat_is_noop(self, collaborator):
        """Test that a repeated refund status is not a new transition."""
        assert await collaborator.apply_refund_status('ORD1', RefundStatus.FINISHED, None)
        assert not await collaborator.apply_refund_status('ORD1', RefundStatus.FINISHED, None)

    async def test_refund_progression_and_terminal(self, db, collaborator):
        """Test PENDING -> FINALIZED, after which the refund is final."""
        assert await collaborator.apply_refund_status('ORD1', RefundStatus.PENDING, 'R1')
        assert await collaborator.apply_refund_status('ORD1', RefundStatus.FINALIZED, 'R1')
        assert not await collaborator.apply_refund_status('ORD1', RefundStatus.PENDING, 'R1')

        refunds = await db.get_refunds('ORD1')
        assert refunds[0]['status'] == 'FINALIZED'

    async def test_refunds_tracked_separately(self, db, collaborator):
        """Test that two refund ids of one order are independent."""
        await collaborator.apply_refund_status('ORD1', RefundStatus.FINALIZED, 'R1')
        await collaborator.apply_refund_status('ORD1', RefundStatus.PENDING, 'R2')

        refunds = await db.get_refunds('ORD1')
        assert [(r['refund_key'], r['status']) for r in refunds] == [
            ('R1', 'FINALIZED'), ('R2', 'PENDING')
        ]

    async def test_refund_for_unknown_order(self, db, collaborator):
        """Test that refunds for unknown orders raise OrderNotFound."""
        with pytest.raises(OrderNotFound):
            await collaborator.apply_refund_status('NOPE', RefundStatus.FINISHED, None)

        assert await db.get_refunds('NOPE') == []


class TestOrderStatusLifecycle:
    """Tests for payment status ordering."""

    def test_rank_order(self):
        """Test NEW < PENDING < WAITING_FOR_CONFIRMATION < terminal."""
        ranks = [status.rank for status in (
            OrderStatus.NEW,
            OrderStatus.PENDING,
            OrderStatus.WAITING_FOR_CONFIRMATION,
            OrderStatus.COMPLETED,
        )]

        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4
        assert OrderStatus.CANCELED.rank == OrderStatus.COMPLETED.rank

    def test_replaces(self):
        """Test which stored statuses a new status may overwrite."""
        assert OrderStatus.NEW.replaces() == []
        assert OrderStatus.PENDING.replaces() == [OrderStatus.NEW]
        assert OrderStatus.COMPLETED.replaces() == [
            OrderStatus.NEW, OrderStatus.PENDING, OrderStatus.WAITING_FOR_CONFIRMATION
        ]


class TestOversizedAmounts:
    """Tests for amounts the orders table cannot store."""

    async def test_oversized_amount_is_dropped_not_retried(self, db, collaborator):
        """Test that an amount beyond 64 bits is acknowledged on every delivery."""
        processor = NotificationProcessor(
            credentials=EnvCredentialProvider({'PAYU_SECOND_KEY': 'key'}),
            dispatcher=NotificationDispatcher(collaborator)
        )
        body = b'{"order":{"extOrderId":"ORD1","status":"COMPLETED","totalAmount":"99999999999999999999"}}'
        raw = RawNotification(body=body, signature_header=sign(body, b'key'))

        for _ in range(3):
            outcome = await processor.process(raw, 0)
            assert outcome.kind == OutcomeKind.DECODE_ERROR
            assert outcome.http_status == 200

        order = await db.get_order('ORD1')
        assert order['payment_status'] is None
